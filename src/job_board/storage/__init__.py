"""Storage modules."""

from job_board.storage.jobs_storage import JobStorage

__all__ = ["JobStorage"]
