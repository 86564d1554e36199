"""Recurring ingestion scheduler."""

from job_board.scheduler.service import JobScheduler, initial_next_run

__all__ = ["JobScheduler", "initial_next_run"]
