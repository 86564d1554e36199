"""Read API."""

from job_board.api.main import create_app

__all__ = ["create_app"]
