"""Utility modules."""

from job_board.utils.logger import setup_logger

__all__ = ["setup_logger"]
