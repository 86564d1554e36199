"""Configuration management."""

from job_board.config.settings import Config, RetryConfig, Settings, SourceConfig

__all__ = ["Config", "RetryConfig", "Settings", "SourceConfig"]
