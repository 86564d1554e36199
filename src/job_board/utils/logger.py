"""Logging configuration."""
import sys
from pathlib import Path

import sentry_sdk
from loguru import logger


def setup_logger(
    log_level: str = "INFO",
    sentry_dsn: str = "",
    sentry_environment: str = "development",
    logs_dir: Path | None = None,
) -> None:
    logger.remove()

    # Console / journalctl
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>",
        level=log_level,
        colorize=True,
    )

    if logs_dir is not None:
        logs_dir.mkdir(parents=True, exist_ok=True)
        logger.add(logs_dir / "job_board.log", level=log_level, rotation="10 MB", retention=5)

    if sentry_dsn:
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=sentry_environment,
        )

        def sentry_sink(message):
            if message.record["exception"]:
                sentry_sdk.capture_exception(message.record["exception"].value)
            else:
                with sentry_sdk.new_scope() as scope:
                    scope.set_extra("name", message.record["name"])
                    scope.set_extra("line", message.record["line"])
                    sentry_sdk.capture_message(message.record["message"], level="error", scope=scope)
        logger.add(sentry_sink, level="ERROR")

    logger.debug("Logger initialized")
