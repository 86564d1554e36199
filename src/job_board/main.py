"""Entry points for the job board service.

Commands:
  - serve:    read API with the ingestion scheduler running in-process
  - schedule: ingestion scheduler only
  - sync:     one fetch-and-save cycle for the given sources, then exit
  - stub:     fake vendor endpoints for mode=dev
"""

import argparse
import asyncio
import signal
import sys
from dataclasses import dataclass

import uvicorn
from loguru import logger

from job_board.config import Config, Settings
from job_board.pipeline import CompanyEnricher, JobGateway
from job_board.scheduler import JobScheduler
from job_board.schema import RunStatus
from job_board.sources import AVAILABLE_SOURCES, get_source
from job_board.storage import JobStorage
from job_board.utils import setup_logger


@dataclass
class Components:
    settings: Settings
    config: Config
    storage: JobStorage
    gateway: JobGateway
    scheduler: JobScheduler


def build_components(settings: Settings) -> Components:
    """Wire storage, enrichment, gateway and scheduler from one Settings instance."""
    config = settings.load_config()
    storage = JobStorage(settings.db_path)
    enricher = CompanyEnricher(
        storage,
        api_key=settings.brandfetch_api_key,
        enabled=settings.is_production,
    )
    gateway = JobGateway(storage, config.blocked_companies, enricher=enricher)
    scheduler = JobScheduler(settings, config, storage, gateway)
    return Components(settings, config, storage, gateway, scheduler)


async def sync_main(components: Components, sources: list[str]) -> int:
    """Run the given sources once, concurrently. Returns the number of failed runs."""
    scheduler = components.scheduler
    results = await asyncio.gather(*(scheduler.run_source(get_source(s)) for s in sources))
    failed = 0
    for info in results:
        logger.info(f"{info.api_name}: {info.status} | {info.last_run_count} saved | {info.last_error_msg or '-'}")
        if info.status is RunStatus.failed:
            failed += 1
    logger.info(f"Stored jobs: {components.storage.count_jobs()}")
    return failed


async def schedule_main(components: Components) -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    components.scheduler.start()
    try:
        await stop.wait()
    finally:
        components.scheduler.shutdown()


def serve(components: Components) -> None:
    from job_board.api import create_app

    app = create_app(components.settings, components.storage, components.scheduler)
    uvicorn.run(app, host=components.settings.host, port=components.settings.port, log_config=None)


def serve_stub(settings: Settings) -> None:
    from job_board.stub import create_stub_app

    uvicorn.run(create_stub_app(), host="127.0.0.1", port=settings.stub_port, log_config=None)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="job-board",
        description="Golang job board: ingestion scheduler and read API",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Run the read API and the ingestion scheduler")
    subparsers.add_parser("schedule", help="Run the ingestion scheduler only")

    sync_parser = subparsers.add_parser("sync", help="Fetch and save once, then exit")
    sync_parser.add_argument(
        "--sources",
        choices=AVAILABLE_SOURCES,
        nargs="*",
        default=None,
        help="Source(s) to sync, default: every enabled source. Example: --sources jsearch indeed",
    )

    subparsers.add_parser("stub", help="Serve fake vendor responses for mode=dev")

    return parser.parse_args(argv)


def cli() -> None:
    """CLI entry point."""
    args = parse_args()

    if not args.command:
        parse_args(["--help"])

    settings = Settings()
    setup_logger(
        settings.log_level,
        sentry_dsn=settings.sentry_dsn,
        sentry_environment=settings.sentry_environment,
        logs_dir=settings.logs_dir,
    )

    match args.command:
        case "stub":
            serve_stub(settings)
        case "serve":
            serve(build_components(settings))
        case "schedule":
            asyncio.run(schedule_main(build_components(settings)))
        case "sync":
            components = build_components(settings)
            sources = args.sources or [s.value for s in components.config.enabled_sources()]
            failed = asyncio.run(sync_main(components, sources))
            sys.exit(1 if failed else 0)
        case _:
            logger.error("Unknown command. Use: serve, schedule, sync, or stub")
            sys.exit(2)


if __name__ == "__main__":
    cli()
