"""Recurring per-source ingestion with run-state that survives restarts.

Every source gets its own interval trigger. Its next due time is restored from
job_schedule_info on startup and written back on shutdown. A run records
Success, Partial Success or Failed together with the record count and error.
"""
import asyncio
import os
import sqlite3
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import psutil
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from job_board.config.settings import Config, Settings, SourceConfig
from job_board.exceptions import JobBoardError, PersistenceError
from job_board.pipeline.gateway import JobGateway
from job_board.schema import JobScheduleInfo, RunStatus, Source, utcnow
from job_board.sources import Adapter, build_adapter
from job_board.storage import JobStorage

# Overdue sources run shortly after startup instead of all at once.
OVERDUE_DELAY = timedelta(minutes=1)
# Sources that never ran wait before their first call.
FIRST_RUN_DELAY = timedelta(hours=1)

AdapterFactory = Callable[[Source, SourceConfig], Adapter]


def _log_resources() -> None:
    """Log current process CPU and memory usage."""
    proc = psutil.Process(os.getpid())
    mem = proc.memory_info().rss / 1024 / 1024  # MB
    cpu = proc.cpu_percent(interval=None)
    logger.info(f"[resources] CPU: {cpu:.0f}% | RAM: {mem:.0f}MB")


def initial_next_run(info: JobScheduleInfo | None, now: datetime) -> datetime:
    """First trigger time after a (re)start, from the persisted row if there is one."""
    if info is None or info.next_run_time is None:
        return now + FIRST_RUN_DELAY
    if info.next_run_time > now:
        return info.next_run_time
    return now + OVERDUE_DELAY


class JobScheduler:
    def __init__(
        self,
        settings: Settings,
        config: Config,
        storage: JobStorage,
        gateway: JobGateway,
        adapter_factory: AdapterFactory | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._config = config
        self._storage = storage
        self._gateway = gateway
        self._adapter_factory = adapter_factory or self._default_adapter
        self._clock = clock
        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._tasks: set[asyncio.Task] = set()

    def _default_adapter(self, source: Source, cfg: SourceConfig) -> Adapter:
        return build_adapter(source, self._settings, cfg, retry=self._config.retry)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def enabled_sources(self) -> list[Source]:
        return list(self._config.enabled_sources())

    def source_config(self, source: Source) -> SourceConfig:
        return self._config.sources.get(source) or SourceConfig()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Register every enabled source. Must be called with a running event loop."""
        self._scheduler.start()
        now = self._clock()
        for source, cfg in self._config.enabled_sources().items():
            info = self._storage.get_schedule_info(source.value)
            next_run = initial_next_run(info, now)
            if info is None:
                self._storage.upsert_schedule_info(
                    JobScheduleInfo(
                        api_name=source.value,
                        next_run_time=next_run,
                        interval_hours=cfg.interval_hours,
                        status=RunStatus.scheduled,
                    )
                )
            self._scheduler.add_job(
                self.run_source,
                IntervalTrigger(hours=cfg.interval_hours, start_date=next_run, timezone=UTC),
                args=[source],
                id=source.value,
                name=source.label,
                next_run_time=next_run,
                coalesce=True,
                max_instances=1,
                misfire_grace_time=int(OVERDUE_DELAY.total_seconds() * 10),
                replace_existing=True,
            )
            logger.info(
                f"Scheduled {source.value} every {cfg.interval_hours}h, next run at {next_run.isoformat()}"
            )

    def next_run_times(self) -> dict[str, datetime | None]:
        return {job.id: job.next_run_time for job in self._scheduler.get_jobs()}

    def shutdown(self) -> None:
        """Persist each source's in-memory next run time, then stop."""
        if not self._scheduler.running:
            return
        for api_name, next_run in self.next_run_times().items():
            if next_run is None:
                continue
            self._storage.update_next_run_time(api_name, next_run)
            logger.info(f"Saved next run time for {api_name}: {next_run.isoformat()}")
        self._scheduler.shutdown(wait=False)
        for task in self._tasks:
            task.cancel()
        logger.info("Scheduler stopped")

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def trigger(self, source: Source) -> asyncio.Task:
        """Run one source now, outside its schedule, on a background task."""
        task = asyncio.create_task(self.run_source(source), name=f"sync-{source.value}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _next_due(self, source: Source, cfg: SourceConfig, now: datetime) -> datetime:
        job = self._scheduler.get_job(source.value) if self._scheduler.running else None
        if job is not None and job.next_run_time is not None and job.next_run_time > now:
            return job.next_run_time
        return now + timedelta(hours=cfg.interval_hours)

    async def _fetch_and_save(self, source: Source, cfg: SourceConfig) -> tuple[RunStatus, int, str]:
        timeout = self._settings.run_timeout
        cancel = asyncio.Event()
        handle = asyncio.get_running_loop().call_later(timeout, cancel.set)
        try:
            try:
                async with asyncio.timeout(timeout):
                    async with self._adapter_factory(source, cfg) as adapter:
                        jobs = await adapter.fetch_jobs()
            except (JobBoardError, TimeoutError) as e:
                message = str(e) or f"fetch timed out after {timeout:.0f}s"
                logger.error(f"Error fetching {source.value} jobs: {message}")
                return RunStatus.failed, 0, message

            try:
                result = await self._gateway.save_jobs(jobs, cancel=cancel)
            except PersistenceError as e:
                logger.error(f"Error saving {source.value} jobs: {e}")
                return RunStatus.partial_success, e.saved, str(e)
        finally:
            handle.cancel()

        logger.info(f"Successfully saved {result.saved} {source.value} jobs")
        return RunStatus.success, result.saved, ""

    async def run_source(self, source: Source) -> JobScheduleInfo:
        """One fetch-and-save cycle; the outcome is recorded, never raised."""
        cfg = self.source_config(source)
        _log_resources()
        logger.info(f"Starting {source.value} run")
        started = self._clock()
        try:
            status, count, error = await self._fetch_and_save(source, cfg)
        except Exception as e:
            logger.exception(f"Unexpected error in {source.value} run")
            status, count, error = RunStatus.failed, 0, str(e) or type(e).__name__

        info = JobScheduleInfo(
            api_name=source.value,
            last_run_time=started,
            next_run_time=self._next_due(source, cfg, self._clock()),
            interval_hours=cfg.interval_hours,
            status=status,
            last_run_count=count,
            last_error_msg=error,
        )
        try:
            self._storage.upsert_schedule_info(info)
            self._storage.add_sync_log(source.value, status, count, error)
        except sqlite3.Error:
            logger.exception(f"Could not record {source.value} run-state")
        logger.info(f"{source.value} run finished: {status} ({count} jobs)")
        return info
