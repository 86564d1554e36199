"""Transactional, filtered persistence of a fetched batch."""
import asyncio
import sqlite3
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from job_board.exceptions import PersistenceError, SaveCancelled
from job_board.pipeline.enrichment import CompanyEnricher
from job_board.pipeline.filters import is_blocked_company, is_go_job
from job_board.schema import CompanyDetails, Job
from job_board.storage import JobStorage


@dataclass
class SaveResult:
    saved: int = 0
    duplicates: int = 0
    blocked: int = 0
    non_go: int = 0
    blocked_companies: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"{self.saved} saved, {self.duplicates} duplicates skipped,"
            f" {self.blocked} blocked, {self.non_go} non-Go skipped"
        )


class JobGateway:
    """Writes batches of jobs in one transaction each.

    Enrichment for the batch is resolved first, outside any transaction, so
    the SQLite write lock is never held across a network call. Then, per
    record in input order: cancellation check, blocklist, Go relevance,
    duplicate check, upsert. Any upsert failure or cancellation rolls back
    the whole batch.
    """

    def __init__(
        self,
        storage: JobStorage,
        blocked_companies: Iterable[str],
        enricher: CompanyEnricher | None = None,
    ) -> None:
        self._storage = storage
        self._blocked = [name.lower() for name in blocked_companies]
        self._enricher = enricher
        self._write_lock = asyncio.Lock()

    def _is_candidate(self, job: Job) -> bool:
        return not is_blocked_company(job.company, self._blocked) and is_go_job(job)

    def _is_duplicate(self, job: Job, conn: sqlite3.Connection) -> bool:
        try:
            return self._storage.is_duplicate(job, conn=conn)
        except sqlite3.Error as e:
            # a failed check must not drop a legitimate posting
            logger.error(f"Error checking for duplicate job {job}: {e}")
            return False

    async def _enrich(
        self, jobs: Sequence[Job], fetched: dict[str, CompanyDetails], cancel: asyncio.Event | None
    ) -> list[Job]:
        if self._enricher is None:
            return list(jobs)
        enriched = []
        for job in jobs:
            if cancel is not None and cancel.is_set():
                raise SaveCancelled("save cancelled before the batch was written", saved=0)
            if self._is_candidate(job):
                job = await self._enricher.enrich(job, fetched=fetched)
            enriched.append(job)
        return enriched

    async def save_jobs(self, jobs: Sequence[Job], cancel: asyncio.Event | None = None) -> SaveResult:
        """Filter, enrich and upsert a batch; commit once at the end.
        Raises:
            SaveCancelled if `cancel` is set before the batch completes
            PersistenceError if an upsert fails
        """
        result = SaveResult()
        fetched: dict[str, CompanyDetails] = {}
        async with self._write_lock:
            jobs = await self._enrich(jobs, fetched, cancel)
            try:
                with self._storage.transaction() as conn:
                    # nothing below awaits; the write lock is held only for this block
                    if self._enricher is not None:
                        for details in fetched.values():
                            self._enricher.store(details, conn=conn)

                    for job in jobs:
                        if cancel is not None and cancel.is_set():
                            raise SaveCancelled("save cancelled, batch rolled back", saved=result.saved)

                        if is_blocked_company(job.company, self._blocked):
                            logger.info(f"Skipping job from blocked company: {job.company} - {job.title}")
                            result.blocked += 1
                            result.blocked_companies.append(job.company)
                            continue

                        if not is_go_job(job):
                            logger.info(f"Skipping non-Go job: {job}")
                            result.non_go += 1
                            continue

                        if self._is_duplicate(job, conn):
                            posted = job.posted_at.strftime("%b %Y") if job.posted_at else "undated"
                            logger.info(f"Skipping duplicate job: {job} (posted {posted})")
                            result.duplicates += 1
                            continue

                        try:
                            self._storage.upsert_job(job, conn=conn)
                        except sqlite3.Error as e:
                            raise PersistenceError(f"failed to save {job}: {e}", saved=result.saved) from e
                        result.saved += 1
            except PersistenceError as e:
                logger.error(f"Batch rolled back after {e.saved} upserts: {e}")
                raise
            except sqlite3.Error as e:
                logger.error(f"Batch commit failed after {result.saved} upserts: {e}")
                raise PersistenceError(f"commit failed: {e}", saved=result.saved) from e

        logger.info(f"Jobs processed: {result}")
        return result
