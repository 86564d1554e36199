"""SQLite-backed storage for jobs, company branding and scheduler run-state."""

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from loguru import logger

from job_board.schema import CompanyDetails, Job, JobScheduleInfo, JobSyncLog, RunStatus, as_utc, utcnow
from job_board.storage.DDL import _DDL

_JOB_COLUMNS = (
    "id", "job_id", "title", "company", "company_url", "company_logo", "country", "state",
    "location", "description", "url", "salary", "job_type", "employment_type", "is_remote",
    "source", "raw_data", "posted_at", "date_gotten", "exp_date",
)

# Every mutable column is overwritten on conflict; id and created_at are kept.
_UPSERT_JOB = (
    f"INSERT INTO jobs ({', '.join(_JOB_COLUMNS)}, created_at, updated_at)"
    f" VALUES ({', '.join('?' * len(_JOB_COLUMNS))}, ?, ?)"
    " ON CONFLICT(id) DO UPDATE SET "
    + ", ".join(f"{col} = excluded.{col}" for col in _JOB_COLUMNS if col != "id")
    + ", updated_at = excluded.updated_at"
)

_COMPANY_COLUMNS = (
    "id", "company_id", "name", "domain", "description", "logo_url", "icon_url",
    "accent_color", "industry", "links", "raw_data", "created_at", "updated_at",
)


def _ts(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def _job_row(job: Job) -> tuple:
    return (
        job.id, job.job_id, job.title, job.company, job.company_url, job.company_logo,
        job.country, job.state, job.location, job.description, job.url, job.salary,
        job.job_type, job.employment_type, int(job.is_remote), job.source, job.raw_data,
        _ts(job.posted_at), _ts(job.date_gotten), _ts(job.exp_date),
    )


class JobStorage:
    """SQLite storage shared by the ingestion pipeline, the scheduler and the read API.

    Methods that take a `conn` run on the caller's connection and leave
    commit/rollback to the caller, so a batch can span several calls.
    """

    def __init__(self, db_path: Path, busy_timeout: float = 30.0):
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._init_db()

    # ------------------------------------------------------------------
    # Infrastructure
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def _using(self, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
        else:
            with self._connect() as own:
                yield own

    def transaction(self):
        """One transaction: commits on clean exit, rolls back on any exception (cancellation included)."""
        return self._connect()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_DDL)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def upsert_job(self, job: Job, conn: sqlite3.Connection | None = None) -> None:
        now = utcnow().isoformat()
        with self._using(conn) as c:
            c.execute(_UPSERT_JOB, (*_job_row(job), now, now))

    def is_duplicate(self, job: Job, conn: sqlite3.Connection | None = None) -> bool:
        """True when another row shares the job's (title, company, posting month), case-insensitively."""
        stmt = (
            "SELECT 1 FROM jobs"
            " WHERE lower(title) = lower(?) AND lower(company) = lower(?) AND id != ?"
        )
        params: list = [job.title, job.company, job.id]
        if job.posted_month is None:
            stmt += " AND posted_at IS NULL"
        else:
            stmt += " AND substr(posted_at, 1, 7) = ?"
            params.append(job.posted_month)
        with self._using(conn) as c:
            return c.execute(stmt + " LIMIT 1", params).fetchone() is not None

    def get_job(self, job_id: str) -> Job | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return Job.model_validate(dict(row)) if row else None

    def get_job_timestamps(self, job_id: str) -> tuple[str, str] | None:
        """(created_at, updated_at) of a stored job."""
        with self._connect() as conn:
            row = conn.execute("SELECT created_at, updated_at FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return (row["created_at"], row["updated_at"]) if row else None

    def list_jobs(self) -> list[Job]:
        """All stored jobs, most recently posted first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM jobs ORDER BY posted_at IS NULL, posted_at DESC, date_gotten DESC"
            ).fetchall()
        return [Job.model_validate(dict(r)) for r in rows]

    def count_jobs(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]

    # ------------------------------------------------------------------
    # Company details
    # ------------------------------------------------------------------

    def get_company_details(
        self, company_id: str, conn: sqlite3.Connection | None = None
    ) -> CompanyDetails | None:
        """Most recently updated row for the company, if any."""
        with self._using(conn) as c:
            row = c.execute(
                "SELECT * FROM company_details WHERE company_id = ?"
                " ORDER BY updated_at DESC LIMIT 1",
                (company_id,),
            ).fetchone()
        return CompanyDetails.model_validate(dict(row)) if row else None

    def save_company_details(
        self, details: CompanyDetails, conn: sqlite3.Connection | None = None
    ) -> None:
        now = utcnow()
        details.created_at = details.created_at or now
        details.updated_at = now
        row = (
            details.id, details.company_id, details.name, details.domain, details.description,
            details.logo_url, details.icon_url, details.accent_color,
            json.dumps(details.industry),
            json.dumps([link.model_dump() for link in details.links]),
            details.raw_data, _ts(details.created_at), _ts(details.updated_at),
        )
        with self._using(conn) as c:
            c.execute(
                f"INSERT INTO company_details ({', '.join(_COMPANY_COLUMNS)})"
                f" VALUES ({', '.join('?' * len(_COMPANY_COLUMNS))})",
                row,
            )
        logger.debug(f"Saved company details for {details.company_id}")

    # ------------------------------------------------------------------
    # Scheduler run-state
    # ------------------------------------------------------------------

    def get_schedule_info(self, api_name: str) -> JobScheduleInfo | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM job_schedule_info WHERE api_name = ?", (api_name,)
            ).fetchone()
        return JobScheduleInfo.model_validate(dict(row)) if row else None

    def list_schedule_info(self) -> list[JobScheduleInfo]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM job_schedule_info ORDER BY api_name").fetchall()
        return [JobScheduleInfo.model_validate(dict(r)) for r in rows]

    def upsert_schedule_info(self, info: JobScheduleInfo) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO job_schedule_info"
                " (api_name, last_run_time, next_run_time, interval_hours, status, last_run_count, last_error_msg)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT(api_name) DO UPDATE SET"
                " last_run_time = excluded.last_run_time,"
                " next_run_time = excluded.next_run_time,"
                " interval_hours = excluded.interval_hours,"
                " status = excluded.status,"
                " last_run_count = excluded.last_run_count,"
                " last_error_msg = excluded.last_error_msg",
                (
                    info.api_name, _ts(info.last_run_time), _ts(info.next_run_time),
                    info.interval_hours, info.status.value, info.last_run_count, info.last_error_msg,
                ),
            )

    def update_next_run_time(self, api_name: str, next_run_time: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE job_schedule_info SET next_run_time = ? WHERE api_name = ?",
                (_ts(next_run_time), api_name),
            )

    def add_sync_log(
        self, api_name: str, status: RunStatus, job_count: int = 0, error_message: str = ""
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO job_sync_logs (api_name, sync_time, job_count, status, error_message)"
                " VALUES (?, ?, ?, ?, ?)",
                (api_name, utcnow().isoformat(), job_count, status.value, error_message),
            )

    def list_sync_logs(self, api_name: str | None = None, limit: int = 50) -> list[JobSyncLog]:
        stmt = "SELECT * FROM job_sync_logs"
        params: list = []
        if api_name:
            stmt += " WHERE api_name = ?"
            params.append(api_name)
        stmt += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(stmt, params).fetchall()
        return [JobSyncLog.model_validate(dict(r)) for r in rows]
