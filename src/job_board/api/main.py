import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, field_validator

from job_board.api.security import ALLOWED_HEADERS, SECURITY_HEADERS, verify_signed_request
from job_board.config import Settings
from job_board.exceptions import UnknownSourceError
from job_board.scheduler import JobScheduler
from job_board.schema import Job, JobScheduleInfo, utcnow
from job_board.sources import get_source
from job_board.storage import JobStorage


class JobOut(BaseModel):
    """Public view of a job; empty optional fields are left out of the JSON."""

    id: str
    job_id: str
    title: str
    company: str
    is_remote: bool
    source: str
    posted_at: datetime | None = None
    company_url: str | None = None
    company_logo: str | None = None
    country: str | None = None
    state: str | None = None
    location: str | None = None
    description: str | None = None
    url: str | None = None
    salary: str | None = None
    job_type: str | None = None
    employment_type: str | None = None

    @field_validator(
        "company_url", "company_logo", "country", "state", "location", "description",
        "url", "salary", "job_type", "employment_type", mode="before",
    )
    @classmethod
    def _empty_to_none(cls, v: Any) -> Any:
        return v or None

    @classmethod
    def from_job(cls, job: Job) -> "JobOut":
        return cls.model_validate(job.model_dump(mode="json"))


def _now() -> str:
    return utcnow().replace(microsecond=0).isoformat()


def _storage(request: Request) -> JobStorage:
    return request.app.state.storage


def _scheduler(request: Request) -> JobScheduler:
    return request.app.state.scheduler


# ── Protected routes ─────────────────────────────────────────────────────────

router = APIRouter(prefix="/api", dependencies=[Depends(verify_signed_request)])


@router.get("/jobs")
async def get_all_jobs(storage: JobStorage = Depends(_storage)):
    jobs = [JobOut.from_job(job).model_dump(mode="json", exclude_none=True) for job in storage.list_jobs()]
    return {"success": True, "count": len(jobs), "data": jobs}


@router.post("/jobs/sync")
async def sync_jobs(
    source: str = Query(default=""),
    scheduler: JobScheduler = Depends(_scheduler),
):
    """Start a fetch-and-save cycle in the background and answer immediately.

    Without a source every enabled source is synced.
    """
    logger.info(f"Received sync request for source: {source or 'all'}")
    if source:
        try:
            sources = [get_source(source)]
        except UnknownSourceError:
            raise HTTPException(status_code=400, detail=f"Invalid source: {source}") from None
    else:
        sources = scheduler.enabled_sources()

    for s in sources:
        scheduler.trigger(s)
    return {"success": True, "timestamp": _now()}


@router.get("/schedule")
async def get_schedule(storage: JobStorage = Depends(_storage)) -> list[JobScheduleInfo]:
    return storage.list_schedule_info()


# ── App factory ──────────────────────────────────────────────────────────────

def create_app(
    settings: Settings,
    storage: JobStorage,
    scheduler: JobScheduler,
    start_scheduler: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            if start_scheduler:
                scheduler.shutdown()

    app = FastAPI(title="job-board", lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials="*" not in settings.origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=ALLOWED_HEADERS,
        max_age=600,
    )

    @app.middleware("http")
    async def harden_and_log(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        client = request.client.host if request.client else "-"
        logger.info(
            f"{request.method} {request.url.path} from {client} - {response.status_code}"
            f" in {(time.perf_counter() - start) * 1000:.0f}ms"
        )
        return response

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    @app.get("/status")
    async def status_check():
        return {"status": "ok", "timestamp": _now(), "message": "API is running"}

    app.include_router(router)
    return app
