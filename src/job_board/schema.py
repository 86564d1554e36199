import json
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Source(StrEnum):
    jsearch = "jsearch"
    linkedin = "linkedin"
    indeed = "indeed"
    apify_linkedin = "apify_linkedin"

    @property
    def label(self) -> str:
        """Name used in the stored `source` column and in run-state rows."""
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    Source.jsearch: "jsearch",
    Source.linkedin: "linkedin",
    Source.indeed: "apify indeed",
    Source.apify_linkedin: "apify linkedin",
}


class RunStatus(StrEnum):
    scheduled = "Scheduled"
    running = "Running"
    success = "Success"
    partial_success = "Partial Success"
    failed = "Failed"


def utcnow() -> datetime:
    return datetime.now(UTC)


def add_months(value: datetime, months: int = 1) -> datetime:
    """Calendar-month arithmetic; the day is clamped to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"cannot add {months} months to {value}")


def as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Job(BaseModel):
    """Canonical job record shared by every source."""

    id: str
    job_id: str = ""
    title: str = ""
    company: str = ""
    company_url: str = ""
    company_logo: str = ""
    country: str = ""
    state: str = ""
    location: str = ""
    description: str = ""
    url: str = ""
    salary: str = ""
    job_type: str = ""
    employment_type: str = ""
    is_remote: bool = False
    source: str
    raw_data: str = ""
    posted_at: datetime | None = None
    date_gotten: datetime = Field(default_factory=utcnow)
    exp_date: datetime | None = None

    @field_validator("posted_at", "date_gotten", "exp_date", mode="after")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    @property
    def posted_month(self) -> str | None:
        """`YYYY-MM` of the posting date, the month component of the natural key."""
        return self.posted_at.strftime("%Y-%m") if self.posted_at else None

    def __str__(self) -> str:
        return f"{self.title} at {self.company}"


class CompanyLink(BaseModel):
    name: str
    url: str


class CompanyDetails(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    company_id: str
    name: str = ""
    domain: str = ""
    description: str = ""
    logo_url: str = ""
    icon_url: str = ""
    accent_color: str = ""
    industry: list[str] = Field(default_factory=list)
    links: list[CompanyLink] = Field(default_factory=list)
    raw_data: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("industry", "links", mode="before")
    @classmethod
    def _parse_json(cls, v: Any) -> Any:
        if isinstance(v, str):
            return json.loads(v) if v else []
        if v is None:
            return []
        return v


class JobScheduleInfo(BaseModel):
    """Persisted run-state for one source."""

    api_name: str
    last_run_time: datetime | None = None
    next_run_time: datetime | None = None
    interval_hours: int = 24
    status: RunStatus = RunStatus.scheduled
    last_run_count: int = 0
    last_error_msg: str = ""

    @field_validator("last_run_time", "next_run_time", mode="after")
    @classmethod
    def _to_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


class JobSyncLog(BaseModel):
    id: int
    api_name: str
    sync_time: datetime
    job_count: int = 0
    status: RunStatus
    error_message: str = ""
