"""Indeed adapter (Apify `misceres~indeed-scraper` actor)."""
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from job_board.exceptions import SourceParsingError
from job_board.schema import Job, Source
from job_board.sources.apify import APIFY_BASE, ApifyAdapter, error_message
from job_board.sources.base import first, parse_datetime, text


class IndeedCompanyInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    companyLogo: str | None = None


class IndeedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    positionName: str | None = None
    company: str | None = None
    location: str | None = None
    description: str | None = None
    url: str | None = None
    externalApplyLink: str | None = None
    salary: str | None = None
    jobType: list[str] | None = None
    postingDateParsed: str | None = None
    scrapedAt: str | None = None
    companyInfo: IndeedCompanyInfo | None = None


_ITEMS = TypeAdapter(list[IndeedItem])


class IndeedAdapter(ApifyAdapter):
    """An error envelope or an empty dataset is a normal "nothing this cycle" outcome here."""

    source = Source.indeed
    PROD_URL = f"{APIFY_BASE}/misceres~indeed-scraper/run-sync-get-dataset-items"
    STUB_PATH = "/apify/indeed/run-sync-get-dataset-items"

    def build_payload(self) -> dict[str, Any]:
        return {
            "country": self._config.country.upper(),
            "followApplyRedirects": False,
            "maxItems": self._config.max_items,
            "parseCompanyDetails": True,
            "position": self._config.query,
            "saveOnlyUniqueItems": True,
            "forceResponseEncoding": "utf-8",
        }

    def parse(self, body: str, fetched_at: datetime) -> list[Job]:
        data = self._load(body)
        if (message := error_message(data)) is not None:
            logger.warning(f"[{self.label}] vendor error, treating as no results: {message}")
            return []
        try:
            items = _ITEMS.validate_python(data)
        except ValidationError as e:
            logger.debug(f"[{self.label}] unexpected body: {body[:2000]}")
            raise SourceParsingError(f"{self.label}: unexpected response shape: {e}", body) from e
        return [self._to_job(item, body, fetched_at) for item in items]

    def _to_job(self, item: IndeedItem, body: str, fetched_at: datetime) -> Job:
        company_info = item.companyInfo or IndeedCompanyInfo()
        return self._make_job(
            text(item.id),
            fetched_at,
            body,
            title=text(item.positionName),
            company=text(item.company),
            company_url=text(company_info.url),
            company_logo=text(company_info.companyLogo),
            location=text(item.location),
            description=text(item.description),
            url=text(item.url),
            salary=text(item.salary),
            job_type=first(item.jobType),
            employment_type=first(item.jobType),
            posted_at=parse_datetime(item.postingDateParsed) or parse_datetime(item.scrapedAt),
        )
