"""LinkedIn adapter (Apify `curious_coder~linkedin-jobs-scraper` actor)."""
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from job_board.exceptions import SourceParsingError, VendorError
from job_board.schema import Job, Source
from job_board.sources.apify import APIFY_BASE, ApifyAdapter, error_message
from job_board.sources.base import first, parse_datetime, text


class ApifyLinkedInItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    link: str | None = None
    title: str | None = None
    companyName: str | None = None
    companyWebsite: str | None = None
    companyLinkedinUrl: str | None = None
    companyLogo: str | None = None
    location: str | None = None
    salaryInfo: list[str] | None = None
    postedAt: str | None = None
    descriptionText: str | None = None
    employmentType: str | None = None


_ITEMS = TypeAdapter(list[ApifyLinkedInItem])


class ApifyLinkedInAdapter(ApifyAdapter):
    source = Source.apify_linkedin
    PROD_URL = f"{APIFY_BASE}/curious_coder~linkedin-jobs-scraper/run-sync-get-dataset-items"
    STUB_PATH = "/apify/linkedin/run-sync-get-dataset-items"

    def build_payload(self) -> dict[str, Any]:
        return {
            "urls": list(self._config.urls),
            "scrapeCompany": True,
            "forceResponseEncoding": "utf-8",
            "maxItems": self._config.max_items,
        }

    def parse(self, body: str, fetched_at: datetime) -> list[Job]:
        data = self._load(body)
        if (message := error_message(data)) is not None:
            raise VendorError(f"{self.label}: vendor error: {message}")
        try:
            items = _ITEMS.validate_python(data)
        except ValidationError as e:
            logger.debug(f"[{self.label}] unexpected body: {body[:2000]}")
            raise SourceParsingError(f"{self.label}: unexpected response shape: {e}", body) from e
        if not items:
            raise VendorError(f"{self.label}: no data returned")
        return [self._to_job(item, body, fetched_at) for item in items]

    def _to_job(self, item: ApifyLinkedInItem, body: str, fetched_at: datetime) -> Job:
        return self._make_job(
            text(item.id),
            fetched_at,
            body,
            title=text(item.title),
            company=text(item.companyName),
            company_url=text(item.companyWebsite or item.companyLinkedinUrl),
            company_logo=text(item.companyLogo),
            location=text(item.location),
            description=text(item.descriptionText),
            url=text(item.link),
            salary=first(item.salaryInfo),
            job_type=text(item.employmentType),
            employment_type=text(item.employmentType),
            # "YYYY-MM-DD"
            posted_at=parse_datetime(item.postedAt),
        )
