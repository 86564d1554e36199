"""JSearch (RapidAPI) adapter."""
import json
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from job_board.exceptions import SourceParsingError, VendorError
from job_board.schema import Job, Source
from job_board.sources.base import BaseAdapter, parse_datetime, text

HOST = "jsearch.p.rapidapi.com"


class JSearchItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    job_id: str | None = None
    job_title: str | None = None
    employer_name: str | None = None
    employer_website: str | None = None
    employer_logo: str | None = None
    job_location: str | None = None
    job_country: str | None = None
    job_state: str | None = None
    job_description: str | None = None
    job_apply_link: str | None = None
    job_salary: Any = None
    job_posted_at_datetime_utc: str | None = None
    job_employment_type: str | None = None
    job_is_remote: bool | None = None


class JSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str | None = None
    data: list[JSearchItem] | None = None
    error: Any = None


class JSearchAdapter(BaseAdapter):
    source = Source.jsearch
    PROD_URL = f"https://{HOST}/search"
    STUB_PATH = "/jsearch/search"

    async def _fetch(self) -> str:
        return await self._request(
            "GET",
            self.url,
            params={
                "query": self._config.query,
                "page": "1",
                "num_pages": "3",
                "country": self._config.country,
                "date_posted": "all",
            },
            headers={"x-rapidapi-host": HOST, "x-rapidapi-key": self._settings.rapid_api_key},
        )

    def parse(self, body: str, fetched_at: datetime) -> list[Job]:
        try:
            response = JSearchResponse.model_validate_json(body)
        except ValidationError as e:
            logger.debug(f"[{self.label}] unexpected body: {body[:2000]}")
            raise SourceParsingError(f"jsearch: unexpected response shape: {e}", body) from e
        if response.status == "ERROR" or response.error:
            raise VendorError(f"jsearch: vendor error: {response.error}")
        return [self._to_job(item, body, fetched_at) for item in response.data or []]

    def _to_job(self, item: JSearchItem, body: str, fetched_at: datetime) -> Job:
        salary = item.job_salary
        if salary is not None and not isinstance(salary, str):
            salary = json.dumps(salary)
        return self._make_job(
            text(item.job_id),
            fetched_at,
            body,
            remote=item.job_is_remote,
            title=text(item.job_title),
            company=text(item.employer_name),
            company_url=text(item.employer_website),
            company_logo=text(item.employer_logo),
            location=text(item.job_location),
            country=text(item.job_country),
            state=text(item.job_state),
            description=text(item.job_description),
            url=text(item.job_apply_link),
            salary=text(salary),
            job_type=text(item.job_employment_type),
            employment_type=text(item.job_employment_type),
            posted_at=parse_datetime(item.job_posted_at_datetime_utc),
        )
