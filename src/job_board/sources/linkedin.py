"""LinkedIn job search (RapidAPI) adapter.

The vendor has been observed to answer with a bare array, a `{"data": [...]}`
envelope, or a JSON string holding either of those. Each shape has its own
parse strategy; they are tried in order and the first that succeeds wins.
"""
import json
from collections.abc import Callable
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from job_board.exceptions import SourceParsingError, VendorError
from job_board.schema import Job, Source
from job_board.sources.base import BaseAdapter, first, parse_datetime, text

HOST = "linkedin-job-search-api.p.rapidapi.com"
DEFAULT_LOCATION = "Nigeria"


class LinkedInItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    title: str = ""
    organization: str = ""
    organization_url: str = ""
    organization_logo: str = ""
    url: str = ""
    description: str = ""
    description_text: str = ""
    linkedin_org_description: str = ""
    date_posted: str = ""
    locations_derived: list[str] = []
    countries_derived: list[str] = []
    regions_derived: list[str] = []
    employment_type: list[str] = []
    remote_derived: bool | None = None

    @field_validator(
        "id", "title", "organization", "organization_url", "organization_logo",
        "url", "description", "description_text", "linkedin_org_description", "date_posted", mode="before",
    )
    @classmethod
    def _loose_str(cls, v: Any) -> str:
        return text(v)

    @field_validator("locations_derived", "countries_derived", "regions_derived", "employment_type", mode="before")
    @classmethod
    def _loose_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [text(x) for x in v if x is not None]
        return []

    @field_validator("remote_derived", mode="before")
    @classmethod
    def _loose_bool(cls, v: Any) -> bool | None:
        return v if isinstance(v, bool) else None


_ITEMS = TypeAdapter(list[LinkedInItem])


def _items_from(value: Any) -> list[LinkedInItem] | None:
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        return None
    try:
        return _ITEMS.validate_python(value)
    except ValidationError:
        return None


def parse_bare_array(body: str) -> list[LinkedInItem] | None:
    """`[{...}, ...]`"""
    try:
        return _items_from(json.loads(body))
    except json.JSONDecodeError:
        return None


def parse_data_envelope(body: str) -> list[LinkedInItem] | None:
    """`{"data": [{...}, ...]}`"""
    try:
        value = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(value, dict):
        return None
    return _items_from(value.get("data"))


def parse_string_wrapped(body: str) -> list[LinkedInItem] | None:
    """A JSON string whose content is one of the other two shapes."""
    try:
        value = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(value, str):
        return None
    items = parse_bare_array(value)
    return items if items is not None else parse_data_envelope(value)


PARSE_STRATEGIES: tuple[Callable[[str], list[LinkedInItem] | None], ...] = (
    parse_bare_array,
    parse_data_envelope,
    parse_string_wrapped,
)


def parse_items(body: str) -> list[LinkedInItem]:
    """
    Raises:
        SourceParsingError when no strategy accepts the body
    """
    for strategy in PARSE_STRATEGIES:
        items = strategy(body)
        if items is not None:
            logger.debug(f"linkedin: body parsed by {strategy.__name__}")
            return items
    logger.debug(f"linkedin: unparseable body: {body[:2000]}")
    raise SourceParsingError("linkedin: response matched none of the known shapes", body)


class LinkedInAdapter(BaseAdapter):
    source = Source.linkedin
    PROD_URL = f"https://{HOST}/active-jb-7d"
    STUB_PATH = "/linkedin/active-jb-7d"

    async def _fetch(self) -> str:
        return await self._request(
            "GET",
            self.url,
            params={
                "limit": str(self._config.max_items),
                "offset": "0",
                "title_filter": self._config.query,
                "location_filter": self._config.location,
            },
            headers={"x-rapidapi-host": HOST, "x-rapidapi-key": self._settings.rapid_api_key},
        )

    def parse(self, body: str, fetched_at: datetime) -> list[Job]:
        items = parse_items(body)
        if not items:
            raise VendorError("linkedin: no data returned")
        return [self._to_job(item, body, fetched_at) for item in items]

    def _to_job(self, item: LinkedInItem, body: str, fetched_at: datetime) -> Job:
        return self._make_job(
            item.id,
            fetched_at,
            body,
            remote=item.remote_derived,
            title=item.title,
            company=item.organization,
            company_url=item.organization_url,
            company_logo=item.organization_logo,
            location=first(item.locations_derived) or first(item.countries_derived) or DEFAULT_LOCATION,
            country=first(item.countries_derived),
            state=first(item.regions_derived),
            description=item.description or item.description_text or item.linkedin_org_description,
            url=item.url,
            job_type=", ".join(item.employment_type),
            employment_type=", ".join(item.employment_type),
            posted_at=parse_datetime(item.date_posted),
        )
