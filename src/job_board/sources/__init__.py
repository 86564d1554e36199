"""Vendor adapters, one per external job source."""
from typing import Protocol, Self

import httpx

from job_board.config.settings import RetryConfig, Settings, SourceConfig
from job_board.exceptions import UnknownSourceError
from job_board.schema import Job, Source
from job_board.sources.apify_linkedin import ApifyLinkedInAdapter
from job_board.sources.base import BaseAdapter
from job_board.sources.indeed import IndeedAdapter
from job_board.sources.jsearch import JSearchAdapter
from job_board.sources.linkedin import LinkedInAdapter


class Adapter(Protocol):
    async def __aenter__(self) -> Self: ...
    async def __aexit__(self, *_: object) -> None: ...
    async def fetch_jobs(self) -> list[Job]: ...


adapters: dict[Source, type[BaseAdapter]] = {
    Source.jsearch: JSearchAdapter,
    Source.linkedin: LinkedInAdapter,
    Source.indeed: IndeedAdapter,
    Source.apify_linkedin: ApifyLinkedInAdapter,
}
AVAILABLE_SOURCES = [s.value for s in adapters]


def get_source(name: str) -> Source:
    """
    Raises:
        UnknownSourceError
    """
    try:
        return Source(name)
    except ValueError:
        raise UnknownSourceError(f"Invalid source: {name!r}, expected one of {AVAILABLE_SOURCES}") from None


def build_adapter(
    source: Source,
    settings: Settings,
    config: SourceConfig,
    retry: RetryConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseAdapter:
    return adapters[source](settings=settings, config=config, retry=retry, transport=transport)


__all__ = [
    "AVAILABLE_SOURCES",
    "Adapter",
    "ApifyLinkedInAdapter",
    "BaseAdapter",
    "IndeedAdapter",
    "JSearchAdapter",
    "LinkedInAdapter",
    "adapters",
    "build_adapter",
    "get_source",
]
