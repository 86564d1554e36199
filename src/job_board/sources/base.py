"""Shared plumbing for vendor adapters: HTTP client, retries and Job construction."""
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from types import MappingProxyType
from typing import Any, Self

import httpx
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from job_board.config.settings import RetryConfig, Settings, SourceConfig
from job_board.exceptions import FetchError
from job_board.pipeline.filters import is_remote
from job_board.schema import Job, Source, add_months, as_utc, utcnow

_ID_NAMESPACE = uuid.UUID("5b0c7a8e-7d0f-4d8a-9a53-1f0e6f3c2b71")


def job_identity(source: Source, vendor_id: str) -> tuple[str, str]:
    """(id, job_id) for a vendor record.

    The id is stable per (source, vendor id) so a re-fetched posting upserts in
    place; a random id is used only when the vendor gives none.
    """
    if vendor_id:
        return str(uuid.uuid5(_ID_NAMESPACE, f"{source.value}:{vendor_id}")), vendor_id
    generated = str(uuid.uuid4())
    return generated, generated


def parse_datetime(value: Any) -> datetime | None:
    """Parse the ISO-ish timestamps vendors send; unparseable values become None."""
    if not value or not isinstance(value, str):
        return None
    try:
        return as_utc(datetime.fromisoformat(value.strip()))
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None


def first(values: Any) -> str:
    """First element of a vendor list field as a string, or ''."""
    if isinstance(values, list) and values:
        return str(values[0]) if values[0] is not None else ""
    return ""


def text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class BaseAdapter(ABC):
    """One vendor endpoint turned into canonical `Job` records.

    Use as an async context manager; `fetch_jobs` performs one outbound call
    (retried on transient transport failures) and parses the body.
    """

    source: Source
    PROD_URL: str
    STUB_PATH: str
    HEADERS: MappingProxyType[str, str] = MappingProxyType({
        "Accept": "application/json",
        "User-Agent": "job-board/0.1",
    })

    def __init__(
        self,
        settings: Settings,
        config: SourceConfig,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._config = config
        self._retry = retry or RetryConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            headers=self.HEADERS,
            timeout=self._settings.request_timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def url(self) -> str:
        if self._settings.is_production:
            return self.PROD_URL
        return self._settings.stub_base_url.rstrip("/") + self.STUB_PATH

    @property
    def label(self) -> str:
        return self.source.label

    async def _request(self, method: str, url: str, **kwargs: Any) -> str:
        """Send one request and return the body.
        Raises:
            RuntimeError if not used as context manager
            FetchError after retries are exhausted or on a non-transient HTTP error
        """
        if not self._client:
            raise RuntimeError("Use 'async with Adapter(...) as a:' context manager.")
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry.attempts),
                wait=wait_exponential(min=self._retry.min_wait, max=self._retry.max_wait),
                retry=retry_if_exception(_is_transient),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(f"[{self.label}] retrying request (attempt {attempt.retry_state.attempt_number})")
                    resp = await self._client.request(method, url, **kwargs)
                    resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"{self.label}: HTTP {e.response.status_code} from vendor") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{self.label}: request failed: {e}") from e
        return resp.text

    def _make_job(
        self,
        vendor_id: str,
        fetched_at: datetime,
        raw: str,
        *,
        remote: bool | None = None,
        **fields: Any,
    ) -> Job:
        job_id_pk, job_id = job_identity(self.source, vendor_id)
        description = text(fields.get("description"))
        return Job(
            id=job_id_pk,
            job_id=job_id,
            source=self.label,
            raw_data=raw,
            date_gotten=fetched_at,
            exp_date=add_months(fetched_at, 1),
            is_remote=remote if remote is not None else is_remote(description),
            **fields,
        )

    @abstractmethod
    async def _fetch(self) -> str:
        """Perform the vendor call and return the raw body."""

    @abstractmethod
    def parse(self, body: str, fetched_at: datetime) -> list[Job]:
        """Turn a raw vendor body into jobs, preserving vendor order.
        Raises:
            SourceParsingError
            VendorError
        """

    async def fetch_jobs(self) -> list[Job]:
        """Fetch and parse one batch.
        Raises:
            FetchError
            SourceParsingError
            VendorError
        """
        logger.info(f"[{self.label}] fetching from {self.url}")
        fetched_at = utcnow()
        body = await self._fetch()
        jobs = self.parse(body, fetched_at)
        logger.info(f"[{self.label}] fetched {len(jobs)} jobs")
        return jobs
