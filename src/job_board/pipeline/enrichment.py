"""Company branding lookups against BrandFetch, cached in the company_details table."""
import json
import sqlite3
from typing import Any
from urllib.parse import urlparse

import httpx
from loguru import logger

from job_board.exceptions import EnrichmentError
from job_board.schema import CompanyDetails, CompanyLink, Job
from job_board.storage import JobStorage

BRANDFETCH_URL = "https://api.brandfetch.io/v2/brands/{domain}"


def _host(url: str) -> str:
    for candidate in (url, "https://" + url):
        try:
            host = urlparse(candidate).hostname
        except ValueError:
            continue
        if host:
            return host
    return ""


def _clean_domain(domain: str) -> str:
    domain = domain.removeprefix("www.")
    return domain.split("/", 1)[0]


def company_domain(company_name: str, company_url: str) -> str:
    """Domain to look up: the URL's host, else a guess built from the company name."""
    domain = _host(company_url) if company_url else ""
    if not domain:
        domain = company_name.lower().replace(" ", "-").replace("&", "and") + ".com"
    return _clean_domain(domain)


def logo_domain(company_url: str) -> str:
    """Domain for the logo-only lookup; never guessed from a name."""
    if not company_url:
        return ""
    parsed = urlparse(company_url)
    return _clean_domain(parsed.netloc or parsed.path)


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _first_src(logo: dict[str, Any]) -> str:
    formats = _dicts(logo.get("formats"))
    return _str(formats[0].get("src")) if formats else ""


def parse_brand(body: str, company_name: str, domain: str) -> CompanyDetails:
    """Build CompanyDetails from a BrandFetch body; every field is optional.
    Raises:
        EnrichmentError if the body is not a JSON object
    """
    try:
        response = json.loads(body)
    except json.JSONDecodeError as e:
        raise EnrichmentError(f"brandfetch: invalid JSON for {domain}: {e}") from e
    if not isinstance(response, dict):
        raise EnrichmentError(f"brandfetch: unexpected body for {domain}")

    details = CompanyDetails(
        company_id=company_name.lower(),
        name=_str(response.get("name")) or company_name,
        domain=domain,
        description=_str(response.get("description")),
        raw_data=body,
    )

    for color in _dicts(response.get("colors")):
        if color.get("type") == "accent" and _str(color.get("hex")):
            details.accent_color = color["hex"]
            break

    for logo in _dicts(response.get("logos")):
        src = _first_src(logo)
        if not src:
            continue
        match logo.get("type"):
            case "logo":
                details.logo_url = src
            case "icon":
                details.icon_url = src

    for link in _dicts(response.get("links")):
        name, url = _str(link.get("name")), _str(link.get("url"))
        if name and url:
            details.links.append(CompanyLink(name=name, url=url))

    company = response.get("company")
    if isinstance(company, dict):
        details.industry = [
            _str(industry.get("name")) for industry in _dicts(company.get("industries")) if _str(industry.get("name"))
        ]
    return details


class CompanyEnricher:
    """Read-through cache of company branding.

    Disabled (every call is a no-op) outside production mode or without an
    API key.
    """

    def __init__(
        self,
        storage: JobStorage,
        api_key: str,
        enabled: bool = True,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._storage = storage
        self._api_key = api_key
        self._enabled = enabled and bool(api_key)
        self._timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def _get_brand(self, domain: str) -> str:
        """
        Raises:
            EnrichmentError on transport failure or a non-200 answer
        """
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                resp = await client.get(
                    BRANDFETCH_URL.format(domain=domain),
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
            except httpx.HTTPError as e:
                raise EnrichmentError(f"brandfetch: request for {domain} failed: {e}") from e
        if resp.status_code != 200:
            raise EnrichmentError(f"brandfetch: status {resp.status_code} for {domain}")
        return resp.text

    async def fetch_company_details(self, company_name: str, company_url: str) -> CompanyDetails:
        domain = company_domain(company_name, company_url)
        body = await self._get_brand(domain)
        return parse_brand(body, company_name, domain)

    def _cached(self, company_id: str) -> CompanyDetails | None:
        """
        Raises:
            EnrichmentError if the cache cannot be read
        """
        try:
            return self._storage.get_company_details(company_id)
        except sqlite3.Error as e:
            raise EnrichmentError(f"company cache lookup for {company_id} failed: {e}") from e

    def store(self, details: CompanyDetails, conn: sqlite3.Connection | None = None) -> None:
        """Cache fetched details; a failed write is logged, never raised."""
        try:
            self._storage.save_company_details(details, conn=conn)
        except sqlite3.Error as e:
            logger.warning(f"Could not cache company details for {details.company_id}: {e}")

    async def get_or_fetch(
        self,
        company_name: str,
        company_url: str,
        fetched: dict[str, CompanyDetails] | None = None,
    ) -> CompanyDetails:
        """Cached details for the company, fetching them on a miss.

        Fetched details are cached right away, unless `fetched` is given: then
        they are collected there for the caller to `store` later, and it also
        serves as a memo so one company is fetched once per batch.
        Raises:
            EnrichmentError
        """
        company_id = company_name.lower()
        if fetched is not None and company_id in fetched:
            return fetched[company_id]
        cached = self._cached(company_id)
        if cached is not None:
            return cached

        details = await self.fetch_company_details(company_name, company_url)
        if fetched is not None:
            fetched[company_id] = details
        else:
            self.store(details)
        return details

    async def fetch_logo(self, company_url: str) -> str:
        """Logo URL for the company site, or '' when disabled or unavailable."""
        if not self._enabled:
            return ""
        domain = logo_domain(company_url)
        if not domain:
            return ""
        try:
            body = await self._get_brand(domain)
            response = json.loads(body)
        except (EnrichmentError, json.JSONDecodeError) as e:
            logger.debug(f"Logo lookup for {domain} failed: {e}")
            return ""
        if not isinstance(response, dict):
            return ""
        for logo in _dicts(response.get("logos")):
            if src := _first_src(logo):
                return src
        return ""

    async def enrich(self, job: Job, fetched: dict[str, CompanyDetails] | None = None) -> Job:
        """Fill in the company logo when missing. Never raises for lookup failures.

        Holds no database connection while waiting on BrandFetch; see
        `get_or_fetch` for `fetched`.
        """
        if not self._enabled or job.company_logo:
            return job
        job = job.model_copy()
        if not job.company:
            job.company_logo = await self.fetch_logo(job.company_url)
            return job
        try:
            details = await self.get_or_fetch(job.company, job.company_url, fetched=fetched)
        except EnrichmentError as e:
            logger.warning(f"Enrichment failed for {job.company}: {e}")
            return job
        job.company_logo = details.logo_url or details.icon_url
        if job.company_logo:
            logger.debug(f"Fetched logo for {job.company}")
        return job
