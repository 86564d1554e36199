"""Common ground for Apify actors called through `run-sync-get-dataset-items`."""
import json
from abc import abstractmethod
from typing import Any

from loguru import logger

from job_board.exceptions import SourceParsingError
from job_board.sources.base import BaseAdapter

APIFY_BASE = "https://api.apify.com/v2/acts"


def error_message(items: Any) -> str | None:
    """Message of an Apify error envelope (`[{"error": ...}]` or `{"error": ...}`), if the body is one."""
    if isinstance(items, list) and items and isinstance(items[0], dict):
        candidate = items[0].get("error")
    elif isinstance(items, dict):
        candidate = items.get("error")
    else:
        return None
    if candidate is None:
        return None
    if isinstance(candidate, dict):
        return str(candidate.get("message") or candidate.get("type") or candidate)
    return str(candidate)


class ApifyAdapter(BaseAdapter):
    """POSTs the actor input and receives the dataset items in the response body."""

    @abstractmethod
    def build_payload(self) -> dict[str, Any]:
        """Actor input for one run."""

    async def _fetch(self) -> str:
        return await self._request(
            "POST",
            self.url,
            params={"token": self._settings.apify_api_key if self._settings.is_production else "random_test_token"},
            json=self.build_payload(),
        )

    def _load(self, body: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            logger.debug(f"[{self.label}] unparseable body: {body[:2000]}")
            raise SourceParsingError(f"{self.label}: invalid JSON: {e}", body) from e
