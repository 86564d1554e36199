import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from job_board.config import Config, RetryConfig, Settings
from job_board.schema import Job
from job_board.storage import JobStorage


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        mode="dev",
        rapid_api_key="rapid-key",
        apify_api_key="apify-token",
        brandfetch_api_key="",
        api_key="secret",
        data_dir=tmp_path / "data",
        config_file=tmp_path / "config.yaml",
        logs_dir=tmp_path / "logs",
        request_timeout=5,
        run_timeout=5,
    )


@pytest.fixture
def config() -> Config:
    return Config(retry=RetryConfig(attempts=3, min_wait=0, max_wait=0))


@pytest.fixture
def storage(settings) -> JobStorage:
    return JobStorage(settings.db_path)


@pytest.fixture
def make_job() -> Callable[..., Job]:
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> Job:
        n = next(counter)
        fields: dict[str, Any] = {
            "id": f"job-{n}",
            "job_id": f"vendor-{n}",
            "title": "Go Developer",
            "company": "Acme",
            "description": "Build services in Golang.",
            "source": "jsearch",
            "posted_at": datetime(2024, 3, 15, tzinfo=UTC),
            "date_gotten": datetime(2024, 3, 20, tzinfo=UTC),
        }
        fields.update(overrides)
        return Job(**fields)

    return _make


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def recorder() -> Callable[..., Recorder]:
    return Recorder
