import json
from datetime import UTC, datetime

import httpx
import pytest

from job_board.exceptions import FetchError, SourceParsingError, VendorError
from job_board.schema import Source
from job_board.sources.jsearch import JSearchAdapter

FETCHED_AT = datetime(2024, 1, 31, 12, 0, tzinfo=UTC)

BODY = json.dumps({
    "status": "OK",
    "data": [
        {
            "job_id": "abc123",
            "job_title": "Golang Engineer",
            "employer_name": "Paystack",
            "employer_website": "https://paystack.com",
            "job_location": "Lagos",
            "job_country": "NG",
            "job_description": "Payments in Go",
            "job_apply_link": "https://jobs.example/abc123",
            "job_salary": None,
            "job_posted_at_datetime_utc": "2024-01-30T08:00:00.000Z",
            "job_employment_type": "FULLTIME",
            "job_is_remote": False,
        },
        {
            "job_title": "Backend Engineer",
            "employer_name": "Kuda",
            "job_description": "Fully remote position",
            "job_salary": 1200,
        },
    ],
})


@pytest.fixture
def adapter(settings, config):
    return JSearchAdapter(settings=settings, config=config.sources[Source.jsearch], retry=config.retry)


def test_parse_maps_vendor_fields(adapter):
    jobs = adapter.parse(BODY, FETCHED_AT)

    assert len(jobs) == 2
    job = jobs[0]
    assert job.job_id == "abc123"
    assert job.title == "Golang Engineer"
    assert job.company == "Paystack"
    assert job.company_url == "https://paystack.com"
    assert job.url == "https://jobs.example/abc123"
    assert job.job_type == "FULLTIME"
    assert job.posted_at == datetime(2024, 1, 30, 8, 0, tzinfo=UTC)
    assert job.source == "jsearch"
    assert job.is_remote is False


def test_parse_common_invariants(adapter):
    for job in adapter.parse(BODY, FETCHED_AT):
        assert job.id
        assert job.raw_data == BODY
        assert job.date_gotten == FETCHED_AT
        # clamped to the end of February
        assert job.exp_date == datetime(2024, 2, 29, 12, 0, tzinfo=UTC)


def test_missing_vendor_id_gets_generated_identity(adapter):
    job = adapter.parse(BODY, FETCHED_AT)[1]
    assert job.job_id == job.id
    assert job.posted_at is None
    assert job.salary == "1200"
    # no vendor flag, falls back to description tokens
    assert job.is_remote is True


def test_identity_is_stable_across_fetches(adapter):
    first = adapter.parse(BODY, FETCHED_AT)[0]
    second = adapter.parse(BODY, datetime(2024, 2, 1, tzinfo=UTC))[0]
    assert first.id == second.id


def test_empty_data_is_not_an_error(adapter):
    assert adapter.parse(json.dumps({"status": "OK", "data": []}), FETCHED_AT) == []


def test_error_status_raises(adapter):
    with pytest.raises(VendorError):
        adapter.parse(json.dumps({"status": "ERROR", "error": {"message": "quota"}}), FETCHED_AT)


def test_malformed_json_raises_with_body(adapter):
    with pytest.raises(SourceParsingError) as exc_info:
        adapter.parse("<html>oops</html>", FETCHED_AT)
    assert exc_info.value.body == "<html>oops</html>"


async def test_fetch_uses_stub_url_and_rapidapi_headers(settings, config, recorder):
    rec = recorder(httpx.Response(200, text=BODY))
    adapter = JSearchAdapter(settings, config.sources[Source.jsearch], config.retry, transport=rec.transport)

    async with adapter:
        jobs = await adapter.fetch_jobs()

    assert len(jobs) == 2
    request = rec.requests[0]
    assert str(request.url).startswith("http://localhost:8081/jsearch/search")
    assert request.url.params["query"] == "golang jobs in nigeria"
    assert request.url.params["num_pages"] == "3"
    assert request.headers["x-rapidapi-key"] == "rapid-key"
    assert request.headers["x-rapidapi-host"] == "jsearch.p.rapidapi.com"


async def test_production_uses_vendor_url(settings, config, recorder):
    rec = recorder(httpx.Response(200, text=BODY))
    prod = settings.model_copy(update={"mode": "production"})
    async with JSearchAdapter(prod, config.sources[Source.jsearch], config.retry, transport=rec.transport) as adapter:
        await adapter.fetch_jobs()
    assert rec.requests[0].url.host == "jsearch.p.rapidapi.com"


async def test_transient_errors_are_retried(settings, config, recorder):
    rec = recorder(
        httpx.ConnectError("connection refused"),
        httpx.Response(503, text="busy"),
        httpx.Response(200, text=BODY),
    )
    async with JSearchAdapter(settings, config.sources[Source.jsearch], config.retry, transport=rec.transport) as adapter:
        jobs = await adapter.fetch_jobs()
    assert len(jobs) == 2
    assert len(rec.requests) == 3


async def test_client_errors_are_not_retried(settings, config, recorder):
    rec = recorder(httpx.Response(403, text="forbidden"))
    async with JSearchAdapter(settings, config.sources[Source.jsearch], config.retry, transport=rec.transport) as adapter:
        with pytest.raises(FetchError):
            await adapter.fetch_jobs()
    assert len(rec.requests) == 1


async def test_retries_are_bounded(settings, config, recorder):
    rec = recorder(httpx.Response(500, text="down"))
    async with JSearchAdapter(settings, config.sources[Source.jsearch], config.retry, transport=rec.transport) as adapter:
        with pytest.raises(FetchError):
            await adapter.fetch_jobs()
    assert len(rec.requests) == config.retry.attempts


async def test_requires_context_manager(settings, config):
    adapter = JSearchAdapter(settings, config.sources[Source.jsearch], config.retry)
    with pytest.raises(RuntimeError):
        await adapter.fetch_jobs()
