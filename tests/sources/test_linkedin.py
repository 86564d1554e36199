import json
from datetime import UTC, datetime

import httpx
import pytest

from job_board.exceptions import SourceParsingError, VendorError
from job_board.schema import Source
from job_board.sources.linkedin import (
    LinkedInAdapter,
    parse_bare_array,
    parse_data_envelope,
    parse_items,
    parse_string_wrapped,
)

FETCHED_AT = datetime(2024, 5, 10, tzinfo=UTC)

ITEMS = [
    {
        "id": "li-1",
        "title": "Go Backend Engineer",
        "organization": "Moniepoint",
        "organization_url": "https://moniepoint.com",
        "url": "https://linkedin.example/li-1",
        "description": "Services in Go",
        "date_posted": "2024-05-08T10:11:12",
        "locations_derived": ["Lagos, Nigeria"],
        "countries_derived": ["Nigeria"],
        "employment_type": ["FULL_TIME", "CONTRACTOR"],
        "remote_derived": True,
    },
    {
        "id": 42,
        "title": "Platform Engineer",
        "organization": "Kuda",
        "date_posted": "2024-05-09T09:00:00Z",
        "locations_derived": None,
        "countries_derived": ["Ghana"],
        "employment_type": "FULL_TIME",
        "remote_derived": "maybe",
    },
]

BARE = json.dumps(ITEMS)
ENVELOPE = json.dumps({"data": ITEMS})
WRAPPED = json.dumps(ENVELOPE)


@pytest.fixture
def adapter(settings, config):
    return LinkedInAdapter(settings, config.sources[Source.linkedin], config.retry)


@pytest.mark.parametrize("body", [BARE, ENVELOPE, WRAPPED, json.dumps(BARE)], ids=["bare", "envelope", "wrapped", "wrapped-bare"])
def test_every_known_shape_yields_same_jobs(adapter, body):
    jobs = adapter.parse(body, FETCHED_AT)
    assert [j.job_id for j in jobs] == ["li-1", "42"]
    assert all(j.raw_data == body for j in jobs)


def test_strategies_reject_other_shapes():
    assert parse_bare_array(ENVELOPE) is None
    assert parse_data_envelope(BARE) is None
    assert parse_string_wrapped(BARE) is None
    assert parse_string_wrapped(WRAPPED) is not None


def test_field_mapping(adapter):
    first, second = adapter.parse(BARE, FETCHED_AT)

    assert first.title == "Go Backend Engineer"
    assert first.company == "Moniepoint"
    assert first.company_url == "https://moniepoint.com"
    assert first.location == "Lagos, Nigeria"
    assert first.country == "Nigeria"
    assert first.job_type == "FULL_TIME, CONTRACTOR"
    assert first.posted_at == datetime(2024, 5, 8, 10, 11, 12, tzinfo=UTC)
    assert first.is_remote is True
    assert first.source == "linkedin"

    # loosely typed values are coerced rather than rejected
    assert second.job_id == "42"
    assert second.location == "Ghana"
    assert second.job_type == "FULL_TIME"
    assert second.posted_at == datetime(2024, 5, 9, 9, 0, tzinfo=UTC)
    assert second.is_remote is False


def test_common_invariants(adapter):
    for job in adapter.parse(BARE, FETCHED_AT):
        assert job.id
        assert job.source == "linkedin"
        assert job.date_gotten == FETCHED_AT
        assert job.exp_date == datetime(2024, 6, 10, tzinfo=UTC)


def test_location_defaults_to_nigeria(adapter):
    body = json.dumps([{"id": "x", "title": "Go Dev", "organization": "Acme"}])
    assert adapter.parse(body, FETCHED_AT)[0].location == "Nigeria"


def test_unparseable_body_raises():
    with pytest.raises(SourceParsingError):
        parse_items('{"message": "You are not subscribed to this API."}')


def test_garbage_raises():
    with pytest.raises(SourceParsingError):
        parse_items("not json")


@pytest.mark.parametrize("body", ["[]", '{"data": []}'])
def test_empty_result_is_vendor_error(adapter, body):
    with pytest.raises(VendorError):
        adapter.parse(body, FETCHED_AT)


async def test_fetch_sends_search_params(settings, config, recorder):
    rec = recorder(httpx.Response(200, text=ENVELOPE))
    async with LinkedInAdapter(settings, config.sources[Source.linkedin], config.retry, transport=rec.transport) as adapter:
        jobs = await adapter.fetch_jobs()

    assert len(jobs) == 2
    params = rec.requests[0].url.params
    assert rec.requests[0].url.path == "/linkedin/active-jb-7d"
    assert params["title_filter"] == "golang"
    assert params["location_filter"] == "nigeria"
    assert params["limit"] == "20"
    assert params["offset"] == "0"
