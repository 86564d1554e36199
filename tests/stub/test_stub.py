import httpx
import pytest

from job_board.pipeline import JobGateway
from job_board.schema import Source
from job_board.sources import build_adapter
from job_board.stub import create_stub_app


def stub_transport() -> httpx.ASGITransport:
    return httpx.ASGITransport(app=create_stub_app())


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (Source.jsearch, 2),
        (Source.linkedin, 1),
        (Source.indeed, 2),
        (Source.apify_linkedin, 1),
    ],
)
async def test_every_adapter_parses_its_stub(settings, config, source, expected):
    async with build_adapter(source, settings, config.sources[source], transport=stub_transport()) as adapter:
        jobs = await adapter.fetch_jobs()

    assert len(jobs) == expected
    assert all(job.source == source.label for job in jobs)
    assert all(job.title and job.job_id for job in jobs)
    assert all(job.posted_at is not None for job in jobs)


async def test_stub_batches_flow_through_the_filters(settings, config, storage):
    gateway = JobGateway(storage, config.blocked_companies)
    totals = {"saved": 0, "blocked": 0, "non_go": 0}

    for source in Source:
        async with build_adapter(source, settings, config.sources[source], transport=stub_transport()) as adapter:
            result = await gateway.save_jobs(await adapter.fetch_jobs())
        totals["saved"] += result.saved
        totals["blocked"] += result.blocked
        totals["non_go"] += result.non_go

    # Interswitch's Java role is dropped, Canonical is blocklisted
    assert totals == {"saved": 4, "blocked": 1, "non_go": 1}
    assert storage.count_jobs() == 4


async def test_refetching_the_stub_updates_in_place(settings, config, storage):
    gateway = JobGateway(storage, config.blocked_companies)

    for _ in range(2):
        async with build_adapter(Source.jsearch, settings, config.sources[Source.jsearch], transport=stub_transport()) as adapter:
            await gateway.save_jobs(await adapter.fetch_jobs())

    assert storage.count_jobs() == 1
