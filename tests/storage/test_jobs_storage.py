from datetime import UTC, datetime, timedelta

import pytest

from job_board.schema import CompanyDetails, CompanyLink, JobScheduleInfo, RunStatus
from job_board.storage import JobStorage


def test_creates_database_with_wal(storage, settings):
    assert settings.db_path.exists()
    with storage._connect() as conn:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"


def test_reopening_keeps_data(storage, settings, make_job):
    storage.upsert_job(make_job())
    assert JobStorage(settings.db_path).count_jobs() == 1


def test_list_jobs_newest_posting_first(storage, make_job):
    storage.upsert_job(make_job(title="old", posted_at=datetime(2023, 1, 1, tzinfo=UTC)))
    storage.upsert_job(make_job(title="undated", posted_at=None))
    storage.upsert_job(make_job(title="new", posted_at=datetime(2024, 1, 1, tzinfo=UTC)))

    assert [j.title for j in storage.list_jobs()] == ["new", "old", "undated"]


def test_job_round_trip_keeps_timezone(storage, make_job):
    job = make_job(posted_at=datetime(2024, 3, 15, 9, 30, tzinfo=UTC), is_remote=True, salary="NGN 1m")
    storage.upsert_job(job)
    assert storage.get_job(job.id) == job


def test_missing_job_is_none(storage):
    assert storage.get_job("nope") is None
    assert storage.get_job_timestamps("nope") is None


def test_company_details_round_trip(storage):
    details = CompanyDetails(
        company_id="paystack",
        name="Paystack",
        industry=["Fintech"],
        links=[CompanyLink(name="twitter", url="https://twitter.com/paystack")],
    )
    storage.save_company_details(details)

    loaded = storage.get_company_details("paystack")
    assert loaded.id == details.id
    assert loaded.industry == ["Fintech"]
    assert loaded.links == details.links
    assert loaded.created_at is not None


def test_schedule_info_upsert(storage):
    now = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    storage.upsert_schedule_info(JobScheduleInfo(api_name="jsearch", next_run_time=now, interval_hours=12))
    storage.upsert_schedule_info(
        JobScheduleInfo(
            api_name="jsearch",
            last_run_time=now,
            next_run_time=now + timedelta(hours=12),
            interval_hours=12,
            status=RunStatus.partial_success,
            last_run_count=3,
            last_error_msg="boom",
        )
    )

    [info] = storage.list_schedule_info()
    assert info.status is RunStatus.partial_success
    assert info.next_run_time == now + timedelta(hours=12)
    assert info.last_run_count == 3
    assert info.last_error_msg == "boom"


def test_update_next_run_time(storage):
    storage.upsert_schedule_info(JobScheduleInfo(api_name="indeed", interval_hours=24))
    due = datetime(2030, 1, 1, tzinfo=UTC)
    storage.update_next_run_time("indeed", due)
    assert storage.get_schedule_info("indeed").next_run_time == due


@pytest.mark.parametrize("api_name,expected", [(None, 3), ("jsearch", 2)])
def test_sync_logs(storage, api_name, expected):
    storage.add_sync_log("jsearch", RunStatus.success, 4)
    storage.add_sync_log("indeed", RunStatus.failed, 0, "timeout")
    storage.add_sync_log("jsearch", RunStatus.partial_success, 1, "locked")

    logs = storage.list_sync_logs(api_name)
    assert len(logs) == expected
    assert logs[0].api_name == "jsearch"
    assert logs[0].status is RunStatus.partial_success
