"""Fake vendor endpoints for `mode=dev`, so the pipeline runs without real API keys."""
import json
from datetime import timedelta

from fastapi import FastAPI, Request
from loguru import logger

from job_board.schema import utcnow


def _days_ago(days: int) -> str:
    return (utcnow() - timedelta(days=days)).replace(microsecond=0).isoformat()


def jsearch_payload() -> dict:
    return {
        "status": "OK",
        "data": [
            {
                "job_id": "stub-js-1",
                "job_title": "Senior Golang Engineer",
                "employer_name": "Paystack",
                "employer_website": "https://paystack.com",
                "job_location": "Lagos",
                "job_country": "NG",
                "job_state": "Lagos",
                "job_description": "Build payment services in Go. Remote friendly.",
                "job_apply_link": "https://example.com/jobs/stub-js-1",
                "job_salary": None,
                "job_posted_at_datetime_utc": _days_ago(2),
                "job_employment_type": "FULLTIME",
                "job_is_remote": True,
            },
            {
                "job_id": "stub-js-2",
                "job_title": "Java Developer",
                "employer_name": "Interswitch",
                "job_location": "Lagos",
                "job_description": "Spring Boot microservices.",
                "job_apply_link": "https://example.com/jobs/stub-js-2",
                "job_posted_at_datetime_utc": _days_ago(3),
                "job_employment_type": "FULLTIME",
                "job_is_remote": False,
            },
        ],
    }


def linkedin_payload() -> list[dict]:
    return [
        {
            "id": "stub-li-1",
            "title": "Backend Engineer (Go)",
            "organization": "Moniepoint",
            "organization_url": "https://moniepoint.com",
            "url": "https://example.com/jobs/stub-li-1",
            "description_text": "Work from home, Go and PostgreSQL.",
            "date_posted": _days_ago(1).removesuffix("+00:00"),
            "locations_derived": ["Lagos, Nigeria"],
            "countries_derived": ["Nigeria"],
            "employment_type": ["FULL_TIME"],
            "remote_derived": True,
        }
    ]


def indeed_payload() -> list[dict]:
    return [
        {
            "id": "stub-in-1",
            "positionName": "Golang Developer",
            "company": "Flutterwave",
            "location": "Lagos",
            "description": "Golang services for payments.",
            "url": "https://example.com/jobs/stub-in-1",
            "salary": "NGN 800,000 a month",
            "jobType": ["Full-time"],
            "postingDateParsed": _days_ago(4),
            "scrapedAt": _days_ago(0),
        },
        {
            "id": "stub-in-2",
            "positionName": "Go Engineer",
            "company": "Canonical",
            "location": "Remote",
            "description": "Ubuntu tooling in Go.",
            "url": "https://example.com/jobs/stub-in-2",
            "jobType": ["Full-time"],
            "postingDateParsed": _days_ago(4),
        },
    ]


def apify_linkedin_payload() -> list[dict]:
    return [
        {
            "id": "stub-al-1",
            "link": "https://example.com/jobs/stub-al-1",
            "title": "Software Engineer, Go",
            "companyName": "Kuda",
            "companyWebsite": "https://kuda.com",
            "location": "Lagos, Lagos State, Nigeria",
            "salaryInfo": [],
            "postedAt": utcnow().date().isoformat(),
            "descriptionText": "Hybrid role building Go services.",
            "employmentType": "Full-time",
        }
    ]


def create_stub_app() -> FastAPI:
    app = FastAPI(title="job-board vendor stub")

    @app.get("/jsearch/search")
    async def jsearch(request: Request):
        logger.info(f"[stub] jsearch {dict(request.query_params)}")
        return jsearch_payload()

    @app.get("/linkedin/active-jb-7d")
    async def linkedin(request: Request):
        logger.info(f"[stub] linkedin {dict(request.query_params)}")
        return linkedin_payload()

    @app.post("/apify/indeed/run-sync-get-dataset-items")
    async def apify_indeed(request: Request):
        logger.info(f"[stub] apify indeed {json.loads(await request.body() or b'{}')}")
        return indeed_payload()

    @app.post("/apify/linkedin/run-sync-get-dataset-items")
    async def apify_linkedin(request: Request):
        logger.info(f"[stub] apify linkedin {json.loads(await request.body() or b'{}')}")
        return apify_linkedin_payload()

    return app
