"""Classification, enrichment and persistence of fetched jobs."""

from job_board.pipeline.enrichment import CompanyEnricher
from job_board.pipeline.filters import is_blocked_company, is_go_job, is_remote
from job_board.pipeline.gateway import JobGateway, SaveResult

__all__ = ["CompanyEnricher", "JobGateway", "SaveResult", "is_blocked_company", "is_go_job", "is_remote"]
