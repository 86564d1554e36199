"""Classification predicates applied to every candidate job before it is stored."""

import re
from collections.abc import Iterable

from job_board.schema import Job

REMOTE_TOKENS = ("remote", "work from home", "wfh")

# "go" only counts when bounded by whitespace, punctuation or the string edges,
# so words like "good", "mongo" or "cargo" never match.
_GO_TOKEN = re.compile(r"(?<![^\W_])go(?![^\W_])", re.IGNORECASE)


def is_blocked_company(company: str, blocked: Iterable[str]) -> bool:
    """Case-insensitive substring match against the deny-list."""
    company_lower = company.lower()
    return any(term.lower() in company_lower for term in blocked if term)


def mentions_go(text: str) -> bool:
    if not text:
        return False
    return "golang" in text.lower() or _GO_TOKEN.search(text) is not None


def is_go_job(job: Job) -> bool:
    """True when the title or description mentions Go or Golang."""
    return mentions_go(job.title) or mentions_go(job.description)


def is_remote(description: str) -> bool:
    description = description.lower()
    return any(token in description for token in REMOTE_TOKENS)
