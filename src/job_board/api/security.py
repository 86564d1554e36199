"""Signed-request authentication and response hardening for the read API."""
import hashlib
import hmac
from datetime import datetime, timedelta

from fastapi import Header, HTTPException, Query, Request, status
from loguru import logger

from job_board.schema import as_utc, utcnow

MAX_SIGNATURE_AGE = timedelta(minutes=5)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

ALLOWED_HEADERS = ["Accept", "Content-Type", "Authorization", "X-API-Key", "X-Timestamp", "X-Signature"]


def sign(timestamp: str, api_key: str) -> str:
    """Hex HMAC-SHA256 of the timestamp, keyed by the API key."""
    return hmac.new(api_key.encode(), timestamp.encode(), hashlib.sha256).hexdigest()


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # RFC 3339 requires an explicit offset
    return as_utc(parsed) if parsed.tzinfo is not None else None


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def verify_signed_request(
    request: Request,
    x_api_key: str | None = Header(default=None),
    api_key: str | None = Query(default=None),
    x_timestamp: str | None = Header(default=None),
    x_signature: str | None = Header(default=None),
) -> None:
    """API key (header or query) plus a fresh timestamp signed with it.
    Raises:
        HTTPException 401
    """
    expected_key: str = request.app.state.settings.api_key
    client = request.client.host if request.client else "-"
    provided = x_api_key or api_key or ""

    if not expected_key or not hmac.compare_digest(provided.encode(), expected_key.encode()):
        logger.warning(f"[AUTH FAIL] {request.method} {request.url.path} from {client} - invalid API key")
        raise _unauthorized()

    if not x_timestamp or not x_signature:
        raise _unauthorized()

    sent_at = _parse_timestamp(x_timestamp)
    if sent_at is None or utcnow() - sent_at > MAX_SIGNATURE_AGE:
        raise _unauthorized()

    if not hmac.compare_digest(x_signature.encode(), sign(x_timestamp, expected_key).encode()):
        logger.warning(f"[AUTH FAIL] {request.method} {request.url.path} from {client} - bad signature")
        raise _unauthorized()

    logger.debug(f"[AUTH SUCCESS] {request.method} {request.url.path} from {client}")
