from __future__ import annotations

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from .errors import UpstreamError


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given as delta-seconds or an HTTP date."""
    raw = (value or "").strip()
    if not raw:
        return None

    try:
        return max(0.0, float(raw))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def is_retryable_upstream_exception(exc: BaseException) -> tuple[bool, float | None, str | None]:
    """
    Upstream retry policy:
    - HTTP 429 (honoring Retry-After)
    - HTTP 500+
    - timeouts and connection-level transport errors
    """
    if isinstance(exc, UpstreamError):
        code = exc.status_code
        if code == 429:
            return True, exc.retry_after, "http_429"
        if isinstance(code, int) and code >= 500:
            return True, exc.retry_after, f"http_{code}"
        return False, None, f"http_{code}" if code is not None else "upstream_error"

    if isinstance(exc, httpx.TimeoutException):
        return True, None, "timeout"

    if isinstance(exc, httpx.TransportError):
        return True, None, "network_error"

    return False, None, None
