"""Retry hint parsing for rate-limited HTTP responses."""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional


def parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    """Read a retry hint (seconds) from ``retry-after-ms`` or ``retry-after`` headers.

    ``retry-after`` may hold seconds or an HTTP date. Unparsable values yield None.
    """
    if not headers:
        return None
    retry_after_ms = headers.get("retry-after-ms")
    if retry_after_ms:
        try:
            return float(retry_after_ms) / 1000
        except ValueError:
            pass
    retry_after = headers.get("retry-after")
    if not retry_after:
        return None
    try:
        return float(retry_after)
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(retry_after)
    except (TypeError, ValueError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0.0)
