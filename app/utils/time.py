from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return an ISO 8601 string for the current UTC time."""
    return utc_now().isoformat()


def parse_aware_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a stored ISO 8601 timestamp.

    Returns None for empty, malformed or naive (offset-less) values, so a
    caller comparing against utc_now() never mixes naive and aware datetimes.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed
