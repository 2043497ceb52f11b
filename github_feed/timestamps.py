"""
Timestamp helpers for GitHub's ISO-8601 timestamps.
"""
from datetime import datetime, timezone


def parse_timestamp(value: str) -> datetime:
    """
    Parse a GitHub timestamp such as ``2024-01-01T10:00:00Z``.

    Naive timestamps are taken to be UTC. Raises ValueError (or TypeError
    for non-strings) when the value cannot be parsed.
    """
    if not isinstance(value, str):
        raise TypeError(f"Expected a timestamp string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def epoch_seconds(value: str) -> int:
    """Whole Unix-epoch seconds of a timestamp string."""
    return int(parse_timestamp(value).timestamp())


def derive_date(value: str) -> str:
    """
    Calendar date (YYYY-MM-DD, UTC) of a timestamp string.

    Falls back to the first 10 characters when the value is not a
    parseable timestamp.
    """
    try:
        return parse_timestamp(value).astimezone(timezone.utc).date().isoformat()
    except (TypeError, ValueError):
        return str(value)[:10]


def to_utc_timestamp(value: str) -> str:
    """
    Rewrite a timestamp in UTC ``Z`` form so stored values sort chronologically.

    ``2024-01-01T23:30:00-05:00`` becomes ``2024-01-02T04:30:00Z``; values
    already in ``Z`` form come back unchanged.
    """
    parsed = parse_timestamp(value).astimezone(timezone.utc)
    return parsed.isoformat().replace("+00:00", "Z")
