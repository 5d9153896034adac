"""
Date helpers: timezone-aware "now" and midnight normalization.
"""
from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_date(value: date | datetime | str | None) -> date | None:
    """
    Strip the time of day.

    Accepts date, datetime or an ISO string ("2026-03-01" / "2026-03-01T10:00:00").
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value
