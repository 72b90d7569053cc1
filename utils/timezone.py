"""UTC-everywhere time handling. Invoice dates are calendar dates in UTC."""

from datetime import date, datetime, timedelta, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC."""
    return now_utc().date()


def add_days(day: date, days: int) -> date:
    """Calendar arithmetic for due dates."""
    return day + timedelta(days=days)


def parse_date(value: str | None) -> date | None:
    """
    Parse an ISO 8601 calendar date (YYYY-MM-DD).

    Returns None for empty input. Raises ValueError on malformed dates so
    bad filters surface as 400s instead of silently matching nothing.
    """
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid date '{value}'. Expected YYYY-MM-DD.")
