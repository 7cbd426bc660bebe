"""UTC date helpers. Footprint days are `YYYY-MM-DD` strings in UTC."""

from datetime import date, datetime, timedelta, timezone

from errors import InvalidRequest


DAY_FORMAT = "%Y-%m-%d"


def utcnow() -> datetime:
    # Naive UTC, matching the DateTime columns.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> str:
    return utcnow().date().isoformat()


def parse_day(value) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value).strip(), DAY_FORMAT).date()
    except (TypeError, ValueError):
        raise InvalidRequest(f"date must be YYYY-MM-DD, got {value!r}")


def normalize_day(value) -> str:
    """Return a canonical YYYY-MM-DD string, defaulting to today (UTC)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return utc_today()
    return parse_day(value).isoformat()


def utc_day_bounds(day) -> tuple:
    d = parse_day(day)
    day_start = datetime(d.year, d.month, d.day)
    return day_start, day_start + timedelta(days=1)
