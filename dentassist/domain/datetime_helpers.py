import datetime as dt
from zoneinfo import ZoneInfo

from loguru import logger


def format_long_date(date: dt.date) -> str:
    """Convert ``date(2025, 6, 10)`` → ``Tuesday, June 10, 2025`` for emails and summaries."""
    return f"{date.strftime('%A')}, {date.strftime('%B')} {date.day}, {date.year}"


def resolve_timezone(name: str) -> dt.tzinfo:
    """Resolve a timezone name, falling back to UTC if invalid."""
    try:
        return ZoneInfo(name)
    except Exception:
        logger.warning("Invalid clinic timezone '{}'; defaulting to UTC", name)
        return dt.timezone.utc


def clinic_today(tz: dt.tzinfo) -> dt.date:
    """Today's date as seen from the clinic."""
    return dt.datetime.now(tz).date()


def parse_iso_date(value: object) -> dt.date | None:
    """Parse a ``YYYY-MM-DD`` string, ``None`` when it is not one."""
    if not isinstance(value, str):
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        return None
