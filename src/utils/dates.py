"""
Date helpers for credit release dates, birthdays and "time since" summaries.
"""

from datetime import date, datetime

from utils.get_logger import get_logger

logger = get_logger(__name__)

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m", "%Y"]

DAYS_PER_YEAR = 365.25
DAYS_PER_MONTH = 30.44


def parse_date_maybe(value: str | date | None) -> date | None:
    """Parse a TMDB date string. Missing or unparsable values become None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not value:
        return None

    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(value, date_format).date()
        except ValueError:
            continue

    logger.debug(f"Could not parse date '{value}'")
    return None


def year_of(value: date | None) -> int | None:
    return value.year if value else None


def age_at_date(birth_date: date | None, at_date: date | None) -> int | None:
    """Whole years between ``birth_date`` and ``at_date``; None if either is unknown."""
    if birth_date is None or at_date is None:
        return None
    had_birthday = (at_date.month, at_date.day) >= (birth_date.month, birth_date.day)
    return at_date.year - birth_date.year - (0 if had_birthday else 1)


def format_since(value: date | None, today: date | None = None) -> str:
    """Human readable time elapsed since ``value``.

    Examples: "3y 2m ago", "5m ago", "2w ago", "4d ago", "in the future",
    "unknown".
    """
    if value is None:
        return "unknown"
    if today is None:
        today = date.today()

    days = (today - value).days
    if days < 0:
        return "in the future"

    years = int(days // DAYS_PER_YEAR)
    months = int((days % DAYS_PER_YEAR) // DAYS_PER_MONTH)

    if years >= 1:
        return f"{years}y {months}m ago"
    if months >= 1:
        return f"{months}m ago"

    weeks = days // 7
    if weeks >= 1:
        return f"{weeks}w ago"

    return f"{days}d ago"
