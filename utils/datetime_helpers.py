"""Timezone-aware date/time helpers for the booking engine."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

DATE_FORMAT = '%Y-%m-%d'
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_timezone() -> ZoneInfo:
    """Get the configured reference timezone (UTC outside an app context)."""
    tz_name = 'UTC'
    if has_app_context():
        tz_name = current_app.config.get('TIMEZONE', 'UTC')
    return ZoneInfo(tz_name)


def get_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def to_local_date(value) -> date:
    """
    Normalize a date-like value to a calendar date in the reference timezone.

    Accepts date objects, datetimes (naive ones are taken as UTC) and ISO
    strings ('YYYY-MM-DD' or a full ISO timestamp).

    Args:
        value: date, datetime or str

    Returns:
        date

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(get_timezone()).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return datetime.strptime(text, DATE_FORMAT).date()
        return to_local_date(datetime.fromisoformat(text.replace('Z', '+00:00')))
    raise ValueError(f'Unsupported date value: {value!r}')


def to_iso_date(value) -> str:
    """Normalize a date-like value to its 'YYYY-MM-DD' storage form."""
    return to_local_date(value).strftime(DATE_FORMAT)


def add_days(value, days: int) -> str:
    """Shift a date-like value by a number of days, returning 'YYYY-MM-DD'."""
    return (to_local_date(value) + timedelta(days=days)).strftime(DATE_FORMAT)


def utc_timestamp(moment: datetime = None) -> str:
    """
    Format a moment as a naive UTC 'YYYY-MM-DD HH:MM:SS' string.

    Matches SQLite's CURRENT_TIMESTAMP so stored values compare as text.
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)
