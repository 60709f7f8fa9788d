"""
ISO week helpers. Weeks run Monday to Sunday and are addressed as ``YYYY-Www``.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from docketwise.utils.timezone_utils import local_today

WEEK_PATTERN = re.compile(r'^(\d{4})-W(\d{1,2})$')
INVALID_WEEK_FORMAT = "Invalid week format. Use YYYY-Www"
INVALID_WEEK_START = "Invalid date format. Use YYYY-MM-DD"
DISPLAY_DATE_FORMAT = '%b %d, %Y'


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_iso_week(value: Union[date, datetime]) -> date:
    """Monday of the ISO week containing ``value``."""
    d = _as_date(value)
    return d - timedelta(days=d.weekday())


def end_of_iso_week(week_start: date) -> date:
    """Sunday of the week starting at ``week_start``."""
    return week_start + timedelta(days=6)


def parse_week_string(week: str) -> Tuple[date, date]:
    """
    Parse ``2025-W38`` into (monday, sunday).

    Raises:
        ValueError: if the string is malformed or names a week the year does not have
    """
    match = WEEK_PATTERN.match((week or '').strip())
    if not match:
        raise ValueError(INVALID_WEEK_FORMAT)
    year, week_no = int(match.group(1)), int(match.group(2))
    if week_no < 1 or week_no > 53:
        raise ValueError(INVALID_WEEK_FORMAT)
    try:
        monday = date.fromisocalendar(year, week_no, 1)
    except ValueError:
        raise ValueError(INVALID_WEEK_FORMAT)
    return monday, end_of_iso_week(monday)


def parse_week_start(value: str) -> date:
    """Parse ``YYYY-MM-DD`` and snap it back to the Monday of its week."""
    try:
        parsed = datetime.strptime((value or '').strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(INVALID_WEEK_START)
    return start_of_iso_week(parsed)


def resolve_week(week: Optional[str] = None, week_start: Optional[str] = None,
                 today: Optional[date] = None) -> Tuple[date, date]:
    """Pick the week from ``week`` first, then ``week_start``, else the current week."""
    if week:
        return parse_week_string(week)
    if week_start:
        monday = parse_week_start(week_start)
        return monday, end_of_iso_week(monday)
    monday = start_of_iso_week(today or local_today())
    return monday, end_of_iso_week(monday)


def get_week_string(value: Union[date, datetime]) -> str:
    iso_year, iso_week, _ = _as_date(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def get_week_label(week_start: date, week_end: date) -> str:
    """``Sep 15 - Sep 21, 2025``"""
    return f"{week_start.strftime('%b %d')} - {week_end.strftime('%b %d, %Y')}"


def is_current_or_past_week(week_start: date, today: Optional[date] = None) -> bool:
    return week_start <= start_of_iso_week(today or local_today())


def format_display_date(value) -> str:
    if value is None:
        return ''
    return _as_date(value).strftime(DISPLAY_DATE_FORMAT)


def format_decimal(value, places: int = 2) -> str:
    return f"{float(value or 0):.{places}f}"
