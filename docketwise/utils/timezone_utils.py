"""
Timezone utility functions for DocketWise.
Dockets are dated in site-local time, so "today" and the current ISO week
are resolved in the display timezone (configurable, default Australia/Sydney).
"""

from datetime import datetime, date, timezone
import pytz
from flask import current_app, has_app_context

DEFAULT_DISPLAY_TIMEZONE = "Australia/Sydney"


def get_display_timezone() -> str:
    """Return the configured display timezone name."""
    if has_app_context():
        return current_app.config.get('DISPLAY_TIMEZONE', DEFAULT_DISPLAY_TIMEZONE)
    return DEFAULT_DISPLAY_TIMEZONE


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    """Current time in the display timezone."""
    return utc_now().astimezone(pytz.timezone(get_display_timezone()))


def local_today() -> date:
    return local_now().date()


def format_datetime_for_api(dt):
    """ISO 8601 string in UTC, or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
