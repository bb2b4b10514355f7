"""
Datetime utilities for consistent timezone handling across the application.

This module provides utilities to ensure all datetime operations use timezone-aware
datetimes consistently. All business dates (invoice days, receipt dates, daily
filters) are evaluated in the clinic's local timezone.
"""

import logging
from datetime import datetime, timezone, timedelta, date
from typing import Optional, Tuple

from core.config import CLINIC_UTC_OFFSET_HOURS

logger = logging.getLogger(__name__)

# Clinic timezone constant (UTC+8 by default)
CLINIC_TZ = timezone(timedelta(hours=CLINIC_UTC_OFFSET_HOURS))


def clinic_now() -> datetime:
    """
    Get current clinic-local datetime.

    All business logic in the application uses the clinic timezone.

    Returns:
        Current datetime with the clinic timezone
    """
    return datetime.now(CLINIC_TZ)


def ensure_clinic_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in the clinic timezone.

    Args:
        dt: Datetime to normalize

    Returns:
        Timezone-aware datetime in clinic time, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # If naive, assume it's already in clinic time and localize it
        return dt.replace(tzinfo=CLINIC_TZ)
    else:
        return dt.astimezone(CLINIC_TZ)


def compact_date(dt: datetime) -> str:
    """Format the clinic-local calendar date of dt as YYYYMMDD."""
    local_datetime = ensure_clinic_tz(dt)
    if local_datetime is None:
        raise ValueError("Cannot format None datetime")
    return local_datetime.strftime("%Y%m%d")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """
    Get the [start, end) clinic-local datetimes covering a calendar day.

    Args:
        day: Calendar date in clinic time

    Returns:
        Tuple of (start of day, start of next day), both timezone-aware
    """
    start = datetime(day.year, day.month, day.day, tzinfo=CLINIC_TZ)
    return start, start + timedelta(days=1)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Accepts both formats:
    - YYYY-MM-DD (e.g., "2022-01-01", "2022-1-1")
    - YYYY/MM/DD (e.g., "2022/01/01", "2022/1/1")

    Automatically normalizes single-digit months/days.

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    normalized = f"{parts[0].zfill(4)}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e
