"""
Next-occurrence calculation for recurring invoice series.

Month based frequencies use ``relativedelta`` so the day is clamped to the
length of the target month (Jan 31 + 1 month lands on Feb 28/29).
"""

from __future__ import annotations

import calendar
import logging
from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

FAST_FREQUENCIES = ("every-20-seconds", "every-minute", "monthly-test")


def _last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _clamp_day(value: datetime, day_of_month: int) -> datetime:
    return value.replace(day=min(day_of_month, _last_day_of_month(value.year, value.month)))


def _move_to_month(value: datetime, month: int, day_of_month: int) -> datetime:
    last_day = _last_day_of_month(value.year, month)
    return value.replace(month=month, day=min(day_of_month, last_day))


def _js_weekday(value: datetime) -> int:
    """Weekday number with Sunday as 0, the convention stored on invoices."""
    return (value.weekday() + 1) % 7


def parse_time_of_day(time_of_day: Optional[str]) -> Optional[tuple]:
    if not time_of_day:
        return None
    try:
        hours, minutes = (int(part) for part in time_of_day.split(":"))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed recurring time {time_of_day!r}")
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        logger.warning(f"Ignoring out of range recurring time {time_of_day!r}")
        return None
    return hours, minutes


def next_occurrence(
    current: datetime,
    frequency: Optional[str],
    day_of_month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    month_of_year: Optional[int] = None,
    quarter_month: Optional[int] = None,
    time_of_day: Optional[str] = None,
) -> datetime:
    """
    Compute the next occurrence of a recurring series.

    Args:
        current: The series' current cursor.
        frequency: One of ``Invoice.Frequency``; unknown values advance monthly.
        day_of_month: 1-31, clamped to the last day of the resulting month.
        day_of_week: 0-6 with 0 = Sunday, weekly only.
        month_of_year: 1-12, yearly only (requires ``day_of_month``).
        quarter_month: 1-3, quarterly only (requires ``day_of_month``).
        time_of_day: ``HH:MM`` wall-clock time, ignored for the fast test frequencies.

    Returns:
        The next occurrence, never earlier than ``current``.
    """
    if frequency == "every-20-seconds":
        nxt = current + timedelta(seconds=20)
    elif frequency == "every-minute":
        nxt = current + timedelta(minutes=1)
    elif frequency == "daily":
        nxt = current + timedelta(days=1)
    elif frequency == "weekly":
        nxt = current + timedelta(days=7)
        if day_of_week is not None:
            nxt += timedelta(days=(day_of_week - _js_weekday(nxt) + 7) % 7)
    elif frequency == "bi-weekly":
        nxt = current + timedelta(days=14)
    elif frequency == "monthly":
        nxt = current + relativedelta(months=1)
        if day_of_month:
            nxt = _clamp_day(nxt, day_of_month)
    elif frequency == "monthly-test":
        nxt = current + timedelta(minutes=2)
    elif frequency == "quarterly":
        nxt = current + relativedelta(months=3)
        if quarter_month and day_of_month:
            quarter_start = ((nxt.month - 1) // 3) * 3 + 1
            nxt = _move_to_month(nxt, quarter_start + (quarter_month - 1), day_of_month)
    elif frequency == "yearly":
        nxt = current + relativedelta(years=1)
        if month_of_year and day_of_month:
            nxt = _move_to_month(nxt, month_of_year, day_of_month)
    else:
        if frequency:
            logger.warning(f"Unknown recurring frequency {frequency!r}, advancing monthly")
        nxt = current + relativedelta(months=1)

    if frequency not in FAST_FREQUENCIES:
        parsed = parse_time_of_day(time_of_day)
        if parsed:
            nxt = nxt.replace(hour=parsed[0], minute=parsed[1], second=0, microsecond=0)

    return nxt
