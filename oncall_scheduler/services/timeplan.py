"""Calendar helpers: rotation days, representative days and weekday expansion."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Sequence

import pandas as pd

from oncall_scheduler.domain.types import RotationAssignment

MONDAY = 1
FRIDAY = 5


def parse_date(value: "str | date") -> date:
    """Parse a YYYY-MM-DD string (dates pass through). Raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a date: {value!r}")
    return date.fromisoformat(value.strip())


def next_rotation_day(day: date, rotation_days_of_week: Sequence[int]) -> date:
    """First date on or after `day` whose ISO weekday is a rotation day."""
    if not rotation_days_of_week:
        raise ValueError("rotation_days_of_week is empty")
    while day.isoweekday() not in rotation_days_of_week:
        day += timedelta(days=1)
    return day


def generation_start_date(last_scheduled: date | None, today: date, rotation_days_of_week: Sequence[int]) -> date:
    """Day after the last scheduled date (or today), moved forward to a rotation day."""
    start = today if last_scheduled is None else last_scheduled + timedelta(days=1)
    return next_rotation_day(start, rotation_days_of_week)


def representative_dates(start: date, end: date) -> List[date]:
    """Mondays in [start, end). Other weekdays are filled in by extrapolation."""
    days: List[date] = []
    current = start
    while current < end:
        if current.isoweekday() == MONDAY:
            days.append(current)
        current += timedelta(days=1)
    return days


def weekdays_in_range(start: "str | date", end: "str | date") -> List[date]:
    """Monday-Friday dates in [start, end], inclusive, chronological."""
    start, end = parse_date(start), parse_date(end)
    if end < start:
        return []
    return [ts.date() for ts in pd.bdate_range(start, end)]


def extrapolate_to_week(assignments: Iterable[RotationAssignment]) -> List[RotationAssignment]:
    """
    Replicate each assignment on every weekday from its date through that week's Friday.

    Only the date changes; engineer, rotation and outcome are kept.
    """
    expanded: List[RotationAssignment] = []
    for assignment in assignments:
        day = parse_date(assignment.date)
        while day.isoweekday() <= FRIDAY:
            expanded.append(assignment.on(day))
            day += timedelta(days=1)
    return expanded
