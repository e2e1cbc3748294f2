"""Tests for calendar helpers (rotation days, weekday expansion, extrapolation)."""

from datetime import date

import pytest

from oncall_scheduler.domain.types import AssignmentOutcome, Rotation, RotationAssignment
from oncall_scheduler.services.timeplan import (
    extrapolate_to_week,
    generation_start_date,
    next_rotation_day,
    parse_date,
    representative_dates,
    weekdays_in_range,
)

WEEKDAYS = [1, 2, 3, 4, 5]


def test_parse_date_rejects_garbage():
    """Invalid dates raise ValueError."""
    assert parse_date("2025-08-04") == date(2025, 8, 4)
    with pytest.raises(ValueError):
        parse_date("2025-13-45")
    with pytest.raises(ValueError):
        parse_date("")


def test_weekdays_in_range_skips_weekend():
    """Friday to Tuesday expands to Fri, Mon, Tue."""
    assert weekdays_in_range("2025-08-08", "2025-08-12") == [
        date(2025, 8, 8), date(2025, 8, 11), date(2025, 8, 12),
    ]


def test_weekdays_in_range_weekend_only_is_empty():
    """A Saturday-Sunday range has no weekdays."""
    assert weekdays_in_range("2025-08-09", "2025-08-10") == []


def test_next_rotation_day_moves_weekend_to_monday():
    """Saturday advances to the following Monday."""
    assert next_rotation_day(date(2025, 8, 9), WEEKDAYS) == date(2025, 8, 11)
    assert next_rotation_day(date(2025, 8, 6), WEEKDAYS) == date(2025, 8, 6)


def test_generation_start_date():
    """Start is the day after the last scheduled date, or today without history."""
    assert generation_start_date(None, date(2025, 8, 4), WEEKDAYS) == date(2025, 8, 4)
    # Last scheduled Friday -> next Monday
    assert generation_start_date(date(2025, 8, 8), date(2025, 8, 1), WEEKDAYS) == date(2025, 8, 11)


def test_representative_dates_are_mondays_in_half_open_range():
    """Only Mondays in [start, end) are representative."""
    assert representative_dates(date(2025, 8, 4), date(2025, 8, 18)) == [date(2025, 8, 4), date(2025, 8, 11)]
    assert representative_dates(date(2025, 8, 5), date(2025, 8, 11)) == []


def test_extrapolate_to_week_from_monday():
    """A Monday assignment is replicated through Friday, unchanged apart from the date."""
    monday = RotationAssignment(date(2025, 8, 4), Rotation.CORE, "bob@example.com", "Bob",
                                AssignmentOutcome.RELAXED)
    expanded = extrapolate_to_week([monday])

    assert [a.date for a in expanded] == [date(2025, 8, d) for d in range(4, 9)]
    assert all(a.engineer_email == "bob@example.com" for a in expanded)
    assert all(a.rotation == Rotation.CORE for a in expanded)
    assert all(a.outcome == AssignmentOutcome.RELAXED for a in expanded)


def test_extrapolate_midweek_and_weekend():
    """Midweek dates fill the rest of the week; weekend dates produce nothing."""
    wednesday = RotationAssignment(date(2025, 8, 6), Rotation.AM, "alice@example.com")
    saturday = RotationAssignment(date(2025, 8, 9), Rotation.AM, "alice@example.com")

    assert [a.date for a in extrapolate_to_week([wednesday])] == [date(2025, 8, 6), date(2025, 8, 7), date(2025, 8, 8)]
    assert extrapolate_to_week([saturday]) == []
