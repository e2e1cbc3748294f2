"""Tests for the availability oracle and the calendar OOO source."""

from datetime import date

import pytest

from oncall_scheduler.errors import DependencyUnavailable
from oncall_scheduler.services.availability import AvailabilityOracle
from oncall_scheduler.services.calendar import CalendarOOOSource, build_name_index, is_ooo_title
from oncall_scheduler.services.retry import RetryPolicy

from fakes import FakeCalendarClient, FakeOOOSource, event, no_sleep, ooo


def test_uninitialized_oracle_fails_open():
    """Every engineer is available before initialize()."""
    oracle = AvailabilityOracle(FakeOOOSource([ooo("alice@example.com", date(2025, 8, 4))]))
    assert oracle.is_available("alice@example.com", date(2025, 8, 4))


def test_oracle_reports_ooo_inside_window():
    """Inclusive intervals mark engineers unavailable, case-insensitively."""
    source = FakeOOOSource([ooo("Alice@Example.com", date(2025, 8, 4), date(2025, 8, 6))])
    oracle = AvailabilityOracle(source)
    oracle.initialize(date(2025, 8, 1), date(2025, 8, 31))

    assert not oracle.is_available("alice@example.com", date(2025, 8, 4))
    assert not oracle.is_available("alice@example.com", date(2025, 8, 6))
    assert oracle.is_available("alice@example.com", date(2025, 8, 7))
    assert oracle.is_available("bob@example.com", date(2025, 8, 4))
    assert oracle.engineers_unavailable_on(date(2025, 8, 5)) == ["alice@example.com"]


def test_oracle_outside_window_is_available():
    """Dates outside the initialized window are assumed available."""
    oracle = AvailabilityOracle(FakeOOOSource([ooo("alice@example.com", date(2025, 9, 1))]))
    oracle.initialize(date(2025, 8, 1), date(2025, 8, 31))
    assert oracle.is_available("alice@example.com", date(2025, 9, 1))


def test_oracle_source_failure_fails_open():
    """A failing source leaves the oracle initialized with nobody out."""
    source = FakeOOOSource(error=DependencyUnavailable("calendar", "down"))
    oracle = AvailabilityOracle(source)
    oracle.initialize(date(2025, 8, 1), date(2025, 8, 31))

    assert oracle.initialized
    assert oracle.is_available("alice@example.com", date(2025, 8, 4))
    assert oracle.stats()["total_events"] == 0


def test_oracle_clear():
    """clear() drops the cache and the initialized flag."""
    oracle = AvailabilityOracle(FakeOOOSource([ooo("alice@example.com", date(2025, 8, 4))]))
    oracle.initialize(date(2025, 8, 1), date(2025, 8, 31))
    oracle.clear()
    assert not oracle.initialized
    assert oracle.engineers_unavailable_on(date(2025, 8, 4)) == []
    assert oracle.is_available("alice@example.com", date(2025, 8, 4))


@pytest.mark.parametrize(
    "title,expected",
    [
        ("Alice OOO", True),
        ("Bob - Out of Office", True),
        ("Vacation", True),
        ("PTO: dentist", True),
        ("Team offsite planning", False),
        ("Sprint review", False),
        ("", False),
    ],
)
def test_is_ooo_title(title, expected):
    """Titles are OOO when they contain an OOO keyword as a whole word."""
    assert is_ooo_title(title) is expected


def test_name_index_includes_nicknames(db_session, engineers):
    """First names, full names and nicknames all map to the engineer."""
    index = build_name_index(engineers)
    assert index["alice"] == "alice@example.com"
    assert index["robert brown"] == "bob@example.com"
    assert index["bob"] == "bob@example.com"


def test_calendar_source_maps_events(db_session, engineers):
    """Title names win; unnamed events fall back to a known creator; all-day ends are exclusive."""
    client = FakeCalendarClient([
        event("Bob OOO", date(2025, 8, 4), date(2025, 8, 6)),
        event("Out of office", date(2025, 8, 11), date(2025, 8, 12), creator_email="Diana@example.com"),
        event("Zed vacation", date(2025, 8, 4), date(2025, 8, 5)),
        event("Standup", date(2025, 8, 4), date(2025, 8, 5)),
    ])
    source = CalendarOOOSource(client, engineers)
    intervals = source.get_out_of_office_intervals(date(2025, 8, 1), date(2025, 8, 31))

    assert set(intervals) == {"bob@example.com", "diana@example.com"}
    bob = intervals["bob@example.com"][0]
    assert (bob.start_date, bob.end_date) == (date(2025, 8, 4), date(2025, 8, 5))
    diana = intervals["diana@example.com"][0]
    assert (diana.start_date, diana.end_date) == (date(2025, 8, 11), date(2025, 8, 11))


def test_calendar_source_unconfigured_returns_nothing(engineers):
    """An unconfigured client yields no intervals without calling the API."""
    client = FakeCalendarClient([event("Bob OOO", date(2025, 8, 4), date(2025, 8, 5))], configured=False)
    assert CalendarOOOSource(client, engineers).get_out_of_office_intervals(date(2025, 8, 1), date(2025, 8, 31)) == {}
    assert client.calls == 0


def test_calendar_source_retries_then_succeeds(engineers):
    """Transient failures are retried within the attempt ceiling."""
    client = FakeCalendarClient([event("Bob OOO", date(2025, 8, 4), date(2025, 8, 5))], failures=2)
    source = CalendarOOOSource(client, engineers, RetryPolicy(max_attempts=3), sleep=no_sleep)
    assert "bob@example.com" in source.get_out_of_office_intervals(date(2025, 8, 1), date(2025, 8, 31))
    assert client.calls == 3


def test_calendar_source_exhausted_retries_raise_dependency_unavailable(engineers):
    """Exhausting retries raises DependencyUnavailable, which the oracle absorbs."""
    client = FakeCalendarClient(failures=10)
    source = CalendarOOOSource(client, engineers, RetryPolicy(max_attempts=2), sleep=no_sleep)

    with pytest.raises(DependencyUnavailable):
        source.get_out_of_office_intervals(date(2025, 8, 1), date(2025, 8, 31))

    oracle = AvailabilityOracle(source)
    oracle.initialize(date(2025, 8, 1), date(2025, 8, 31))
    assert oracle.is_available("bob@example.com", date(2025, 8, 4))
