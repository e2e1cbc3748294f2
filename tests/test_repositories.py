"""Tests for repositories, the workload ledger and override masking."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from oncall_scheduler.domain.models import ScheduleEntry, ScheduleOverride
from oncall_scheduler.domain.repositories import EngineerRepository, OverrideRepository, ScheduleRepository
from oncall_scheduler.domain.types import Rotation, RotationAssignment
from oncall_scheduler.errors import PersistenceError
from oncall_scheduler.services.schedule_data import effective_schedule, merge_overrides
from oncall_scheduler.services.workload import WorkloadLedger, lookback_days

TODAY = date(2025, 8, 4)


def _a(day, rotation, email):
    return RotationAssignment(day, Rotation.parse(rotation), email)


def test_engineer_upsert_normalizes_and_rejects_core(db_session):
    """Emails are lowercased and Core is not a qualification."""
    engineer = EngineerRepository.upsert(db_session, "Eve@Example.com", "Eve", "am", "Zero")
    assert engineer.email == "eve@example.com"
    assert engineer.rotation == "AM"

    with pytest.raises(ValueError):
        EngineerRepository.upsert(db_session, "frank@example.com", "Frank", "Core", "Zero")


def test_soft_deleted_engineers_hidden(db_session, engineers):
    """Soft-deleted engineers disappear from default queries."""
    assert EngineerRepository.soft_delete(db_session, "bob@example.com")
    assert EngineerRepository.get_by_email(db_session, "bob@example.com") is None
    assert EngineerRepository.get_by_email(db_session, "bob@example.com", include_deleted=True) is not None
    assert [e.email for e in EngineerRepository.get_all(db_session)] == [
        "alice@example.com", "charlie@example.com", "diana@example.com",
    ]
    assert not EngineerRepository.soft_delete(db_session, "nobody@example.com")


def test_soft_delete_failure_rolls_back(db_session, engineers, monkeypatch):
    """A failed commit surfaces as PersistenceError and leaves the engineer active."""
    def failing_commit():
        raise OperationalError("UPDATE users", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)
    with pytest.raises(PersistenceError, match="soft-delete engineer bob@example.com"):
        EngineerRepository.soft_delete(db_session, "bob@example.com")
    monkeypatch.undo()

    assert EngineerRepository.get_by_email(db_session, "bob@example.com").deleted_at is None


def test_timestamps_are_recorded(db_session, engineers):
    """created_at and deleted_at are filled from the current UTC time."""
    ScheduleRepository.save_assignments(db_session, [_a(TODAY, "Core", "bob@example.com")])
    assert db_session.query(ScheduleEntry).one().created_at is not None

    EngineerRepository.soft_delete(db_session, "alice@example.com")
    alice = EngineerRepository.get_by_email(db_session, "alice@example.com", include_deleted=True)
    assert alice.created_at is not None
    assert alice.deleted_at >= alice.created_at.replace(tzinfo=None)


def test_save_assignments_upserts_by_date_and_rotation(db_session):
    """A second save for the same (date, rotation) replaces the engineer."""
    ScheduleRepository.save_assignments(db_session, [_a(TODAY, "Core", "bob@example.com")])
    ScheduleRepository.save_assignments(db_session, [_a(TODAY, "Core", "alice@example.com")])

    rows = db_session.query(ScheduleEntry).all()
    assert len(rows) == 1
    assert rows[0].engineer_email == "alice@example.com"
    assert ScheduleRepository.get_last_scheduled_date(db_session) == TODAY


def test_save_assignments_failure_raises_persistence_error(db_session):
    """Storage failures surface as PersistenceError."""
    ScheduleEntry.__table__.drop(db_session.get_bind())
    with pytest.raises(PersistenceError):
        ScheduleRepository.save_assignments(db_session, [_a(TODAY, "Core", "bob@example.com")])


def test_history_and_hours(db_session, engineers):
    """History includes the window and future rows; hours are weighted per rotation."""
    ScheduleRepository.save_assignments(db_session, [
        _a(date(2025, 6, 1), "Core", "alice@example.com"),  # outside a 28-day window
        _a(date(2025, 7, 28), "Core", "alice@example.com"),
        _a(date(2025, 7, 28), "PM", "bob@example.com"),
        _a(date(2025, 8, 11), "AM", "alice@example.com"),  # future row
    ])

    history = ScheduleRepository.get_history(db_session, 28, TODAY)
    assert [a.date for a in history] == [date(2025, 8, 11), date(2025, 7, 28), date(2025, 7, 28)]
    assert history[0].engineer_name == "Alice Adams"

    ledger = WorkloadLedger(db_session, TODAY)
    assert ledger.total_hours(28) == {"alice@example.com": 9.0, "bob@example.com": 3.0}
    assert ledger.hours_by_engineer(28)["alice@example.com"] == {Rotation.CORE: 6.0, Rotation.AM: 3.0}


def test_previous_date_assignments():
    """The previous date is the latest history date strictly before the target."""
    history = [
        _a(date(2025, 8, 11), "AM", "x@example.com"),
        _a(date(2025, 8, 8), "AM", "a@example.com"),
        _a(date(2025, 8, 8), "PM", "b@example.com"),
        _a(date(2025, 8, 7), "PM", "c@example.com"),
    ]
    ledger = WorkloadLedger(None, TODAY)
    assert ledger.previous_date_assignments(history, date(2025, 8, 11)) == {"a@example.com", "b@example.com"}
    assert ledger.previous_date_assignments(history, date(2025, 8, 7)) == set()


def test_lookback_days():
    """The lookback grows with the team size."""
    assert lookback_days(4) == 28
    assert lookback_days(10, 7) == 70


def test_override_masks_base_without_touching_it(db_session):
    """Overrides mask the base schedule; base rows stay unchanged."""
    ScheduleRepository.save_assignments(db_session, [
        _a(TODAY, "AM", "alice@example.com"),
        _a(TODAY, "Core", "bob@example.com"),
    ])
    OverrideRepository.upsert(db_session, [_a(TODAY, "Core", "charlie@example.com")])

    rows = effective_schedule(db_session, TODAY, TODAY)
    core = next(r for r in rows if r.rotation == Rotation.CORE)
    am = next(r for r in rows if r.rotation == Rotation.AM)
    assert core.final_engineer == "charlie@example.com"
    assert core.engineer_email == "bob@example.com"
    assert core.overridden
    assert am.final_engineer == "alice@example.com"
    assert not am.overridden
    assert db_session.query(ScheduleEntry).filter_by(rotation="Core").one().engineer_email == "bob@example.com"


def test_merge_overrides_orders_by_date_then_rotation():
    """Merged rows follow date, then Core/AM/PM order; orphan overrides are kept."""
    merged = merge_overrides(
        [_a(TODAY, "PM", "b@example.com"), _a(TODAY, "Core", "a@example.com")],
        [_a(date(2025, 8, 5), "AM", "c@example.com")],
    )
    assert [(m.date, m.rotation) for m in merged] == [
        (TODAY, Rotation.CORE), (TODAY, Rotation.PM), (date(2025, 8, 5), Rotation.AM),
    ]
    assert merged[-1].engineer_email is None
    assert merged[-1].final_engineer == "c@example.com"


def test_find_displaced_engineers_prefers_existing_override(db_session):
    """Existing overrides win over base rows; results are de-duplicated in date order."""
    ScheduleRepository.save_assignments(db_session, [
        _a(date(2025, 8, 4), "Core", "bob@example.com"),
        _a(date(2025, 8, 5), "Core", "alice@example.com"),
        _a(date(2025, 8, 6), "Core", "bob@example.com"),
    ])
    OverrideRepository.upsert(db_session, [_a(date(2025, 8, 5), "Core", "diana@example.com")])

    displaced = OverrideRepository.find_displaced_engineers(
        db_session, [date(2025, 8, 4), date(2025, 8, 5), date(2025, 8, 6), date(2025, 8, 7)], Rotation.CORE
    )
    assert displaced == ["bob@example.com", "diana@example.com"]


def test_delete_override_range(db_session):
    """Deleting overrides only touches the given rotation and range."""
    OverrideRepository.upsert(db_session, [
        _a(date(2025, 8, 4), "Core", "charlie@example.com"),
        _a(date(2025, 8, 5), "Core", "charlie@example.com"),
        _a(date(2025, 8, 4), "AM", "alice@example.com"),
    ])
    assert OverrideRepository.delete_range(db_session, date(2025, 8, 4), date(2025, 8, 4), Rotation.CORE) == 1
    remaining = {(o.date, o.rotation) for o in db_session.query(ScheduleOverride).all()}
    assert remaining == {(date(2025, 8, 5), "Core"), (date(2025, 8, 4), "AM")}
