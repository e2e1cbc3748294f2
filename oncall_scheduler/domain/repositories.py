"""Repository classes for data access."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import case, func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from oncall_scheduler.errors import PersistenceError

from .models import Engineer, ScheduleEntry, ScheduleOverride
from .types import QUALIFICATIONS, ROTATION_HOURS, Pod, Rotation, RotationAssignment

logger = logging.getLogger(__name__)

# Keeps multi-row upserts below SQLite's bound-parameter limit
_UPSERT_CHUNK = 200


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _to_assignment(row, name: Optional[str] = None) -> RotationAssignment:
    return RotationAssignment(
        date=row.date,
        rotation=Rotation.parse(row.rotation),
        engineer_email=row.engineer_email,
        engineer_name=name or row.engineer_email,
    )


def _upsert(session: Session, model, assignments: Sequence[RotationAssignment]) -> None:
    now = datetime.now(timezone.utc)
    rows = [
        {
            "date": a.date,
            "rotation": Rotation.parse(a.rotation).value,
            "engineer_email": normalize_email(a.engineer_email),
            "created_at": now,
        }
        for a in assignments
    ]
    try:
        for start in range(0, len(rows), _UPSERT_CHUNK):
            stmt = sqlite_insert(model).values(rows[start:start + _UPSERT_CHUNK])
            stmt = stmt.on_conflict_do_update(
                index_elements=["date", "rotation"],
                set_={"engineer_email": stmt.excluded.engineer_email},
            )
            session.execute(stmt)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(f"Failed to upsert {len(rows)} rows into {model.__tablename__}: {e}") from e


class EngineerRepository:
    """Repository for engineer (user) data access."""

    @staticmethod
    def get_all(session: Session, include_deleted: bool = False) -> List[Engineer]:
        """Get all engineers ordered by email; soft-deleted ones only when asked."""
        query = session.query(Engineer)
        if not include_deleted:
            query = query.filter(Engineer.deleted_at.is_(None))
        return query.order_by(Engineer.email).all()

    @staticmethod
    def get_by_email(session: Session, email: str, include_deleted: bool = False) -> Optional[Engineer]:
        """Get engineer by (case-insensitive) email."""
        query = session.query(Engineer).filter(Engineer.email == normalize_email(email))
        if not include_deleted:
            query = query.filter(Engineer.deleted_at.is_(None))
        return query.first()

    @staticmethod
    def upsert(
        session: Session,
        email: str,
        name: str,
        rotation: Rotation | str,
        pod: Pod | str,
        chat_user_id: Optional[str] = None,
        document_person_id: Optional[str] = None,
    ) -> Engineer:
        """Insert or update an engineer. Qualification must be AM or PM."""
        rotation = Rotation.parse(rotation)
        if rotation not in QUALIFICATIONS:
            raise ValueError(f"Engineer qualification must be AM or PM, got {rotation.value}")
        pod = Pod(pod)

        engineer = session.get(Engineer, normalize_email(email))
        if engineer is None:
            engineer = Engineer(email=normalize_email(email))
            session.add(engineer)
        engineer.name = name
        engineer.rotation = rotation.value
        engineer.pod = pod.value
        engineer.chat_user_id = chat_user_id
        engineer.document_person_id = document_person_id
        engineer.deleted_at = None
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to upsert engineer {email}: {e}") from e
        return engineer

    @staticmethod
    def soft_delete(session: Session, email: str) -> bool:
        """Mark an engineer deleted. Returns False if the engineer does not exist."""
        engineer = session.get(Engineer, normalize_email(email))
        if engineer is None:
            return False
        engineer.deleted_at = datetime.now(timezone.utc)
        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to soft-delete engineer {email}: {e}") from e
        return True


class ScheduleRepository:
    """Repository for the generated (base) schedule."""

    @staticmethod
    def get_last_scheduled_date(session: Session) -> Optional[date]:
        """Return the last date any rotation was scheduled, or None."""
        return session.query(func.max(ScheduleEntry.date)).scalar()

    @staticmethod
    def save_assignments(session: Session, assignments: Sequence[RotationAssignment]) -> None:
        """Upsert assignments keyed by (date, rotation). Raises PersistenceError."""
        if not assignments:
            logger.warning("No schedule entries to save")
            return
        _upsert(session, ScheduleEntry, assignments)

    @staticmethod
    def get_history(session: Session, days_back: int, today: date) -> List[RotationAssignment]:
        """Assignments dated on or after today - days_back (future rows included), newest first."""
        since = today - timedelta(days=days_back)
        rows = (
            session.query(ScheduleEntry, Engineer.name)
            .outerjoin(Engineer, Engineer.email == ScheduleEntry.engineer_email)
            .filter(ScheduleEntry.date >= since)
            .order_by(ScheduleEntry.date.desc(), ScheduleEntry.rotation)
            .all()
        )
        return [_to_assignment(entry, name) for entry, name in rows]

    @staticmethod
    def get_hours_by_engineer_rotation(
        session: Session,
        days_back: int,
        today: date,
        rotation_hours: Optional[Dict[str, float]] = None,
    ) -> List[Tuple[str, Rotation, float]]:
        """Total hours per (engineer, rotation) since today - days_back, lowest first."""
        hours = rotation_hours or {r.value: h for r, h in ROTATION_HOURS.items()}
        hours_expr = case(
            *[(ScheduleEntry.rotation == name, value) for name, value in hours.items()],
            else_=0,
        )
        total = func.sum(hours_expr)
        since = today - timedelta(days=days_back)
        rows = (
            session.query(ScheduleEntry.engineer_email, ScheduleEntry.rotation, total.label("total_hours"))
            .filter(ScheduleEntry.date >= since)
            .group_by(ScheduleEntry.engineer_email, ScheduleEntry.rotation)
            .order_by(total)
            .all()
        )
        return [(email, Rotation.parse(rotation), float(total_hours or 0)) for email, rotation, total_hours in rows]

    @staticmethod
    def get_range(session: Session, start: date, end: date) -> List[RotationAssignment]:
        """Base assignments with start <= date <= end, oldest first."""
        rows = (
            session.query(ScheduleEntry, Engineer.name)
            .outerjoin(Engineer, Engineer.email == ScheduleEntry.engineer_email)
            .filter(ScheduleEntry.date >= start, ScheduleEntry.date <= end)
            .order_by(ScheduleEntry.date, ScheduleEntry.rotation)
            .all()
        )
        return [_to_assignment(entry, name) for entry, name in rows]

    @staticmethod
    def get_current(session: Session, today: date, days: int = 7) -> List[RotationAssignment]:
        """Base assignments in [today, today + days)."""
        return ScheduleRepository.get_range(session, today, today + timedelta(days=days - 1))

    @staticmethod
    def get_for_dates(session: Session, dates: Iterable[date], rotation: Rotation) -> Dict[date, str]:
        """Map of date -> engineer for one rotation."""
        dates = list(dates)
        if not dates:
            return {}
        rows = (
            session.query(ScheduleEntry.date, ScheduleEntry.engineer_email)
            .filter(ScheduleEntry.date.in_(dates), ScheduleEntry.rotation == Rotation.parse(rotation).value)
            .all()
        )
        return {d: email for d, email in rows}


class OverrideRepository:
    """Repository for manual overrides."""

    @staticmethod
    def upsert(session: Session, overrides: Sequence[RotationAssignment]) -> None:
        """Insert overrides; last write wins for an existing (date, rotation)."""
        if not overrides:
            return
        _upsert(session, ScheduleOverride, overrides)

    @staticmethod
    def get_range(session: Session, start: date, end: date) -> List[RotationAssignment]:
        rows = (
            session.query(ScheduleOverride, Engineer.name)
            .outerjoin(Engineer, Engineer.email == ScheduleOverride.engineer_email)
            .filter(ScheduleOverride.date >= start, ScheduleOverride.date <= end)
            .order_by(ScheduleOverride.date, ScheduleOverride.rotation)
            .all()
        )
        return [_to_assignment(entry, name) for entry, name in rows]

    @staticmethod
    def get_current(session: Session, today: date, days: int = 7) -> List[RotationAssignment]:
        """Overrides in [today, today + days)."""
        return OverrideRepository.get_range(session, today, today + timedelta(days=days - 1))

    @staticmethod
    def get_for_dates(session: Session, dates: Iterable[date], rotation: Rotation) -> Dict[date, str]:
        dates = list(dates)
        if not dates:
            return {}
        rows = (
            session.query(ScheduleOverride.date, ScheduleOverride.engineer_email)
            .filter(ScheduleOverride.date.in_(dates), ScheduleOverride.rotation == Rotation.parse(rotation).value)
            .all()
        )
        return {d: email for d, email in rows}

    @staticmethod
    def find_displaced_engineers(session: Session, dates: Sequence[date], rotation: Rotation) -> List[str]:
        """
        Engineers currently effective for (date, rotation) across the given dates.

        An existing override wins over the base schedule for its date; dates with
        neither contribute nothing. Result is de-duplicated in date order.
        """
        overrides = OverrideRepository.get_for_dates(session, dates, rotation)
        base = ScheduleRepository.get_for_dates(session, [d for d in dates if d not in overrides], rotation)

        displaced: List[str] = []
        for day in sorted(dates):
            engineer = overrides.get(day) or base.get(day)
            if engineer and engineer not in displaced:
                displaced.append(engineer)
        return displaced

    @staticmethod
    def delete_range(session: Session, start: date, end: date, rotation: Rotation) -> int:
        """Delete overrides for one rotation with start <= date <= end."""
        try:
            count = (
                session.query(ScheduleOverride)
                .filter(
                    ScheduleOverride.date >= start,
                    ScheduleOverride.date <= end,
                    ScheduleOverride.rotation == Rotation.parse(rotation).value,
                )
                .delete(synchronize_session=False)
            )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(f"Failed to delete overrides: {e}") from e
        return count
