"""SQLAlchemy models for the on-call schedule."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Engineer(Base):
    """Engineer who can be put on call."""

    __tablename__ = "users"

    email = Column(String(255), primary_key=True)  # always lowercased
    name = Column(String(200), nullable=False)
    chat_user_id = Column(String(64), nullable=True, index=True)
    document_person_id = Column(String(64), nullable=True, index=True)
    rotation = Column(String(8), nullable=False, index=True)  # AM or PM, never Core
    pod = Column(String(32), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
    deleted_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Engineer(email='{self.email}', rotation='{self.rotation}', pod='{self.pod}')>"


class ScheduleEntry(Base):
    """Generated (base) schedule row: one engineer per date and rotation."""

    __tablename__ = "oncall_schedule"
    __table_args__ = (UniqueConstraint("date", "rotation", name="uq_oncall_schedule_date_rotation"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    rotation = Column(String(8), nullable=False)  # AM, Core, PM
    engineer_email = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<ScheduleEntry(date={self.date}, rotation='{self.rotation}', engineer='{self.engineer_email}')>"


class ScheduleOverride(Base):
    """Manual correction layered on top of the base schedule."""

    __tablename__ = "oncall_schedule_overrides"
    __table_args__ = (UniqueConstraint("date", "rotation", name="uq_oncall_overrides_date_rotation"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    rotation = Column(String(8), nullable=False)
    engineer_email = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<ScheduleOverride(date={self.date}, rotation='{self.rotation}', engineer='{self.engineer_email}')>"
