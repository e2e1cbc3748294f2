"""
Validation of manual override requests.

Checks run in a fixed order and the first failure wins, so a request with a
past start date and an unknown engineer reports the date problem.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from oncall_scheduler.domain.repositories import EngineerRepository
from oncall_scheduler.domain.types import Rotation

from .constraints import is_qualified
from .timeplan import parse_date

MAX_DAYS_AHEAD = 365


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(False, error)


def validate_date_range(
    start_date: Optional[str],
    end_date: Optional[str],
    today: date,
    max_days_ahead: int = MAX_DAYS_AHEAD,
) -> ValidationResult:
    if not start_date or not end_date:
        return ValidationResult.fail("Both start_date and end_date are required")

    try:
        start = parse_date(start_date)
    except (TypeError, ValueError):
        return ValidationResult.fail(f'start_date "{start_date}" is not a valid date')
    try:
        end = parse_date(end_date)
    except (TypeError, ValueError):
        return ValidationResult.fail(f'end_date "{end_date}" is not a valid date')

    if start < today:
        return ValidationResult.fail("start_date cannot be in the past")
    if end < start:
        return ValidationResult.fail("end_date must be on or after start_date")
    if end > today + timedelta(days=max_days_ahead):
        return ValidationResult.fail(f"end_date cannot be more than {max_days_ahead} days in the future")
    return ValidationResult.ok()


def validate_engineer_for_rotation(session: Session, email: Optional[str], rotation: "Rotation | str") -> ValidationResult:
    """
    Check the engineer exists (and is not soft-deleted) and is qualified.

    Core accepts anyone qualified for AM or PM.
    """
    if not email or not email.strip():
        return ValidationResult.fail("Engineer email is required")
    if "@" not in email:
        return ValidationResult.fail("Engineer email must be a valid email address")

    engineer = EngineerRepository.get_by_email(session, email)
    if engineer is None:
        return ValidationResult.fail(f"Engineer with email {email} not found in database")

    try:
        rotation = Rotation.parse(rotation)
    except ValueError:
        return ValidationResult.fail(f"Unknown rotation: {rotation}")

    if not is_qualified(engineer, rotation):
        return ValidationResult.fail(f"Engineer {email} is not qualified for {rotation.value} rotation")
    return ValidationResult.ok()


def validate_override_request(
    session: Session,
    start_date: Optional[str],
    end_date: Optional[str],
    rotation: "Rotation | str",
    engineer_email: Optional[str],
    today: date,
    max_days_ahead: int = MAX_DAYS_AHEAD,
) -> ValidationResult:
    result = validate_date_range(start_date, end_date, today, max_days_ahead)
    if not result.is_valid:
        return result
    return validate_engineer_for_rotation(session, engineer_email, rotation)
