"""Effective schedule: base assignments with overrides applied."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from oncall_scheduler.domain.repositories import OverrideRepository, ScheduleRepository
from oncall_scheduler.domain.types import ROTATION_ORDER, Rotation, RotationAssignment

_ROTATION_RANK = {rotation: i for i, rotation in enumerate(ROTATION_ORDER)}


@dataclass(frozen=True)
class EffectiveAssignment:
    date: date
    rotation: Rotation
    engineer_email: Optional[str]
    override_engineer: Optional[str]
    final_engineer: str
    engineer_name: Optional[str] = None

    @property
    def overridden(self) -> bool:
        return self.override_engineer is not None


def merge_overrides(
    assignments: Iterable[RotationAssignment],
    overrides: Iterable[RotationAssignment],
) -> List[EffectiveAssignment]:
    """
    Mask base assignments with overrides keyed by (date, rotation).

    An override with no base row still appears, with engineer_email None.
    """
    base = {(a.date, Rotation.parse(a.rotation)): a for a in assignments}
    masked = {(o.date, Rotation.parse(o.rotation)): o for o in overrides}

    merged: List[EffectiveAssignment] = []
    for key in sorted(set(base) | set(masked), key=lambda k: (k[0], _ROTATION_RANK[k[1]])):
        row = base.get(key)
        override = masked.get(key)
        final = override if override is not None else row
        merged.append(
            EffectiveAssignment(
                date=key[0],
                rotation=key[1],
                engineer_email=row.engineer_email if row else None,
                override_engineer=override.engineer_email if override else None,
                final_engineer=final.engineer_email,
                engineer_name=final.engineer_name,
            )
        )
    return merged


def effective_schedule(session: Session, start: date, end: date) -> List[EffectiveAssignment]:
    """Effective assignments with start <= date <= end."""
    return merge_overrides(
        ScheduleRepository.get_range(session, start, end),
        OverrideRepository.get_range(session, start, end),
    )
