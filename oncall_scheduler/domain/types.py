"""Plain value types shared by the engines and services."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Dict, Optional


class Rotation(str, Enum):
    """
    On-call rotation (shift) names.

    Engineers are qualified for AM or PM only. Core is not a qualification:
    any AM- or PM-qualified engineer can work Core.
    """

    AM = "AM"  # 09:00-12:00
    CORE = "Core"  # 12:00-18:00
    PM = "PM"  # 18:00-21:00

    @classmethod
    def parse(cls, value: "str | Rotation") -> "Rotation":
        if isinstance(value, Rotation):
            return value
        for rotation in cls:
            if rotation.value.lower() == str(value).strip().lower():
                return rotation
        raise ValueError(f"Unknown rotation: {value!r}")


class Pod(str, Enum):
    BLINKY = "Blinky"
    SWAYZE = "Swayze"
    ZERO = "Zero"


# Rotations in the order they are filled each day
ROTATION_ORDER = (Rotation.CORE, Rotation.AM, Rotation.PM)

# Qualifications an engineer can hold
QUALIFICATIONS = (Rotation.AM, Rotation.PM)

ROTATION_HOURS: Dict[Rotation, float] = {
    Rotation.AM: 3.0,
    Rotation.CORE: 6.0,
    Rotation.PM: 3.0,
}


class AssignmentOutcome(str, Enum):
    """How an assignment was reached."""

    ASSIGNED = "assigned"  # every constraint held
    RELAXED = "relaxed"  # adjacency / same-day / pod constraints ignored
    FORCED = "forced"  # engineer is out of office, assigned for coverage


@dataclass(frozen=True)
class RotationAssignment:
    """One (date, rotation) -> engineer assignment."""

    date: date
    rotation: Rotation
    engineer_email: str
    engineer_name: Optional[str] = None
    outcome: AssignmentOutcome = AssignmentOutcome.ASSIGNED

    def on(self, other_date: date) -> "RotationAssignment":
        return replace(self, date=other_date)


@dataclass(frozen=True)
class OOOInterval:
    """Out-of-office interval, inclusive on both ends."""

    engineer_email: str
    start_date: date
    end_date: date
    source: str = "calendar"
    title: str = ""

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @property
    def days(self) -> int:
        return max(1, (self.end_date - self.start_date).days + 1)
