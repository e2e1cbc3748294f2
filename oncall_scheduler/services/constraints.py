"""Qualification rules and per-candidate constraint checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from oncall_scheduler.domain.models import Engineer
from oncall_scheduler.domain.types import Rotation

# Reasons a candidate is skipped
PREVIOUS_DATE = "assigned on previous date"
SAME_DAY = "already assigned today"
UNAVAILABLE = "out of office"
SAME_POD_AS_CORE = "same pod as Core engineer"


def is_qualified(engineer: Engineer, rotation: Rotation | str) -> bool:
    """
    Check whether an engineer can work a rotation.

    Core can be worked by anyone qualified for AM or PM; AM and PM need an
    exact qualification match.
    """
    rotation = Rotation.parse(rotation)
    qualification = (engineer.rotation or "").strip()
    if rotation == Rotation.CORE:
        return qualification in (Rotation.AM.value, Rotation.PM.value)
    return qualification == rotation.value


def pool_for_rotation(engineers: Sequence[Engineer], rotation: Rotation | str) -> List[str]:
    """
    Emails of engineers eligible for a rotation, in pool order.

    For Core the pool is every AM engineer followed by every PM engineer.
    """
    rotation = Rotation.parse(rotation)
    if rotation == Rotation.CORE:
        am = pool_for_rotation(engineers, Rotation.AM)
        pm = [e for e in pool_for_rotation(engineers, Rotation.PM) if e not in am]
        return am + pm
    return [e.email for e in engineers if is_qualified(e, rotation)]


@dataclass
class DayState:
    """Mutable per-day state while filling the rotations of one date."""

    previous_date_assignments: Set[str] = field(default_factory=set)
    current_date_assignments: Set[str] = field(default_factory=set)
    core_engineer: Optional[str] = None


def soft_violation(
    engineer: str,
    rotation: Rotation,
    state: DayState,
    pods: Dict[str, str],
) -> Optional[str]:
    """
    Return the first adjacency / same-day / pod constraint the candidate breaks, or None.

    The pod check only compares AM and PM candidates against the Core engineer.
    """
    if engineer in state.previous_date_assignments:
        return PREVIOUS_DATE
    if engineer in state.current_date_assignments:
        return SAME_DAY
    if rotation in (Rotation.AM, Rotation.PM) and state.core_engineer:
        core_pod = pods.get(state.core_engineer)
        if core_pod and pods.get(engineer) == core_pod:
            return SAME_POD_AS_CORE
    return None
