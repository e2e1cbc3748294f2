"""Domain models and data access layer."""

from .models import Base, Engineer, ScheduleEntry, ScheduleOverride
from .repositories import EngineerRepository, OverrideRepository, ScheduleRepository
from .types import AssignmentOutcome, OOOInterval, Pod, Rotation, RotationAssignment

__all__ = [
    "Base",
    "Engineer",
    "ScheduleEntry",
    "ScheduleOverride",
    "EngineerRepository",
    "ScheduleRepository",
    "OverrideRepository",
    "Rotation",
    "Pod",
    "AssignmentOutcome",
    "RotationAssignment",
    "OOOInterval",
]
