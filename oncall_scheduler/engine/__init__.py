"""Scheduling engines: base schedule generation and manual overrides."""

from .assignment import AssignmentEngine
from .orchestrator import run_schedule_generation
from .overrides import OverrideEngine, OverrideRequest

__all__ = [
    "AssignmentEngine",
    "OverrideEngine",
    "OverrideRequest",
    "run_schedule_generation",
]
