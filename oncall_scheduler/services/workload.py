"""Read model over persisted assignments for fairness comparisons."""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from oncall_scheduler.domain.repositories import ScheduleRepository
from oncall_scheduler.domain.types import Rotation, RotationAssignment


def lookback_days(engineer_count: int, days_per_engineer: int = 7) -> int:
    """Trailing window that grows with the team so everyone has had a turn."""
    return engineer_count * days_per_engineer


class WorkloadLedger:
    """
    Historical workload, always read fresh from storage.

    Nothing is cached: assignments persisted earlier in the same generation
    run show up in the next query.
    """

    def __init__(self, session: Session, today: date, rotation_hours: Optional[Dict[str, float]] = None):
        self.session = session
        self.today = today
        self.rotation_hours = rotation_hours

    def historical_assignments(self, days_back: int) -> List[RotationAssignment]:
        return ScheduleRepository.get_history(self.session, days_back, self.today)

    def hours_by_engineer(self, days_back: int) -> Dict[str, Dict[Rotation, float]]:
        rows = ScheduleRepository.get_hours_by_engineer_rotation(
            self.session, days_back, self.today, self.rotation_hours
        )
        result: Dict[str, Dict[Rotation, float]] = defaultdict(dict)
        for email, rotation, hours in rows:
            result[email][rotation] = hours
        return dict(result)

    def total_hours(self, days_back: int) -> Dict[str, float]:
        """Hours per engineer summed across rotations."""
        return {email: sum(by_rotation.values()) for email, by_rotation in self.hours_by_engineer(days_back).items()}

    def previous_date_assignments(self, history: List[RotationAssignment], before: date) -> set:
        """Engineers assigned on the latest date in `history` strictly before `before`."""
        earlier = [a.date for a in history if a.date < before]
        if not earlier:
            return set()
        previous = max(earlier)
        return {a.engineer_email for a in history if a.date == previous}
