"""Greedy least-hours-first scheduler for the AM / Core / PM rotations."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from oncall_scheduler.config import SchedulerConfig, today as current_day
from oncall_scheduler.domain.repositories import EngineerRepository, ScheduleRepository
from oncall_scheduler.domain.types import ROTATION_ORDER, AssignmentOutcome, Rotation, RotationAssignment
from oncall_scheduler.errors import CoverageError
from oncall_scheduler.services.availability import AvailabilityOracle
from oncall_scheduler.services.constraints import DayState, pool_for_rotation, soft_violation
from oncall_scheduler.services.timeplan import extrapolate_to_week, generation_start_date, representative_dates
from oncall_scheduler.services.workload import WorkloadLedger, lookback_days

from .diagnostics import summarize_assignments

logger = logging.getLogger(__name__)


class AssignmentEngine:
    """
    Produces the base on-call schedule one week at a time.

    For each representative day (the Mondays in the lookahead window) the
    rotations are filled in the order Core, AM, PM. Candidates are the qualified
    pool sorted by historical hours (stable, so ties keep pool order). A
    candidate is skipped when they worked the previous scheduled date, already
    hold a rotation today, are out of office, or (AM/PM only) share a pod with
    today's Core engineer.

    When nobody passes, the choice is relaxed to the first available candidate
    (RELAXED) and, failing that, the least-loaded candidate regardless of
    availability (FORCED). Coverage is never left empty.

    Each week is persisted before the next one is computed so that the next
    workload query sees it.
    """

    def __init__(
        self,
        session: Session,
        availability: Optional[AvailabilityOracle] = None,
        cfg: Optional[SchedulerConfig] = None,
        today: Optional[date] = None,
    ):
        self.session = session
        self.cfg = cfg or SchedulerConfig()
        self.availability = availability or AvailabilityOracle()
        self.today = today or current_day(self.cfg)
        self.violations: List[RotationAssignment] = []

    def rotation_hours(self, rotation: Rotation) -> float:
        return float(self.cfg.rotation_hours[rotation.value])

    def generate(self, lookahead_days: Optional[int] = None) -> List[RotationAssignment]:
        """
        Generate and persist assignments for the lookahead window.

        Args:
            lookahead_days: Days ahead of today to cover (default from config)

        Returns:
            The representative-day assignments, in date and rotation order

        Raises:
            CoverageError: If a rotation has no qualified engineer at all
            PersistenceError: If a week cannot be saved (the run stops there)
        """
        lookahead = lookahead_days if lookahead_days is not None else self.cfg.lookahead_days
        last_scheduled = ScheduleRepository.get_last_scheduled_date(self.session)
        start = generation_start_date(last_scheduled, self.today, self.cfg.rotation_days_of_week)
        end = self.today + timedelta(days=lookahead)
        schedule_dates = representative_dates(start, end)
        logger.info("Generating schedule from %s to %s (%d week(s))", start, end, len(schedule_dates))

        self.availability.initialize(start, end)

        engineers = EngineerRepository.get_all(self.session)
        pools = {rotation: pool_for_rotation(engineers, rotation) for rotation in ROTATION_ORDER}
        for rotation, pool in pools.items():
            if not pool:
                raise CoverageError(f"Coverage impossible for {rotation.value}: no qualified engineers")
        names = {e.email: e.name for e in engineers}
        pods = {e.email: e.pod for e in engineers}

        days_back = lookback_days(len(engineers), self.cfg.lookback_days_per_engineer)
        ledger = WorkloadLedger(self.session, self.today, self.cfg.rotation_hours)

        self.violations = []
        assignments: List[RotationAssignment] = []
        for day in schedule_dates:
            day_assignments = self.assign_day(day, pools, names, pods, ledger, days_back)
            assignments.extend(day_assignments)
            # Saved before the next week so its workload query includes this week
            ScheduleRepository.save_assignments(self.session, extrapolate_to_week(day_assignments))

        logger.info(summarize_assignments(assignments, self.cfg.rotation_hours))
        if self.violations:
            logger.warning("%d assignment(s) needed relaxed constraints", len(self.violations))
        return assignments

    def assign_day(
        self,
        day: date,
        pools: Dict[Rotation, List[str]],
        names: Dict[str, str],
        pods: Dict[str, str],
        ledger: WorkloadLedger,
        days_back: int,
    ) -> List[RotationAssignment]:
        """Fill Core, AM and PM for one representative day."""
        engineer_total_hours = ledger.total_hours(days_back)
        history = ledger.historical_assignments(days_back)
        state = DayState(previous_date_assignments=ledger.previous_date_assignments(history, day))

        day_assignments: List[RotationAssignment] = []
        for rotation in ROTATION_ORDER:
            candidates = sorted(pools[rotation], key=lambda email: engineer_total_hours.get(email, 0.0))
            engineer, outcome = self.pick_engineer(day, rotation, candidates, state, pods)

            assignment = RotationAssignment(
                date=day,
                rotation=rotation,
                engineer_email=engineer,
                engineer_name=names.get(engineer, engineer),
                outcome=outcome,
            )
            day_assignments.append(assignment)
            if outcome != AssignmentOutcome.ASSIGNED:
                self.violations.append(assignment)

            state.current_date_assignments.add(engineer)
            if rotation == Rotation.CORE:
                state.core_engineer = engineer
            engineer_total_hours[engineer] = engineer_total_hours.get(engineer, 0.0) + self.rotation_hours(rotation)

        return day_assignments

    def pick_engineer(
        self,
        day: date,
        rotation: Rotation,
        candidates: Sequence[str],
        state: DayState,
        pods: Dict[str, str],
    ) -> Tuple[str, AssignmentOutcome]:
        for engineer in candidates:
            reason = soft_violation(engineer, rotation, state, pods)
            if reason:
                logger.debug("Skipping %s for %s on %s: %s", engineer, rotation.value, day, reason)
                continue
            if not self.availability.is_available(engineer, day):
                logger.info("Skipping %s for %s on %s: engineer is OOO", engineer, rotation.value, day)
                continue
            return engineer, AssignmentOutcome.ASSIGNED

        for engineer in candidates:
            if self.availability.is_available(engineer, day):
                logger.warning(
                    "No engineer met every constraint for %s on %s, assigning %s with relaxed constraints",
                    rotation.value, day, engineer,
                )
                return engineer, AssignmentOutcome.RELAXED

        engineer = candidates[0]
        logger.warning(
            "No available engineers found for %s on %s, assigning %s despite OOO status",
            rotation.value, day, engineer,
        )
        return engineer, AssignmentOutcome.FORCED
