"""Orchestrator - runs a full generation pass and the downstream syncs that follow it."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from oncall_scheduler.config import SchedulerConfig, today as current_day
from oncall_scheduler.services.availability import AvailabilityOracle
from oncall_scheduler.services.mirror import MirrorSyncService, ScheduleMirror
from oncall_scheduler.services.presence import OnCallPresence, PresenceSync

from .assignment import AssignmentEngine

logger = logging.getLogger(__name__)


def run_schedule_generation(
    session: Session,
    cfg: Optional[SchedulerConfig] = None,
    availability: Optional[AvailabilityOracle] = None,
    presence: Optional[OnCallPresence] = None,
    mirror: Optional[ScheduleMirror] = None,
    today: Optional[date] = None,
    lookahead_days: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Generate the schedule, then update the on-call group and the mirror.

    Args:
        session: Database session
        cfg: SchedulerConfig (defaults when omitted)
        availability: OOO oracle; an empty one when omitted
        presence: Chat on-call group, skipped when omitted
        mirror: Downstream schedule mirror, skipped when omitted
        today: Override the current date (tests)
        lookahead_days: Override cfg.lookahead_days

    Returns:
        Summary dict; presence and mirror results are None when skipped

    Raises:
        CoverageError, PersistenceError: Generation failures propagate. Presence
        and mirror failures are reported in the summary only.
    """
    cfg = cfg or SchedulerConfig()
    today = today or current_day(cfg)

    engine = AssignmentEngine(session, availability, cfg, today)
    assignments = engine.generate(lookahead_days)
    logger.info("Generated %d assignments (%d with relaxed constraints)", len(assignments), len(engine.violations))

    summary: Dict[str, Any] = {
        "schedule_generated": True,
        "assignments": len(assignments),
        "relaxed": len(engine.violations),
        "presence": None,
        "mirror_sync": None,
    }

    if presence is not None:
        summary["presence"] = PresenceSync(session, presence, cfg, today).sync().to_dict()

    if mirror is not None:
        try:
            summary["mirror_sync"] = MirrorSyncService(session, mirror, cfg, today).sync_upcoming().to_dict()
        except Exception as e:
            logger.error("Mirror sync failed after schedule generation: %s", e)
            summary["mirror_sync"] = {"success": False, "error": str(e)}

    return summary
