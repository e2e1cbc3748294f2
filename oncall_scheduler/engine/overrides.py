"""Manual overrides of the base schedule."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from oncall_scheduler.config import SchedulerConfig, today as current_day
from oncall_scheduler.domain.repositories import OverrideRepository, normalize_email
from oncall_scheduler.domain.types import Rotation, RotationAssignment
from oncall_scheduler.errors import (
    DatabaseOperationError,
    MirrorSyncError,
    OverrideValidationError,
    PersistenceError,
    ScheduleRegenerationError,
    override_error_response,
)
from oncall_scheduler.services.mirror import MirrorSyncService
from oncall_scheduler.services.notifications import Notifier, notify_override_assignment
from oncall_scheduler.services.timeplan import parse_date, weekdays_in_range
from oncall_scheduler.services.validation import validate_date_range, validate_override_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverrideRequest:
    start_date: str
    end_date: str
    rotation: str
    engineer_email: str


class OverrideEngine:
    """
    Applies override requests: validate, persist, re-sync the mirror, notify.

    Validation failures return before anything is written. Once the overrides
    are persisted the request succeeds even if the mirror re-sync or the
    notifications fail; those are logged only.
    """

    def __init__(
        self,
        session: Session,
        cfg: Optional[SchedulerConfig] = None,
        mirror_sync: Optional[MirrorSyncService] = None,
        notifier: Optional[Notifier] = None,
        today: Optional[date] = None,
    ):
        self.session = session
        self.cfg = cfg or SchedulerConfig()
        self.mirror_sync = mirror_sync
        self.notifier = notifier
        self.today = today or current_day(self.cfg)

    def apply(self, request: OverrideRequest) -> Dict[str, Any]:
        logger.info("Override request: %s", request)
        try:
            return self._apply(request)
        except Exception as e:
            logger.error("Override request failed: %s", e)
            return override_error_response(e)

    def _apply(self, request: OverrideRequest) -> Dict[str, Any]:
        validation = validate_override_request(
            self.session,
            request.start_date,
            request.end_date,
            request.rotation,
            request.engineer_email,
            self.today,
            self.cfg.max_override_days_ahead,
        )
        if not validation.is_valid:
            raise OverrideValidationError(validation.error or "Unknown validation error")

        rotation = Rotation.parse(request.rotation)
        engineer = normalize_email(request.engineer_email)
        dates = weekdays_in_range(request.start_date, request.end_date)
        if not dates:
            raise OverrideValidationError("No valid weekdays found in the specified date range")

        try:
            replaced = OverrideRepository.find_displaced_engineers(self.session, dates, rotation)
        except Exception as e:
            raise DatabaseOperationError(f"Failed to find affected engineers: {e}", "find_displaced_engineers") from e

        overrides = [RotationAssignment(date=d, rotation=rotation, engineer_email=engineer) for d in dates]
        try:
            OverrideRepository.upsert(self.session, overrides)
        except PersistenceError as e:
            raise DatabaseOperationError(f"Failed to persist override records: {e.message}", "upsert_overrides") from e
        logger.info("Persisted %d override records", len(overrides))

        self._resync(dates[0], dates[-1])
        self._notify(engineer, replaced, dates, rotation)

        return {
            "success": True,
            "message": f"Successfully overridden {len(dates)} dates for {rotation.value} rotation",
            "overridden_dates": [d.isoformat() for d in dates],
            "replaced_engineers": replaced,
        }

    def _resync(self, start: date, end: date) -> None:
        """Best-effort mirror re-sync of exactly [start, end]."""
        if self.mirror_sync is None:
            return
        try:
            result = self.mirror_sync.sync_range(start, end)
            if not result.success:
                raise MirrorSyncError(result.error or "Unknown sync error", result.to_dict())
        except Exception as e:
            error = ScheduleRegenerationError(f"Failed to sync overrides: {e}")
            logger.error("Mirror re-sync failed, but override was persisted: %s", error.to_dict()["error"])

    def _notify(self, engineer: str, replaced: List[str], dates: List[date], rotation: Rotation) -> None:
        if self.notifier is None:
            return
        try:
            result = notify_override_assignment(self.notifier, engineer, replaced, dates, rotation)
        except Exception as e:
            logger.error("Notification system encountered an unexpected error: %s", e)
            return
        if not result.success:
            logger.warning("Some notifications failed, but override was successful: %s", result.errors)

    def clear(self, start_date: str, end_date: str, rotation: str) -> Dict[str, Any]:
        """Remove overrides for one rotation in [start, end], restoring the base schedule there."""
        try:
            validation = validate_date_range(start_date, end_date, self.today, self.cfg.max_override_days_ahead)
            if not validation.is_valid:
                raise OverrideValidationError(validation.error or "Unknown validation error")
            try:
                parsed = Rotation.parse(rotation)
            except ValueError as e:
                raise OverrideValidationError(str(e)) from e
            start, end = parse_date(start_date), parse_date(end_date)

            try:
                removed = OverrideRepository.delete_range(self.session, start, end, parsed)
            except PersistenceError as e:
                raise DatabaseOperationError(e.message, "delete_overrides") from e
            logger.info("Removed %d override(s) for %s from %s to %s", removed, parsed.value, start, end)

            self._resync(start, end)
            return {
                "success": True,
                "message": f"Removed {removed} overrides for {parsed.value} rotation",
                "removed": removed,
            }
        except Exception as e:
            logger.error("Clear override request failed: %s", e)
            return override_error_response(e)
