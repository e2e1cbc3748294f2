"""Keeps the chat on-call group in line with today's effective assignments."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from oncall_scheduler.config import SchedulerConfig, today as current_day
from oncall_scheduler.domain.repositories import OverrideRepository, ScheduleRepository
from oncall_scheduler.domain.types import ROTATION_ORDER, Rotation, RotationAssignment

from .retry import RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)


class OnCallPresence(ABC):
    """The chat user group that pages whoever is on call."""

    @abstractmethod
    def current_members(self) -> List[str]:
        """Emails of the group's current members."""

    @abstractmethod
    def set_members(self, emails: List[str]) -> None:
        """Replace the group's members."""

    @abstractmethod
    def announce(self, text: str) -> None:
        """Post a message to the support channel."""


@dataclass
class PresenceResult:
    skipped: bool = False
    changed: bool = False
    updated: bool = False
    members: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "skipped": self.skipped,
            "changed": self.changed,
            "updated": self.updated,
            "members": list(self.members),
            "error": self.error,
        }


class PresenceSync:
    def __init__(
        self,
        session: Session,
        presence: OnCallPresence,
        cfg: Optional[SchedulerConfig] = None,
        today: Optional[date] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep=None,
    ):
        self.session = session
        self.presence = presence
        self.cfg = cfg or SchedulerConfig()
        self.today = today or current_day(self.cfg)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.cfg.retry)
        self._retry_kwargs = {"sleep": sleep} if sleep else {}

    def desired_assignments(self) -> List[RotationAssignment]:
        """
        First current assignment per rotation, masked by any override.

        Looks at the window [today, today + current_window_days).
        """
        days = self.cfg.current_window_days
        assignments = ScheduleRepository.get_current(self.session, self.today, days)
        overrides = {
            (o.date, o.rotation): o for o in OverrideRepository.get_current(self.session, self.today, days)
        }

        chosen: Dict[Rotation, RotationAssignment] = {}
        for assignment in assignments:
            if assignment.rotation in chosen:
                continue
            chosen[assignment.rotation] = overrides.get((assignment.date, assignment.rotation), assignment)
            if len(chosen) == len(ROTATION_ORDER):
                break
        return [chosen[r] for r in (Rotation.AM, Rotation.CORE, Rotation.PM) if r in chosen]

    def desired_members(self) -> List[str]:
        members: List[str] = []
        for assignment in self.desired_assignments():
            if assignment.engineer_email not in members:
                members.append(assignment.engineer_email)
        for email in self.cfg.presence_extra_members:
            if email.lower() not in members:
                members.append(email.lower())
        return members

    def _call(self, fn, description: str):
        return retry_with_backoff(fn, self.retry_policy, description=description, **self._retry_kwargs)

    def sync(self) -> PresenceResult:
        """Update the group when membership changed. Never raises."""
        if self.today.isoweekday() >= 6:
            logger.info("Skipping on-call group update on weekend")
            return PresenceResult(skipped=True)

        try:
            assignments = self.desired_assignments()
            desired = self.desired_members()
            current = self._call(self.presence.current_members, "list on-call group")
            changed = {e.lower() for e in current} != set(desired)
            result = PresenceResult(changed=changed, members=desired)

            if not changed:
                logger.info("No changes to on-call assignments")
                return result
            if self.cfg.disable_presence_update:
                logger.info("On-call group update disabled, leaving membership unchanged")
                return result

            logger.info("Updating on-call group: %s -> %s", sorted(current), desired)
            self._call(lambda: self.presence.set_members(desired), "update on-call group")
            summary = ", ".join(f"{a.engineer_email} ({a.rotation.value})" for a in assignments)
            self._call(
                lambda: self.presence.announce(f"On-call rotation updated!\n\nNew assignments: {summary}"),
                "announce on-call update",
            )
            result.updated = True
            return result
        except Exception as e:
            logger.error("Failed to sync on-call group: %s", e)
            return PresenceResult(error=str(e))
