"""
Mirror of the effective schedule in an external document database.

The mirror is downstream only: it is rebuilt from local storage and never read
back into scheduling decisions. Syncs are always scoped to a date range so that
entries outside it are left alone.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from oncall_scheduler.config import SchedulerConfig, today as current_day
from oncall_scheduler.domain.repositories import ScheduleRepository
from oncall_scheduler.domain.types import Rotation

from .retry import RetryPolicy, retry_with_backoff
from .schedule_data import EffectiveAssignment, effective_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorEntry:
    date: date
    rotation: Rotation
    engineer_email: str
    original_engineer: Optional[str] = None
    override_engineer: Optional[str] = None
    page_id: Optional[str] = None

    @property
    def key(self) -> Tuple[date, Rotation]:
        return (self.date, Rotation.parse(self.rotation))

    @classmethod
    def from_effective(cls, row: EffectiveAssignment) -> "MirrorEntry":
        return cls(
            date=row.date,
            rotation=row.rotation,
            engineer_email=row.final_engineer,
            original_engineer=row.engineer_email,
            override_engineer=row.override_engineer,
        )


class ScheduleMirror(ABC):
    @abstractmethod
    def list_entries(self, start: date, end: date) -> List[MirrorEntry]:
        """Entries in [start, end], each carrying its page_id."""

    @abstractmethod
    def create_entry(self, entry: MirrorEntry) -> str:
        """Create an entry and return its page id."""

    @abstractmethod
    def update_entry(self, page_id: str, entry: MirrorEntry) -> None: ...

    @abstractmethod
    def delete_entry(self, page_id: str) -> None: ...


def _needs_update(local: MirrorEntry, remote: MirrorEntry) -> bool:
    return (
        local.engineer_email != remote.engineer_email
        or local.original_engineer != remote.original_engineer
        or local.override_engineer != remote.override_engineer
    )


def compare_schedule_entries(
    local: Sequence[MirrorEntry],
    remote: Sequence[MirrorEntry],
) -> Tuple[List[MirrorEntry], List[MirrorEntry], List[MirrorEntry]]:
    """
    Diff local entries against the mirror by (date, rotation).

    Returns:
        (to_create, to_update, to_delete); updates carry the remote page_id
    """
    local_map: Dict[Tuple[date, Rotation], MirrorEntry] = {e.key: e for e in local}
    remote_map: Dict[Tuple[date, Rotation], MirrorEntry] = {e.key: e for e in remote}

    to_create: List[MirrorEntry] = []
    to_update: List[MirrorEntry] = []
    for key, entry in local_map.items():
        existing = remote_map.get(key)
        if existing is None:
            to_create.append(entry)
        elif _needs_update(entry, existing):
            logger.info("Entry needs update for %s %s: %s -> %s",
                        key[0], key[1].value, existing.engineer_email, entry.engineer_email)
            to_update.append(replace(entry, page_id=existing.page_id))

    to_delete = [entry for key, entry in remote_map.items() if key not in local_map]
    logger.info("Comparison complete: %d to create, %d to update, %d to delete",
                len(to_create), len(to_update), len(to_delete))
    return to_create, to_update, to_delete


@dataclass
class SyncResult:
    success: bool
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: int = 0
    duration: float = 0.0
    error: Optional[str] = None
    failures: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": self.errors,
            "duration": round(self.duration, 3),
            "error": self.error,
        }


class MirrorSyncService:
    def __init__(
        self,
        session: Session,
        mirror: ScheduleMirror,
        cfg: Optional[SchedulerConfig] = None,
        today: Optional[date] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep=None,
    ):
        self.session = session
        self.mirror = mirror
        self.cfg = cfg or SchedulerConfig()
        self.today = today or current_day(self.cfg)
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.cfg.retry)
        self._retry_kwargs = {"sleep": sleep} if sleep else {}

    def _call(self, fn, description: str):
        return retry_with_backoff(fn, self.retry_policy, description=description, **self._retry_kwargs)

    def sync_range(self, start: date, end: date) -> SyncResult:
        """
        Mirror the effective schedule for exactly [start, end].

        Remote entries outside the range are never touched. A failure to list
        the mirror fails the whole sync; per-entry failures are counted.
        """
        started = time.monotonic()
        logger.info("Syncing schedule to mirror for %s to %s", start, end)
        local = [MirrorEntry.from_effective(row) for row in effective_schedule(self.session, start, end)]

        try:
            remote = self._call(lambda: self.mirror.list_entries(start, end), "list mirror entries")
        except Exception as e:
            logger.error("Failed to read mirror entries: %s", e)
            return SyncResult(success=False, error=str(e), duration=time.monotonic() - started)
        remote = [entry for entry in remote if start <= entry.date <= end]

        to_create, to_update, to_delete = compare_schedule_entries(local, remote)
        result = SyncResult(success=True)

        for entry in to_create:
            try:
                self._call(lambda: self.mirror.create_entry(entry), "create mirror entry")
                result.created += 1
            except Exception as e:
                self._record_failure(result, f"Failed to create entry for {entry.date} {entry.rotation.value}: {e}")
        for entry in to_update:
            try:
                self._call(lambda: self.mirror.update_entry(entry.page_id, entry), "update mirror entry")
                result.updated += 1
            except Exception as e:
                self._record_failure(result, f"Failed to update entry for {entry.date} {entry.rotation.value}: {e}")
        for entry in to_delete:
            try:
                self._call(lambda: self.mirror.delete_entry(entry.page_id), "delete mirror entry")
                result.deleted += 1
            except Exception as e:
                self._record_failure(result, f"Failed to delete entry {entry.page_id}: {e}")

        result.duration = time.monotonic() - started
        if result.errors:
            result.success = False
            result.error = f"{result.errors} mirror operation(s) failed"
        logger.info("Mirror sync complete: %s", result.to_dict())
        return result

    @staticmethod
    def _record_failure(result: SyncResult, message: str) -> None:
        logger.error(message)
        result.errors += 1
        result.failures.append(message)

    def sync_upcoming(self) -> SyncResult:
        """Mirror [today, last scheduled date]."""
        last = ScheduleRepository.get_last_scheduled_date(self.session)
        if last is None or last < self.today:
            logger.info("No upcoming schedule to mirror")
            return SyncResult(success=True)
        return self.sync_range(self.today, last)
