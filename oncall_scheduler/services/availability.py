"""Availability oracle backed by a per-run cache of out-of-office intervals."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

from oncall_scheduler.domain.types import OOOInterval

logger = logging.getLogger(__name__)


class OOOSource(ABC):
    """Anything that can list out-of-office intervals for a window."""

    @abstractmethod
    def get_out_of_office_intervals(self, start: date, end: date) -> Dict[str, List[OOOInterval]]:
        """
        Fetch intervals overlapping [start, end] keyed by engineer email.

        May raise; the oracle treats any failure as "nobody is out".
        """


class AvailabilityOracle:
    """
    Answers "is engineer E available on date D" for one scheduling run.

    The oracle fails open: when it is not initialized, the date is outside the
    cached window, or the source failed, every engineer is available.
    """

    def __init__(self, source: Optional[OOOSource] = None):
        self.source = source
        self._index: Dict[str, List[OOOInterval]] = {}
        self._initialized = False
        self._start: Optional[date] = None
        self._end: Optional[date] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, start: date, end: date) -> None:
        """Fetch and index all OOO intervals in [start, end]. Never raises."""
        logger.info("Initializing OOO cache from %s to %s", start, end)
        self._index = {}
        self._start, self._end = start, end

        if self.source is None:
            logger.warning("No OOO source configured, using empty OOO cache")
            self._initialized = True
            return

        started = time.monotonic()
        try:
            intervals = self.source.get_out_of_office_intervals(start, end) or {}
        except Exception as e:
            logger.error("Failed to initialize OOO cache: %s", e)
            logger.warning("Continuing with empty OOO cache due to initialization failure")
            intervals = {}

        for email, items in intervals.items():
            key = email.lower()
            self._index.setdefault(key, []).extend(items)
        for items in self._index.values():
            items.sort(key=lambda i: (i.start_date, i.end_date))
        self._initialized = True

        total = sum(len(items) for items in self._index.values())
        logger.info("OOO cache initialized in %.0fms: %d engineers with %d OOO events",
                    (time.monotonic() - started) * 1000, len(self._index), total)
        if total:
            summary = {email: sum(i.days for i in items) for email, items in self._index.items()}
            logger.info("OOO summary (days per engineer): %s", summary)

    def is_available(self, engineer_email: str, day: date) -> bool:
        if not self._initialized:
            logger.warning("OOO cache not initialized, assuming %s is available", engineer_email)
            return True
        if self._start is not None and self._end is not None and not (self._start <= day <= self._end):
            logger.debug("Date %s is outside cache range, assuming %s is available", day, engineer_email)
            return True

        for interval in self._index.get(engineer_email.lower(), []):
            if interval.contains(day):
                logger.info("Engineer %s is OOO on %s: %r", engineer_email, day, interval.title)
                return False
        return True

    def engineers_unavailable_on(self, day: date) -> List[str]:
        """Engineers with an OOO interval covering `day` (diagnostics)."""
        if not self._initialized:
            return []
        return sorted(email for email, items in self._index.items() if any(i.contains(day) for i in items))

    def stats(self) -> dict:
        return {
            "initialized": self._initialized,
            "engineer_count": len(self._index),
            "total_events": sum(len(items) for items in self._index.values()),
            "cache_range": (self._start.isoformat(), self._end.isoformat()) if self._start and self._end else None,
        }

    def clear(self) -> None:
        self._index = {}
        self._initialized = False
        self._start = None
        self._end = None
        logger.info("OOO cache cleared")
