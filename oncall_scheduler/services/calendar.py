"""
Out-of-office detection from a shared calendar.

Mapping free-text event titles to engineers is best-effort: a title such as
"Bob OOO" is matched through a first-name / full-name / nickname table, and an
event whose title names nobody falls back to its creator's email. Events that
map to no known engineer are dropped.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from oncall_scheduler.domain.models import Engineer
from oncall_scheduler.domain.types import OOOInterval
from oncall_scheduler.errors import DependencyUnavailable

from .availability import OOOSource
from .retry import RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)

NICKNAMES: Dict[str, List[str]] = {
    "robert": ["rob", "bob", "bobby"],
    "william": ["will", "bill", "billy"],
    "richard": ["rick", "dick"],
    "michael": ["mike", "mick"],
    "christopher": ["chris"],
    "matthew": ["matt"],
    "anthony": ["tony"],
    "daniel": ["dan", "danny"],
    "joseph": ["joe", "joey"],
    "thomas": ["tom", "tommy"],
    "andrew": ["andy", "drew"],
    "jonathan": ["jon", "john"],
    "alexander": ["alex"],
    "benjamin": ["ben"],
    "nicholas": ["nick"],
    "samuel": ["sam"],
    "elizabeth": ["liz", "beth", "lizzy"],
    "jennifer": ["jen", "jenny"],
    "jessica": ["jess"],
    "patricia": ["pat", "patty"],
    "katherine": ["kate", "katie", "kathy"],
    "stephanie": ["steph"],
}

_OOO_WORDS = r"(?:ooo|out\s+of\s+office|vacation|holiday|time\s+off|away|off|pto|sick)"
OOO_PATTERN = re.compile(rf"\b{_OOO_WORDS}\b", re.IGNORECASE)
TITLE_PATTERN = re.compile(rf"^(\w+)\s+{_OOO_WORDS}\b", re.IGNORECASE)


@dataclass(frozen=True)
class CalendarEvent:
    """
    Calendar event reduced to what OOO detection needs.

    For all-day events `end` is exclusive (the calendar API convention);
    for timed events it is the date the event ends on.
    """

    id: str
    summary: str
    start: date
    end: date
    all_day: bool = True
    creator_email: Optional[str] = None


class CalendarClient(ABC):
    """Thin client over the shared calendar."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials and a calendar id are present."""

    @abstractmethod
    def list_events(self, start: date, end: date) -> List[CalendarEvent]:
        """Events overlapping [start, end]."""


def is_ooo_title(title: str) -> bool:
    return bool(title) and bool(OOO_PATTERN.search(title))


def build_name_index(engineers: Iterable[Engineer]) -> Dict[str, str]:
    """Lowercased first name, full name and nicknames -> email."""
    index: Dict[str, str] = {}
    for engineer in engineers:
        full_name = (engineer.name or "").strip().lower()
        if not full_name:
            continue
        first_name = full_name.split()[0]
        index[first_name] = engineer.email
        index[full_name] = engineer.email
        for nickname in NICKNAMES.get(first_name, []):
            index[nickname] = engineer.email
    return index


class CalendarOOOSource(OOOSource):
    """OOO intervals from calendar events, with retry on the fetch."""

    def __init__(
        self,
        client: CalendarClient,
        engineers: Iterable[Engineer],
        retry_policy: Optional[RetryPolicy] = None,
        sleep=None,
    ):
        self.client = client
        engineers = list(engineers)
        self.known_emails = {e.email.lower() for e in engineers}
        self.name_index = build_name_index(engineers)
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def identify_engineer(self, event: CalendarEvent) -> Optional[str]:
        match = TITLE_PATTERN.match(event.summary or "")
        if match:
            email = self.name_index.get(match.group(1).lower())
            if email:
                return email.lower()
        if event.creator_email and event.creator_email.lower() in self.known_emails:
            return event.creator_email.lower()
        return None

    def to_interval(self, event: CalendarEvent) -> Optional[OOOInterval]:
        if not is_ooo_title(event.summary):
            return None
        email = self.identify_engineer(event)
        if email is None:
            logger.debug("Could not map OOO event %r to an engineer", event.summary)
            return None
        end = event.end - timedelta(days=1) if event.all_day else event.end
        if end < event.start:
            end = event.start
        return OOOInterval(engineer_email=email, start_date=event.start, end_date=end,
                           source="calendar", title=event.summary)

    def get_out_of_office_intervals(self, start: date, end: date) -> Dict[str, List[OOOInterval]]:
        if not self.client.is_configured():
            logger.warning("Calendar client is not configured, returning no OOO events")
            return {}

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        try:
            events = retry_with_backoff(
                lambda: self.client.list_events(start, end),
                self.retry_policy,
                description="calendar fetch",
                **kwargs,
            )
        except Exception as e:
            raise DependencyUnavailable("calendar", f"Failed to fetch calendar events: {e}") from e

        logger.info("Processing %d calendar events for OOO information", len(events))
        grouped: Dict[str, List[OOOInterval]] = {}
        for event in events:
            interval = self.to_interval(event)
            if interval is not None:
                grouped.setdefault(interval.engineer_email, []).append(interval)
        for intervals in grouped.values():
            intervals.sort(key=lambda i: i.start_date)
        return grouped
