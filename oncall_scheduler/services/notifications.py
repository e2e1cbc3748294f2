"""Direct-message notifications about override assignments."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from oncall_scheduler.domain.types import Rotation

from .retry import NO_RETRY, RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Chat workspace client able to direct-message engineers."""

    @abstractmethod
    def resolve_user_id(self, email: str) -> Optional[str]:
        """Chat user id for an email, or None when the engineer has no account."""

    @abstractmethod
    def send_direct_message(self, user_id: str, text: str) -> None:
        """Send a direct message. Raises on delivery failure."""


@dataclass
class NotificationResult:
    success: bool
    notifications_sent: int = 0
    errors: List[str] = field(default_factory=list)


def _date_range_text(dates: Sequence[date]) -> str:
    if len(dates) == 1:
        return dates[0].isoformat()
    return f"{dates[0].isoformat()} to {dates[-1].isoformat()}"


def assignment_message(rotation: str, dates: Sequence[date]) -> str:
    days_text = "day" if len(dates) == 1 else "days"
    return (
        "On-call Override Assignment\n\n"
        f"You have been assigned to cover the {rotation} rotation for "
        f"{len(dates)} {days_text} ({_date_range_text(dates)})."
    )


def replacement_message(rotation: str, dates: Sequence[date], assignee: str) -> str:
    days_text = "day" if len(dates) == 1 else "days"
    return (
        "On-call Schedule Update\n\n"
        f"Your {rotation} rotation assignment for {len(dates)} {days_text} "
        f"({_date_range_text(dates)}) has been reassigned to {assignee}.\n\n"
        "You are no longer on-call for these dates."
    )


def notify_override_assignment(
    notifier: Notifier,
    assigned_email: str,
    replaced_engineers: Sequence[str],
    dates: Sequence[date],
    rotation: "Rotation | str",
    retry_policy: RetryPolicy = NO_RETRY,
    sleep=None,
) -> NotificationResult:
    """
    Notify the new assignee and every displaced engineer except the assignee.

    Each delivery is independent: failures are collected in `errors` and never raised.
    """
    rotation_name = Rotation.parse(rotation).value
    dates = sorted(dates)
    logger.info("Sending override notifications for %s (%d dates) to %s, replacing %s",
                rotation_name, len(dates), assigned_email, list(replaced_engineers))

    errors: List[str] = []
    sent = 0
    retry_kwargs = {"sleep": sleep} if sleep else {}

    def deliver(email: str, role: str, text_for) -> None:
        nonlocal sent
        try:
            user_id = notifier.resolve_user_id(email)
            if not user_id:
                error = f"Could not find chat user ID for {role} engineer: {email}"
                logger.warning(error)
                errors.append(error)
                return
            retry_with_backoff(
                lambda: notifier.send_direct_message(user_id, text_for()),
                retry_policy,
                description=f"notify {email}",
                **retry_kwargs,
            )
            sent += 1
            logger.info("Notified %s engineer %s", role, email)
        except Exception as e:
            error = f"Failed to notify {role} engineer {email}: {e}"
            logger.error(error)
            errors.append(error)

    if not dates:
        return NotificationResult(success=True)

    deliver(assigned_email, "assigned", lambda: assignment_message(rotation_name, dates))

    others: List[str] = []
    for email in replaced_engineers:
        if email != assigned_email and email not in others:
            others.append(email)
    if others:
        try:
            assignee = notifier.resolve_user_id(assigned_email) or assigned_email
        except Exception:
            logger.warning("Could not resolve chat user ID for %s, using email in messages", assigned_email)
            assignee = assigned_email
        for email in others:
            deliver(email, "replaced", lambda: replacement_message(rotation_name, dates, assignee))

    result = NotificationResult(success=not errors, notifications_sent=sent, errors=errors)
    logger.info("Override notifications completed: sent=%d errors=%d", sent, len(errors))
    return result
