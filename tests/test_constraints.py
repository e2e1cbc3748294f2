"""Tests for qualification rules and per-candidate constraint checks."""

import pytest

from oncall_scheduler.domain.models import Engineer
from oncall_scheduler.domain.types import Rotation
from oncall_scheduler.services.constraints import (
    PREVIOUS_DATE,
    SAME_DAY,
    SAME_POD_AS_CORE,
    DayState,
    is_qualified,
    pool_for_rotation,
    soft_violation,
)


def _engineer(email, rotation, pod="Blinky"):
    return Engineer(email=email, name=email.split("@")[0], rotation=rotation, pod=pod)


@pytest.mark.parametrize(
    "qualification,rotation,expected",
    [
        ("AM", Rotation.AM, True),
        ("AM", Rotation.CORE, True),
        ("AM", Rotation.PM, False),
        ("PM", Rotation.PM, True),
        ("PM", Rotation.CORE, True),
        ("PM", Rotation.AM, False),
    ],
)
def test_is_qualified(qualification, rotation, expected):
    """Core accepts AM and PM engineers; AM and PM need an exact match."""
    assert is_qualified(_engineer("e@example.com", qualification), rotation) is expected


def test_core_pool_is_am_then_pm():
    """Core pool lists AM engineers before PM engineers."""
    engineers = [
        _engineer("a@example.com", "PM"),
        _engineer("b@example.com", "AM"),
        _engineer("c@example.com", "PM"),
        _engineer("d@example.com", "AM"),
    ]
    assert pool_for_rotation(engineers, Rotation.CORE) == [
        "b@example.com", "d@example.com", "a@example.com", "c@example.com",
    ]
    assert pool_for_rotation(engineers, Rotation.AM) == ["b@example.com", "d@example.com"]
    assert pool_for_rotation(engineers, "pm") == ["a@example.com", "c@example.com"]


def test_soft_violation_order():
    """Previous-date adjacency is reported before same-day double booking."""
    state = DayState(previous_date_assignments={"a"}, current_date_assignments={"a", "b"})
    assert soft_violation("a", Rotation.AM, state, {}) == PREVIOUS_DATE
    assert soft_violation("b", Rotation.AM, state, {}) == SAME_DAY
    assert soft_violation("c", Rotation.AM, state, {}) is None


def test_pod_check_only_against_core():
    """AM/PM candidates sharing the Core engineer's pod are skipped; Core itself is never pod-checked."""
    pods = {"core": "Blinky", "same": "Blinky", "other": "Zero"}
    state = DayState(core_engineer="core")

    assert soft_violation("same", Rotation.AM, state, pods) == SAME_POD_AS_CORE
    assert soft_violation("same", Rotation.PM, state, pods) == SAME_POD_AS_CORE
    assert soft_violation("other", Rotation.PM, state, pods) is None
    assert soft_violation("same", Rotation.CORE, DayState(), pods) is None
