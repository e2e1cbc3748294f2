"""Diagnostic summaries of generated assignments."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

import pandas as pd

from oncall_scheduler.domain.types import ROTATION_HOURS, Rotation, RotationAssignment

_COLUMNS = [r.value for r in (Rotation.AM, Rotation.CORE, Rotation.PM)]


def engineer_stats(
    assignments: Iterable[RotationAssignment],
    rotation_hours: Optional[Dict[str, float]] = None,
) -> pd.DataFrame:
    """Per-engineer assignment counts by rotation plus total hours."""
    hours = rotation_hours or {r.value: h for r, h in ROTATION_HOURS.items()}
    df = pd.DataFrame(
        [
            {"engineer": a.engineer_email, "rotation": Rotation.parse(a.rotation).value}
            for a in assignments
        ],
        columns=["engineer", "rotation"],
    )
    if df.empty:
        return pd.DataFrame(columns=_COLUMNS + ["total_hours"])
    df["hours"] = df["rotation"].map(hours).astype(float)

    counts = df.groupby(["engineer", "rotation"]).size().unstack(fill_value=0)
    counts = counts.reindex(columns=_COLUMNS, fill_value=0)
    counts["total_hours"] = df.groupby("engineer")["hours"].sum()
    return counts.sort_values("total_hours", ascending=False)


def summarize_assignments(
    assignments: Iterable[RotationAssignment],
    rotation_hours: Optional[Dict[str, float]] = None,
) -> str:
    assignments = list(assignments)
    if not assignments:
        return "No assignments."
    stats = engineer_stats(assignments, rotation_hours)
    total_hours = float(stats["total_hours"].sum())

    lines = ["=== ONCALL SCHEDULE DIAGNOSTICS ==="]
    lines.append(stats.to_string())
    lines.append("")
    lines.append("=== SUMMARY ===")
    lines.append(f"Total Assignments: {len(assignments)}")
    lines.append(f"Total Hours: {total_hours:g}")
    lines.append(f"Engineers: {len(stats)}")
    lines.append(f"Average Hours per Engineer: {total_hours / len(stats):.1f}")
    return "\n".join(lines)
