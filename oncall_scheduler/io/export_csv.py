"""CSV export of the effective schedule."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from oncall_scheduler.domain.repositories import ScheduleRepository
from oncall_scheduler.services.schedule_data import effective_schedule

logger = logging.getLogger(__name__)

COLUMNS = ["date", "rotation", "original_engineer", "override_engineer", "final_engineer", "engineer_name"]


def export_schedule_csv(
    session: Session,
    csv_path: str | Path,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> int:
    """
    Export the effective schedule (overrides applied) to CSV.

    Args:
        session: Database session
        csv_path: Output path
        start: First date (default: earliest scheduled date)
        end: Last date (default: last scheduled date)

    Returns:
        Number of rows written
    """
    if start is None:
        start = date.min
    if end is None:
        end = ScheduleRepository.get_last_scheduled_date(session) or start

    rows = [
        {
            "date": r.date.isoformat(),
            "rotation": r.rotation.value,
            "original_engineer": r.engineer_email,
            "override_engineer": r.override_engineer,
            "final_engineer": r.final_engineer,
            "engineer_name": r.engineer_name,
        }
        for r in effective_schedule(session, start, end)
    ]
    df = pd.DataFrame(rows, columns=COLUMNS)
    df.to_csv(csv_path, index=False)

    logger.info("Exported %d schedule rows to %s", len(df), csv_path)
    return len(df)
