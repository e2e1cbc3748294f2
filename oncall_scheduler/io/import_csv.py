"""CSV import utilities to load engineers into the database."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
from sqlalchemy.orm import Session

from oncall_scheduler.domain.repositories import EngineerRepository
from oncall_scheduler.domain.types import QUALIFICATIONS, Pod, Rotation

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("email", "name", "rotation", "pod")
_TRUTHY = {"1", "true", "yes", "y"}


def import_engineers_csv(session: Session, csv_path: str | Path) -> int:
    """
    Import engineers from CSV into database.

    Columns: email, name, rotation (AM or PM), pod, and optionally
    chat_user_id, document_person_id and deleted. Rows flagged deleted are
    soft-deleted after the upsert.

    Args:
        session: Database session
        csv_path: Path to engineers CSV

    Returns:
        Number of engineers imported

    Raises:
        ValueError: On missing columns, a blank email or name, or an invalid
            rotation / pod (nothing is imported)
    """
    df = pd.read_csv(csv_path, dtype=str)

    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Engineers CSV missing columns: {missing}")

    df["email"] = df["email"].str.strip().str.lower()
    df["name"] = df["name"].str.strip()
    df["rotation"] = df["rotation"].str.strip()
    df["pod"] = df["pod"].str.strip()

    # Validate every row before writing anything
    qualifications = {q.value.lower(): q for q in QUALIFICATIONS}
    pods = {p.value.lower(): p for p in Pod}
    for index, row in df.iterrows():
        for column in ("email", "name"):
            if pd.isna(row[column]) or not row[column]:
                raise ValueError(f"Row {index + 2}: {column} is required")
        if str(row["rotation"]).lower() not in qualifications:
            raise ValueError(f"Row {index + 2}: rotation must be AM or PM, got {row['rotation']!r}")
        if str(row["pod"]).lower() not in pods:
            raise ValueError(f"Row {index + 2}: unknown pod {row['pod']!r}")

    count = 0
    for _, row in df.iterrows():
        EngineerRepository.upsert(
            session,
            email=row["email"],
            name=row["name"],
            rotation=Rotation.parse(row["rotation"]),
            pod=pods[row["pod"].lower()],
            chat_user_id=row.get("chat_user_id") if pd.notna(row.get("chat_user_id")) else None,
            document_person_id=row.get("document_person_id") if pd.notna(row.get("document_person_id")) else None,
        )
        deleted = row.get("deleted")
        if pd.notna(deleted) and str(deleted).strip().lower() in _TRUTHY:
            EngineerRepository.soft_delete(session, row["email"])
        count += 1

    logger.info("Imported %d engineers from %s", count, csv_path)
    return count
