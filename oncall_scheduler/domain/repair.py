"""Health check and best-effort repair of the SQLite database file."""

from __future__ import annotations

import logging
import shutil
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional

from sqlalchemy.engine import make_url

logger = logging.getLogger(__name__)


@dataclass
class HealthResult:
    healthy: bool
    error: Optional[str] = None


@dataclass
class RepairResult:
    success: bool = False
    backup_path: Optional[str] = None
    recovered_tables: int = 0
    recovered_rows: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def sqlite_path_from_url(db_url: str) -> Path:
    """File path of a sqlite:/// URL."""
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        raise ValueError(f"Not a file-backed SQLite URL: {db_url}")
    return Path(url.database)


def check_database_health(db_path: str | Path) -> HealthResult:
    """Open the file read-only and run PRAGMA integrity_check."""
    db_path = Path(db_path)
    if not db_path.exists():
        return HealthResult(False, "Database file does not exist")
    try:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
        try:
            conn.execute("SELECT name FROM sqlite_master WHERE type='table' LIMIT 1").fetchone()
            status = conn.execute("PRAGMA integrity_check").fetchone()[0]
        finally:
            conn.close()
    except sqlite3.DatabaseError as e:
        return HealthResult(False, f"Database corruption detected: {e}")
    if status != "ok":
        return HealthResult(False, f"Database corruption detected: {status}")
    return HealthResult(True)


def _dump_readable(source: Path, result: RepairResult) -> List[str]:
    """SQL statements for everything readable in `source`, skipping statements that fail."""
    conn = sqlite3.connect(str(source))
    try:
        statements = []
        dump = conn.iterdump()
        while True:
            try:
                statements.append(next(dump))
            except StopIteration:
                break
            except sqlite3.DatabaseError as e:
                result.warnings.append(f"Stopped reading at unreadable data: {e}")
                break
        return statements
    finally:
        conn.close()


def repair_database(db_path: str | Path, today: Optional[date] = None) -> RepairResult:
    """
    Rebuild the database file from its readable content.

    The original file is copied to `<date>_corrupt_db_before_repair.db` next to
    it first, and restored if the rebuild fails.
    """
    db_path = Path(db_path)
    result = RepairResult()
    logger.info("Starting database repair for %s", db_path)

    if not db_path.exists():
        result.errors.append("Database file does not exist")
        logger.error("Database file does not exist: %s", db_path)
        return result

    stamp = (today or date.today()).isoformat()
    backup_path = db_path.with_name(f"{stamp}_corrupt_db_before_repair.db")
    shutil.copyfile(db_path, backup_path)
    result.backup_path = str(backup_path)
    logger.info("Database backed up to %s", backup_path)

    try:
        statements = _dump_readable(backup_path, result)
    except sqlite3.DatabaseError as e:
        result.errors.append(f"Failed to read database: {e}")
        logger.error("Failed to read database: %s", e)
        return result
    if not statements:
        result.warnings.append("Recovered SQL is empty - database may be severely corrupted")

    try:
        db_path.unlink()
        conn = sqlite3.connect(str(db_path))
        try:
            for statement in statements:
                # Transaction control is handled by this connection
                if statement in ("BEGIN TRANSACTION;", "COMMIT;"):
                    continue
                try:
                    conn.execute(statement)
                except sqlite3.DatabaseError as e:
                    result.warnings.append(f"Skipped statement: {e}")
            conn.commit()
        finally:
            conn.close()
    except sqlite3.DatabaseError as e:
        result.errors.append(f"Failed to restore database: {e}")
        logger.error("Failed to restore database: %s", e)
        shutil.copyfile(backup_path, db_path)
        result.warnings.append("Restoration failed, original database restored from backup")
        return result

    conn = sqlite3.connect(str(db_path))
    try:
        tables = [row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")]
        result.recovered_tables = len(tables)
        for table in tables:
            if table == "sqlite_sequence":
                continue
            result.recovered_rows += conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]
    finally:
        conn.close()

    for required in ("users", "oncall_schedule", "oncall_schedule_overrides"):
        if required not in tables:
            result.warnings.append(f"{required} table not found - run init-db to recreate it")

    result.success = True
    logger.info("Database repair complete: %d tables, %d rows", result.recovered_tables, result.recovered_rows)
    return result
