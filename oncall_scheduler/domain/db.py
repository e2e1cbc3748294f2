"""Engine and session helpers for the schedule database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite:///oncall.db"

_engines: Dict[str, Engine] = {}


def create_db_engine(db_url: str = DEFAULT_DB_URL, echo: bool = False) -> Engine:
    """Engine for `db_url`, shared per URL. File-backed SQLite gets its directory created."""
    engine = _engines.get(db_url)
    if engine is None:
        url = make_url(db_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, echo=echo)
        _engines[db_url] = engine
    return engine


def init_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Create the users, schedule and override tables if missing."""
    Base.metadata.create_all(create_db_engine(db_url))
    logger.info("Database initialized: %s", db_url)


def get_session_factory(db_url: str = DEFAULT_DB_URL) -> sessionmaker:
    engine = create_db_engine(db_url)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)


def get_session(db_url: str = DEFAULT_DB_URL) -> Session:
    return get_session_factory(db_url)()


def reset_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Full schedule reset: drops and recreates every table, engineers included."""
    engine = create_db_engine(db_url)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    logger.warning("Database reset: %s", db_url)


def dispose_engine(db_url: str) -> None:
    """Close pooled connections for `db_url` so the file can be replaced."""
    engine = _engines.pop(db_url, None)
    if engine is not None:
        engine.dispose()
