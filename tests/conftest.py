"""Shared fixtures: in-memory database, default config and a small roster."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from oncall_scheduler.config import SchedulerConfig
from oncall_scheduler.domain.models import Base
from oncall_scheduler.domain.repositories import EngineerRepository


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: end-to-end runs against a SQLite file (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def cfg():
    """Default configuration."""
    return SchedulerConfig()


@pytest.fixture
def engineers(db_session):
    """Small roster: two AM and two PM engineers spread over the pods."""
    roster = [
        ("alice@example.com", "Alice Adams", "AM", "Blinky"),
        ("bob@example.com", "Robert Brown", "PM", "Swayze"),
        ("charlie@example.com", "Charlie Chen", "PM", "Zero"),
        ("diana@example.com", "Diana Diaz", "AM", "Zero"),
    ]
    return [
        EngineerRepository.upsert(db_session, email, name, rotation, pod)
        for email, name, rotation, pod in roster
    ]
