"""Tests for the command-line interface."""

from datetime import date, timedelta

import pandas as pd
import pytest

from oncall_scheduler.cli import main
from oncall_scheduler.domain.db import get_session
from oncall_scheduler.domain.repositories import EngineerRepository


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'oncall.db'}"


@pytest.fixture
def engineers_csv(tmp_path):
    path = tmp_path / "engineers.csv"
    path.write_text(
        "email,name,rotation,pod\n"
        "alice@example.com,Alice Adams,AM,Blinky\n"
        "bob@example.com,Robert Brown,PM,Swayze\n"
        "charlie@example.com,Charlie Chen,PM,Zero\n"
        "diana@example.com,Diana Diaz,AM,Zero\n"
    )
    return path


def _next_monday(days_ahead=7):
    day = date.today() + timedelta(days=days_ahead)
    return day + timedelta(days=(7 - day.weekday()) % 7)


@pytest.mark.integration
def test_cli_workflow(db_url, engineers_csv, tmp_path, capsys):
    """init-db, import, generate, override and export run end to end."""
    assert main(["--db", db_url, "init-db"]) == 0
    assert main(["--db", db_url, "import-engineers", "--csv", str(engineers_csv)]) == 0
    assert main(["--db", db_url, "generate", "--lookahead-days", "21"]) == 0

    monday = _next_monday().isoformat()
    assert main(["--db", db_url, "override", "--start", monday, "--end", monday,
                 "--rotation", "Core", "--engineer", "charlie@example.com"]) == 0

    out = tmp_path / "schedule.csv"
    assert main(["--db", db_url, "export", "--out", str(out)]) == 0

    output = capsys.readouterr().out
    assert "[OK] Imported 4 engineers" in output
    assert "[OK] Successfully overridden 1 dates for Core rotation" in output

    df = pd.read_csv(out)
    core = df[(df["date"] == monday) & (df["rotation"] == "Core")].iloc[0]
    assert core["final_engineer"] == "charlie@example.com"


def test_cli_override_validation_error(db_url, engineers_csv, capsys):
    """Validation failures print an error and exit non-zero."""
    main(["--db", db_url, "import-engineers", "--csv", str(engineers_csv)])
    code = main(["--db", db_url, "override", "--start", "2020-01-06", "--end", "2020-01-06",
                 "--rotation", "Core", "--engineer", "alice@example.com"])

    assert code == 1
    assert "[ERROR] VALIDATION_ERROR: start_date cannot be in the past" in capsys.readouterr().out


def test_cli_reset_requires_confirmation(db_url, engineers_csv, capsys):
    """reset refuses to run without --yes and wipes every table with it."""
    main(["--db", db_url, "import-engineers", "--csv", str(engineers_csv)])
    assert main(["--db", db_url, "reset"]) == 1
    assert main(["--db", db_url, "reset", "--yes"]) == 0

    session = get_session(db_url)
    try:
        assert EngineerRepository.get_all(session, include_deleted=True) == []
    finally:
        session.close()


def test_cli_repair_healthy_database(db_url, capsys):
    """repair reports a healthy database without rebuilding it."""
    main(["--db", db_url, "init-db"])
    assert main(["--db", db_url, "repair"]) == 0
    assert "[OK] Database is healthy" in capsys.readouterr().out
