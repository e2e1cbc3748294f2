"""Command-line interface for the on-call scheduler."""

from __future__ import annotations

import argparse
import sys

from dotenv import load_dotenv

from oncall_scheduler.config import load_config
from oncall_scheduler.domain.db import dispose_engine, get_session, init_database, reset_database
from oncall_scheduler.domain.repair import check_database_health, repair_database, sqlite_path_from_url
from oncall_scheduler.engine.orchestrator import run_schedule_generation
from oncall_scheduler.engine.overrides import OverrideEngine, OverrideRequest
from oncall_scheduler.io.export_csv import export_schedule_csv
from oncall_scheduler.io.import_csv import import_engineers_csv
from oncall_scheduler.logging_setup import setup_logging
from oncall_scheduler.services.timeplan import parse_date


def _db_url(args: argparse.Namespace, cfg) -> str:
    return args.db or cfg.db_url


def _cmd_init_db(args: argparse.Namespace, cfg) -> int:
    """Initialize the database."""
    db_url = _db_url(args, cfg)
    init_database(db_url)
    print(f"[OK] Database initialized: {db_url}")
    return 0


def _cmd_import_engineers(args: argparse.Namespace, cfg) -> int:
    """Import engineers from CSV."""
    session = get_session(_db_url(args, cfg))
    try:
        count = import_engineers_csv(session, args.csv)
        print(f"[OK] Imported {count} engineers")
        return 0
    except Exception as e:
        session.rollback()
        print(f"[ERROR] Import failed: {e}")
        raise
    finally:
        session.close()


def _cmd_generate(args: argparse.Namespace, cfg) -> int:
    """Generate the schedule for the lookahead window."""
    session = get_session(_db_url(args, cfg))
    try:
        summary = run_schedule_generation(session, cfg, lookahead_days=args.lookahead_days)
        print(f"[OK] Generated {summary['assignments']} assignments "
              f"({summary['relaxed']} with relaxed constraints)")
        return 0
    except Exception as e:
        session.rollback()
        print(f"[ERROR] Generation failed: {e}")
        raise
    finally:
        session.close()


def _cmd_override(args: argparse.Namespace, cfg) -> int:
    """Assign an engineer to a rotation over a date range."""
    session = get_session(_db_url(args, cfg))
    try:
        request = OverrideRequest(args.start, args.end, args.rotation, args.engineer)
        result = OverrideEngine(session, cfg).apply(request)
    finally:
        session.close()

    if result["success"]:
        print(f"[OK] {result['message']}")
        if result["replaced_engineers"]:
            print(f"[INFO] Replaced: {', '.join(result['replaced_engineers'])}")
        return 0
    print(f"[ERROR] {result['error_type']}: {result['error']}")
    return 1


def _cmd_clear_override(args: argparse.Namespace, cfg) -> int:
    """Remove overrides for a rotation over a date range."""
    session = get_session(_db_url(args, cfg))
    try:
        result = OverrideEngine(session, cfg).clear(args.start, args.end, args.rotation)
    finally:
        session.close()

    if result["success"]:
        print(f"[OK] {result['message']}")
        return 0
    print(f"[ERROR] {result['error_type']}: {result['error']}")
    return 1


def _cmd_reset(args: argparse.Namespace, cfg) -> int:
    """Drop and recreate all tables."""
    if not args.yes:
        print("[ERROR] Refusing to reset without --yes (this deletes all data)")
        return 1
    db_url = _db_url(args, cfg)
    reset_database(db_url)
    print(f"[OK] Database reset: {db_url}")
    return 0


def _cmd_repair(args: argparse.Namespace, cfg) -> int:
    """Check the SQLite file and rebuild it when it is corrupt."""
    db_url = _db_url(args, cfg)
    path = sqlite_path_from_url(db_url)
    health = check_database_health(path)
    if health.healthy and not args.force:
        print(f"[OK] Database is healthy: {path}")
        return 0
    if not health.healthy:
        print(f"[WARN] {health.error}")

    dispose_engine(db_url)
    result = repair_database(path)
    for warning in result.warnings:
        print(f"[WARN] {warning}")
    if not result.success:
        for error in result.errors:
            print(f"[ERROR] {error}")
        return 1
    print(f"[OK] Repaired {path}: {result.recovered_tables} tables, {result.recovered_rows} rows "
          f"(backup: {result.backup_path})")
    return 0


def _cmd_export(args: argparse.Namespace, cfg) -> int:
    """Export the effective schedule to CSV."""
    session = get_session(_db_url(args, cfg))
    try:
        start = parse_date(args.start) if args.start else None
        end = parse_date(args.end) if args.end else None
        count = export_schedule_csv(session, args.out, start, end)
        print(f"[OK] Exported {count} rows to {args.out}")
        return 0
    finally:
        session.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oncall-scheduler",
        description="On-call rotation scheduler (AM / Core / PM)",
    )

    # Global options
    parser.add_argument("--db", help="Database URL (default from config: sqlite:///oncall.db)")
    parser.add_argument("--config", help="Path to config YAML or JSON")
    parser.add_argument("--log-level", help="Logging level (default from config: INFO)")

    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Initialize database")
    init.set_defaults(func=_cmd_init_db)

    imp = sub.add_parser("import-engineers", help="Import engineers from CSV")
    imp.add_argument("--csv", required=True, help="Path to engineers CSV")
    imp.set_defaults(func=_cmd_import_engineers)

    gen = sub.add_parser("generate", help="Generate the schedule")
    gen.add_argument("--lookahead-days", type=int, help="Days ahead to schedule (default from config: 14)")
    gen.set_defaults(func=_cmd_generate)

    ovr = sub.add_parser("override", help="Override a rotation for a date range")
    ovr.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    ovr.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    ovr.add_argument("--rotation", required=True, help="AM, Core or PM")
    ovr.add_argument("--engineer", required=True, help="Engineer email")
    ovr.set_defaults(func=_cmd_override)

    clr = sub.add_parser("clear-override", help="Remove overrides for a date range")
    clr.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    clr.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    clr.add_argument("--rotation", required=True, help="AM, Core or PM")
    clr.set_defaults(func=_cmd_clear_override)

    rst = sub.add_parser("reset", help="Delete all data and recreate tables")
    rst.add_argument("--yes", action="store_true", help="Confirm the reset")
    rst.set_defaults(func=_cmd_reset)

    rep = sub.add_parser("repair", help="Check and repair the SQLite database file")
    rep.add_argument("--force", action="store_true", help="Rebuild even if the health check passes")
    rep.set_defaults(func=_cmd_repair)

    exp = sub.add_parser("export", help="Export the effective schedule to CSV")
    exp.add_argument("--out", required=True, help="Output CSV path")
    exp.add_argument("--start", help="First date (YYYY-MM-DD)")
    exp.add_argument("--end", help="Last date (YYYY-MM-DD)")
    exp.set_defaults(func=_cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)
    setup_logging(args.log_level or cfg.log_level)
    return args.func(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
