"""On-call rotation scheduler.

Modules:
- config: load and validate configuration (YAML or JSON, plus environment)
- errors: exception hierarchy and structured error responses
- logging_setup: console logging for the CLI
- domain: value types, SQLAlchemy models, repositories, database repair
- services: availability, workload, constraints, validation and downstream syncs
- engine: assignment engine, override engine, orchestrated generation run
- io: CSV import of engineers and export of the effective schedule
- cli: command-line interface entrypoints
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "errors",
    "logging_setup",
    "domain",
    "services",
    "engine",
    "io",
    "cli",
]
