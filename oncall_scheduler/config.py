"""Load and validate scheduler configuration (YAML or JSON, plus environment overrides)."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

from .errors import ConfigurationError


@dataclass
class RetrySettings:
    max_attempts: int = 4
    base_delay_seconds: float = 2.0
    max_delay_seconds: float = 16.0


@dataclass
class SchedulerConfig:
    db_url: str = "sqlite:///oncall.db"
    timezone: str = "America/Los_Angeles"
    lookahead_days: int = 14
    # ISO weekday numbers (Monday = 1)
    rotation_days_of_week: List[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])
    rotation_hours: Dict[str, float] = field(default_factory=lambda: {"AM": 3.0, "Core": 6.0, "PM": 3.0})
    max_override_days_ahead: int = 365
    lookback_days_per_engineer: int = 7
    current_window_days: int = 7
    retry: RetrySettings = field(default_factory=RetrySettings)
    presence_extra_members: List[str] = field(default_factory=list)
    disable_presence_update: bool = False
    log_level: str = "INFO"

    def validate(self) -> None:
        if self.lookahead_days < 1:
            raise ConfigurationError("lookahead_days must be at least 1")
        if not self.rotation_days_of_week or any(d < 1 or d > 7 for d in self.rotation_days_of_week):
            raise ConfigurationError("rotation_days_of_week must hold ISO weekdays 1-7")
        if self.retry.max_attempts < 1:
            raise ConfigurationError("retry.max_attempts must be at least 1")
        missing = {"AM", "Core", "PM"} - set(self.rotation_hours)
        if missing:
            raise ConfigurationError(f"rotation_hours missing: {sorted(missing)}")


_ENV_OVERRIDES = {
    "ONCALL_DB_URL": "db_url",
    "ONCALL_LOG_LEVEL": "log_level",
    "ONCALL_TIMEZONE": "timezone",
}


def _read_file(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    elif path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        raise ConfigurationError(f"Unsupported config format: {path.suffix}")
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}")
    return data


def config_from_dict(data: Dict[str, Any]) -> SchedulerConfig:
    known = {f.name for f in fields(SchedulerConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")

    values = dict(data)
    if "retry" in values:
        values["retry"] = RetrySettings(**values["retry"])
    if "rotation_hours" in values:
        values["rotation_hours"] = {k: float(v) for k, v in values["rotation_hours"].items()}

    try:
        cfg = SchedulerConfig(**values)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    cfg.validate()
    return cfg


def apply_env_overrides(cfg: SchedulerConfig, environ: Optional[Dict[str, str]] = None) -> SchedulerConfig:
    env = os.environ if environ is None else environ
    for var, attr in _ENV_OVERRIDES.items():
        if env.get(var):
            setattr(cfg, attr, env[var])
    flag = env.get("ONCALL_DISABLE_PRESENCE_UPDATE", "")
    if flag.lower() in ("true", "1"):
        cfg.disable_presence_update = True
    return cfg


def load_config(path: str | Path | None = None, environ: Optional[Dict[str, str]] = None) -> SchedulerConfig:
    """
    Load configuration from a YAML/JSON file and the environment.

    Args:
        path: Optional path to a .yaml/.yml/.json file; defaults are used when omitted
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated SchedulerConfig
    """
    data: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        data = _read_file(path)
    cfg = config_from_dict(data)
    return apply_env_overrides(cfg, environ)


def today(cfg: SchedulerConfig) -> date:
    """Current calendar date in the configured timezone."""
    return pd.Timestamp.now(tz=cfg.timezone).date()
