"""Core application configuration.

Process-level settings come from environment variables and are kept as module
constants (tests monkeypatch them). Job definitions live in a YAML file loaded
by :func:`load_sync_config`; secrets in that file may be overridden from the
environment so they don't need to be written to disk.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rostersync.exceptions import ConfigurationError
from rostersync.models.schemas.config import SyncConfig


def _env_bool(name: str, default: str | None = "false") -> bool | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None if default is None else default.lower() in ("1", "true", "yes")
    return raw.strip().lower() in ("1", "true", "yes")


# --------------------------------- Service -------------------------------- #
SERVICE_NAME: str = os.getenv("SERVICE_NAME", "rostersync")
SERVICE_VERSION: str = "1.0.0"
LOG_LEVEL: str | None = os.getenv("LOG_LEVEL") or None  # falls back to global.logLevel
LOG_FILE: str | None = os.getenv("LOG_FILE") or None
CONFIG_FILE: str = os.getenv("CONFIG_FILE", "./config.yml")

# Overrides for values from the YAML file. None means "use the file".
SYNC_WRITE: bool | None = _env_bool("SYNC_WRITE", default=None)
RUN_AT_START: bool | None = _env_bool("RUN_AT_START", default=None)

# ------------------------------ External APIs ----------------------------- #
PAGERDUTY_API_URL: str = os.getenv("PAGERDUTY_API_URL", "https://api.pagerduty.com")
SLACK_API_URL: str = os.getenv("SLACK_API_URL", "https://slack.com/api")
# Transport timeout for every outbound call; the sync logic itself sets none.
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))
PAGERDUTY_PAGE_SIZE: int = int(os.getenv("PAGERDUTY_PAGE_SIZE", "100"))
SLACK_PAGE_SIZE: int = int(os.getenv("SLACK_PAGE_SIZE", "200"))

SECRET_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SLACK_BOT_TOKEN": ("slack", "securityTokenBot"),
    "SLACK_USER_TOKEN": ("slack", "securityTokenUser"),
    "PAGERDUTY_AUTH_TOKEN": ("pagerduty", "authToken"),
}

# -------------------------------- Scheduler ------------------------------- #
SCHEDULER_SETTINGS: dict[str, Any] = {
    # Slack users + groups snapshot reload; independent of the sync jobs.
    "directory_refresh_cron": os.getenv("DIRECTORY_REFRESH_CRON", "0 * * * *"),
    "max_workers": int(os.getenv("SCHEDULER_MAX_WORKERS", "4")),
    # Upper bound for one sleep of the scheduler loop, so stop() is honoured quickly.
    "max_sleep_seconds": float(os.getenv("SCHEDULER_MAX_SLEEP_SECONDS", "30")),
    "timezone": "UTC",
}


def load_sync_config(path: str | os.PathLike[str] | None = None) -> SyncConfig:
    """Read and validate the YAML job configuration.

    Raises ConfigurationError when the file is missing, not YAML, or fails validation.
    """
    if not (path or CONFIG_FILE):
        raise ConfigurationError("path to configuration file not provided")
    config_path = Path(path or CONFIG_FILE)
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"read configuration file '{config_path}': {e}") from e
    try:
        raw = yaml.safe_load(raw_text) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"parse configuration '{config_path}': {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"parse configuration '{config_path}': top level must be a mapping")

    for env_name, (section, key) in SECRET_ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            raw.setdefault(section, {})
            if isinstance(raw[section], dict):
                raw[section][key] = value

    try:
        cfg = SyncConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration '{config_path}': {e}") from e

    if SYNC_WRITE is not None:
        cfg.global_.write = SYNC_WRITE
    if RUN_AT_START is not None:
        cfg.global_.run_at_start = RUN_AT_START
    return cfg


__all__ = [
    "SERVICE_NAME",
    "SERVICE_VERSION",
    "LOG_LEVEL",
    "LOG_FILE",
    "CONFIG_FILE",
    "SYNC_WRITE",
    "RUN_AT_START",
    "PAGERDUTY_API_URL",
    "SLACK_API_URL",
    "HTTP_TIMEOUT_SECONDS",
    "PAGERDUTY_PAGE_SIZE",
    "SLACK_PAGE_SIZE",
    "SCHEDULER_SETTINGS",
    "load_sync_config",
]
