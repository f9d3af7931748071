"""Logging configuration for Bright Track.

Settings are read from the environment once and cached. Each runtime
(development shell, pytest, CI, production service) gets its own defaults,
which individual ``LOG_*`` variables can then override.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

_TRUTHY = ("true", "1", "yes", "on")


class Environment(Enum):
    """Where the process is running."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    CI = "ci"


class LogOutput(Enum):
    """Where log records go."""

    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"
    JSON = "json"


def _env_flag(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass
class LogConfig:
    """Logging configuration container."""

    level: str = "INFO"
    output: LogOutput = LogOutput.CONSOLE
    json_format: bool = False
    use_rich: bool = True
    mask_sensitive: bool = True
    include_correlation_id: bool = True
    log_file: Path | None = None
    max_file_size: int = 5 * 1024 * 1024
    backup_count: int = 3

    # e.g. {"src.monitor.status": "WARNING"}
    module_levels: dict[str, str] = field(default_factory=dict)

    # Static fields stamped on every JSON record
    extra_fields: dict[str, Any] = field(default_factory=lambda: {"app": "brighttrack"})

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build a configuration from ``LOG_*`` environment variables.

        Recognized variables: LOG_LEVEL, LOG_OUTPUT, LOG_JSON, LOG_RICH,
        LOG_MASK_SENSITIVE, LOG_FILE, LOG_MAX_SIZE, LOG_BACKUP_COUNT.
        Unparseable values are ignored and the environment default is kept.
        """
        config = cls.for_environment(detect_environment())

        if level := os.getenv("LOG_LEVEL"):
            config.level = level.upper()

        if output := os.getenv("LOG_OUTPUT"):
            try:
                config.output = LogOutput(output.lower())
            except ValueError:
                pass

        for attr, var in (
            ("json_format", "LOG_JSON"),
            ("use_rich", "LOG_RICH"),
            ("mask_sensitive", "LOG_MASK_SENSITIVE"),
        ):
            flag = _env_flag(var)
            if flag is not None:
                setattr(config, attr, flag)

        if log_file := os.getenv("LOG_FILE"):
            config.log_file = Path(log_file)

        if (max_size := _env_int("LOG_MAX_SIZE")) is not None:
            config.max_file_size = max_size
        if (backups := _env_int("LOG_BACKUP_COUNT")) is not None:
            config.backup_count = backups

        return config

    @classmethod
    def for_environment(cls, env: Environment) -> LogConfig:
        """Defaults for a given runtime environment."""
        if env == Environment.PRODUCTION:
            return cls(level="INFO", output=LogOutput.BOTH, json_format=True, use_rich=False)
        if env == Environment.CI:
            return cls(level="INFO", use_rich=False)
        if env == Environment.TESTING:
            return cls(level="DEBUG", use_rich=False)
        return cls(level="DEBUG", use_rich=True)


def detect_environment() -> Environment:
    """Work out the runtime environment from well-known variables."""
    if os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
        return Environment.CI

    name = os.getenv("BRIGHTTRACK_ENV", os.getenv("ENVIRONMENT", "")).lower()
    if name in ("prod", "production"):
        return Environment.PRODUCTION
    if name in ("test", "testing") or os.getenv("PYTEST_CURRENT_TEST"):
        return Environment.TESTING

    return Environment.DEVELOPMENT


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Return the active configuration, reading the environment on first use."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
    return _config


def set_config(config: LogConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    """Forget the cached configuration so the next call re-reads the environment."""
    global _config
    _config = None
