"""Logger factory for Bright Track modules."""

from __future__ import annotations

import logging
import sys
from typing import Any

from .config import LogConfig, LogOutput, get_config
from .formatters import CompactFormatter, JSONFormatter, StandardFormatter
from .handlers import RichConsoleHandler, SafeRotatingFileHandler, StreamHandlerWithFlush

_configured: set[str] = set()
_root_configured = False


def get_logger(name: str | None = None, config: LogConfig | None = None) -> logging.Logger:
    """Return a logger with Bright Track handlers attached.

    Args:
        name: Logger name, usually ``__name__``
        config: Configuration to apply the first time this logger is requested

    Returns:
        The configured ``logging.Logger``
    """
    key = name or "root"
    logger = logging.getLogger(name)
    if key not in _configured:
        _apply(logger, config or get_config())
        _configured.add(key)
    return logger


def _apply(logger: logging.Logger, config: LogConfig) -> None:
    level = config.module_levels.get(logger.name, config.level)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    if logger.name and logger.name != "root":
        logger.propagate = False
    for handler in build_handlers(config):
        logger.addHandler(handler)


def _json_formatter(config: LogConfig) -> JSONFormatter:
    return JSONFormatter(mask_sensitive=config.mask_sensitive, extra_fields=config.extra_fields)


def build_handlers(config: LogConfig) -> list[logging.Handler]:
    """Create the handlers a configuration asks for."""
    handlers: list[logging.Handler] = []

    if config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
        handler: logging.Handler
        if config.json_format:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(_json_formatter(config))
        elif config.use_rich:
            handler = RichConsoleHandler()
            handler.setFormatter(CompactFormatter(mask_sensitive=config.mask_sensitive))
        else:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(StandardFormatter(mask_sensitive=config.mask_sensitive))
        handlers.append(handler)

    if config.output == LogOutput.JSON:
        handler = StreamHandlerWithFlush(sys.stderr)
        handler.setFormatter(_json_formatter(config))
        handlers.append(handler)

    if config.output in (LogOutput.FILE, LogOutput.BOTH) and config.log_file:
        handler = SafeRotatingFileHandler(
            config.log_file,
            max_bytes=config.max_file_size,
            backup_count=config.backup_count,
        )
        handler.setFormatter(_json_formatter(config))
        handlers.append(handler)

    return handlers


def configure_root_logger(config: LogConfig | None = None) -> None:
    """Configure the root logger once, at process start."""
    global _root_configured
    if _root_configured:
        return
    _apply(logging.getLogger(), config or get_config())
    _root_configured = True


def reset_logging() -> None:
    """Drop handlers from every logger configured here."""
    global _root_configured
    for key in _configured:
        logging.getLogger(None if key == "root" else key).handlers.clear()
    _configured.clear()
    _root_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that folds fixed fields into ``extra_data`` on every call."""

    def __init__(self, logger: logging.Logger, extra: dict[str, Any] | None = None) -> None:
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        call_extra = kwargs.get("extra", {})
        data = {**self.extra, **call_extra.get("extra_data", {})}
        kwargs["extra"] = {**call_extra, "extra_data": data}
        return msg, kwargs


def with_extra(logger: logging.Logger, **extra: Any) -> LoggerAdapter:
    """Wrap ``logger`` so every record carries ``extra``."""
    return LoggerAdapter(logger, extra)
