"""Formatters: JSON for machines, one-liners for people."""

from __future__ import annotations

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from .context import get_context
from .masking import mask_dict, mask_sensitive_string


def _record_message(record: logging.LogRecord, mask: bool) -> str:
    message = record.getMessage()
    return mask_sensitive_string(message) if mask else message


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with context and ``extra_data`` merged in."""

    def __init__(
        self,
        include_context: bool = True,
        mask_sensitive: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.include_context = include_context
        self.mask_sensitive = mask_sensitive
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _record_message(record, self.mask_sensitive),
            "source": {"file": record.pathname, "line": record.lineno, "function": record.funcName},
        }

        if self.include_context:
            payload["context"] = get_context().to_dict()

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        extra = getattr(record, "extra_data", None)
        if extra:
            if self.mask_sensitive and isinstance(extra, dict):
                extra = mask_dict(extra)
            payload["extra"] = extra

        payload.update(self.extra_fields)
        return json.dumps(payload, default=str)


class StandardFormatter(logging.Formatter):
    """``TIMESTAMP - LEVEL - LOGGER - [CORRELATION_ID] - MESSAGE``"""

    DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - [%(correlation_id)s] - %(message)s"
    DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        mask_sensitive: bool = True,
    ) -> None:
        super().__init__(fmt=fmt or self.DEFAULT_FORMAT, datefmt=datefmt or self.DEFAULT_DATE_FORMAT)
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_context().correlation_id
        if not self.mask_sensitive:
            return super().format(record)

        # Mask the rendered message without leaving the record altered for other handlers
        original_msg, original_args = record.msg, record.args
        record.msg = _record_message(record, True)
        record.args = None
        try:
            return super().format(record)
        finally:
            record.msg, record.args = original_msg, original_args


class CompactFormatter(logging.Formatter):
    """``[LEVEL] message`` plus any structured data, for the CLI."""

    LEVEL_TAGS = {
        "DEBUG": "DEBUG",
        "INFO": "INFO ",
        "WARNING": "WARN ",
        "ERROR": "ERROR",
        "CRITICAL": "CRIT ",
    }

    def __init__(self, mask_sensitive: bool = True) -> None:
        super().__init__()
        self.mask_sensitive = mask_sensitive

    def format(self, record: logging.LogRecord) -> str:
        tag = self.LEVEL_TAGS.get(record.levelname, record.levelname)
        line = f"[{tag}] {_record_message(record, self.mask_sensitive)}"

        extra = getattr(record, "extra_data", None)
        if isinstance(extra, dict) and extra:
            if self.mask_sensitive:
                extra = mask_dict(extra)
            details = " ".join(f"{key}={value}" for key, value in extra.items())
            line = f"{line} ({details})"
        return line
