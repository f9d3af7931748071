"""Per-operation logging context.

A ``LogContext`` rides along in a ``ContextVar`` so that every record emitted
while a dashboard query, a store write or a status check is running carries
the same correlation id and the dashboard/collection it concerns.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any


def _new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class LogContext:
    """Fields attached to every record logged inside a context."""

    correlation_id: str = field(default_factory=_new_correlation_id)
    operation: str | None = None
    dashboard_id: str | None = None
    collection: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"correlation_id": self.correlation_id}
        for key in ("operation", "dashboard_id", "collection"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result.update(self.extra)
        return result


_current: ContextVar[LogContext | None] = ContextVar("brighttrack_log_context", default=None)


def get_context() -> LogContext:
    """Current context; one is created lazily if none is active."""
    ctx = _current.get()
    if ctx is None:
        ctx = LogContext()
        _current.set(ctx)
    return ctx


def set_context(context: LogContext) -> None:
    _current.set(context)


def clear_context() -> None:
    _current.set(None)


def get_correlation_id() -> str:
    return get_context().correlation_id


def update_context(**fields: Any) -> None:
    """Set known fields on the current context; unknown names go to ``extra``."""
    ctx = get_context()
    for key, value in fields.items():
        if key != "extra" and hasattr(ctx, key):
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


class ContextScope:
    """Installs a fresh ``LogContext`` for the duration of a ``with`` block."""

    def __init__(
        self,
        correlation_id: str | None = None,
        operation: str | None = None,
        dashboard_id: str | None = None,
        collection: str | None = None,
        **extra: Any,
    ) -> None:
        self.context = LogContext(
            correlation_id=correlation_id or _new_correlation_id(),
            operation=operation,
            dashboard_id=dashboard_id,
            collection=collection,
            extra=extra,
        )
        self._token: Token | None = None

    def __enter__(self) -> LogContext:
        self._token = _current.set(self.context)
        return self.context

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _current.reset(self._token)
            self._token = None


def with_context(
    correlation_id: str | None = None,
    operation: str | None = None,
    dashboard_id: str | None = None,
    collection: str | None = None,
    **extra: Any,
) -> ContextScope:
    """Scope log context to a block.

    Usage:
        with with_context(operation="status_check"):
            logger.info("Polling backend")
    """
    return ContextScope(
        correlation_id=correlation_id,
        operation=operation,
        dashboard_id=dashboard_id,
        collection=collection,
        **extra,
    )
