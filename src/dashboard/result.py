"""Value-or-fallback result returned by the dashboard scope accessors."""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from src.logutils import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ScopeResult(Generic[T]):
    """Outcome of one scope lookup.

    Attributes:
        value: The resolved value, or the fallback that replaced it.
        fallback: True when ``value`` is a substitute rather than a lookup result.
        error: The exception that forced the fallback, if any.
    """

    value: T
    fallback: bool = False
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, value: T) -> "ScopeResult[T]":
        return cls(value)

    @classmethod
    def substitute(cls, value: T, error: Optional[Exception] = None) -> "ScopeResult[T]":
        return cls(value, fallback=True, error=error)


def resolve(label: str, lookup: Callable[[], ScopeResult[T]], fallback: Callable[[], T]) -> ScopeResult[T]:
    """Run ``lookup``; on any exception log it and return ``fallback()`` instead."""
    try:
        return lookup()
    except Exception as e:
        logger.warning(
            f"Dashboard scope lookup failed, using fallback: {label}",
            extra={"extra_data": {"error": repr(e)}},
        )
        return ScopeResult.substitute(fallback(), error=e)
