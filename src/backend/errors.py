"""Errors raised when talking to the hosted backend."""

from typing import Optional

from src.storage.errors import BrightTrackError

# PostgREST / Postgres codes for "relation or column does not exist"
MISSING_RELATION_CODES = frozenset({"42P01", "42703", "PGRST204", "PGRST205"})


class ConnectivityError(BrightTrackError):
    """The hosted backend was unreachable or rejected a query."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class MissingTableError(ConnectivityError):
    """The query named a table or column the backend does not have."""


def is_missing_relation(code: Optional[str], message: str) -> bool:
    if code in MISSING_RELATION_CODES:
        return True
    lowered = message.lower()
    return "could not find the table" in lowered or (
        "column" in lowered and "does not exist" in lowered
    )
