"""Errors raised by entity facades."""

from src.storage.errors import BrightTrackError


class ValidationError(BrightTrackError):
    """A required field is missing or blank."""

    def __init__(self, message: str, fields: tuple = ()):
        super().__init__(message)
        self.fields = fields


class NotFoundError(BrightTrackError):
    """No record with the requested id exists."""


class DuplicateRecordError(BrightTrackError):
    """A record with the same id or uniqueness key already exists."""
