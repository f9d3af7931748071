"""Base exception types shared across Bright Track packages."""


class BrightTrackError(Exception):
    """Root of every error Bright Track raises on purpose."""


class StorageError(BrightTrackError):
    """The local key-value backend could not be read or written.

    ``EntityStore`` swallows it on reads (the collection behaves as empty).
    A local facade write that cannot be persisted, e.g. a full store, raises it
    so the record is not reported as saved.
    """
