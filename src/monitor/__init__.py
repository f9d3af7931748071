"""Backend connectivity monitoring."""

from .status import (
    RANGE_SPECS,
    STATUS_COLLECTIONS,
    BackendProbe,
    ConnectionStatus,
    ConnectivityMonitor,
    ProbeResult,
    StatusProbe,
    StatusSnapshot,
    unconfigured_snapshot,
)

__all__ = [
    "ConnectivityMonitor",
    "BackendProbe",
    "StatusProbe",
    "ProbeResult",
    "StatusSnapshot",
    "ConnectionStatus",
    "STATUS_COLLECTIONS",
    "RANGE_SPECS",
    "unconfigured_snapshot",
]
