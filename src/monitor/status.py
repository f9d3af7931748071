"""Connectivity status monitor for the hosted backend.

A probe pings the backend and collects per-table row counts plus min/max
dates for the date-bearing tables. The monitor runs the probe on a fixed
interval in a background thread and keeps the last-known figures when a
check fails, so a status banner can show stale numbers instead of nothing.

Example:
    monitor = ConnectivityMonitor(BackendProbe(client), interval=30.0)
    monitor.subscribe(lambda snap: print(snap.status.value, snap.counts))
    with monitor:
        ...
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from src.backend import ConnectivityError, SupabaseClient
from src.logutils import get_logger, with_context

logger = get_logger(__name__)

STATUS_COLLECTIONS = ("students", "daily_evaluations", "incident_reports", "contact_logs", "settings")
RANGE_SPECS: Tuple[Tuple[str, str], ...] = (
    ("daily_evaluations", "date"),
    ("contact_logs", "contact_date"),
    ("incident_reports", "incident_date"),
)
PING_TABLE = "settings"

Counts = Dict[str, Optional[int]]
Ranges = Dict[str, Dict[str, Optional[str]]]


class ConnectionStatus(str, Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"


@dataclass
class ProbeResult:
    """Figures gathered by one probe.

    ``complete`` is False when any single query failed; the failed entries are
    None in ``counts`` or ``ranges``.
    """

    counts: Counts = field(default_factory=dict)
    ranges: Ranges = field(default_factory=dict)
    complete: bool = True


@runtime_checkable
class StatusProbe(Protocol):
    def probe(self) -> ProbeResult:
        """Gather status figures; raise if the backend is unreachable."""
        ...


@dataclass(frozen=True)
class StatusSnapshot:
    """What the monitor currently knows.

    Attributes:
        status: Outcome of the most recent check.
        counts: Last-known row counts, None until a check has produced any.
        ranges: Last-known ``{"min": ..., "max": ...}`` per date-bearing table.
        checked_at: When the most recent check finished.
        error: Message of the most recent failure, cleared on success.
        configured: False when no hosted backend is configured at all.
    """

    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    counts: Optional[Counts] = None
    ranges: Optional[Ranges] = None
    checked_at: Optional[datetime] = None
    error: Optional[str] = None
    configured: bool = True

    @property
    def connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED


def unconfigured_snapshot() -> StatusSnapshot:
    return StatusSnapshot(
        status=ConnectionStatus.UNAVAILABLE,
        error="Supabase not configured",
        configured=False,
    )


class BackendProbe:
    """Status queries against a Supabase project."""

    def __init__(
        self,
        client: SupabaseClient,
        collections: Tuple[str, ...] = STATUS_COLLECTIONS,
        range_specs: Tuple[Tuple[str, str], ...] = RANGE_SPECS,
    ):
        self.client = client
        self.collections = collections
        self.range_specs = range_specs

    def _count(self, table: str) -> Optional[int]:
        result = self.client.table(table).select("id", count="exact", head=True).execute()
        return result.count if result.count is not None else 0

    def _edge(self, table: str, column: str, ascending: bool) -> Optional[str]:
        rows = self.client.table(table).select(column).order(column, ascending=ascending).limit(1).execute().data
        return rows[0].get(column) if rows else None

    def probe(self) -> ProbeResult:
        """Ping, then count and range each table in turn.

        Raises:
            ConnectivityError: The ping failed.
        """
        self._count(PING_TABLE)

        result = ProbeResult()
        for table in self.collections:
            try:
                result.counts[table] = self._count(table)
            except ConnectivityError as e:
                logger.debug(f"Count failed for {table}: {e}")
                result.counts[table] = None
                result.complete = False

        for table, column in self.range_specs:
            try:
                result.ranges[table] = {
                    "min": self._edge(table, column, ascending=True),
                    "max": self._edge(table, column, ascending=False),
                }
            except ConnectivityError as e:
                logger.debug(f"Range query failed for {table}.{column}: {e}")
                result.ranges[table] = {"min": None, "max": None}
                result.complete = False
        return result


def _merge_counts(previous: Optional[Counts], fresh: Counts) -> Counts:
    merged = dict(previous or {})
    for table, value in fresh.items():
        if value is not None or table not in merged:
            merged[table] = value
    return merged


def _merge_ranges(previous: Optional[Ranges], fresh: Ranges) -> Ranges:
    merged = dict(previous or {})
    for table, bounds in fresh.items():
        if any(v is not None for v in bounds.values()) or table not in merged:
            merged[table] = bounds
    return merged


class ConnectivityMonitor:
    """Polls a ``StatusProbe`` and publishes ``StatusSnapshot`` updates.

    ``check`` never raises. After ``stop`` the monitor is unmounted: a check
    still in flight finishes but its result is discarded.
    """

    def __init__(self, probe: StatusProbe, interval: float = 30.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.probe = probe
        self.interval = interval
        self._snapshot = StatusSnapshot()
        self._subscribers: List[Callable[[StatusSnapshot], None]] = []
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._mounted = True

    def __enter__(self) -> "ConnectivityMonitor":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback: Callable[[StatusSnapshot], None]) -> Callable[[], None]:
        """Call ``callback`` with every new snapshot; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def check(self) -> StatusSnapshot:
        """Run one probe and publish the outcome."""
        with with_context(operation="status_check"):
            try:
                result = self.probe.probe()
            except Exception as e:
                logger.warning(f"Backend status check failed: {e}")
                return self._publish(lambda prev: replace(
                    prev,
                    status=ConnectionStatus.UNAVAILABLE,
                    checked_at=datetime.now(timezone.utc),
                    error=str(e) or type(e).__name__,
                ))

            if result.complete:
                logger.debug("Backend connected", extra={"extra_data": {"counts": result.counts}})
                return self._publish(lambda prev: replace(
                    prev,
                    status=ConnectionStatus.CONNECTED,
                    counts=dict(result.counts),
                    ranges=dict(result.ranges),
                    checked_at=datetime.now(timezone.utc),
                    error=None,
                ))

            logger.warning("Backend status check incomplete", extra={"extra_data": {"counts": result.counts}})
            return self._publish(lambda prev: replace(
                prev,
                status=ConnectionStatus.UNAVAILABLE,
                counts=_merge_counts(prev.counts, result.counts),
                ranges=_merge_ranges(prev.ranges, result.ranges),
                checked_at=datetime.now(timezone.utc),
                error="Some status queries failed",
            ))

    def _publish(self, update: Callable[[StatusSnapshot], StatusSnapshot]) -> StatusSnapshot:
        with self._lock:
            if not self._mounted:
                logger.debug("Discarding status check finished after stop")
                return self._snapshot
            self._snapshot = update(self._snapshot)
            snapshot = self._snapshot
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Status subscriber failed")
        return snapshot

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.check()
            self._stop_event.wait(self.interval)

    def start(self) -> None:
        """Check now, then every ``interval`` seconds until ``stop``."""
        if self.running:
            return
        with self._lock:
            self._mounted = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="brighttrack-status-monitor", daemon=True)
        self._thread.start()
        logger.debug(f"Status monitor started (every {self.interval:g}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the worker thread to exit."""
        with self._lock:
            self._mounted = False
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("Status monitor stopped")

    unmount = stop
