"""Pytest configuration and fixtures for Bright Track tests."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional
from unittest.mock import MagicMock

import pytest

from src.backend import ConnectivityError, MissingTableError, QueryResult, TableQuery, encode_value
from src.logutils import BufferingHandler
from src.storage import EntityStore, MemoryKeyValueStore, SQLiteKeyValueStore, close_pool, init_store


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite-backed store)")


# =============================================================================
# Local store
# =============================================================================


@pytest.fixture
def temp_db(tmp_path: Path) -> Iterator[Path]:
    """A freshly initialized local store file, closed after the test."""
    path = init_store(tmp_path / "brighttrack.db")
    yield path
    close_pool(path)


@pytest.fixture
def sqlite_kv(temp_db: Path) -> SQLiteKeyValueStore:
    return SQLiteKeyValueStore(temp_db)


@pytest.fixture
def memory_kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def memory_store(memory_kv: MemoryKeyValueStore) -> EntityStore:
    return EntityStore(memory_kv)


# =============================================================================
# Hosted backend
# =============================================================================


def _matches(row: Dict[str, Any], filters: List) -> bool:
    for column, expected in filters:
        value = row.get(column)
        if expected is None:
            if value is not None:
                return False
        elif value is None or encode_value(value) != encode_value(expected):
            return False
    return True


class FakeSupabaseClient:
    """In-memory stand-in for ``SupabaseClient`` that executes ``TableQuery`` objects.

    Tables named in ``missing_tables`` answer every query with ``MissingTableError``;
    ``fail_all`` makes every request raise ``ConnectivityError``.
    """

    rest_url = "https://fake.supabase.co/rest/v1"

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {k: list(v) for k, v in (tables or {}).items()}
        self.missing_tables: set = set()
        self.fail_all = False
        self.requests: List[Any] = []
        self._next_id = 1000

    def table(self, name: str):
        return TableQuery(self, name)

    def request(self, query) -> QueryResult:
        self.requests.append(query)
        if self.fail_all:
            raise ConnectivityError("Backend unreachable: connection refused")
        if query.table in self.missing_tables:
            raise MissingTableError(f"{query.table}: Could not find the table", code="PGRST205")

        rows = self.tables.setdefault(query.table, [])

        if query.method == "POST":
            row = dict(query.body)
            if "id" not in row:
                row["id"] = self._next_id
                self._next_id += 1
            rows.append(row)
            return QueryResult(data=[dict(row)])

        matched = [r for r in rows if _matches(r, query.filters)]

        if query.method == "PATCH":
            for row in matched:
                row.update(query.body)
            return QueryResult(data=[dict(r) for r in matched])

        if query.method == "DELETE":
            self.tables[query.table] = [r for r in rows if r not in matched]
            return QueryResult(data=[dict(r) for r in matched])

        if query.ordering:
            column, ascending = query.ordering[0]
            present = [r for r in matched if r.get(column) is not None]
            present.sort(key=lambda r: r[column], reverse=not ascending)
            matched = present + [r for r in matched if r.get(column) is None]
        if query.row_limit is not None:
            matched = matched[: query.row_limit]

        count = len(matched) if query.count_mode else None
        if query.method == "HEAD":
            return QueryResult(data=[], count=count)
        return QueryResult(data=[dict(r) for r in matched], count=count)


@pytest.fixture
def fake_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def sdk_builder() -> MagicMock:
    """A ``supabase`` request builder double whose filter methods chain.

    Set ``sdk_builder.execute.return_value`` (or ``side_effect``) per test;
    the owning client double is ``sdk_builder.sdk``.
    """
    builder = MagicMock(name="builder")
    for method in ("select", "insert", "update", "delete", "eq", "is_", "order", "limit"):
        getattr(builder, method).return_value = builder
    builder.execute.return_value = MagicMock(data=[], count=None)
    sdk = MagicMock(name="sdk")
    sdk.table.return_value = builder
    builder.sdk = sdk
    return builder


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def capture_logs():
    """Attach a ``BufferingHandler`` to a named logger for the test.

    Usage:
        def test_x(capture_logs):
            buffer = capture_logs("src.dashboard.scope")
            ...
            assert buffer.messages(logging.WARNING)
    """
    attached = []

    def attach(name: str) -> BufferingHandler:
        handler = BufferingHandler()
        logger = logging.getLogger(name)
        logger.addHandler(handler)
        attached.append((logger, handler, logger.level))
        logger.setLevel(logging.DEBUG)
        return handler

    yield attach

    for logger, handler, level in attached:
        logger.removeHandler(handler)
        logger.setLevel(level)
