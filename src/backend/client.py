"""Supabase access for the hosted backend.

Requests go through the ``supabase`` client library. ``TableQuery`` records
one table request (columns, equality filters, ordering, limit or a write)
and ``SupabaseClient.request`` replays it on the library's query builder,
turning library and transport errors into ``ConnectivityError``.

Example:
    client = SupabaseClient(url, key)
    result = client.table("students").select("*").eq("active", True).order("student_name").execute()
    for row in result.data:
        ...
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, SupabaseException, create_client

from src.logutils import SensitiveValue, get_logger

from .errors import ConnectivityError, MissingTableError, is_missing_relation

logger = get_logger(__name__)


@dataclass
class QueryResult:
    """Rows returned by a query, plus the exact count when one was requested."""

    data: List[Dict[str, Any]] = field(default_factory=list)
    count: Optional[int] = None


def encode_value(value: Any) -> str:
    """Filter value as PostgREST expects it; booleans are lower case."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TableQuery:
    """A single request against one table.

    ``eq(column, None)`` filters on ``IS NULL``. Orderings always put nulls
    last, matching the local store.
    """

    def __init__(self, client: "SupabaseClient", table: str):
        self._client = client
        self.table = table
        self.method = "GET"
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.filters: List[Tuple[str, Any]] = []
        self.ordering: List[Tuple[str, bool]] = []
        self.row_limit: Optional[int] = None
        self.body: Optional[Dict[str, Any]] = None

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False) -> "TableQuery":
        self.method = "HEAD" if head else "GET"
        self.columns = columns
        self.count_mode = count
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        self.filters.append((column, value))
        return self

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self.ordering.append((column, ascending))
        return self

    def limit(self, n: int) -> "TableQuery":
        self.row_limit = n
        return self

    def insert(self, record: Dict[str, Any]) -> "TableQuery":
        self.method = "POST"
        self.body = record
        return self

    def update(self, patch: Dict[str, Any]) -> "TableQuery":
        self.method = "PATCH"
        self.body = patch
        return self

    def delete(self) -> "TableQuery":
        self.method = "DELETE"
        return self

    def execute(self) -> QueryResult:
        return self._client.request(self)


class SupabaseClient:
    """Bright Track's handle on one Supabase project.

    Attributes:
        rest_url: Base URL of the REST endpoint (``<project>/rest/v1``), for logs.
        sdk: The underlying ``supabase.Client``.
    """

    def __init__(
        self,
        url: str,
        key: Any,
        timeout: float = 10.0,
        sdk: Optional[Client] = None,
    ):
        url = url.rstrip("/")
        self.rest_url = f"{url}/rest/v1"
        self._key = key if isinstance(key, SensitiveValue) else SensitiveValue(key)
        self.timeout = timeout
        if sdk is None:
            try:
                sdk = create_client(url, self._key.get(), options=ClientOptions(postgrest_client_timeout=timeout))
            except SupabaseException as e:
                raise ConnectivityError(f"Invalid Supabase settings: {e}") from e
        self.sdk = sdk

    def __repr__(self) -> str:
        return f"SupabaseClient({self.rest_url!r})"

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    def _builder(self, query: TableQuery):
        table = self.sdk.table(query.table)
        if query.method == "POST":
            return table.insert(query.body)
        if query.method == "PATCH":
            builder = table.update(query.body)
        elif query.method == "DELETE":
            builder = table.delete()
        else:
            builder = table.select(query.columns, count=query.count_mode, head=query.method == "HEAD")

        for column, value in query.filters:
            if value is None:
                builder = builder.is_(column, "null")
            else:
                builder = builder.eq(column, encode_value(value))
        for column, ascending in query.ordering:
            builder = builder.order(column, desc=not ascending, nullsfirst=False)
        if query.row_limit is not None:
            builder = builder.limit(query.row_limit)
        return builder

    def request(self, query: TableQuery) -> QueryResult:
        """Run ``query``.

        Raises:
            MissingTableError: The table or a referenced column does not exist.
            ConnectivityError: Transport failure or any other rejected query.
        """
        try:
            response = self._builder(query).execute()
        except APIError as e:
            message = e.message or str(e)
            error_cls = MissingTableError if is_missing_relation(e.code, message) else ConnectivityError
            raise error_cls(f"{query.table}: {message}", code=e.code, details=e.details or e.hint) from e
        except httpx.HTTPError as e:
            logger.debug(f"{query.method} {query.table} failed: {e}")
            raise ConnectivityError(f"Backend unreachable: {e}") from e

        data = response.data
        if isinstance(data, dict):
            data = [data]
        elif not isinstance(data, list):
            data = []
        return QueryResult(data=data, count=response.count if query.count_mode else None)

    def ping(self, table: str = "settings") -> bool:
        """True if a head-only count against ``table`` succeeds."""
        try:
            self.table(table).select("id", count="exact", head=True).execute()
        except ConnectivityError:
            return False
        return True
