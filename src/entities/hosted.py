"""Entity facades over the hosted Supabase tables."""

from typing import Any, Dict, Iterable, List, Optional

from src.backend import SupabaseClient, TableQuery
from src.logutils import get_logger

from .base import EntityFacade, Record, parse_sort, utc_now_iso
from .errors import NotFoundError
from .models import EntitySpec, RecordId

logger = get_logger(__name__)


class HostedEntityFacade(EntityFacade):
    """A collection mapped one-to-one onto a PostgREST table.

    Identity is assigned by the database. Every call is a network round trip
    and may raise ``ConnectivityError``.
    """

    backend = "supabase"

    def __init__(self, spec: EntitySpec, client: SupabaseClient):
        super().__init__(spec)
        self.client = client

    def _select(self, criteria: Optional[Dict[str, Any]] = None, sort: Optional[str] = None) -> TableQuery:
        query = self.client.table(self.name).select("*")
        for column, value in (criteria or {}).items():
            query = query.eq(column, value)
        parsed = parse_sort(sort)
        if parsed is not None:
            column, descending = parsed
            query = query.order(column, ascending=not descending)
        return query

    # ==================== READ ====================

    def list(self, sort: Optional[str] = None) -> List[Record]:
        return self._select(sort=sort).execute().data

    def filter(self, criteria: Dict[str, Any], sort: Optional[str] = None) -> List[Record]:
        return self._select(criteria, sort).execute().data

    def get(self, record_id: RecordId) -> Optional[Record]:
        rows = self._select({"id": record_id}).limit(1).execute().data
        return rows[0] if rows else None

    def count(self) -> int:
        result = self.client.table(self.name).select("id", count="exact", head=True).execute()
        return result.count or 0

    # ==================== WRITE ====================

    def _insert(self, record: Record) -> Record:
        rows = self.client.table(self.name).insert(record).execute().data
        return rows[0] if rows else dict(record)

    def _update(self, record_id: RecordId, patch: Record) -> Record:
        changes = {**patch, "updated_at": utc_now_iso()}
        rows = self.client.table(self.name).update(changes).eq("id", record_id).execute().data
        if not rows:
            raise NotFoundError(f"{self.name} record {record_id!r} not found")
        return rows[0]

    def _delete(self, record_id: RecordId) -> bool:
        rows = self.client.table(self.name).delete().eq("id", record_id).execute().data
        return bool(rows)

    def delete_where(self, criteria: Dict[str, Any]) -> int:
        if self.dependents:
            return super().delete_where(criteria)
        query = self.client.table(self.name).delete()
        for column, value in criteria.items():
            query = query.eq(column, value)
        return len(query.execute().data)

    def replace_all(self, records: Iterable[Record]) -> int:
        """Upsert each record by id; rows absent from ``records`` are left alone."""
        written = 0
        for record in records:
            record_id = record.get("id")
            if record_id is not None and self.get(record_id) is not None:
                self._update(record_id, {k: v for k, v in record.items() if k != "id"})
            else:
                self._insert({**self.spec.defaults, **record})
            written += 1
        logger.debug(f"Imported into {self.name}", extra={"extra_data": {"count": written}})
        return written
