"""Entity facades over the local ``EntityStore`` (offline/demo mode)."""

import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from src.logutils import get_logger
from src.storage import EntityStore, StorageError

from .base import EntityFacade, Record, matches, sort_records, utc_now_iso
from .errors import DuplicateRecordError, NotFoundError
from .models import EntitySpec, RecordId

logger = get_logger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


def next_serial_id(records: List[Record]) -> int:
    """One past the largest integer id in ``records``, starting at 1."""
    ids = [r.get("id") for r in records]
    return max((i for i in ids if isinstance(i, int) and not isinstance(i, bool)), default=0) + 1


def same_id(a: Any, b: Any) -> bool:
    """Ids compare as strings so ``7`` from a form matches ``"7"`` from storage."""
    return a is not None and b is not None and str(a) == str(b)


class LocalEntityFacade(EntityFacade):
    """A collection kept as one JSON array in the local store.

    Every write is read-modify-write of the whole collection followed by a
    single ``save_all``.
    """

    backend = "local"

    def __init__(self, spec: EntitySpec, store: EntityStore):
        super().__init__(spec)
        self.store = store

    def _load(self) -> List[Record]:
        return self.store.get_all(self.name)

    def _save(self, records: List[Record]) -> None:
        if not self.store.save_all(self.name, records):
            raise StorageError(f"Could not save {self.name}; local storage unavailable or full")

    # ==================== READ ====================

    def list(self, sort: Optional[str] = None) -> List[Record]:
        return sort_records(self._load(), sort)

    def filter(self, criteria: Dict[str, Any], sort: Optional[str] = None) -> List[Record]:
        return sort_records([r for r in self._load() if matches(r, criteria)], sort)

    def get(self, record_id: RecordId) -> Optional[Record]:
        for record in self._load():
            if same_id(record.get("id"), record_id):
                return record
        return None

    def count(self) -> int:
        return len(self._load())

    # ==================== WRITE ====================

    def _insert(self, record: Record) -> Record:
        records = self._load()
        record_id = record.get("id")
        if record_id is None and self.spec.serial_id:
            record_id = next_serial_id(records)
        elif record_id is None:
            existing = {str(r.get("id")) for r in records}
            record_id = new_id()
            while record_id in existing:
                record_id = new_id()
        elif any(same_id(r.get("id"), record_id) for r in records):
            raise DuplicateRecordError(f"{self.name} already has id {record_id!r}")

        now = utc_now_iso()
        created = {**record, "id": record_id, "created_at": now, "updated_at": now}
        records.append(created)
        self._save(records)
        return created

    def _update(self, record_id: RecordId, patch: Record) -> Record:
        records = self._load()
        for index, record in enumerate(records):
            if same_id(record.get("id"), record_id):
                updated = {**record, **patch, "id": record["id"], "updated_at": utc_now_iso()}
                records[index] = updated
                self._save(records)
                return updated
        raise NotFoundError(f"{self.name} record {record_id!r} not found")

    def _delete(self, record_id: RecordId) -> bool:
        records = self._load()
        kept = [r for r in records if not same_id(r.get("id"), record_id)]
        if len(kept) == len(records):
            return False
        self._save(kept)
        return True

    def _remove_matching(self, predicate: Callable[[Record], bool]) -> int:
        if self.dependents:
            doomed = [r["id"] for r in self._load() if predicate(r)]
            return sum(1 for record_id in doomed if self.delete(record_id))
        records = self._load()
        kept = [r for r in records if not predicate(r)]
        removed = len(records) - len(kept)
        if removed:
            self._save(kept)
        return removed

    def delete_where(self, criteria: Dict[str, Any]) -> int:
        return self._remove_matching(lambda r: matches(r, criteria))

    def delete_referencing(self, foreign_key: str, parent_id: RecordId) -> int:
        """Like ``delete_where`` but compares ids as strings, as ``get`` does."""
        return self._remove_matching(lambda r: same_id(r.get(foreign_key), parent_id))

    def replace_all(self, records: Iterable[Record]) -> int:
        """Replace the collection; rows get the collection defaults for keys they lack."""
        rows = [{**self.spec.defaults, **r} for r in records]
        self._save(rows)
        logger.debug(f"Replaced {self.name}", extra={"extra_data": {"count": len(rows)}})
        return len(rows)
