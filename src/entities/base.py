"""The entity facade interface shared by the hosted and local backends.

A facade is the one object screens and services talk to for a collection:
list, filter, get, create, update, delete. Subclasses supply the raw storage
operations (``_insert``, ``_update``, ``_delete``); validation, uniqueness
checks and cascading deletes live here so both backends behave alike.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.logutils import get_logger

from .errors import DuplicateRecordError, NotFoundError
from .models import EntitySpec, RecordId

logger = get_logger(__name__)

Record = Dict[str, Any]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_sort(sort: Optional[str]) -> Optional[Tuple[str, bool]]:
    """``"name"`` -> ``("name", False)``, ``"-name"`` -> ``("name", True)``."""
    if not sort:
        return None
    if sort.startswith("-"):
        return sort[1:], True
    return sort, False


def sort_records(records: List[Record], sort: Optional[str]) -> List[Record]:
    """Stable sort on one field; records lacking the field (or holding None) go last."""
    parsed = parse_sort(sort)
    if parsed is None:
        return records
    column, descending = parsed
    present = [r for r in records if r.get(column) is not None]
    missing = [r for r in records if r.get(column) is None]
    try:
        present.sort(key=lambda r: r[column], reverse=descending)
    except TypeError:
        present.sort(key=lambda r: str(r[column]), reverse=descending)
    return present + missing


def values_equal(actual: Any, expected: Any) -> bool:
    """Exact equality that does not let ``True`` match ``1``."""
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def matches(record: Record, criteria: Dict[str, Any]) -> bool:
    """True when ``record`` has every key in ``criteria`` with an equal value."""
    for key, expected in criteria.items():
        if key not in record or not values_equal(record[key], expected):
            return False
    return True


class EntityFacade(ABC):
    """CRUD access to one collection.

    Attributes:
        spec: Validation, uniqueness and default rules for the collection.
        dependents: ``(facade, foreign_key)`` pairs whose rows are deleted
            along with a record of this collection.
    """

    backend = "abstract"

    def __init__(self, spec: EntitySpec):
        self.spec = spec
        self.dependents: List[Tuple["EntityFacade", str]] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def name(self) -> str:
        return self.spec.collection

    def add_dependent(self, facade: "EntityFacade", foreign_key: str) -> None:
        self.dependents.append((facade, foreign_key))

    # ==================== READ ====================

    @abstractmethod
    def list(self, sort: Optional[str] = None) -> List[Record]:
        """All records, optionally sorted by ``"field"`` or ``"-field"``."""

    @abstractmethod
    def filter(self, criteria: Dict[str, Any], sort: Optional[str] = None) -> List[Record]:
        """Records equal to ``criteria`` on every key (logical AND)."""

    @abstractmethod
    def get(self, record_id: RecordId) -> Optional[Record]:
        """The record with ``record_id``, or None."""

    @abstractmethod
    def count(self) -> int:
        """Number of records in the collection."""

    # ==================== WRITE ====================

    @abstractmethod
    def _insert(self, record: Record) -> Record: ...

    @abstractmethod
    def _update(self, record_id: RecordId, patch: Record) -> Record: ...

    @abstractmethod
    def _delete(self, record_id: RecordId) -> bool: ...

    @abstractmethod
    def replace_all(self, records: Iterable[Record]) -> int:
        """Load ``records`` wholesale (used by data import). Returns the number written."""

    def find_by_key(self, record: Record) -> Optional[Record]:
        """The stored record sharing ``record``'s uniqueness key, if the collection has one."""
        key = self.spec.key_of(record)
        if key is None or any(value is None for value in key):
            return None
        found = self.filter(dict(zip(self.spec.unique_key, key)))
        return found[0] if found else None

    def create(self, record: Record) -> Record:
        """Validate and store a new record.

        Raises:
            ValidationError: A required field is missing or blank.
            DuplicateRecordError: Another record already has this uniqueness key.
        """
        data = {**self.spec.defaults, **record}
        self.spec.validate(data)

        existing = self.find_by_key(data)
        if existing is not None:
            raise DuplicateRecordError(
                f"{self.name} already has a record for "
                f"{dict(zip(self.spec.unique_key, self.spec.key_of(data)))}"
            )

        created = self._insert(data)
        logger.debug(f"Created {self.name} record", extra={"extra_data": {"id": created.get("id")}})
        return created

    def update(self, record_id: RecordId, patch: Record) -> Record:
        """Merge ``patch`` into an existing record.

        Raises:
            NotFoundError: No record has ``record_id``.
            ValidationError: The merged record would be missing a required field.
            DuplicateRecordError: The patch moves the record onto another's uniqueness key.
        """
        current = self.get(record_id)
        if current is None:
            raise NotFoundError(f"{self.name} record {record_id!r} not found")

        changes = {k: v for k, v in patch.items() if k != "id"}
        merged = {**current, **changes}
        self.spec.validate(merged)

        if self.spec.unique_key and any(k in changes for k in self.spec.unique_key):
            clash = self.find_by_key(merged)
            if clash is not None and clash.get("id") != current.get("id"):
                raise DuplicateRecordError(f"{self.name} update would duplicate record {clash.get('id')!r}")

        return self._update(record_id, changes)

    def upsert(self, record: Record) -> Record:
        """Update the record sharing ``record``'s uniqueness key, or create one."""
        existing = self.find_by_key(record)
        if existing is None:
            return self.create(record)
        return self.update(existing["id"], record)

    def delete(self, record_id: RecordId) -> bool:
        """Delete a record and every dependent row that references it.

        Dependents are matched against the stored id, not ``record_id`` as
        given, so ``"5"`` also removes the rows of a record stored as ``5``.

        Returns:
            True if the record existed and was removed.
        """
        current = self.get(record_id)
        if current is None:
            return False
        parent_id = current["id"]
        for facade, foreign_key in self.dependents:
            removed = facade.delete_referencing(foreign_key, parent_id)
            if removed:
                logger.debug(
                    f"Cascaded delete to {facade.name}",
                    extra={"extra_data": {"parent": parent_id, "removed": removed}},
                )
        return self._delete(parent_id)

    def delete_referencing(self, foreign_key: str, parent_id: RecordId) -> int:
        """Delete the rows whose ``foreign_key`` points at ``parent_id``."""
        return self.delete_where({foreign_key: parent_id})

    def delete_where(self, criteria: Dict[str, Any]) -> int:
        """Delete every record matching ``criteria``; returns how many went."""
        removed = 0
        for record in self.filter(criteria):
            if self.delete(record["id"]):
                removed += 1
        return removed
