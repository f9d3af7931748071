"""The data service: every entity facade behind one object.

``create_data_service`` picks the hosted Supabase backend when it is
configured and the local store otherwise, once, at construction. Callers only
ever see ``EntityFacade`` instances and never branch on the mode themselves.
"""

import json
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from src.backend import ConnectivityError, SupabaseClient
from src.config import AppConfig
from src.dashboard.scope import SELECTED_STORAGE_KEY
from src.logutils import get_logger, with_context
from src.storage import BrightTrackError, EntityStore, KeyValueStore, SQLiteKeyValueStore, StorageError

from .base import EntityFacade, Record
from .evaluations import prepare_daily_evaluation_for_save
from .hosted import HostedEntityFacade
from .local import LocalEntityFacade, same_id
from .models import (
    BEHAVIOR_SUMMARY,
    CONTACT_LOG,
    DAILY_EVALUATION,
    DASHBOARD,
    ENTITY_SPECS,
    INCIDENT_REPORT,
    SETTINGS,
    STUDENT,
    STUDENT_CHILDREN,
    RecordId,
)
from .samples import (
    sample_behavior_summaries,
    sample_incident_reports,
    sample_settings,
    sample_students,
)

logger = get_logger(__name__)

EXPORT_VERSION = "1.0"

LOCAL_STUDENT = replace(STUDENT, defaults={**STUDENT.defaults, "dashboard_id": None})

# export file key -> collection
EXPORT_KEYS = {
    "students": STUDENT.collection,
    "evaluations": DAILY_EVALUATION.collection,
    "settings": SETTINGS.collection,
    "contactLogs": CONTACT_LOG.collection,
    "behaviorSummaries": BEHAVIOR_SUMMARY.collection,
    "incidentReports": INCIDENT_REPORT.collection,
    "dashboards": DASHBOARD.collection,
}


class DataService:
    """Facades for every collection, sharing one backend.

    Attributes:
        backend_name: ``"supabase"`` or ``"local"``.
        store: The local ``EntityStore`` in local mode, else None.
    """

    def __init__(
        self,
        facades: Dict[str, EntityFacade],
        backend_name: str,
        store: Optional[EntityStore] = None,
    ):
        self.facades = facades
        self.backend_name = backend_name
        self.store = store

        self.students = facades[STUDENT.collection]
        self.daily_evaluations = facades[DAILY_EVALUATION.collection]
        self.settings = facades[SETTINGS.collection]
        self.contact_logs = facades[CONTACT_LOG.collection]
        self.behavior_summaries = facades[BEHAVIOR_SUMMARY.collection]
        self.incident_reports = facades[INCIDENT_REPORT.collection]
        self.dashboards = facades[DASHBOARD.collection]

        for child in STUDENT_CHILDREN:
            self.students.add_dependent(facades[child.collection], "student_id")

    def __repr__(self) -> str:
        return f"DataService(backend={self.backend_name!r})"

    @property
    def is_local(self) -> bool:
        return self.backend_name == "local"

    def facade(self, collection: str) -> EntityFacade:
        return self.facades[collection]

    # ==================== STUDENTS ====================

    def delete_student(self, student_id: RecordId) -> bool:
        """Delete a student with its evaluations, incidents, contacts and summaries."""
        with with_context(operation="delete_student", collection=STUDENT.collection):
            deleted = self.students.delete(student_id)
            logger.info(
                "Student deleted" if deleted else "Student not found",
                extra={"extra_data": {"student_id": student_id}},
            )
            return deleted

    # ==================== EVALUATIONS & SUMMARIES ====================

    def save_daily_evaluation(self, record: Record) -> Record:
        """Create or update the evaluation for ``(student_id, date)``."""
        return self.daily_evaluations.upsert(prepare_daily_evaluation_for_save(record))

    def save_behavior_summary(self, record: Record) -> Record:
        """Create or update the summary for ``(student_id, date_range_end)``."""
        return self.behavior_summaries.upsert(record)

    def summaries_for(self, student_ids: Iterable[RecordId], date: str) -> Dict[RecordId, Optional[Record]]:
        """Map each student id to its summary ending on ``date``, or None."""
        ids = list(student_ids)
        if not ids:
            return {}
        summaries = self.behavior_summaries.filter({"date_range_end": date})
        return {
            student_id: next((s for s in summaries if same_id(s.get("student_id"), student_id)), None)
            for student_id in ids
        }

    # ==================== DATA MANAGEMENT ====================

    def export_data(self) -> str:
        """JSON snapshot of every collection, suitable for ``import_data``."""
        with with_context(operation="export_data"):
            data: Dict[str, Any] = {key: self.facades[name].list() for key, name in EXPORT_KEYS.items()}
            data["exportDate"] = datetime.now(timezone.utc).isoformat()
            data["version"] = EXPORT_VERSION
            logger.info(
                "Exported data",
                extra={"extra_data": {key: len(data[key]) for key in EXPORT_KEYS}},
            )
            return json.dumps(data, indent=2, default=str)

    def import_data(self, text: str) -> bool:
        """Load an ``export_data`` snapshot.

        Collections present in the snapshot are replaced (local) or upserted
        by id (hosted); collections it omits are left alone.

        Returns:
            False if the text is not a valid snapshot or a write failed.
        """
        with with_context(operation="import_data"):
            try:
                data = json.loads(text)
            except ValueError as e:
                logger.error(f"Import failed: invalid JSON ({e})")
                return False
            if not isinstance(data, dict):
                logger.error("Import failed: snapshot is not a JSON object")
                return False

            try:
                for key, name in EXPORT_KEYS.items():
                    rows = data.get(key)
                    if isinstance(rows, list):
                        self.facades[name].replace_all(rows)
            except BrightTrackError as e:
                logger.error(f"Import failed: {e}")
                return False

            logger.info("Imported data", extra={"extra_data": {"version": data.get("version")}})
            return True

    def clear_all_data(self) -> None:
        """Remove every local collection and the persisted dashboard selection.

        Raises:
            BrightTrackError: The service is backed by the hosted store.
        """
        if self.store is None:
            raise BrightTrackError("Clearing data is only supported for the local store")
        self.store.clear_all()
        if self.store.kv is not None:
            try:
                self.store.kv.remove(SELECTED_STORAGE_KEY)
            except StorageError as e:
                logger.warning(f"Could not reset the dashboard selection: {e}")
        logger.info("Cleared local data")

    def get_stats(self) -> Dict[str, int]:
        """Row count per collection."""
        return {spec.collection: self.facades[spec.collection].count() for spec in ENTITY_SPECS}

    def initialize_sample_data(self) -> bool:
        """Seed demo records into an empty local store.

        Returns:
            True if data was seeded; False in hosted mode or when students exist.
        """
        if not self.is_local:
            logger.debug("Sample data is only seeded into the local store")
            return False
        if self.students.count() > 0:
            return False

        with with_context(operation="initialize_sample_data"):
            for collection, rows in (
                (STUDENT.collection, sample_students()),
                (SETTINGS.collection, [sample_settings()]),
                (BEHAVIOR_SUMMARY.collection, sample_behavior_summaries()),
                (INCIDENT_REPORT.collection, sample_incident_reports()),
            ):
                facade = self.facades[collection]
                for row in rows:
                    facade.create(row)
            logger.info("Seeded sample data", extra={"extra_data": self.get_stats()})
        return True


def _local_facades(store: EntityStore) -> Dict[str, EntityFacade]:
    facades: Dict[str, EntityFacade] = {spec.collection: LocalEntityFacade(spec, store) for spec in ENTITY_SPECS}
    # local students always carry dashboard_id, null for the default dashboard
    facades[STUDENT.collection] = LocalEntityFacade(LOCAL_STUDENT, store)
    return facades


def _hosted_facades(client: SupabaseClient) -> Dict[str, EntityFacade]:
    return {spec.collection: HostedEntityFacade(spec, client) for spec in ENTITY_SPECS}


def create_data_service(
    config: Optional[AppConfig] = None,
    kv: Optional[KeyValueStore] = None,
    client: Optional[SupabaseClient] = None,
) -> DataService:
    """Build the data service for ``config``.

    Args:
        config: Application configuration; read from the environment if None.
        kv: Key-value store for local mode; defaults to SQLite at ``config.db_path``.
        client: Hosted client to use instead of one built from ``config``.
            Passing one forces hosted mode.
    """
    config = config or AppConfig.from_env()

    if client is None and config.supabase.is_configured:
        try:
            client = SupabaseClient(
                config.supabase.url,
                config.supabase.key,
                timeout=config.request_timeout,
            )
        except ConnectivityError as e:
            logger.warning(f"Supabase settings rejected, falling back to local store: {e}")

    if client is not None:
        logger.info("Using hosted Supabase backend", extra={"extra_data": {"url": client.rest_url}})
        return DataService(_hosted_facades(client), backend_name="supabase")

    store = EntityStore(kv if kv is not None else SQLiteKeyValueStore(config.db_path))
    logger.info("Using local store", extra={"extra_data": {"db_path": str(config.db_path)}})
    return DataService(_local_facades(store), backend_name="local", store=store)

