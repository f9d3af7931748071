"""Dashboard selection and the student filter it implies.

Students belong either to the implicit default dashboard (``dashboard_id`` is
null) or to one stored dashboard. ``DashboardContext`` owns the selection and
the loaded dashboards; ``DashboardScopeResolver`` is the read side used by
every screen and never raises.

Example:
    context = DashboardContext(service.dashboards, kv=kv)
    context.refresh_dashboards()
    resolver = DashboardScopeResolver.for_context(context)
    students = service.students.filter(resolver.student_filter(), sort="student_name")
"""

import re
from typing import Any, Callable, Dict, List, Optional

from src.backend import MissingTableError
from src.config.settings import DEFAULT_DASHBOARD_NAME
from src.logutils import get_logger, with_context
from src.storage import BrightTrackError, KeyValueStore, StorageError

from .result import ScopeResult, resolve

logger = get_logger(__name__)

DEFAULT_DASHBOARD_ID = "default"
SELECTED_STORAGE_KEY = "best:selected-dashboard"

_NUMERIC_ID = re.compile(r"^\d+$")


def sanitize_selected_id(value: Any) -> str:
    """``"default"`` or an all-digit id string; anything else becomes ``"default"``."""
    if value is None:
        return DEFAULT_DASHBOARD_ID
    text = str(value)
    if not text or text == DEFAULT_DASHBOARD_ID:
        return DEFAULT_DASHBOARD_ID
    return text if _NUMERIC_ID.match(text) else DEFAULT_DASHBOARD_ID


class DashboardContext:
    """Loaded dashboards and the current selection.

    Attributes:
        dashboards: Dashboards loaded by the last successful refresh, by name.
        selected_dashboard_id: ``"default"`` or the string id of a dashboard.
        default_dashboard_name: Name shown for the implicit default dashboard.
        dashboards_supported: False once the backend turned out to have no
            dashboards table, or when no dashboard facade was given.
    """

    def __init__(
        self,
        dashboard_facade=None,
        kv: Optional[KeyValueStore] = None,
        default_dashboard_name: str = DEFAULT_DASHBOARD_NAME,
    ):
        self.facade = dashboard_facade
        self.kv = kv
        self.default_dashboard_name = default_dashboard_name
        self.dashboards: List[Dict[str, Any]] = []
        self.dashboards_supported = dashboard_facade is not None
        self.selected_dashboard_id = self._load_selected_id()

    def _load_selected_id(self) -> str:
        if self.kv is None:
            return DEFAULT_DASHBOARD_ID
        try:
            return sanitize_selected_id(self.kv.get(SELECTED_STORAGE_KEY))
        except StorageError as e:
            logger.debug(f"Stored dashboard selection unreadable: {e}")
            return DEFAULT_DASHBOARD_ID

    def _persist_selected_id(self, value: str) -> None:
        if self.kv is None:
            return
        try:
            self.kv.set(SELECTED_STORAGE_KEY, value)
        except StorageError as e:
            logger.debug(f"Could not persist dashboard selection: {e}")

    @property
    def selected_dashboard_numeric_id(self) -> Optional[int]:
        if self.selected_dashboard_id == DEFAULT_DASHBOARD_ID:
            return None
        try:
            return int(self.selected_dashboard_id)
        except ValueError:
            return None

    def find_dashboard(self, dashboard_id: str) -> Optional[Dict[str, Any]]:
        for dashboard in self.dashboards:
            if str(dashboard.get("id")) == dashboard_id:
                return dashboard
        return None

    def set_selected_dashboard_id(self, value: Any) -> str:
        """Select a dashboard and persist the choice.

        Unknown, malformed or unavailable ids select the default dashboard.

        Returns:
            The id actually selected.
        """
        selected = sanitize_selected_id(value)
        if selected != DEFAULT_DASHBOARD_ID and (
            not self.dashboards_supported or self.find_dashboard(selected) is None
        ):
            logger.info(f"Dashboard {selected} not available, selecting default")
            selected = DEFAULT_DASHBOARD_ID
        self.selected_dashboard_id = selected
        self._persist_selected_id(selected)
        return selected

    def disable_dashboards(self) -> None:
        """Switch to single-dashboard mode."""
        self.dashboards_supported = False
        self.dashboards = []
        self.set_selected_dashboard_id(DEFAULT_DASHBOARD_ID)

    def refresh_dashboards(self) -> List[Dict[str, Any]]:
        """Reload dashboards sorted by name.

        A missing dashboards table or column disables dashboards; any other
        backend error is logged and the previous list is kept.
        """
        if not self.dashboards_supported:
            self.dashboards = []
            return self.dashboards

        with with_context(operation="refresh_dashboards", collection="dashboards"):
            try:
                results = self.facade.list(sort="name")
            except MissingTableError as e:
                logger.warning(f"Dashboards table is not available, using single-dashboard mode: {e}")
                self.disable_dashboards()
                return self.dashboards
            except BrightTrackError as e:
                logger.error(f"Failed to load dashboards: {e}")
                return self.dashboards

            self.dashboards = list(results) if isinstance(results, list) else []
            logger.debug("Loaded dashboards", extra={"extra_data": {"count": len(self.dashboards)}})

        if self.selected_dashboard_id != DEFAULT_DASHBOARD_ID and self.find_dashboard(self.selected_dashboard_id) is None:
            self.set_selected_dashboard_id(DEFAULT_DASHBOARD_ID)
        return self.dashboards

    def build_student_filter(self, base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Copy of ``base`` scoped to the selected dashboard."""
        scoped = dict(base or {})
        if not self.dashboards_supported:
            return scoped
        if self.selected_dashboard_id == DEFAULT_DASHBOARD_ID:
            scoped["dashboard_id"] = None
        elif self.selected_dashboard_numeric_id is not None:
            scoped["dashboard_id"] = self.selected_dashboard_numeric_id
        return scoped


class DashboardScopeResolver:
    """Never-raising view over a ``DashboardContext``.

    Args:
        context_provider: Callable returning the current context, or None when
            there is none yet.
        disable_dashboards: Force single-dashboard behavior regardless of the
            context.
        fallback_name: Name used when even the context's default is unusable.
    """

    def __init__(
        self,
        context_provider: Callable[[], Optional[DashboardContext]],
        disable_dashboards: bool = False,
        fallback_name: str = DEFAULT_DASHBOARD_NAME,
    ):
        self.context_provider = context_provider
        self.disabled = disable_dashboards
        self.fallback_name = fallback_name or DEFAULT_DASHBOARD_NAME

    @classmethod
    def for_context(cls, context: Optional[DashboardContext], **kwargs) -> "DashboardScopeResolver":
        return cls(lambda: context, **kwargs)

    def _context(self) -> Optional[DashboardContext]:
        context = self.context_provider()
        if context is None:
            logger.debug("No dashboard context available")
        return context

    def _default_name(self, context: Optional[DashboardContext]) -> str:
        name = getattr(context, "default_dashboard_name", None)
        if isinstance(name, str) and name.strip():
            return name
        return self.fallback_name

    # ==================== NAME ====================

    def resolve_current_dashboard_name(self) -> ScopeResult[str]:
        def lookup() -> ScopeResult[str]:
            context = self._context()
            if context is None:
                return ScopeResult.substitute(self.fallback_name)
            default_name = self._default_name(context)
            selected = context.selected_dashboard_id
            if selected == DEFAULT_DASHBOARD_ID:
                return ScopeResult.ok(default_name)
            for dashboard in context.dashboards:
                if str(dashboard.get("id")) == str(selected):
                    name = dashboard.get("name")
                    if isinstance(name, str) and name.strip():
                        return ScopeResult.ok(name)
                    break
            return ScopeResult.substitute(default_name)

        return resolve("current dashboard name", lookup, lambda: self.fallback_name)

    def current_dashboard_name(self) -> str:
        return self.resolve_current_dashboard_name().value

    # ==================== FILTER ====================

    def resolve_student_filter(self, base: Dict[str, Any]) -> ScopeResult[Dict[str, Any]]:
        """Scoped filter; the unchanged ``base`` object whenever scoping is off or fails."""

        def lookup() -> ScopeResult[Dict[str, Any]]:
            if self.disabled:
                return ScopeResult.ok(base)
            context = self._context()
            if context is None:
                return ScopeResult.substitute(base)
            if not context.dashboards_supported:
                return ScopeResult.ok(base)
            with with_context(operation="build_student_filter", dashboard_id=context.selected_dashboard_id):
                return ScopeResult.ok(context.build_student_filter(base))

        return resolve("student filter", lookup, lambda: base)

    def build_student_filter(self, base: Dict[str, Any]) -> Dict[str, Any]:
        return self.resolve_student_filter(base).value

    def student_filter(self) -> Dict[str, Any]:
        """Filter for active students on the selected dashboard."""
        return self.build_student_filter({"active": True})

    # ==================== DASHBOARDS ====================

    def resolve_dashboards(self) -> ScopeResult[List[Dict[str, Any]]]:
        def lookup() -> ScopeResult[List[Dict[str, Any]]]:
            context = self._context()
            if context is None:
                return ScopeResult.substitute([])
            if self.disabled:
                return ScopeResult.ok([])
            return ScopeResult.ok(list(context.dashboards))

        return resolve("dashboards", lookup, list)

    def dashboards(self) -> List[Dict[str, Any]]:
        return self.resolve_dashboards().value

    def dashboards_enabled(self) -> bool:
        return resolve(
            "dashboards enabled",
            lambda: ScopeResult.ok(
                not self.disabled and bool(getattr(self._context(), "dashboards_supported", False))
            ),
            lambda: False,
        ).value
