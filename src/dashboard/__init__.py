"""Dashboard selection and student scoping."""

from .result import ScopeResult
from .scope import (
    DEFAULT_DASHBOARD_ID,
    SELECTED_STORAGE_KEY,
    DashboardContext,
    DashboardScopeResolver,
    sanitize_selected_id,
)

__all__ = [
    "DashboardContext",
    "DashboardScopeResolver",
    "ScopeResult",
    "DEFAULT_DASHBOARD_ID",
    "SELECTED_STORAGE_KEY",
    "sanitize_selected_id",
]
