"""Environment configuration for Bright Track."""

from .settings import (
    DEFAULT_DASHBOARD_NAME,
    DEFAULT_DB_PATH,
    DEFAULT_POLL_INTERVAL,
    AppConfig,
    FirebaseConfig,
    SupabaseConfig,
)

__all__ = [
    "AppConfig",
    "SupabaseConfig",
    "FirebaseConfig",
    "DEFAULT_DASHBOARD_NAME",
    "DEFAULT_DB_PATH",
    "DEFAULT_POLL_INTERVAL",
]
