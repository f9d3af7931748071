"""Runtime configuration for Bright Track.

Everything comes from environment variables (optionally via a ``.env`` file).
Missing or malformed backend settings never stop the app: they switch it to
the local store instead.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from src.logutils import SensitiveValue, get_logger

load_dotenv()

logger = get_logger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "brighttrack.db"
DEFAULT_DASHBOARD_NAME = "Heartland Boys Home"
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_REQUEST_TIMEOUT = 10.0

SUPABASE_URL_VARS = ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "VITE_SUPABASE_URL")
SUPABASE_KEY_VARS = (
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_KEY",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "VITE_SUPABASE_ANON_KEY",
)


def _first_env(*names: str) -> Optional[str]:
    """Value of the first variable in ``names`` that is set and non-blank."""
    for name in names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return default
    return value if value > 0 else default


@dataclass
class SupabaseConfig:
    """Hosted Supabase project settings."""

    url: Optional[str] = None
    key: SensitiveValue = field(default_factory=lambda: SensitiveValue(None))

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        url = _first_env(*SUPABASE_URL_VARS)
        return cls(
            url=url.rstrip("/") if url else None,
            key=SensitiveValue(_first_env(*SUPABASE_KEY_VARS)),
        )

    @property
    def is_configured(self) -> bool:
        """True when both a usable http(s) URL and an API key are present."""
        if not self.url or not self.key:
            return False
        return self.url.startswith(("https://", "http://"))

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"


@dataclass
class FirebaseConfig:
    """Firebase authentication settings (read only; no auth flow runs here)."""

    api_key: SensitiveValue = field(default_factory=lambda: SensitiveValue(None))
    auth_domain: Optional[str] = None
    project_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "FirebaseConfig":
        return cls(
            api_key=SensitiveValue(_first_env("FIREBASE_API_KEY", "VITE_FIREBASE_API_KEY")),
            auth_domain=_first_env("FIREBASE_AUTH_DOMAIN", "VITE_FIREBASE_AUTH_DOMAIN"),
            project_id=_first_env("FIREBASE_PROJECT_ID", "VITE_FIREBASE_PROJECT_ID"),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.project_id)


@dataclass
class AppConfig:
    """Top-level configuration handed to ``create_data_service`` and the CLI."""

    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    firebase: FirebaseConfig = field(default_factory=FirebaseConfig)
    db_path: Path = DEFAULT_DB_PATH
    default_dashboard_name: str = DEFAULT_DASHBOARD_NAME
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables.

        Environment variables:
            SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (and their public aliases)
            FIREBASE_API_KEY, FIREBASE_AUTH_DOMAIN, FIREBASE_PROJECT_ID
            BRIGHTTRACK_DB_PATH: Local store file
            DEFAULT_DASHBOARD_NAME: Name shown for the implicit dashboard
            STATUS_POLL_INTERVAL: Seconds between connectivity checks
            REQUEST_TIMEOUT: Seconds before a backend request is abandoned
        """
        config = cls(
            supabase=SupabaseConfig.from_env(),
            firebase=FirebaseConfig.from_env(),
            db_path=Path(os.environ.get("BRIGHTTRACK_DB_PATH") or DEFAULT_DB_PATH),
            default_dashboard_name=_first_env("DEFAULT_DASHBOARD_NAME") or DEFAULT_DASHBOARD_NAME,
            poll_interval=_float_env("STATUS_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            request_timeout=_float_env("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        )

        if not config.supabase.is_configured:
            logger.warning("Supabase not configured: missing URL or key, using local store")

        logger.debug(
            "Configuration loaded",
            extra={
                "extra_data": {
                    "storage_mode": config.storage_mode,
                    "auth_provider": config.auth_provider,
                    "db_path": str(config.db_path),
                }
            },
        )
        return config

    @property
    def storage_mode(self) -> str:
        return "supabase" if self.supabase.is_configured else "local"

    @property
    def auth_provider(self) -> str:
        return "firebase" if self.firebase.is_configured else "none"
