import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from shiptrack.errors import ConfigurationError

# Locate .env in the project root
env_path = Path(__file__).resolve().parent.parent / '.env'
load_dotenv(dotenv_path=env_path)

DEFAULT_LIST_LIMIT = 300
DEFAULT_EVENT_WORKERS = 8


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer")
    if value < 1:
        raise ConfigurationError(f"{name} must be positive")
    return value


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    anon_key: str
    service_role_key: str
    list_limit: int = DEFAULT_LIST_LIMIT
    event_workers: int = DEFAULT_EVENT_WORKERS

    @classmethod
    def from_env(cls) -> "Settings":
        url = os.environ.get("SUPABASE_URL")
        anon_key = os.environ.get("SUPABASE_ANON_KEY")
        service_key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not url or not anon_key or not service_key:
            raise ConfigurationError("Server env missing")
        return cls(
            supabase_url=url,
            anon_key=anon_key,
            service_role_key=service_key,
            list_limit=_int_env("SHIPMENT_LIST_LIMIT", DEFAULT_LIST_LIMIT),
            event_workers=_int_env("LATEST_EVENT_WORKERS", DEFAULT_EVENT_WORKERS),
        )


def get_settings() -> Settings:
    """FastAPI dependency. Re-reads the environment on every request."""
    return Settings.from_env()


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ALLOW_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


def public_auth_settings() -> tuple[str, str]:
    """URL and anon key for the browser-facing sign-in flow (no service key)."""
    url = os.environ.get("SUPABASE_URL")
    anon_key = os.environ.get("SUPABASE_ANON_KEY")
    if not url or not anon_key:
        raise ConfigurationError("Supabase credentials missing from .env")
    return url, anon_key


def portal_url() -> str:
    return os.environ.get("PORTAL_URL", "http://localhost:8501").rstrip("/")
