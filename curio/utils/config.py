"""
Service configuration (env vars).

Service, logging and database connection settings are read through the accessors here.
The database URL itself is picked by db.postgres_db.get_database_url from ENVIRONMENT
and the DATABASE_URL* variables.
"""

from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv

_ENV_LOADED = False

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if not _ENV_LOADED:
        load_dotenv()
        _ENV_LOADED = True


def _env(name: str, default: str = "") -> str:
    _ensure_env_loaded()
    return os.getenv(name, default).strip()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = _env(name, "")
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def get_service_role_key() -> str:
    """Bearer key used both to call the segment generator and to guard write endpoints."""
    return _env("SERVICE_ROLE_KEY") or _env("SUPABASE_SERVICE_ROLE_KEY")


def get_segment_generator_url() -> str:
    """
    Endpoint of the external segment generator.
    Defaults to the process-video-segment function under SUPABASE_URL when only that is set.
    """
    url = _env("SEGMENT_GENERATOR_URL")
    if url:
        return url
    supabase_url = _env("SUPABASE_URL").rstrip("/")
    if supabase_url:
        return f"{supabase_url}/functions/v1/process-video-segment"
    return ""


def get_segment_generator_timeout_seconds() -> int:
    return _env_int("SEGMENT_GENERATOR_TIMEOUT_SECONDS", 60)


def get_youtube_api_key() -> str:
    return _env("YOUTUBE_API_KEY")


def is_segment_poller_enabled() -> bool:
    return _env_flag("SEGMENT_POLLER_ENABLED", False)


def get_segment_poll_interval_seconds() -> int:
    return max(1, _env_int("SEGMENT_POLL_INTERVAL_SECONDS", 15))


def get_cors_allowed_origins() -> List[str]:
    raw = _env("CORS_ALLOWED_ORIGINS")
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_log_level() -> str:
    return _env("LOG_LEVEL", "INFO").upper() or "INFO"


def get_logtail_source_token() -> str:
    return _env("LOGTAIL_SOURCE_TOKEN")


def get_logtail_ingest_host() -> str:
    return _env("LOGTAIL_INGEST_HOST") or "in.logtail.com"


def is_database_force_ipv4() -> bool:
    """Resolve the database host to IPv4 before connecting (on unless set to a false value)."""
    return _env_flag("DATABASE_FORCE_IPV4", True)
