"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# Frontend origin; OAuth callbacks redirect here and CORS allows it by default.
CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:5173").rstrip("/")

# Public base URL of this API, used to build OAuth callback URLs.
OAUTH_REDIRECT_BASE: str = os.getenv("OAUTH_REDIRECT_BASE", "http://localhost:5000").rstrip("/")

RUN_MIGRATIONS: bool = _bool_env("RUN_MIGRATIONS", True)

# Maximum size for a single image upload (bytes).
# Configured via .env: UPLOAD_SIZE_LIMIT=5242880  (5 MiB)
UPLOAD_SIZE_LIMIT_BYTES: int = _int_env("UPLOAD_SIZE_LIMIT", 5 * 1024 * 1024)
UPLOAD_TMP_DIR: str = os.getenv("UPLOAD_TMP_DIR", "uploads")

# Upper bound for any ?limit= query parameter.
MAX_PAGE_SIZE: int = _int_env("MAX_PAGE_SIZE", 100)


def is_production() -> bool:
    return ENVIRONMENT == "production"
