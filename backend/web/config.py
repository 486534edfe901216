"""
Configuration and startup security checks for the marketplace admin.

Why: An admin dashboard must not accidentally ship credentials over plain HTTP.
This module provides a single guard that enforces minimal production safety
constraints without burdening local development, plus small typed readers for
the environment variables the app uses.

Permissions: The caller needs no special privileges. The guard simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os


DEFAULT_API_BASE_URL = "http://localhost:8080"
DEFAULT_API_TIMEOUT = 10.0


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("MARKET_ENV", "dev") or "dev").strip().lower()


def api_base_url() -> str:
    return (os.getenv("MARKET_API_BASE_URL") or DEFAULT_API_BASE_URL).strip().rstrip("/")


def api_timeout() -> float:
    raw = (os.getenv("MARKET_API_TIMEOUT") or "").strip()
    try:
        value = float(raw) if raw else DEFAULT_API_TIMEOUT
    except ValueError:
        return DEFAULT_API_TIMEOUT
    return value if value > 0 else DEFAULT_API_TIMEOUT


def trust_proxy() -> bool:
    return (os.getenv("MARKET_TRUST_PROXY", "false") or "").strip().lower() == "true"


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/staging only):
    - MARKET_API_BASE_URL must be set explicitly.
    - MARKET_API_BASE_URL must use https; bearer tokens travel on every call.
    """
    if not _is_prod_like(current_environment()):
        return  # dev/test remain permissive

    raw = (os.getenv("MARKET_API_BASE_URL") or "").strip()
    if not raw:
        raise SystemExit("Refusing to start: MARKET_API_BASE_URL is unset in production.")
    if not raw.lower().startswith("https://"):
        raise SystemExit(
            "Refusing to start: MARKET_API_BASE_URL must use https in production (got a non-https URL)."
        )
