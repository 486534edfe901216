"""
Shared authentication utilities.

Why:
    The session credential lives in two places: the `auth_token` cookie (read
    by the edge middleware) and the server-side CredentialStore (read by the
    session resolver). Every write must touch both in one operation, so all
    callers use `set_session` / `clear_session` instead of writing either copy
    directly.

Design:
    The helpers are synchronous and take the response and store explicitly.
    Callers decide where the store comes from (e.g., `main.CREDENTIAL_STORE`).
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from starlette.responses import Response

from identity_access.stores import CredentialStore


AUTH_COOKIE_NAME = "auth_token"
DEFAULT_COOKIE_MAX_AGE = 86400  # 1 day

logger = logging.getLogger("marketadmin.web.session")


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"  # cookie must ride along on top-level redirects after login
    """
    return {"secure": True, "samesite": "lax"}


def cookie_max_age() -> int:
    raw = (os.getenv("AUTH_COOKIE_MAX_AGE") or "").strip()
    try:
        value = int(raw) if raw else DEFAULT_COOKIE_MAX_AGE
    except ValueError:
        value = DEFAULT_COOKIE_MAX_AGE
    return max(60, value)


def set_session(response: Response, store: CredentialStore, token: str, *, environment: str = "dev") -> None:
    """Write both credential copies: store entry and cookie, same lifetime."""
    max_age = cookie_max_age()
    store.put(token, ttl_seconds=max_age)
    opts = cookie_opts(environment)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session(
    response: Response, store: CredentialStore, token: Optional[str], *, environment: str = "dev"
) -> None:
    """Drop both credential copies; safe to call when either is already gone."""
    if token:
        store.delete(token)
    opts = cookie_opts(environment)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )
    logger.info("Session credential cleared")
