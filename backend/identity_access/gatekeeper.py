"""
Edge decision for incoming navigations.

Why:
    The request edge only knows whether a credential cookie is present; the
    role needs a round trip to the profile endpoint that the edge cannot
    afford. This module keeps that decision pure so it can be tested without
    a server: the FastAPI middleware in `main.py` only executes the result.

Behavior:
    - protected path + no credential  -> redirect to sign-in with return target
    - auth-only path + credential     -> redirect to the default landing route
    - anything else                   -> allow
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union
from urllib.parse import urlencode


PROTECTED_PREFIXES: Tuple[str, ...] = ("/dashboard",)
AUTH_ONLY_PREFIXES: Tuple[str, ...] = ("/login", "/register", "/verify-email")
# Static assets and API infrastructure are never evaluated.
EXCLUDED_PREFIXES: Tuple[str, ...] = ("/api", "/static", "/favicon.ico", "/images", "/fonts", "/health")

SIGN_IN_PATH = "/login"
LANDING_PATH = "/dashboard"
RETURN_TARGET_PARAM = "redirectedFrom"


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Redirect:
    location: str


EdgeDecision = Union[Allow, Redirect]


def _under(path: str, prefix: str) -> bool:
    # Segment-aware: "/dashboard" covers "/dashboard/x" but not "/dashboards".
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _matches_any(path: str, prefixes: Tuple[str, ...]) -> bool:
    return any(_under(path, p) for p in prefixes)


def is_excluded_path(path: str) -> bool:
    return _matches_any(path or "/", EXCLUDED_PREFIXES)


def is_protected_path(path: str) -> bool:
    return _matches_any(path or "/", PROTECTED_PREFIXES)


def is_auth_only_path(path: str) -> bool:
    return _matches_any(path or "/", AUTH_ONLY_PREFIXES)


def sign_in_location(return_to: str | None = None) -> str:
    if not return_to:
        return SIGN_IN_PATH
    return f"{SIGN_IN_PATH}?{urlencode({RETURN_TARGET_PARAM: return_to})}"


def decide_edge_action(path: str, has_credential: bool) -> EdgeDecision:
    """Decide the edge outcome for `path` given credential presence only."""
    path = path or "/"
    if is_excluded_path(path):
        return Allow()
    if is_protected_path(path) and not has_credential:
        return Redirect(sign_in_location(path))
    if is_auth_only_path(path) and has_credential:
        return Redirect(LANDING_PATH)
    return Allow()


__all__ = [
    "PROTECTED_PREFIXES",
    "AUTH_ONLY_PREFIXES",
    "EXCLUDED_PREFIXES",
    "SIGN_IN_PATH",
    "LANDING_PATH",
    "RETURN_TARGET_PARAM",
    "Allow",
    "Redirect",
    "EdgeDecision",
    "decide_edge_action",
    "is_excluded_path",
    "is_protected_path",
    "is_auth_only_path",
    "sign_in_location",
]
