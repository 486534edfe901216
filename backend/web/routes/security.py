"""
Shared web security helpers for routes.

Contains the CSRF same-origin check used by every mutating form post (sign-in,
registration, logout, user management). Keeping a single implementation avoids
security drift between routers.
"""
from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urlparse

from fastapi import Request

import config


Origin = Tuple[str, str, int]


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> Origin:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    return scheme, p.hostname.lower(), int(p.port if p.port is not None else _default_port(scheme))


def _first(value: Optional[str]) -> str:
    return (value or "").split(",")[0].strip()


def _server_origin(request: Request) -> Origin:
    """Origin the browser sees; X-Forwarded-* only counts when the proxy is trusted."""
    if not config.trust_proxy():
        scheme = (request.url.scheme or "http").lower()
        host = (request.url.hostname or "").lower()
        port = int(request.url.port) if request.url.port else _default_port(scheme)
        return scheme, host, port

    scheme = (_first(request.headers.get("x-forwarded-proto")) or request.url.scheme or "http").lower()
    xf_host = _first(request.headers.get("x-forwarded-host")) or _first(request.headers.get("host"))
    if ":" in xf_host:
        host, port_str = xf_host.rsplit(":", 1)
        port = int(port_str) if port_str.isdigit() else _default_port(scheme)
    else:
        host = xf_host or (request.url.hostname or "")
        port = int(request.url.port) if request.url.port else _default_port(scheme)
    xf_port = _first(request.headers.get("x-forwarded-port"))
    if xf_port:
        port = int(xf_port) if xf_port.isdigit() else _default_port(scheme)
    return scheme, host.lower(), port


def _is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow to not break non-browser clients.
    - Unparseable values are rejected.
    Proxy awareness: Only trust X-Forwarded-* when MARKET_TRUST_PROXY=true.
    """
    claimed = request.headers.get("origin") or request.headers.get("referer")
    if not claimed:
        return True
    try:
        return _parse_origin(claimed) == _server_origin(request)
    except ValueError:
        return False
