"""
Same-origin check for mutating form posts, with and without proxy trust.
"""
from __future__ import annotations

import pytest
from starlette.requests import Request

from routes.security import _is_same_origin


def _request(headers: dict[str, str], *, scheme: str = "http", host: str = "admin.local", port: int = 80) -> Request:
    raw = [(b"host", f"{host}:{port}".encode() if port not in (80, 443) else host.encode())]
    raw += [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    scope = {
        "type": "http",
        "method": "POST",
        "scheme": scheme,
        "path": "/logout",
        "query_string": b"",
        "headers": raw,
        "server": (host, port),
    }
    return Request(scope)


def test_missing_headers_are_allowed():
    assert _is_same_origin(_request({})) is True


def test_matching_origin_is_allowed():
    assert _is_same_origin(_request({"Origin": "http://admin.local"})) is True


@pytest.mark.parametrize(
    "origin", ["http://evil.example", "https://admin.local", "http://admin.local:8080", "null", "not a url"]
)
def test_mismatched_or_unparseable_origin_is_rejected(origin):
    assert _is_same_origin(_request({"Origin": origin})) is False


def test_referer_is_used_when_origin_is_absent():
    assert _is_same_origin(_request({"Referer": "http://admin.local/dashboard/users/buyer"})) is True
    assert _is_same_origin(_request({"Referer": "http://evil.example/page"})) is False


def test_forwarded_headers_ignored_without_trust():
    req = _request({"Origin": "https://admin.example.com", "X-Forwarded-Proto": "https", "X-Forwarded-Host": "admin.example.com"})
    assert _is_same_origin(req) is False


def test_forwarded_headers_used_with_trust(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKET_TRUST_PROXY", "true")
    req = _request({"Origin": "https://admin.example.com", "X-Forwarded-Proto": "https", "X-Forwarded-Host": "admin.example.com"})
    assert _is_same_origin(req) is True
