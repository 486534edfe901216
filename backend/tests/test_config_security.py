"""
Startup config guard, environment readers and credential cookie flags.
"""
from __future__ import annotations

import pytest
from starlette.responses import Response

import config  # type: ignore
from auth_utils import AUTH_COOKIE_NAME, clear_session, cookie_max_age, set_session
from identity_access.stores import CredentialStore


@pytest.mark.parametrize("env", ["prod", "production", "staging"])
def test_prod_without_api_base_url_refuses_to_start(monkeypatch: pytest.MonkeyPatch, env):
    monkeypatch.setenv("MARKET_ENV", env)
    with pytest.raises(SystemExit):
        config.ensure_secure_config_on_startup()


def test_prod_with_plain_http_refuses_to_start(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKET_ENV", "prod")
    monkeypatch.setenv("MARKET_API_BASE_URL", "http://api.internal")
    with pytest.raises(SystemExit):
        config.ensure_secure_config_on_startup()


def test_prod_with_https_starts(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKET_ENV", "prod")
    monkeypatch.setenv("MARKET_API_BASE_URL", "https://api.example.com")
    config.ensure_secure_config_on_startup()


def test_dev_is_permissive():
    config.ensure_secure_config_on_startup()
    assert config.api_base_url() == config.DEFAULT_API_BASE_URL


def test_env_readers(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MARKET_API_BASE_URL", " https://api.example.com/ ")
    monkeypatch.setenv("MARKET_API_TIMEOUT", "2.5")
    monkeypatch.setenv("MARKET_TRUST_PROXY", "TRUE")
    assert config.api_base_url() == "https://api.example.com"
    assert config.api_timeout() == 2.5
    assert config.trust_proxy() is True

    monkeypatch.setenv("MARKET_API_TIMEOUT", "soon")
    assert config.api_timeout() == config.DEFAULT_API_TIMEOUT
    monkeypatch.setenv("MARKET_API_TIMEOUT", "-1")
    assert config.api_timeout() == config.DEFAULT_API_TIMEOUT


def test_set_session_writes_cookie_and_store_with_same_lifetime(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AUTH_COOKIE_MAX_AGE", "3600")
    store = CredentialStore()
    response = Response()

    set_session(response, store, "tok")

    header = response.headers["set-cookie"]
    assert header.startswith(f"{AUTH_COOKIE_NAME}=tok")
    lowered = header.lower()
    assert "httponly" in lowered and "secure" in lowered and "samesite=lax" in lowered
    assert "max-age=3600" in lowered
    record = store.get("tok")
    assert record.expires_at - record.issued_at == 3600


def test_clear_session_drops_both_copies():
    store = CredentialStore()
    store.put("tok")
    response = Response()

    clear_session(response, store, "tok")

    assert store.get("tok") is None
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_cookie_max_age_has_a_floor(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AUTH_COOKIE_MAX_AGE", "5")
    assert cookie_max_age() == 60
    monkeypatch.setenv("AUTH_COOKIE_MAX_AGE", "abc")
    assert cookie_max_age() == 86400


def test_expired_store_entry_is_gone(monkeypatch: pytest.MonkeyPatch):
    import identity_access.stores as stores

    store = CredentialStore()
    store.put("tok", ttl_seconds=10)
    monkeypatch.setattr(stores, "_now", lambda: 10**12)
    assert store.get("tok") is None
    assert len(store) == 0
