"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and keep every test away from
the real marketplace API. Web tests share module-level singletons in `main`
(credential store, API client, user list cache); they are replaced per test.
"""
import os
import sys
from pathlib import Path

import httpx
import pytest

# Imported by main at module load; keep the startup guard permissive.
os.environ.setdefault("MARKET_ENV", "dev")

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from identity_access.api_client import MarketplaceApi  # noqa: E402
from identity_access.stores import CredentialStore  # noqa: E402
from utils.fake_api import FakeMarketplace  # noqa: E402

API_BASE = "http://api.test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_market_env(monkeypatch: pytest.MonkeyPatch):
    """Start each test from a dev-like environment without proxy trust."""
    monkeypatch.setenv("MARKET_ENV", "dev")
    for var in ("MARKET_TRUST_PROXY", "MARKET_API_BASE_URL", "MARKET_API_TIMEOUT", "AUTH_COOKIE_MAX_AGE"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def fake_api() -> FakeMarketplace:
    return FakeMarketplace()


@pytest.fixture(autouse=True)
def _reset_web_state(fake_api: FakeMarketplace):
    """
    Replace the shared web singletons before each pytest case.

    Behavior:
        - Fresh CredentialStore and UserListCache.
        - `main.API` talks to `fake_api` through httpx.MockTransport.
        - Environment override reset to None.
    """
    import main  # type: ignore

    main.CREDENTIAL_STORE = CredentialStore()
    main.USER_LISTS = main.UserListCache()
    main.API = MarketplaceApi(API_BASE, transport=httpx.MockTransport(fake_api))
    main.SETTINGS.override_environment(None)
    yield
    main.SETTINGS.override_environment(None)
