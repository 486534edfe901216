"""
Session resolver: one profile round trip per page view, cached outcome.

Requirements:
- No token / token not in store -> unauthenticated, no API call
- Profile failure -> session_invalid and the store copy is deleted
- Concurrent consumers share a single in-flight call
- A closed view ignores results that arrive later
"""

import asyncio

import httpx
import pytest

from identity_access.api_client import MarketplaceApi
from identity_access.resolver import SESSION_INVALID, UNAUTHENTICATED, ResolverState, SessionResolver
from identity_access.stores import CredentialStore
from utils.fake_api import FakeMarketplace, profile_payload


pytestmark = pytest.mark.anyio("asyncio")

PROFILE = "/api/auth/profile"


def _api(fake: FakeMarketplace) -> MarketplaceApi:
    return MarketplaceApi("http://api.test", transport=httpx.MockTransport(fake))


@pytest.mark.anyio
async def test_missing_token_is_unauthenticated_without_api_call(fake_api):
    resolver = SessionResolver(CredentialStore(), _api(fake_api), None)
    res = await resolver.resolve()
    assert res.state is ResolverState.FAILED
    assert res.error.kind == UNAUTHENTICATED
    assert fake_api.calls == []


@pytest.mark.anyio
async def test_token_missing_from_store_is_unauthenticated(fake_api):
    fake_api.on("GET", PROFILE, json=profile_payload())
    resolver = SessionResolver(CredentialStore(), _api(fake_api), "cookie-only")
    res = await resolver.resolve()
    assert res.error.kind == UNAUTHENTICATED
    assert fake_api.count("GET", PROFILE) == 0


@pytest.mark.anyio
async def test_resolves_profile_and_caches_it(fake_api):
    fake_api.on("GET", PROFILE, json=profile_payload("manager"))
    store = CredentialStore()
    store.put("tok")
    resolver = SessionResolver(store, _api(fake_api), "tok")

    first = await resolver.resolve()
    second = await resolver.resolve()

    assert first.ok and second.ok
    assert first.identity.role.value == "manager"
    assert fake_api.count("GET", PROFILE) == 1
    assert fake_api.requests[0].headers["Authorization"] == "Bearer tok"


@pytest.mark.anyio
async def test_concurrent_consumers_share_one_call(fake_api):
    fake_api.on("GET", PROFILE, json=profile_payload())
    store = CredentialStore()
    store.put("tok")
    resolver = SessionResolver(store, _api(fake_api), "tok")

    results = await asyncio.gather(resolver.resolve(), resolver.resolve(), resolver.resolve())

    assert all(r.ok for r in results)
    assert resolver.profile_calls == 1
    assert fake_api.count("GET", PROFILE) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("status", [401, 500])
async def test_profile_failure_invalidates_store_copy(fake_api, status):
    fake_api.on("GET", PROFILE, status=status, json={"message": "nope"})
    store = CredentialStore()
    store.put("tok")
    resolver = SessionResolver(store, _api(fake_api), "tok")

    res = await resolver.resolve()

    assert res.state is ResolverState.FAILED
    assert res.error.kind == SESSION_INVALID
    assert res.error.status_code == status
    assert store.get("tok") is None


@pytest.mark.anyio
async def test_malformed_profile_is_session_invalid(fake_api):
    fake_api.on("GET", PROFILE, json={"unexpected": True})
    store = CredentialStore()
    store.put("tok")
    res = await SessionResolver(store, _api(fake_api), "tok").resolve()
    assert res.error.kind == SESSION_INVALID
    assert res.error.message == "Profile data not found in API response."


@pytest.mark.anyio
async def test_failed_state_is_terminal(fake_api):
    fake_api.on("GET", PROFILE, status=401)
    store = CredentialStore()
    store.put("tok")
    resolver = SessionResolver(store, _api(fake_api), "tok")
    await resolver.resolve()
    fake_api.on("GET", PROFILE, json=profile_payload())

    again = await resolver.resolve()

    assert again.state is ResolverState.FAILED
    assert fake_api.count("GET", PROFILE) == 1


@pytest.mark.anyio
async def test_closed_view_discards_late_result(fake_api):
    fake_api.on("GET", PROFILE, status=401)
    store = CredentialStore()
    store.put("tok")
    resolver = SessionResolver(store, _api(fake_api), "tok")
    resolver.close()

    res = await resolver.resolve()

    assert res.state is ResolverState.RESOLVING
    assert store.get("tok") is not None
