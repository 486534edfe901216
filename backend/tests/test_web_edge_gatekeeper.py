"""
Edge gatekeeper middleware.

Requirements:
- HTML requests to protected paths without credential -> 302 to sign-in
  with `redirectedFrom`
- HTMX requests without credential -> 401 + HX-Redirect
- Signed-in callers on auth-only pages -> dashboard
- Excluded paths are never redirected
"""

import pytest

import main  # type: ignore
from utils.web import app_client


pytestmark = pytest.mark.anyio("asyncio")


@pytest.mark.anyio
async def test_protected_page_without_cookie_redirects_with_return_target(fake_api):
    async with app_client(main) as client:
        r = await client.get("/dashboard/users/buyer", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login?redirectedFrom=%2Fdashboard%2Fusers%2Fbuyer"
    assert r.headers["Cache-Control"] == "private, no-store"
    assert fake_api.calls == []


@pytest.mark.anyio
async def test_htmx_request_without_cookie_gets_hx_redirect():
    async with app_client(main) as client:
        r = await client.get("/dashboard", headers={"HX-Request": "true"}, follow_redirects=False)
    assert r.status_code == 401
    assert r.headers["HX-Redirect"] == "/login?redirectedFrom=%2Fdashboard"
    assert "HX-Request" in r.headers["Vary"]


@pytest.mark.anyio
@pytest.mark.parametrize("path", ["/login", "/register", "/verify-email?token=abcdefghijkl"])
async def test_auth_only_pages_redirect_signed_in_callers(path, fake_api):
    async with app_client(main) as client:
        client.cookies.set("auth_token", "anything")
        r = await client.get(path, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard"
    # The edge decides on cookie presence only.
    assert fake_api.calls == []


@pytest.mark.anyio
async def test_excluded_paths_pass_through():
    async with app_client(main) as client:
        health = await client.get("/health", follow_redirects=False)
        css = await client.get("/static/css/app.css", follow_redirects=False)
        missing = await client.get("/static/does-not-exist.css", follow_redirects=False)
    assert health.status_code == 200
    assert health.json() == {"status": "ok"}
    assert css.status_code == 200
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_root_redirects_to_dashboard_then_sign_in():
    async with app_client(main) as client:
        r = await client.get("/", follow_redirects=True)
    assert r.status_code == 200
    assert str(r.url).endswith("/login?redirectedFrom=%2Fdashboard")
    assert "Marketplace Admin Hub" in r.text
