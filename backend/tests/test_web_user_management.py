"""
User-management pages (admin only): list, dialogs, create/update/delete.

Requirements:
- Denied roles never trigger a call to the user-listing endpoint
- Invalid role parameters render InvalidRole (404), distinct from 403
- Optimistic delete restores the exact previous list on failure and shows
  an error toast; the session stays intact
- A 401 from any admin call clears both credential copies
"""

import pytest

import main  # type: ignore
from identity_access.domain import Role
from utils.fake_api import user_payload
from utils.web import app_client, cleared_cookie, sign_in


pytestmark = pytest.mark.anyio("asyncio")

BUYERS = "/api/admin/buyer"
HX = {"HX-Request": "true"}


def _three_buyers(fake_api):
    fake_api.on(
        "GET",
        BUYERS,
        json=[
            user_payload("a", first="Anna"),
            user_payload("b", first="Ben"),
            user_payload("c", first="Cleo"),
        ],
    )


def _row_order(body: str, ids):
    positions = [body.find(f'id="user-row-{i}"') for i in ids]
    assert all(p >= 0 for p in positions), positions
    return positions == sorted(positions)


@pytest.mark.anyio
async def test_manager_is_denied_without_list_call(fake_api):
    _three_buyers(fake_api)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "manager")
        r = await client.get("/dashboard/users/buyer")
    assert r.status_code == 403
    assert "Access Denied" in r.text
    assert fake_api.count_prefix("GET", "/api/admin") == 0
    assert main.CREDENTIAL_STORE.get(token) is not None


@pytest.mark.anyio
async def test_invalid_role_is_404_for_admin_and_403_for_others(fake_api):
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        admin = await client.get("/dashboard/users/buyers")
        sign_in(client, main, fake_api, "seller", token="tok-2")
        seller = await client.get("/dashboard/users/buyers")
    assert admin.status_code == 404
    assert "Invalid role specified" in admin.text
    assert seller.status_code == 403
    assert "Invalid role specified" not in seller.text
    assert fake_api.count_prefix("GET", "/api/admin") == 0


@pytest.mark.anyio
async def test_admin_sees_list_and_page_load_refetches(fake_api):
    _three_buyers(fake_api)
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        first = await client.get("/dashboard/users/buyer")
        second = await client.get("/dashboard/users/buyer")
    assert first.status_code == 200
    assert _row_order(first.text, ["a", "b", "c"])
    assert "Add Buyer" in first.text
    assert second.status_code == 200
    assert fake_api.count("GET", BUYERS) == 2
    assert fake_api.requests[1].headers["Authorization"] == "Bearer tok-1"


@pytest.mark.anyio
async def test_list_failure_shows_empty_state_and_toast(fake_api):
    fake_api.on("GET", BUYERS, status=500)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer")
    assert r.status_code == 200
    assert "No buyers found." in r.text
    assert "Failed to load buyers: Request failed with status 500" in r.text
    assert main.CREDENTIAL_STORE.get(token) is not None


@pytest.mark.anyio
async def test_list_401_invalidates_session(fake_api):
    fake_api.on("GET", BUYERS, status=401)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login?error=session_expired"
    assert cleared_cookie(r)
    assert main.CREDENTIAL_STORE.get(token) is None


@pytest.mark.anyio
async def test_optimistic_delete_failure_restores_list(fake_api):
    _three_buyers(fake_api)
    fake_api.on("DELETE", f"{BUYERS}/b", status=500)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        await client.get("/dashboard/users/buyer")
        r = await client.post("/dashboard/users/buyer/b/delete", headers=HX)
    assert r.status_code == 200
    assert _row_order(r.text, ["a", "b", "c"])
    assert "Failed to delete buyer: Request failed with status 500" in r.text
    assert main.USER_LISTS.get(token, Role.BUYER).ids() == ["a", "b", "c"]
    assert main.CREDENTIAL_STORE.get(token) is not None
    assert "set-cookie" not in r.headers


@pytest.mark.anyio
async def test_delete_success_removes_row(fake_api):
    _three_buyers(fake_api)
    fake_api.on("DELETE", f"{BUYERS}/b", status=204)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        await client.get("/dashboard/users/buyer")
        r = await client.post("/dashboard/users/buyer/b/delete", headers=HX)
    assert r.status_code == 200
    assert 'id="user-row-b"' not in r.text
    assert "Buyer deleted successfully." in r.text
    assert main.USER_LISTS.get(token, Role.BUYER).ids() == ["a", "c"]
    # The mutation works on the page's view; no extra list fetch.
    assert fake_api.count("GET", BUYERS) == 1


@pytest.mark.anyio
async def test_delete_401_invalidates_session(fake_api):
    _three_buyers(fake_api)
    fake_api.on("DELETE", f"{BUYERS}/b", status=401)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        await client.get("/dashboard/users/buyer")
        r = await client.post("/dashboard/users/buyer/b/delete", headers=HX)
    assert r.status_code == 401
    assert r.headers["HX-Redirect"] == "/login?error=session_expired"
    assert main.CREDENTIAL_STORE.get(token) is None
    assert main.USER_LISTS.get(token, Role.BUYER) is None


@pytest.mark.anyio
async def test_delete_rejects_cross_origin(fake_api):
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.post("/dashboard/users/buyer/b/delete", headers={"Origin": "http://evil.example"})
    assert r.status_code == 403
    assert fake_api.calls == []


@pytest.mark.anyio
async def test_new_dialog_is_swapped_into_dialog_slot(fake_api):
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/seller/new", headers=HX)
    assert r.status_code == 200
    assert r.text.lstrip().startswith("<dialog")
    assert 'hx-post="/dashboard/users/seller"' in r.text
    assert r.headers["HX-Retarget"] == "#dialog-slot"
    assert fake_api.count_prefix("GET", "/api/admin") == 0


@pytest.mark.anyio
async def test_create_validation_error_rerenders_dialog(fake_api):
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        fake_api.on("GET", "/api/admin/seller", json=[])
        r = await client.post(
            "/dashboard/users/seller",
            data={"first_name": "S", "last_name": "Seller", "email": "sam@shop.io", "password": "secret1"},
            headers=HX,
        )
    assert r.status_code == 400
    assert r.headers["HX-Retarget"] == "#dialog-slot"
    assert "Must be at least 2 characters" in r.text
    assert "secret1" not in r.text
    assert fake_api.count("POST", "/api/admin/seller") == 0


@pytest.mark.anyio
async def test_create_success_appends_user(fake_api):
    fake_api.on("GET", "/api/admin/seller", json=[user_payload("s1", "seller", first="Sue")])
    fake_api.on("POST", "/api/admin/seller", status=201, json={"user": user_payload("s2", "seller", first="Sam")})
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        r = await client.post(
            "/dashboard/users/seller",
            data={"first_name": "Sam", "last_name": "Seller", "email": "sam@shop.io", "password": "secret1"},
            headers=HX,
        )
    assert r.status_code == 200
    assert "Seller created successfully." in r.text
    assert _row_order(r.text, ["s1", "s2"])
    assert fake_api.last_json("POST", "/api/admin/seller")["role"] == "seller"
    assert main.USER_LISTS.get(token, Role.SELLER).ids() == ["s1", "s2"]


@pytest.mark.anyio
async def test_create_api_error_keeps_dialog_open(fake_api):
    fake_api.on("GET", "/api/admin/seller", json=[])
    fake_api.on("POST", "/api/admin/seller", status=409, json={"message": "Email already in use"})
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        r = await client.post(
            "/dashboard/users/seller",
            data={"first_name": "Sam", "last_name": "Seller", "email": "sam@shop.io", "password": "secret1"},
            headers=HX,
        )
    assert r.status_code == 400
    assert "Email already in use" in r.text
    assert 'value="sam@shop.io"' in r.text
    assert main.CREDENTIAL_STORE.get(token) is not None


@pytest.mark.anyio
async def test_edit_dialog_is_prefilled(fake_api):
    fake_api.on("GET", f"{BUYERS}/b", json=user_payload("b", first="Ben"))
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer/b/edit", headers=HX)
    assert r.status_code == 200
    assert "Edit Buyer" in r.text
    assert 'value="Ben"' in r.text
    assert 'hx-post="/dashboard/users/buyer/b"' in r.text


@pytest.mark.anyio
async def test_edit_dialog_for_missing_user_is_404(fake_api):
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer/zz/edit")
    assert r.status_code == 404
    assert "Buyer not found." in r.text


@pytest.mark.anyio
async def test_update_success_replaces_in_place(fake_api):
    _three_buyers(fake_api)
    fake_api.on("PUT", f"{BUYERS}/b", json=user_payload("b", first="Bernd"))
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        await client.get("/dashboard/users/buyer")
        r = await client.post(
            "/dashboard/users/buyer/b",
            data={"first_name": "Bernd", "last_name": "Buyer", "email": "b@example.com", "password": ""},
            headers=HX,
        )
    assert r.status_code == 200
    assert "Buyer updated successfully." in r.text
    assert _row_order(r.text, ["a", "b", "c"])
    assert "Bernd Buyer" in r.text
    assert "password" not in fake_api.last_json("PUT", f"{BUYERS}/b")
    assert main.USER_LISTS.get(token, Role.BUYER).users[1].first_name == "Bernd"


@pytest.mark.anyio
async def test_search_filters_by_name_or_email_case_insensitively(fake_api):
    _three_buyers(fake_api)
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        by_name = await client.get("/dashboard/users/buyer", params={"q": "AN"})
        by_email = await client.get("/dashboard/users/buyer", params={"q": "b@Example"}, headers=HX)
    assert by_name.status_code == 200
    assert 'id="user-row-a"' in by_name.text
    assert 'id="user-row-b"' not in by_name.text and 'id="user-row-c"' not in by_name.text
    assert 'name="q" value="AN"' in by_name.text
    assert 'hx-select="#user-results"' in by_name.text
    assert 'id="user-row-b"' in by_email.text
    assert 'id="user-row-a"' not in by_email.text
    # The view keeps every user; only the rendering is filtered.
    assert main.USER_LISTS.get("tok-1", Role.BUYER).ids() == ["a", "b", "c"]


@pytest.mark.anyio
async def test_search_without_matches_offers_clear_link(fake_api):
    _three_buyers(fake_api)
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer", params={"q": "<zz>"})
    assert r.status_code == 200
    assert "No results found" in r.text
    assert "Your search for &quot;&lt;zz&gt;&quot; did not match any buyers." in r.text
    assert 'href="/dashboard/users/buyer" hx-get="/dashboard/users/buyer"' in r.text
    assert "No buyers found." not in r.text


@pytest.mark.anyio
async def test_search_box_hidden_for_empty_role(fake_api):
    fake_api.on("GET", BUYERS, json=[])
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer", params={"q": "ann"})
    assert "No buyers found." in r.text
    assert 'type="search"' not in r.text


@pytest.mark.anyio
async def test_delete_keeps_encoded_id_inside_the_path(fake_api):
    _three_buyers(fake_api)
    fake_api.on("DELETE", f"{BUYERS}/x?force=true", status=204)
    async with app_client(main) as client:
        sign_in(client, main, fake_api, "admin")
        r = await client.post("/dashboard/users/buyer/x%3Fforce%3Dtrue/delete", headers=HX)
    assert r.status_code == 200
    deletes = [req for req in fake_api.requests if req.method == "DELETE"]
    assert len(deletes) == 1
    assert deletes[0].url.raw_path == b"/api/admin/buyer/x%3Fforce%3Dtrue"
    assert deletes[0].url.query == b""


@pytest.mark.anyio
@pytest.mark.parametrize("upstream,expected", [(403, 403), (500, 502)])
async def test_edit_lookup_failure_keeps_client_error_status(fake_api, upstream, expected):
    fake_api.on("GET", f"{BUYERS}/b", status=upstream)
    async with app_client(main) as client:
        token = sign_in(client, main, fake_api, "admin")
        r = await client.get("/dashboard/users/buyer/b/edit", headers=HX)
    assert r.status_code == expected
    assert r.headers["HX-Retarget"] == "#dialog-slot"
    assert main.CREDENTIAL_STORE.get(token) is not None
