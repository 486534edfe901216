"""
User-management pages: list, create, edit and delete users of one role.

Why:
    Admins manage buyers, sellers, managers and admins through the external
    API. Every handler runs the user-management route guard first, so role
    data is never requested for a caller who may not see it.

Behavior:
    - The list is fetched only after authorization and kept as a per-session
      `UserListView`; mutations change that view.
    - Delete is optimistic: the row disappears first and comes back exactly
      as before if the API call fails (error toast, session untouched).
    - Create/update upsert the returned user into the view.
    - A 401 from any API call here means the session is invalid: both
      credential copies are cleared and the browser goes to sign-in.

Permissions:
    Role `admin` only (authorization table, category user-management).
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, Response
from pydantic import ValidationError

from components import Alert, Layout, Toast, UserFormDialog, UserTable
from guards import GuardResult, RouteGuard, session_invalid_response
from identity_access.api_client import ApiError, UnauthorizedError
from identity_access.authz import entity_label
from identity_access.domain import Role, RouteCategory
from identity_access.models import ManagedUser, Profile, UserCreate, UserUpdate, field_errors
from routes.security import _is_same_origin
from user_lists import UserListView


users_router = APIRouter(tags=["Users"])  # explicit paths below
logger = logging.getLogger("marketadmin.web.users")

USERS_GUARD = RouteGuard(RouteCategory.USER_MANAGEMENT)
SESSION_EXPIRED_LOCATION = "/login?error=session_expired"
FORM_FIELDS = ("first_name", "last_name", "email", "password")


def _main():
    import main

    return main


def _private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}


def _singular(role: Role) -> str:
    return entity_label(role)[:-1]


def _view_loader(token: Optional[str], *, refresh: bool = False):
    """Loader for the guard: the session's cached view.

    Page loads pass `refresh=True` and always refetch; mutations reuse the
    view the page was rendered from and fetch only if it is gone.
    """

    async def load(identity: Profile, role: Optional[Role]) -> UserListView:
        mod = _main()
        view = None if refresh else mod.USER_LISTS.get(token, role)
        if view is None:
            view = mod.USER_LISTS.put(token, role, await mod.API.list_users(token, role))
        return view

    return load


def _list_response(request: Request, result: GuardResult, toasts: Sequence[Toast] = (), *, query: str = "") -> Response:
    view: Optional[UserListView] = result.data
    users = view.matching(query) if view is not None else []
    total = len(view.users) if view is not None else 0
    content = UserTable(result.role, users, query=query, total=total).render() if result.role else ""
    title = entity_label(result.role) if result.role else "Users"
    return _main().guarded_page_response(request, result, title=title, content=content, toasts=toasts)


def _error_status(exc: ApiError) -> int:
    # Upstream 4xx keep their status; server and transport failures are a bad gateway.
    if exc.status_code is not None and 400 <= exc.status_code < 500:
        return exc.status_code
    return 502


def _load_failed_toast(result: GuardResult) -> Toast:
    return Toast(f"Failed to load {entity_label(result.role).lower()}: {result.load_error.message}", variant="error")


def _dialog_response(
    request: Request,
    result: GuardResult,
    dialog: UserFormDialog,
    *,
    status_code: int = 200,
) -> Response:
    """HTMX gets the dialog alone for `#dialog-slot`; full navigations get the page."""
    headers = _private_no_store()
    if request.headers.get("HX-Request"):
        headers["HX-Retarget"] = "#dialog-slot"
        headers["HX-Reswap"] = "innerHTML"
        return HTMLResponse(dialog.render(), status_code=status_code, headers=headers)
    layout = Layout(
        title=entity_label(result.role),
        content=dialog.render(),
        user=result.identity,
        current_path=request.url.path,
    )
    return _main()._layout_response(request, layout, status_code=status_code, headers=headers)


async def _guarded(request: Request, role: str, *, with_list: bool = True, refresh: bool = False) -> GuardResult:
    token = _main().request_token(request)
    load = _view_loader(token, refresh=refresh) if with_list else None
    return await USERS_GUARD.run(request, role_param=role, load=load)


def _form_values(form) -> Dict[str, str]:
    return {key: str(form.get(key) or "") for key in FORM_FIELDS}


def _forbidden_origin() -> Response:
    return Response("Cross-origin form submission rejected.", status_code=403, headers=_private_no_store())


@users_router.get("/dashboard/users/{role}", response_class=HTMLResponse)
async def users_list(request: Request, role: str, q: str = ""):
    """List users of one role, optionally filtered by `q`.

    Behavior:
        - `q` matches first name, last name or email, case-insensitively.
        - Unknown role -> InvalidRole (404); non-admin -> AccessDenied (403).
        - A failed list call renders the empty state plus an error toast.
    """
    result = await _guarded(request, role, refresh=True)
    toasts = []
    if result.authorized and result.load_error is not None:
        toasts.append(_load_failed_toast(result))
    return _list_response(request, result, toasts, query=q)


@users_router.get("/dashboard/users/{role}/new", response_class=HTMLResponse)
async def users_new(request: Request, role: str):
    result = await _guarded(request, role, with_list=False)
    if not result.authorized:
        return _main().guarded_page_response(request, result, title="Users")
    return _dialog_response(request, result, UserFormDialog(result.role))


@users_router.get("/dashboard/users/{role}/{user_id}/edit", response_class=HTMLResponse)
async def users_edit(request: Request, role: str, user_id: str):
    """Edit dialog, prefilled from a fresh `GET /api/admin/{role}/{id}`."""
    mod = _main()
    token = mod.request_token(request)

    async def load(identity: Profile, parsed: Optional[Role]) -> Optional[ManagedUser]:
        return await mod.API.get_user(token, parsed, user_id)

    result = await USERS_GUARD.run(request, role_param=role, load=load)
    if not result.authorized:
        return mod.guarded_page_response(request, result, title="Users")
    if result.data is None:
        # Not found, or the lookup itself failed; the session is still valid.
        message = result.load_error.message if result.load_error else f"{_singular(result.role)} not found."
        status_code = 404 if result.load_error is None else _error_status(result.load_error)
        alert = Alert(message, variant="error").render()
        if request.headers.get("HX-Request"):
            headers = {**_private_no_store(), "HX-Retarget": "#dialog-slot", "HX-Reswap": "innerHTML"}
            return HTMLResponse(alert, status_code=status_code, headers=headers)
        return mod.guarded_page_response(
            request, result, title=entity_label(result.role), content=alert, status_code=status_code
        )
    return _dialog_response(request, result, UserFormDialog(result.role, user=result.data))


@users_router.post("/dashboard/users/{role}", response_class=HTMLResponse)
async def users_create(request: Request, role: str):
    """Create a user; validation errors re-render the dialog (400)."""
    if not _is_same_origin(request):
        return _forbidden_origin()
    result = await _guarded(request, role)
    if not result.authorized:
        return _main().guarded_page_response(request, result, title="Users")
    if result.load_error is not None:
        return _list_response(request, result, [_load_failed_toast(result)])

    values = _form_values(await request.form())
    shown = {k: v for k, v in values.items() if k != "password"}
    try:
        payload = UserCreate(**values)
    except ValidationError as exc:
        dialog = UserFormDialog(result.role, values=shown, field_errors=field_errors(UserCreate, exc))
        return _dialog_response(request, result, dialog, status_code=400)

    mod = _main()
    token = mod.request_token(request)
    try:
        created = await mod.API.create_user(token, result.role, payload)
    except UnauthorizedError:
        return session_invalid_response(request, SESSION_EXPIRED_LOCATION)
    except ApiError as exc:
        logger.warning("Create user failed: %s status=%s role=%s", exc.__class__.__name__, exc.status_code, result.role.value)
        dialog = UserFormDialog(result.role, values=shown, error=exc.message)
        return _dialog_response(request, result, dialog, status_code=400)

    result.data.upsert(created)
    logger.info("User created: role=%s id=%s", result.role.value, created.id)
    return _list_response(request, result, [Toast(f"{_singular(result.role)} created successfully.", variant="success")])


@users_router.post("/dashboard/users/{role}/{user_id}", response_class=HTMLResponse)
async def users_update(request: Request, role: str, user_id: str):
    """Update a user; a blank password keeps the current one."""
    if not _is_same_origin(request):
        return _forbidden_origin()
    result = await _guarded(request, role)
    if not result.authorized:
        return _main().guarded_page_response(request, result, title="Users")
    if result.load_error is not None:
        return _list_response(request, result, [_load_failed_toast(result)])

    existing = next((u for u in result.data.users if u.id == user_id), None)
    values = _form_values(await request.form())
    shown = {k: v for k, v in values.items() if k != "password"}
    try:
        payload = UserUpdate(**values)
    except ValidationError as exc:
        dialog = UserFormDialog(
            result.role, user=existing, user_id=user_id, values=shown, field_errors=field_errors(UserUpdate, exc)
        )
        return _dialog_response(request, result, dialog, status_code=400)

    mod = _main()
    token = mod.request_token(request)
    try:
        updated = await mod.API.update_user(token, result.role, user_id, payload)
    except UnauthorizedError:
        return session_invalid_response(request, SESSION_EXPIRED_LOCATION)
    except ApiError as exc:
        logger.warning("Update user failed: %s status=%s role=%s", exc.__class__.__name__, exc.status_code, result.role.value)
        dialog = UserFormDialog(result.role, user=existing, user_id=user_id, values=shown, error=exc.message)
        return _dialog_response(request, result, dialog, status_code=400)

    result.data.upsert(updated)
    logger.info("User updated: role=%s id=%s", result.role.value, updated.id)
    return _list_response(request, result, [Toast(f"{_singular(result.role)} updated successfully.", variant="success")])


@users_router.post("/dashboard/users/{role}/{user_id}/delete", response_class=HTMLResponse)
async def users_delete(request: Request, role: str, user_id: str):
    """Optimistic delete with full-snapshot rollback.

    Behavior:
        - The row is removed from the view before the API call.
        - API failure: the previous list is restored verbatim and an error
          toast is shown. The session stays intact.
        - 401: session invalid (both copies cleared, redirect to sign-in).
    """
    if not _is_same_origin(request):
        return _forbidden_origin()
    result = await _guarded(request, role)
    if not result.authorized:
        return _main().guarded_page_response(request, result, title="Users")
    if result.load_error is not None:
        return _list_response(request, result, [_load_failed_toast(result)])

    mod = _main()
    token = mod.request_token(request)
    view: UserListView = result.data
    try:
        await view.delete(user_id, lambda: mod.API.delete_user(token, result.role, user_id))
    except UnauthorizedError:
        return session_invalid_response(request, SESSION_EXPIRED_LOCATION)
    except ApiError as exc:
        logger.warning("Delete user failed: %s status=%s role=%s", exc.__class__.__name__, exc.status_code, result.role.value)
        toast = Toast(f"Failed to delete {_singular(result.role).lower()}: {exc.message}", variant="error")
        return _list_response(request, result, [toast])

    logger.info("User deleted: role=%s id=%s", result.role.value, user_id)
    return _list_response(request, result, [Toast(f"{_singular(result.role)} deleted successfully.", variant="success")])
