"""
Route guard for role-restricted dashboard pages.

Why:
    Every protected page needs the same sequence: resolve identity, check the
    role against the authorization table, validate a role path parameter,
    and only then fetch role-scoped data. One guard parameterized by the
    required category replaces per-page copies of that check.

States:
    init -> resolving_identity -> identity_failed
                               -> checking_authorization -> unauthorized
                                                         -> invalid_parameter
                                                         -> authorized_loading_data -> authorized_ready

    `history` on the result records every state visited, in order.

Behavior:
    - identity_failed: no page content; `identity_failed_response` clears both
      credential copies and redirects to sign-in.
    - unauthorized: AccessDenied view, HTTP 403. The session is untouched and
      nothing redirects.
    - invalid_parameter: checked for authorized callers only, so a denied role
      learns nothing about valid parameters. InvalidRole view, HTTP 404.
    - authorized_*: `load()` runs only here. A 401 from it counts as an
      invalid session; any other API failure keeps the page authorized with
      `load_error` set so it can render an empty state plus a notification.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse, Response

from components import AccessDenied, Component, InvalidRole, LoadingIndicator
from identity_access.api_client import ApiError, UnauthorizedError
from identity_access.authz import can_access
from identity_access.domain import Role, RouteCategory, parse_role
from identity_access.gatekeeper import SIGN_IN_PATH, sign_in_location
from identity_access.models import Profile
from identity_access.resolver import SESSION_INVALID, UNAUTHENTICATED, ResolutionError


logger = logging.getLogger("marketadmin.web.guards")

Loader = Callable[[Profile, Optional[Role]], Awaitable[Any]]


class GuardState(str, Enum):
    INIT = "init"
    RESOLVING_IDENTITY = "resolving_identity"
    IDENTITY_FAILED = "identity_failed"
    CHECKING_AUTHORIZATION = "checking_authorization"
    AUTHORIZED_LOADING_DATA = "authorized_loading_data"
    AUTHORIZED_READY = "authorized_ready"
    UNAUTHORIZED = "unauthorized"
    INVALID_PARAMETER = "invalid_parameter"


@dataclass
class GuardResult:
    category: RouteCategory
    state: GuardState = GuardState.INIT
    identity: Optional[Profile] = None
    error: Optional[ResolutionError] = None
    role_param: Optional[str] = None
    role: Optional[Role] = None
    data: Any = None
    load_error: Optional[ApiError] = None
    history: List[GuardState] = field(default_factory=lambda: [GuardState.INIT])

    def _enter(self, state: GuardState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def authorized(self) -> bool:
        return self.state is GuardState.AUTHORIZED_READY


def _main():
    import main  # late import: main includes the routers that use this module

    return main


class RouteGuard:
    """Guard for one route category; `run` is called once per request."""

    def __init__(self, category: RouteCategory) -> None:
        self.category = category

    async def run(
        self,
        request: Request,
        role_param: Optional[str] = None,
        load: Optional[Loader] = None,
    ) -> GuardResult:
        result = GuardResult(category=self.category, role_param=role_param)

        result._enter(GuardState.RESOLVING_IDENTITY)
        resolution = await _main().get_session_resolver(request).resolve()
        if not resolution.ok:
            result.error = resolution.error
            result._enter(GuardState.IDENTITY_FAILED)
            return result
        result.identity = resolution.identity

        result._enter(GuardState.CHECKING_AUTHORIZATION)
        if not can_access(result.identity.role, self.category):
            logger.info(
                "Access denied: role=%s category=%s path=%s",
                result.identity.role.value,
                self.category.value,
                request.url.path,
            )
            result._enter(GuardState.UNAUTHORIZED)
            return result

        if role_param is not None:
            result.role = parse_role(role_param)
            if result.role is None:
                result._enter(GuardState.INVALID_PARAMETER)
                return result

        result._enter(GuardState.AUTHORIZED_LOADING_DATA)
        if load is not None:
            try:
                result.data = await load(result.identity, result.role)
            except UnauthorizedError as exc:
                result.error = ResolutionError(kind=SESSION_INVALID, message=exc.message, status_code=exc.status_code)
                result._enter(GuardState.IDENTITY_FAILED)
                return result
            except ApiError as exc:
                logger.warning(
                    "Page data load failed: %s status=%s path=%s",
                    exc.__class__.__name__,
                    exc.status_code,
                    request.url.path,
                )
                result.load_error = exc
        result._enter(GuardState.AUTHORIZED_READY)
        return result


def render_guard_view(result: GuardResult) -> Optional[Component]:
    """Return the component shown instead of the page body, or None when authorized."""
    if result.state is GuardState.UNAUTHORIZED:
        return AccessDenied()
    if result.state is GuardState.INVALID_PARAMETER:
        return InvalidRole(result.role_param)
    if result.state in (GuardState.INIT, GuardState.RESOLVING_IDENTITY, GuardState.AUTHORIZED_LOADING_DATA):
        return LoadingIndicator()
    return None


def guard_status_code(result: GuardResult) -> int:
    if result.state is GuardState.UNAUTHORIZED:
        return 403
    if result.state is GuardState.INVALID_PARAMETER:
        return 404
    return 200


def sign_in_redirect_target(request: Request, error: Optional[ResolutionError]) -> str:
    """Where an identity failure sends the browser.

    A missing credential returns the user to this page after sign-in; a
    rejected one shows the session-expired banner instead.
    """
    if error is not None and error.kind == UNAUTHENTICATED:
        return sign_in_location(request.url.path)
    return f"{SIGN_IN_PATH}?error=session_expired"


def session_invalid_response(request: Request, location: str) -> Response:
    """Clear both credential copies and send the browser to `location`.

    HTMX requests get 401 + HX-Redirect (a 302 would be followed inside the
    swap); full navigations get a 302.
    """
    mod = _main()
    headers = {"Cache-Control": "private, no-store"}
    if request.headers.get("HX-Request"):
        headers["HX-Redirect"] = location
        headers["Vary"] = "HX-Request"
        response: Response = Response(status_code=401, headers=headers)
    else:
        response = RedirectResponse(url=location, status_code=302, headers=headers)
    mod.clear_request_session(request, response)
    return response


def identity_failed_response(request: Request, result: GuardResult) -> Response:
    kind = result.error.kind if result.error else None
    logger.info("Identity failed (%s) on %s; clearing session", kind, request.url.path)
    return session_invalid_response(request, sign_in_redirect_target(request, result.error))


__all__ = [
    "GuardState",
    "GuardResult",
    "RouteGuard",
    "render_guard_view",
    "guard_status_code",
    "sign_in_redirect_target",
    "session_invalid_response",
    "identity_failed_response",
]
