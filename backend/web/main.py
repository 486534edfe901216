"Marketplace admin"
from __future__ import annotations

from pathlib import Path
import os
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse, JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from components import Alert, Component, Layout, ProfilePanel, SectionCardGrid, Toast
from identity_access.api_client import MarketplaceApi
from identity_access.authz import nav_sections
from identity_access.domain import Role, RouteCategory
from identity_access.gatekeeper import Redirect, decide_edge_action, is_excluded_path
from identity_access.models import Profile
from identity_access.resolver import SessionResolver
from identity_access.stores import CredentialStore

import config
from auth_utils import AUTH_COOKIE_NAME, clear_session, set_session
from guards import GuardResult, GuardState, RouteGuard, guard_status_code, identity_failed_response, render_guard_view
from user_lists import UserListCache


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via MARKET_ENABLE_DOTENV (default true outside
      pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("MARKET_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
config.ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------


class AuthSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return config.current_environment()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logger = logging.getLogger("marketadmin.web")
gate_logger = logging.getLogger("marketadmin.gatekeeper")
SETTINGS = AuthSettings()

app = FastAPI(title="Marketplace Admin", description="Marketplace administration dashboard", version="0.1.0")

# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

# --- Session state ---------------------------------------------------------------

CREDENTIAL_STORE = CredentialStore()
API = MarketplaceApi(config.api_base_url(), timeout=config.api_timeout())
USER_LISTS = UserListCache()


def get_session_resolver(request: Request) -> SessionResolver:
    """Return the request's single SessionResolver, creating it on first use.

    Layout chrome, the route guard and the page body all share it, so the
    profile endpoint is called at most once per request.
    """
    resolver = getattr(request.state, "session_resolver", None)
    if resolver is None:
        resolver = SessionResolver(CREDENTIAL_STORE, API, request.cookies.get(AUTH_COOKIE_NAME))
        request.state.session_resolver = resolver
    return resolver


def request_token(request: Request) -> Optional[str]:
    return request.cookies.get(AUTH_COOKIE_NAME) or None


def start_session(response: Response, token: str) -> None:
    set_session(response, CREDENTIAL_STORE, token, environment=SETTINGS.environment)


def clear_request_session(request: Request, response: Response) -> None:
    """Drop the caller's cookie and store copies plus any cached user lists."""
    token = request_token(request)
    USER_LISTS.drop_session(token)
    clear_session(response, CREDENTIAL_STORE, token, environment=SETTINGS.environment)


# --- Edge Gatekeeper --------------------------------------------------------------


@app.middleware("http")
async def edge_gatekeeper(request: Request, call_next):
    """Redirect by credential presence only; identity is resolved later, per page."""
    path = request.url.path
    if is_excluded_path(path):
        return await call_next(request)

    decision = decide_edge_action(path, bool(request.cookies.get(AUTH_COOKIE_NAME)))
    if isinstance(decision, Redirect):
        gate_logger.info("Edge redirect: path=%s location=%s", path, decision.location)
        headers = {"Cache-Control": "private, no-store", "Vary": "HX-Request"}
        if "HX-Request" in request.headers:
            headers["HX-Redirect"] = decision.location
            return Response(status_code=401, headers=headers)
        return RedirectResponse(url=decision.location, status_code=302, headers=headers)

    try:
        return await call_next(request)
    finally:
        # The page view is over; a profile result still in flight is discarded.
        resolver = getattr(request.state, "session_resolver", None)
        if resolver is not None:
            resolver.close()


# --- Security Headers Middleware ----------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.environment == "prod":
        # Harden CSP in production: avoid 'unsafe-inline' to reduce XSS surface.
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; frame-ancestors 'self';"
        )
    else:
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; frame-ancestors 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    # Origin/Referer fallback in the same-origin check needs the origin on cross-site requests.
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if SETTINGS.environment == "prod":
        response.headers.setdefault("Cross-Origin-Opener-Policy", "same-origin")
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


from routes.auth import auth_router
from routes.users import users_router

app.include_router(auth_router)
app.include_router(users_router)


# --- Rendering helpers ----------------------------------------------------------


def _layout_response(
    request: Request,
    layout: Layout,
    *,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    """Render Layout with HTMX-aware semantics and return an HTMLResponse.

    Why:
        Centralises the rule that HTMX navigation must only receive the main
        fragment plus a single out-of-band sidebar to keep the toggle JS happy.
    Parameters:
        request: FastAPI request carrying headers such as `HX-Request`.
        layout: Prepared Layout component with page title, content and user.
        status_code: HTTP status code for the response (defaults to 200).
        headers: Optional header overrides (e.g., `HX-Retarget`).
    Behavior:
        - Returns the fragment/OOB combination when `HX-Request` is present.
        - Otherwise renders the complete document including `<head>` and
          navigation.
        - Pages showing a resolved identity are `private, no-store`.
    Permissions:
        None. Individual route handlers must run their guard before calling
        this helper.
    """
    if request.headers.get("HX-Request"):
        body = layout.render_fragment()
    else:
        body = layout.render()
    response = HTMLResponse(content=body, status_code=status_code)
    if layout.user is not None and not (headers and "Cache-Control" in headers):
        response.headers["Cache-Control"] = "private, no-store"
    if headers:
        for key, value in headers.items():
            response.headers[key] = value
    return response


def guarded_page_response(
    request: Request,
    result: GuardResult,
    *,
    title: str,
    content: str = "",
    toasts: Sequence[Toast] = (),
    status_code: Optional[int] = None,
) -> Response:
    """Turn a finished guard run into a response.

    identity_failed -> session cleared + redirect; unauthorized/invalid
    parameter -> their view with 403/404; authorized -> `content`.
    """
    if result.state is GuardState.IDENTITY_FAILED:
        return identity_failed_response(request, result)
    view = render_guard_view(result)
    if view is not None:
        content = view.render()
        title = "Access Denied" if result.state is GuardState.UNAUTHORIZED else title
    layout = Layout(
        title=title,
        content=content,
        user=result.identity,
        current_path=request.url.path,
        toasts=toasts,
    )
    headers = {"Cache-Control": "private, no-store"}
    if status_code is None:
        status_code = guard_status_code(result)
    return _layout_response(request, layout, status_code=status_code, headers=headers)


def _page_header(title: str, subtitle: str) -> str:
    return (
        '<header class="page-header">'
        f"<h1>{Component.escape(title)}</h1>"
        f'<p class="page-subtitle text-muted">{Component.escape(subtitle)}</p>'
        "</header>"
    )


def dashboard_heading(profile: Profile) -> tuple[str, str]:
    """Role-aware title and subtitle for the dashboard landing page."""
    if profile.role is Role.ADMIN:
        return "Dashboard", "Manage platform users and their roles from here."
    if profile.role is Role.MANAGER:
        return "Manager Dashboard", "Oversee market operations, listings, and related activities."
    return (
        "Dashboard",
        "You have access to the platform. Specific dashboard features for your role may be limited or under development.",
    )


# --- Pages ----------------------------------------------------------------------

OWN_PROFILE_GUARD = RouteGuard(RouteCategory.OWN_PROFILE)
MARKETS_GUARD = RouteGuard(RouteCategory.MARKET_MANAGEMENT)


@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"})


@app.get("/")
async def home():
    return RedirectResponse(url="/dashboard", status_code=302)


@app.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request):
    result = await OWN_PROFILE_GUARD.run(request)
    content = ""
    if result.authorized:
        title, subtitle = dashboard_heading(result.identity)
        welcome = Alert(f"Welcome, {result.identity.display_name}.", variant="info").render()
        content = f"{_page_header(title, subtitle)}{welcome}{SectionCardGrid(nav_sections(result.identity.role)).render()}"
    return guarded_page_response(request, result, title="Dashboard", content=content)


@app.get("/dashboard/profile", response_class=HTMLResponse)
async def dashboard_profile(request: Request):
    result = await OWN_PROFILE_GUARD.run(request)
    content = ""
    if result.authorized:
        content = f"{_page_header('My Profile', 'View your personal details below.')}{ProfilePanel(result.identity).render()}"
    return guarded_page_response(request, result, title="Profile", content=content)


@app.get("/dashboard/markets", response_class=HTMLResponse)
async def dashboard_markets(request: Request):
    result = await MARKETS_GUARD.run(request)
    content = ""
    if result.authorized:
        content = f"""
        {_page_header('Markets Overview', 'View, add, edit or remove markets. This section is under development.')}
        <section class="surface-panel empty-state">
            <p class="empty-state__title">Market management is under construction.</p>
            <p class="text-muted">Check back soon for market management tools.</p>
        </section>"""
    return guarded_page_response(request, result, title="Markets", content=content)


__all__ = [
    "app",
    "SETTINGS",
    "CREDENTIAL_STORE",
    "API",
    "USER_LISTS",
    "get_session_resolver",
    "request_token",
    "start_session",
    "clear_request_session",
    "guarded_page_response",
]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=config.current_environment() == "dev")
