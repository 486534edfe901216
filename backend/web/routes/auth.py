"""
Authentication-related FastAPI routes (router-only module).

Why:
    Keep sign-in, registration, email verification and logout in a dedicated
    router. Credential writes go through `main.start_session` and
    `main.clear_request_session` only, so the cookie and the credential store
    always change together.

Notes:
    - This module imports `main` inside functions to reuse the shared API
      client, credential store and settings (tests replace them per case).
    - Auth-only pages (`/login`, `/register`, `/verify-email`) are reached
      only without a credential cookie; the edge gatekeeper redirects
      signed-in callers to the dashboard.
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import ValidationError

from components import Alert, Layout, RegisterForm, SignInForm
from identity_access.api_client import ApiError
from identity_access.gatekeeper import LANDING_PATH, RETURN_TARGET_PARAM, is_protected_path
from identity_access.models import LoginForm, RegistrationForm, field_errors
from routes.security import _is_same_origin


auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("marketadmin.web.auth")

# Single source of truth for allowed in-app redirect paths
# Disallow double slashes and path traversal (".."), allow dots in names
INAPP_PATH_PATTERN = re.compile(r"^(?!.*//)(?!.*\.\.)/[A-Za-z0-9._\-/]*$")
MAX_INAPP_REDIRECT_LEN = 256
MIN_VERIFICATION_TOKEN_LEN = 10

_NO_STORE = {"Cache-Control": "private, no-store"}


def _main():
    import main

    return main


def _is_inapp_path(value: str) -> bool:
    """Return True if value is an absolute in-app path, e.g., "/", "/dashboard/users/buyer".

    Why:
        Prevent open redirect vulnerabilities by only allowing internal paths
        without scheme/host or query fragments.
    Examples (accepted):
        "/", "/dashboard", "/dashboard/users/admin"
    Examples (rejected):
        "dashboard" (not absolute), "https://evil.com", "//evil.com", "/a?b", "/a#b", "/.."
    """
    if not value or not isinstance(value, str):
        return False
    if len(value) > MAX_INAPP_REDIRECT_LEN:
        return False
    return bool(INAPP_PATH_PATTERN.match(value))


def safe_return_target(value: str | None) -> str:
    """Return `value` if it is a protected in-app path, else the landing page."""
    if value and _is_inapp_path(value) and is_protected_path(value):
        return value
    return LANDING_PATH


def _auth_page(request: Request, *, title: str, heading: str, body: str, status_code: int = 200) -> HTMLResponse:
    content = f"""
    <section class="auth-card">
        <h1 class="auth-title">{Layout.escape(heading)}</h1>
        {body}
    </section>"""
    layout = Layout(title=title, content=content, show_nav=False, current_path=request.url.path)
    return _main()._layout_response(request, layout, status_code=status_code, headers=_NO_STORE)


def _forbidden_origin() -> Response:
    return Response("Cross-origin form submission rejected.", status_code=403, headers=_NO_STORE)


def _login_banners(request: Request) -> str:
    params = request.query_params
    banners = []
    if params.get("registered") == "true":
        banners.append(
            Alert("Registration successful. Please check your email to verify your account, then sign in.", variant="success")
        )
    if params.get("error") == "session_expired":
        banners.append(Alert("Your session has expired. Please sign in again.", variant="warning"))
    if params.get("logged_out") == "1":
        banners.append(Alert("You have been signed out.", variant="info"))
    return "".join(b.render() for b in banners)


def _render_login(
    request: Request,
    *,
    email: str = "",
    error: str | None = None,
    redirected_from: str | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    form = SignInForm(email=email, error=error, redirected_from=redirected_from)
    return _auth_page(
        request,
        title="Sign in",
        heading="Marketplace Admin Hub",
        body=f"{_login_banners(request)}{form.render()}",
        status_code=status_code,
    )


def _api_error_status(exc: ApiError) -> int:
    # Upstream 4xx map to the same class here; transport failures are a bad gateway.
    if exc.status_code is not None and 400 <= exc.status_code < 500:
        return exc.status_code
    return 502


@auth_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request):
    """Render the sign-in form.

    Behavior:
        - Keeps `redirectedFrom` (validated again on submit).
        - Shows banners for `registered=true`, `error=session_expired` and
          `logged_out=1`.
    Permissions:
        Public (auth-only: signed-in callers never reach it).
    """
    redirected_from = request.query_params.get(RETURN_TARGET_PARAM)
    if redirected_from and not _is_inapp_path(redirected_from):
        redirected_from = None
    return _render_login(request, redirected_from=redirected_from)


@auth_router.post("/login", response_class=HTMLResponse)
async def login_submit(request: Request):
    """Exchange email/password for a session credential.

    Behavior:
        - Success: writes both credential copies and redirects (303) to a safe
          `redirectedFrom` path or `/dashboard`.
        - Failure: re-renders the form with the API message; no credential is
          written.
    Security:
        Same-origin check; passwords and tokens are never logged.
    """
    if not _is_same_origin(request):
        return _forbidden_origin()
    form = await request.form()
    email = str(form.get("email") or "").strip()
    redirected_from = str(form.get(RETURN_TARGET_PARAM) or "") or None
    try:
        credentials = LoginForm(email=email, password=str(form.get("password") or ""))
    except ValidationError:
        return _render_login(
            request,
            email=email,
            error="Please enter a valid email address and your password.",
            redirected_from=redirected_from,
            status_code=400,
        )

    mod = _main()
    try:
        result = await mod.API.login(credentials.email, credentials.password)
    except ApiError as exc:
        logger.info("Login failed: %s status=%s", exc.__class__.__name__, exc.status_code)
        return _render_login(
            request,
            email=email,
            error=exc.message,
            redirected_from=redirected_from,
            status_code=_api_error_status(exc),
        )

    target = safe_return_target(redirected_from)
    response = RedirectResponse(url=target, status_code=303, headers=_NO_STORE)
    mod.start_session(response, result.token)
    logger.info("Login succeeded; redirecting to %s", target)
    return response


@auth_router.get("/register", response_class=HTMLResponse)
async def register_page(request: Request):
    return _auth_page(request, title="Register", heading="Create Your Account", body=RegisterForm().render())


@auth_router.post("/register", response_class=HTMLResponse)
async def register_submit(request: Request):
    """Create an account through the API, then send the user to sign-in.

    Behavior:
        - Validation errors re-render the form (400) with per-field messages.
        - Only `manager` and `admin` can be chosen.
        - Success redirects (303) to `/login?registered=true`; no credential
          is written.
    """
    if not _is_same_origin(request):
        return _forbidden_origin()
    form = await request.form()
    values = {key: str(form.get(key) or "") for key in ("first_name", "last_name", "email", "password", "role")}
    shown = {k: v for k, v in values.items() if k != "password"}
    try:
        registration = RegistrationForm(**values)
    except ValidationError as exc:
        body = RegisterForm(values=shown, field_errors=field_errors(RegistrationForm, exc)).render()
        return _auth_page(request, title="Register", heading="Create Your Account", body=body, status_code=400)

    try:
        await _main().API.register(registration)
    except ApiError as exc:
        logger.info("Registration failed: %s status=%s", exc.__class__.__name__, exc.status_code)
        body = RegisterForm(values=shown, error=exc.message).render()
        return _auth_page(
            request, title="Register", heading="Create Your Account", body=body, status_code=_api_error_status(exc)
        )

    logger.info("Registration accepted for role=%s", registration.role.value)
    return RedirectResponse(url="/login?registered=true", status_code=303, headers=_NO_STORE)


@auth_router.get("/verify-email", response_class=HTMLResponse)
async def verify_email(request: Request, token: str | None = None):
    """Confirm an email address from the link sent at registration.

    Tokens shorter than 10 characters are rejected without calling the API.
    """
    sign_in_link = '<p><a class="btn btn-primary" href="/login">Go to sign in</a></p>'
    token = (token or "").strip()
    if len(token) < MIN_VERIFICATION_TOKEN_LEN:
        body = Alert("Invalid or missing verification token.", variant="error", title="Error").render()
        return _auth_page(request, title="Email Verification", heading="Email Verification", body=body + sign_in_link, status_code=400)

    try:
        message = await _main().API.verify_email(token)
    except ApiError as exc:
        logger.info("Email verification failed: %s status=%s", exc.__class__.__name__, exc.status_code)
        body = Alert(exc.message, variant="error", title="Error").render()
        return _auth_page(
            request,
            title="Email Verification",
            heading="Email Verification",
            body=body + sign_in_link,
            status_code=_api_error_status(exc),
        )
    body = Alert(message, variant="success", title="Success!").render()
    return _auth_page(request, title="Email Verification", heading="Email Verification", body=body + sign_in_link)


@auth_router.post("/logout")
async def logout(request: Request):
    """End the session.

    Behavior:
        - Tells the API (best-effort: failures are logged, never block).
        - Always clears both credential copies and redirects (303) to
          `/login?logged_out=1`.
    Security:
        Same-origin check; `Cache-Control: private, no-store`.
    """
    if not _is_same_origin(request):
        return _forbidden_origin()
    mod = _main()
    token = mod.request_token(request)
    if token and mod.CREDENTIAL_STORE.get(token) is not None:
        try:
            await mod.API.logout(token)
        except ApiError as exc:
            logger.warning("API logout failed: %s status=%s", exc.__class__.__name__, exc.status_code)
    response = RedirectResponse(url="/login?logged_out=1", status_code=303, headers=_NO_STORE)
    mod.clear_request_session(request, response)
    return response
