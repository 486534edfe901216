"""
Client for the external marketplace REST API (auth + admin endpoints).

Why: Keep HTTP details (paths, bearer header, response shapes) out of the web
adapter. Route handlers call typed coroutines and handle `ApiError`s; they
never see raw JSON.

Design:
- One short-lived `httpx.AsyncClient` per call; `transport` can be injected
  (tests use `httpx.MockTransport`).
- Response shapes that vary (`User[]` vs `{users: [...]}`, `User` vs
  `{user: ...}`, payloads wrapped in `data`) are normalized once by the
  decoders below.
- Nothing is retried. Callers decide what a failure means.

Security: Tokens and passwords are never logged.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .domain import Role
from .models import (
    LoginResult,
    ManagedUser,
    Profile,
    RegistrationForm,
    UserCreate,
    UserUpdate,
    to_api_payload,
)


logger = logging.getLogger("marketadmin.identity_access.api")

AUTH_BASE = "/api/auth"
ADMIN_BASE = "/api/admin"


class ApiError(Exception):
    """Raised for any failed API call.

    `status_code` is None when the request never produced a response
    (connection refused, timeout).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class MalformedResponseError(ApiError):
    pass


_DEFAULT_MESSAGES = {
    401: "Unauthorized. Please log in again.",
    403: "Forbidden. You do not have permission to perform this action.",
}

_ERRORS_BY_STATUS = {401: UnauthorizedError, 403: ForbiddenError, 404: NotFoundError}


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    body = _json_or_none(response)
    message = body.get("message") if isinstance(body, dict) else None
    status = response.status_code
    if not message:
        message = _DEFAULT_MESSAGES.get(status, f"Request failed with status {status}")
    cls = _ERRORS_BY_STATUS.get(status, ApiError)
    raise cls(str(message), status_code=status)


def _unwrap(response: httpx.Response) -> Any:
    """Return the success body; 204 yields an empty dict, `{data: ...}` is unwrapped."""
    if response.status_code == 204:
        return {}
    body = _json_or_none(response)
    if body is None:
        raise MalformedResponseError("Response body is not valid JSON.", status_code=response.status_code)
    if isinstance(body, dict) and "data" in body and body["data"] is not None:
        return body["data"]
    return body


def decode_user(payload: Any) -> ManagedUser:
    """Accept `User` or `{user: User}` and return a ManagedUser."""
    if isinstance(payload, dict) and isinstance(payload.get("user"), dict):
        payload = payload["user"]
    if not isinstance(payload, dict):
        raise MalformedResponseError("User payload has an unexpected shape.")
    try:
        return ManagedUser.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError("User payload failed validation.") from exc


def decode_user_list(payload: Any) -> list[ManagedUser]:
    """Accept `User[]` or `{users: User[]}`; a dict without `users` is an empty list."""
    if isinstance(payload, dict):
        payload = payload.get("users") or []
    if not isinstance(payload, list):
        raise MalformedResponseError("User list payload has an unexpected shape.")
    return [decode_user(item) for item in payload]


def decode_profile(payload: Any) -> Profile:
    profile = payload.get("profile") if isinstance(payload, dict) else None
    if not isinstance(profile, dict):
        raise MalformedResponseError("Profile data not found in API response.")
    try:
        return Profile.model_validate(profile)
    except ValidationError as exc:
        raise MalformedResponseError("Profile payload failed validation.") from exc


def _user_path(role: Role, user_id: str) -> str:
    # Ids come from route path parameters; encode them as one opaque segment.
    return f"{ADMIN_BASE}/{role.value}/{quote(str(user_id), safe='')}"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class MarketplaceApi:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    async def _request(self, method: str, path: str, *, token: str | None = None, json: Any = None) -> httpx.Response:
        headers = _bearer(token) if token else {}
        try:
            async with self._client() as client:
                response = await client.request(method, path, headers=headers, json=json)
        except httpx.HTTPError as exc:
            logger.warning("API %s %s failed: %s", method, path, exc.__class__.__name__)
            raise ApiError("The marketplace API is unreachable. Please try again later.") from exc
        if not response.is_success:
            logger.warning("API %s %s returned %s", method, path, response.status_code)
        return response

    # --- auth ---------------------------------------------------------------

    async def register(self, form: RegistrationForm) -> str:
        r = await self._request("POST", f"{AUTH_BASE}/register", json=to_api_payload(form))
        _raise_for_status(r)
        body = _unwrap(r)
        message = body.get("message") if isinstance(body, dict) else None
        return message or "Registration successful. Please check your email to verify your account."

    async def login(self, email: str, password: str) -> LoginResult:
        r = await self._request("POST", f"{AUTH_BASE}/login", json={"email": email, "password": password})
        _raise_for_status(r)
        body = _unwrap(r)
        if not isinstance(body, dict) or not body.get("token"):
            raise MalformedResponseError("Login successful but no token received from API.", status_code=r.status_code)
        result = {"token": str(body["token"]), "message": body.get("message") or "Login successful."}
        try:
            return LoginResult.model_validate({**result, "profile": body.get("profile") or None})
        except ValidationError:
            # The profile is optional and resolved per request anyway.
            logger.warning("Login profile failed validation; ignoring it")
        try:
            return LoginResult.model_validate(result)
        except ValidationError as exc:
            raise MalformedResponseError("Login payload failed validation.") from exc

    async def logout(self, token: str) -> None:
        r = await self._request("POST", f"{AUTH_BASE}/logout", token=token)
        _raise_for_status(r)

    async def get_profile(self, token: str) -> Profile:
        r = await self._request("GET", f"{AUTH_BASE}/profile", token=token)
        _raise_for_status(r)
        return decode_profile(_unwrap(r))

    async def verify_email(self, verification_token: str) -> str:
        r = await self._request("POST", f"{AUTH_BASE}/verify-email", json={"token": verification_token})
        _raise_for_status(r)
        body = _unwrap(r)
        message = body.get("message") if isinstance(body, dict) else None
        return message or "Email verification successful."

    # --- admin --------------------------------------------------------------

    async def list_users(self, token: str, role: Role) -> list[ManagedUser]:
        r = await self._request("GET", f"{ADMIN_BASE}/{role.value}", token=token)
        _raise_for_status(r)
        return decode_user_list(_unwrap(r))

    async def get_user(self, token: str, role: Role, user_id: str) -> Optional[ManagedUser]:
        r = await self._request("GET", _user_path(role, user_id), token=token)
        if r.status_code == 404:
            return None
        _raise_for_status(r)
        return decode_user(_unwrap(r))

    async def create_user(self, token: str, role: Role, data: UserCreate) -> ManagedUser:
        payload = to_api_payload(data, role=role.value)
        r = await self._request("POST", f"{ADMIN_BASE}/{role.value}", token=token, json=payload)
        _raise_for_status(r)
        return decode_user(_unwrap(r))

    async def update_user(self, token: str, role: Role, user_id: str, data: UserUpdate) -> ManagedUser:
        r = await self._request("PUT", _user_path(role, user_id), token=token, json=to_api_payload(data))
        _raise_for_status(r)
        return decode_user(_unwrap(r))

    async def delete_user(self, token: str, role: Role, user_id: str) -> None:
        r = await self._request("DELETE", _user_path(role, user_id), token=token)
        _raise_for_status(r)


__all__ = [
    "ApiError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "MalformedResponseError",
    "MarketplaceApi",
    "decode_user",
    "decode_user_list",
    "decode_profile",
]
