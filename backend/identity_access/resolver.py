"""
Session resolution: exchange the credential for the caller's identity.

Why:
    The request edge only checks that a credential cookie exists. Whether the
    session is still valid, and which role it carries, is known only after a
    round trip to the profile endpoint. A resolver performs that round trip at
    most once per page view and caches the outcome for every consumer on the
    page (layout chrome, route guard, page body).

States:
    resolving -> resolved | failed   (no way back to resolving)

Failure kinds:
    - "unauthenticated": no token, or the token is not in the credential store.
      No API call is made.
    - "session_invalid": the profile call failed (transport error, non-2xx,
      malformed payload). The store copy is deleted here; the web layer
      clears the cookie copy in the same response.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .api_client import ApiError, MarketplaceApi
from .models import Profile
from .stores import CredentialStore


logger = logging.getLogger("marketadmin.identity_access")

UNAUTHENTICATED = "unauthenticated"
SESSION_INVALID = "session_invalid"


class ResolverState(str, Enum):
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolutionError:
    kind: str
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class Resolution:
    state: ResolverState
    identity: Optional[Profile] = None
    error: Optional[ResolutionError] = None

    @property
    def ok(self) -> bool:
        return self.state is ResolverState.RESOLVED


class SessionResolver:
    def __init__(self, store: CredentialStore, api: MarketplaceApi, token: Optional[str]) -> None:
        self.store = store
        self.api = api
        self.token = token or None
        self.state = ResolverState.RESOLVING
        self.identity: Optional[Profile] = None
        self.error: Optional[ResolutionError] = None
        self.profile_calls = 0
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the page view as gone; results arriving later are discarded."""
        self._closed = True

    def snapshot(self) -> Resolution:
        return Resolution(state=self.state, identity=self.identity, error=self.error)

    async def resolve(self) -> Resolution:
        """Resolve identity once; concurrent callers share the in-flight call."""
        if self.state is not ResolverState.RESOLVING:
            return self.snapshot()
        if self._task is None:
            self._task = asyncio.ensure_future(self._fetch())
        outcome = await asyncio.shield(self._task)
        if self._closed:
            # The view went away while the call was in flight.
            return self.snapshot()
        if self.state is ResolverState.RESOLVING:
            self._apply(outcome)
        return self.snapshot()

    def _apply(self, outcome: Resolution) -> None:
        if outcome.error is not None and outcome.error.kind == SESSION_INVALID and self.token:
            # Store copy goes now; the web layer drops the cookie copy in the same response.
            self.store.delete(self.token)
        self.state = outcome.state
        self.identity = outcome.identity
        self.error = outcome.error

    async def _fetch(self) -> Resolution:
        if not self.token or self.store.get(self.token) is None:
            logger.info("Session resolution skipped: no stored credential")
            return Resolution(
                state=ResolverState.FAILED,
                error=ResolutionError(kind=UNAUTHENTICATED, message="Authentication token not found. Please log in."),
            )
        self.profile_calls += 1
        try:
            profile = await self.api.get_profile(self.token)
        except ApiError as exc:
            logger.warning(
                "Profile resolution failed: %s status=%s", exc.__class__.__name__, exc.status_code
            )
            return Resolution(
                state=ResolverState.FAILED,
                error=ResolutionError(kind=SESSION_INVALID, message=exc.message, status_code=exc.status_code),
            )
        return Resolution(state=ResolverState.RESOLVED, identity=profile)


__all__ = [
    "UNAUTHENTICATED",
    "SESSION_INVALID",
    "ResolverState",
    "ResolutionError",
    "Resolution",
    "SessionResolver",
]
