"""
In-memory CredentialStore: the server-side mirror of the session credential.

Why: The cookie copy is what the request edge sees; the store copy is what the
session resolver trusts before attaching the bearer token to API calls. For
multi-instance deployments, replace with a Redis/DB-backed store exposing the
same three methods.

Security: Only the opaque token is kept. No profile data is cached here; the
identity is re-resolved on every page load.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
import time


def _now() -> int:
    return int(time.time())


@dataclass
class CredentialRecord:
    token: str
    issued_at: int
    expires_at: Optional[int] = None


class CredentialStore:
    def __init__(self):
        self._data: Dict[str, CredentialRecord] = {}

    def put(self, token: str, *, ttl_seconds: Optional[int] = 86400) -> CredentialRecord:
        now = _now()
        expires = now + ttl_seconds if ttl_seconds else None
        rec = CredentialRecord(token=token, issued_at=now, expires_at=expires)
        self._data[token] = rec
        return rec

    def get(self, token: str) -> Optional[CredentialRecord]:
        rec = self._data.get(token)
        if not rec:
            return None
        if rec.expires_at and rec.expires_at < _now():
            self._data.pop(token, None)
            return None
        return rec

    def delete(self, token: str) -> None:
        self._data.pop(token, None)

    def __len__(self) -> int:
        return len(self._data)
