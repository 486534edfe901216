"""
Optimistic per-view user lists.

Why:
    Mutations on the user table are optimistic: the local list changes first
    and the API call follows. If the call fails the previous list must come
    back exactly as it was (same items, same order), so the page never shows
    a half-applied state.

Design:
    - `UserListView` is the local copy for one (session, role) pair.
    - `UserListCache` keeps those views in memory, keyed by (token, role), and
      drops a session's views when its credential is cleared.
    - No merge logic: rollback is a full snapshot restore.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from identity_access.domain import Role
from identity_access.models import ManagedUser


DEFAULT_MAX_VIEWS = 512


class UserListView:
    def __init__(self, users: Iterable[ManagedUser] = ()) -> None:
        self.users: List[ManagedUser] = list(users)

    def ids(self) -> List[str]:
        return [u.id for u in self.users]

    def matching(self, query: str) -> List[ManagedUser]:
        """Users whose first name, last name or email contains `query` (case-insensitive)."""
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.users)
        return [
            u
            for u in self.users
            if needle in u.first_name.lower() or needle in u.last_name.lower() or needle in u.email.lower()
        ]

    def replace(self, users: Iterable[ManagedUser]) -> None:
        self.users = list(users)

    def upsert(self, user: ManagedUser) -> None:
        """Replace the entry with the same id in place, or append."""
        for index, existing in enumerate(self.users):
            if existing.id == user.id:
                self.users[index] = user
                return
        self.users.append(user)

    async def delete(self, user_id: str, remote: Callable[[], Awaitable[None]]) -> None:
        """Remove `user_id` now, then await `remote()`.

        On failure the snapshot taken before the removal is restored verbatim
        and the exception propagates to the caller.
        """
        snapshot = list(self.users)
        self.users = [u for u in self.users if u.id != user_id]
        try:
            await remote()
        except BaseException:
            self.users = snapshot
            raise


class UserListCache:
    """In-memory views keyed by (token, role); oldest views are evicted first."""

    def __init__(self, max_views: int = DEFAULT_MAX_VIEWS) -> None:
        self._views: "OrderedDict[Tuple[str, Role], UserListView]" = OrderedDict()
        self.max_views = max_views

    def get(self, token: str, role: Role) -> Optional[UserListView]:
        view = self._views.get((token, role))
        if view is not None:
            self._views.move_to_end((token, role))
        return view

    def put(self, token: str, role: Role, users: Iterable[ManagedUser]) -> UserListView:
        key = (token, role)
        view = self._views.get(key)
        if view is None:
            view = UserListView(users)
            self._views[key] = view
        else:
            view.replace(users)
        self._views.move_to_end(key)
        while len(self._views) > self.max_views:
            self._views.popitem(last=False)
        return view

    def drop_session(self, token: Optional[str]) -> None:
        if not token:
            return
        for key in [k for k in self._views if k[0] == token]:
            del self._views[key]

    def clear(self) -> None:
        self._views.clear()

    def __len__(self) -> int:
        return len(self._views)


__all__ = ["UserListView", "UserListCache"]
