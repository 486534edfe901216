"""
User table for one managed role.

Why:
    The list page and every mutation response render the same section
    (`#user-list-section`), so an optimistic delete, its rollback and an
    upsert after create/update all produce identical markup.

Behavior:
    - Rows keep the order of the list they are given.
    - Empty lists render an empty state instead of an empty table.
    - A search box (shown once the role has users) filters by first name,
      last name or email. It re-requests the page with `?q=` and swaps only
      `#user-results`, so the input keeps focus while typing.
    - A search without matches renders a "no results" state with a link
      that clears the search.
    - Edit opens the dialog via HTMX into `#dialog-slot`; delete is a
      same-origin POST that swaps the whole main column.
"""

from typing import Optional, Sequence
from urllib.parse import quote

from identity_access.authz import entity_label
from identity_access.domain import Role
from identity_access.models import ManagedUser

from .base import Component


class UserTable(Component):
    def __init__(
        self,
        role: Role,
        users: Sequence[ManagedUser],
        *,
        query: str = "",
        total: Optional[int] = None,
    ) -> None:
        self.role = role
        self.users = list(users)
        self.query = (query or "").strip()
        # Size of the unfiltered list; defaults to the rows given.
        self.total = len(self.users) if total is None else total

    def render(self) -> str:
        label = entity_label(self.role)
        base = f"/dashboard/users/{self.role.value}"
        search = self._render_search(base, label) if self.total else ""
        return f"""
        <section id="user-list-section" class="user-list" data-role="{self.escape(self.role.value)}">
            <header class="page-header">
                <h1>{self.escape(label)}</h1>
                {search}
                <a class="btn btn-primary" href="{base}/new"
                   hx-get="{base}/new" hx-target="#dialog-slot" hx-swap="innerHTML">Add {self.escape(label[:-1])}</a>
            </header>
            <div id="user-results">{self._render_results(base, label)}</div>
        </section>"""

    def _render_results(self, base: str, label: str) -> str:
        if not self.total:
            return f'<p class="empty-state">No {self.escape(label.lower())} found.</p>'
        if not self.users:
            return f"""
            <div class="empty-state">
                <p class="empty-state__title">No results found</p>
                <p>Your search for "{self.escape(self.query)}" did not match any {self.escape(label.lower())}.</p>
                <a class="btn btn-link" href="{base}" hx-get="{base}" hx-target="#main-content" hx-push-url="true">Clear search</a>
            </div>"""
        return self._render_table(base)

    def _render_search(self, base: str, label: str) -> str:
        placeholder = f"Search {label.lower()}..."
        return f"""
                <form class="user-search" role="search" method="get" action="{base}">
                    <input type="search" name="q" value="{self.escape(self.query)}"
                           placeholder="{self.escape(placeholder)}" aria-label="Search {self.escape(label)}"
                           hx-get="{base}" hx-trigger="input changed delay:300ms, search"
                           hx-target="#user-results" hx-select="#user-results" hx-swap="outerHTML"
                           hx-push-url="true">
                </form>"""

    def _render_table(self, base: str) -> str:
        rows = "".join(self._render_row(base, user) for user in self.users)
        return f"""
            <table class="table user-table">
                <thead>
                    <tr><th scope="col">Name</th><th scope="col">Email</th><th scope="col">Verified</th><th scope="col">Created</th><th scope="col"><span class="sr-only">Actions</span></th></tr>
                </thead>
                <tbody>{rows}</tbody>
            </table>"""

    def _render_row(self, base: str, user: ManagedUser) -> str:
        uid = self.escape(user.id)
        href = f"{base}/{self.escape(quote(user.id, safe=''))}"
        created = user.created_at.strftime("%Y-%m-%d") if user.created_at else ""
        verified = "" if user.is_verified is None else ("Yes" if user.is_verified else "No")
        return f"""
                    <tr id="user-row-{uid}" data-user-id="{uid}">
                        <td>{self.escape(user.display_name)}</td>
                        <td>{self.escape(user.email)}</td>
                        <td>{verified}</td>
                        <td>{self.escape(created)}</td>
                        <td class="table-actions">
                            <a class="btn btn-small" href="{href}/edit"
                               hx-get="{href}/edit" hx-target="#dialog-slot" hx-swap="innerHTML">Edit</a>
                            <form method="post" action="{href}/delete"
                                  hx-post="{href}/delete" hx-target="#main-content"
                                  hx-confirm="Delete {self.escape(user.display_name)}?" class="inline-form">
                                <button type="submit" class="btn btn-small btn-danger">Delete</button>
                            </form>
                        </td>
                    </tr>"""
