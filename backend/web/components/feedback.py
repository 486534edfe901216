"""
Feedback components: alerts, toasts, loading indicator and guard views.

Why:
    Route guards and mutation handlers need a small, consistent vocabulary of
    outcomes the user can see. Keeping them here means the markup for "access
    denied" or "could not delete" is identical on every page.

Behavior:
    - `AccessDenied` and `InvalidRole` are full content blocks (the guard
      renders them instead of the page body). Neither redirects.
    - `Toast` is dismissable; `ToastRegion` can be swapped out-of-band so
      HTMX mutations can report failures without re-rendering the page.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .base import Component


class Alert(Component):
    """Inline banner (info, success, warning, error)."""

    def __init__(self, message: str, *, variant: str = "info", title: Optional[str] = None) -> None:
        self.message = message
        self.variant = variant
        self.title = title

    def render(self) -> str:
        role = "alert" if self.variant in ("error", "warning") else "status"
        title_html = f"<strong>{self.escape(self.title)}</strong> " if self.title else ""
        return (
            f'<div class="alert alert--{self.escape(self.variant)}" role="{role}">'
            f"{title_html}{self.escape(self.message)}</div>"
        )


@dataclass
class Toast(Component):
    """Single dismissable notification."""

    message: str
    variant: str = "info"

    def render(self) -> str:
        return f"""
        <div class="toast toast--{self.escape(self.variant)}" role="status">
            <span class="toast-message">{self.escape(self.message)}</span>
            <button type="button" class="toast-close" data-action="toast-dismiss" aria-label="Dismiss">&times;</button>
        </div>"""


class ToastRegion(Component):
    """Container for toasts; `oob=True` replaces the region during HTMX swaps."""

    def __init__(self, toasts: Sequence[Toast] = (), *, oob: bool = False) -> None:
        self.toasts = list(toasts)
        self.oob = oob

    def render(self) -> str:
        attrs = self.attributes(
            id="toast-region",
            class_="toast-region",
            aria_live="polite",
            hx_swap_oob="true" if self.oob else None,
        )
        return f"<div {attrs}>{''.join(t.render() for t in self.toasts)}</div>"


class LoadingIndicator(Component):
    """Spinner shown while identity or data is still loading."""

    def __init__(self, label: str = "Loading...") -> None:
        self.label = label

    def render(self) -> str:
        return f"""
        <div id="loading-indicator" class="loading-indicator htmx-indicator" role="status" aria-live="polite">
            <span class="spinner" aria-hidden="true"></span>
            <span class="loading-label">{self.escape(self.label)}</span>
        </div>"""


class AccessDenied(Component):
    """Rendered when the caller's role lacks the page's category."""

    def __init__(
        self,
        message: str = "You do not have permission to view this page.",
        *,
        back_href: str = "/dashboard",
        back_label: str = "Go to Dashboard",
    ) -> None:
        self.message = message
        self.back_href = back_href
        self.back_label = back_label

    def render(self) -> str:
        return f"""
        <section class="guard-view guard-view--denied" aria-labelledby="access-denied-title">
            <h1 id="access-denied-title">Access Denied</h1>
            <p>{self.escape(self.message)}</p>
            <p><a class="btn btn-primary" href="{self.escape(self.back_href)}">{self.escape(self.back_label)}</a></p>
        </section>"""


class InvalidRole(Component):
    """Rendered when the role path parameter is not a known role."""

    def __init__(self, value: Optional[str] = None) -> None:
        self.value = value

    def render(self) -> str:
        detail = (
            f'<p class="text-muted">"{self.escape(self.value)}" is not a user type.</p>' if self.value else ""
        )
        return f"""
        <section class="guard-view guard-view--invalid" aria-labelledby="invalid-role-title">
            <h1 id="invalid-role-title">Invalid role specified</h1>
            {detail}
            <p><a class="btn" href="/dashboard">Go to Dashboard</a></p>
        </section>"""


__all__ = ["Alert", "Toast", "ToastRegion", "LoadingIndicator", "AccessDenied", "InvalidRole"]
