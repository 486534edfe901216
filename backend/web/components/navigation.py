"""
Navigation component for the marketplace admin

Role-based sidebar. The link groups come from `identity_access.authz.nav_sections`,
the same table the route guards consult, so a link is visible exactly when the
page behind it would render for the caller.
All links use HTMX for SPA-like navigation without page reloads.
"""

from typing import Optional, Dict, List, Tuple

from identity_access.authz import ENTITY_LABELS, nav_sections
from identity_access.models import Profile

from .base import Component

# ---------------------------------------------------------------------------
# Route registry (breadcrumb labels)
# ---------------------------------------------------------------------------

RouteMeta = Dict[str, str]

ROUTE_MAP: Dict[str, RouteMeta] = {
    "/dashboard": {"label": "Dashboard"},
    "/dashboard/profile": {"label": "Profile"},
    "/dashboard/markets": {"label": "Markets"},
    "/dashboard/users": {"label": "Users", "static": "true"},
    "/dashboard/users/:role/new": {"label": "New"},
    "/dashboard/users/:role/:user_id": {"label": "User", "static": "true"},
    "/dashboard/users/:role/:user_id/edit": {"label": "Edit"},
    "/login": {"label": "Sign in"},
}
for _role, _label in ENTITY_LABELS.items():
    ROUTE_MAP[f"/dashboard/users/{_role.value}"] = {"label": _label}

ROUTE_PATTERNS: List[str] = sorted(
    ROUTE_MAP.keys(),
    # Concrete paths win over `:param` patterns of the same depth.
    key=lambda pattern: (pattern.count("/"), ":" not in pattern),
    reverse=True,
)

NavItem = Tuple[str, str, str]


class Navigation(Component):
    """Sidebar with role-derived menu items and a logout form."""

    def __init__(self, user: Optional[Profile] = None, current_path: str = "/"):
        """
        Args:
            user: Resolved profile (None renders the public sidebar)
            current_path: The current URL path for active link highlighting
        """
        self.user = user
        self.current_path = current_path

    def render(self) -> str:
        return f"""
    <button class="sidebar-toggle" data-action="sidebar-toggle" aria-label="Toggle navigation">
        <span class="sidebar-toggle-icon">&#9776;</span>
    </button>
    {self.render_aside()}
    <div class="sidebar-overlay" data-action="sidebar-close"></div>"""

    def render_aside(self, oob: bool = False) -> str:
        """Render only the sidebar <aside> element (for OOB updates via HTMX)."""
        oob_attr = ' hx-swap-oob="true"' if oob else ""
        if not self.user:
            items_html = self._create_nav_link("/login", "Sign in", "&#128273;")
            footer_html = ""
        else:
            groups = self._get_nav_groups()
            self._active_href = self._determine_active_href(groups)
            items_html = "".join(self._render_group(title, links) for title, links in groups)
            items_html += self._render_logout()
            footer_html = self._render_user_info()
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar"{oob_attr}>
        <nav class="sidebar-nav" role="navigation" aria-label="Main navigation">
            <div class="sidebar-header">
                <span class="sidebar-logo" aria-hidden="true"></span>
                <span class="sidebar-title">Marketplace Admin</span>
            </div>

            <div class="sidebar-items">
                {items_html}
            </div>
            {footer_html}
        </nav>
    </aside>"""

    def _get_nav_groups(self) -> List[Tuple[Optional[str], List[NavItem]]]:
        """Return (group title, links) pairs; the first group has no title.

        Every signed-in user gets Dashboard and Profile. Further groups are
        derived from the authorization table for the user's role.
        """
        groups: List[Tuple[Optional[str], List[NavItem]]] = [
            (None, [("/dashboard", "Dashboard", "&#127968;"), ("/dashboard/profile", "Profile", "&#128100;")])
        ]
        for section in nav_sections(self.user.role):
            groups.append((section.title, [(link.href, link.label, link.icon) for link in section.links]))
        return groups

    def _determine_active_href(self, groups: List[Tuple[Optional[str], List[NavItem]]]) -> str:
        """Pick the single active href using best prefix match."""
        path = self.current_path or "/"
        best = ""
        for _title, links in groups:
            for href, _text, _icon in links:
                if href == path:
                    return href
                if path.startswith(href + "/") and len(href) > len(best):
                    best = href
        return best

    def _render_group(self, title: Optional[str], links: List[NavItem]) -> str:
        link_html = "".join(self._create_nav_link(href, text, icon) for href, text, icon in links)
        if not title:
            return link_html
        return f"""
        <div class="sidebar-group">
            <div class="sidebar-group-title">{self.escape(title)}</div>
            <div class="sidebar-subitems">
                {link_html}
            </div>
        </div>"""

    def _create_nav_link(self, href: str, text: str, icon: str = "") -> str:
        """Create a navigation link with HTMX and active state highlighting.

        `icon` is trusted markup (HTML entity) from the nav table.
        """
        icon_html = f'<span class="nav-icon">{icon}</span>' if icon else ""
        is_active = getattr(self, "_active_href", None) == href
        active_class = " active" if is_active else ""
        aria_attr = ' aria-current="page"' if is_active else ""

        return f"""
        <a href="{self.escape(href)}"
           hx-get="{self.escape(href)}"
           hx-target="#main-content"
           hx-push-url="true"
           hx-indicator="#loading-indicator"
           class="sidebar-link{active_class}"
           data-tooltip="{self.escape(text)}"{aria_attr}>
            {icon_html}
            <span class="nav-text">{self.escape(text)}</span>
        </a>"""

    def _render_user_info(self) -> str:
        return f"""
            <div class="sidebar-footer">
                <div class="user-info-compact">
                    <span class="user-avatar" aria-hidden="true">{self.escape(self.user.initials)}</span>
                    <div class="nav-text">
                        <div class="user-name">{self.escape(self.user.display_name)}</div>
                        <div class="user-role">{self.escape(self.user.role.value.capitalize())}</div>
                    </div>
                </div>
            </div>"""

    def _render_logout(self) -> str:
        """Logout is a same-origin POST with full page navigation (no HTMX swap)."""
        return """
        <form method="post" action="/logout" class="sidebar-logout-form">
            <button type="submit" class="sidebar-link sidebar-logout" data-tooltip="Sign out">
                <span class="nav-icon">&#128682;</span>
                <span class="nav-text">Sign out</span>
            </button>
        </form>"""
