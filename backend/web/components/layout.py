"""
Layout Component for the marketplace admin

Main layout wrapper that combines all components into a complete HTML page.
"""

from typing import Optional, Sequence

from identity_access.models import Profile

from .base import Component
from .breadcrumbs import Breadcrumbs
from .feedback import LoadingIndicator, Toast, ToastRegion
from .navigation import Navigation


class Layout(Component):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        user: Optional[Profile] = None,
        show_nav: bool = True,
        current_path: str = "/",
        toasts: Sequence[Toast] = (),
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            user: Resolved profile of the caller (optional)
            show_nav: Whether to show the sidebar (auth pages hide it)
            current_path: Current URL path for active navigation highlighting
            toasts: Notifications shown in the toast region
        """
        self.title = title
        self.content = content
        self.user = user
        self.show_nav = show_nav
        self.current_path = current_path
        self.toasts = list(toasts)

    def render(self) -> str:
        """Render the complete HTML document including navigation and chrome."""
        main_inner = self._render_main_inner()
        nav_html = Navigation(self.user, self.current_path).render() if self.show_nav else ""
        body_class = "with-sidebar" if self.show_nav else "auth-page"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head()}
</head>
<body class="{body_class}">
    <a href="#main-content" class="skip-link">Skip to main content</a>

    {nav_html}

    {LoadingIndicator().render()}
    {ToastRegion(self.toasts).render()}

    <main id="main-content" class="main-content" role="main">
        {main_inner}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return the HTMX fragment that keeps the sidebar toggle in sync.

        Why:
            HTMX swaps should not duplicate the sidebar container; the JS toggle
            expects exactly one `#sidebar` element in the DOM.
        Behavior:
            - Renders the children of `<main id="main-content">`, identical to
              the full-page render.
            - Appends the sidebar and the toast region out-of-band so both
              reflect the new page.
        Permissions:
            None. Callers must ensure the invoking route already ran its guard.
        """
        main_inner = self._render_main_inner()
        toasts_oob = ToastRegion(self.toasts, oob=True).render()
        if not self.show_nav:
            return f"{main_inner}{toasts_oob}"
        sidebar_oob = Navigation(self.user, self.current_path).render_aside(oob=True)
        return f"{main_inner}{sidebar_oob}{toasts_oob}"

    def _render_head(self) -> str:
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="description" content="Marketplace administration dashboard">

    <title>{self.escape(self.title)} - Marketplace Admin</title>

    <link rel="icon" href="/static/favicon.svg" type="image/svg+xml">
    <link rel="stylesheet" href="/static/css/app.css?v=1">

    <SCRIPT src="/static/js/vendor/htmx.min.js"></SCRIPT>
    <SCRIPT src="/static/js/app.js?v=1" defer></SCRIPT>
    """

    def _render_main_inner(self) -> str:
        """Render the inner markup of the main content column.

        Returns only the children of <main> so HTMX fragment swaps can replace
        innerHTML without nesting <main> elements.
        """
        breadcrumb_html = Breadcrumbs(self.current_path).render() if self.show_nav else ""
        return f"""
        {breadcrumb_html}
        {self.content}
        <div id="dialog-slot"></div>
        """
