"""
Breadcrumb component for the marketplace admin

Generates a simple breadcrumb trail based on the current request path.
Segments marked `static` in the route registry are not pages of their own
and render as plain text.
"""

from typing import List, Tuple, Dict, Optional
from .base import Component
from .navigation import ROUTE_MAP, ROUTE_PATTERNS


class Breadcrumbs(Component):
    """Server-rendered breadcrumb trail"""

    def __init__(self, current_path: str = "/dashboard"):
        self.current_path = current_path or "/dashboard"

    def render(self) -> str:
        crumbs = self._build_crumbs()
        if len(crumbs) <= 1:
            return ""

        items = []
        last_index = len(crumbs) - 1
        for index, (href, label, linkable) in enumerate(crumbs):
            escaped_label = self.escape(label)
            if index == last_index:
                items.append(f'<li class="breadcrumb-item" aria-current="page">{escaped_label}</li>')
            elif not linkable:
                items.append(f'<li class="breadcrumb-item">{escaped_label}</li>')
            else:
                items.append(
                    f'''<li class="breadcrumb-item">
    <a href="{self.escape(href)}"
       hx-get="{self.escape(href)}"
       hx-target="#main-content"
       hx-push-url="true"
       class="breadcrumb-link">{escaped_label}</a>
</li>'''
                )

        return f"""<nav class="breadcrumb" aria-label="Breadcrumb">
    <ol>
        {''.join(items)}
    </ol>
</nav>"""

    # --------------------------------------------------------------------- #
    # Helpers
    # --------------------------------------------------------------------- #

    def _build_crumbs(self) -> List[Tuple[str, str, bool]]:
        """Build crumb list as (href, label, linkable), rooted at /dashboard."""
        path = self._sanitize_path(self.current_path)
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if not segments or segments[0] != "dashboard":
            return []

        crumbs: List[Tuple[str, str, bool]] = []
        current = ""
        for segment in segments:
            current = f"{current}/{segment}"
            label, linkable = self._label_for_path(current)
            crumbs.append((current, label, linkable))
        return crumbs

    def _label_for_path(self, path: str) -> Tuple[str, bool]:
        match = self._match_route(path)
        if match:
            _pattern, meta, params = match
            template = meta.get("label_template")
            label = None
            if template:
                try:
                    label = template.format(**params)
                except KeyError:
                    label = None
            label = label or meta.get("label")
            if label:
                return label, meta.get("static") != "true"

        segment = path.strip("/").split("/")[-1]
        return self._humanize(segment), False

    @staticmethod
    def _sanitize_path(path: str) -> str:
        clean = path.split("?")[0].split("#")[0]
        return clean or "/"

    @staticmethod
    def _humanize(segment: str) -> str:
        cleaned = segment.replace("-", " ").replace("_", " ")
        if cleaned.isdigit():
            return f"ID {cleaned}"
        words = [word.capitalize() for word in cleaned.split() if word]
        return " ".join(words) if words else segment

    def _match_route(self, path: str) -> Optional[Tuple[str, Dict[str, str], Dict[str, str]]]:
        """Return (pattern, meta, params) for the best matching route"""
        for pattern in ROUTE_PATTERNS:
            params = self._extract_params(pattern, path)
            if params is not None:
                return pattern, ROUTE_MAP[pattern], params
        return None

    @staticmethod
    def _extract_params(pattern: str, path: str) -> Optional[Dict[str, str]]:
        pattern_parts = pattern.strip("/").split("/")
        path_parts = path.strip("/").split("/")
        if len(pattern_parts) != len(path_parts):
            return None

        params: Dict[str, str] = {}
        for pattern_part, path_part in zip(pattern_parts, path_parts):
            if pattern_part.startswith(":"):
                params[pattern_part[1:]] = path_part
            elif pattern_part != path_part:
                return None
        return params
