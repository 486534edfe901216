"""
Dashboard cards: one card per navigation section, plus the profile panel.
"""

from dataclasses import dataclass
from typing import Sequence

from identity_access.authz import NavSection
from identity_access.models import Profile

from ..base import Component


@dataclass
class ProfileField:
    """Label/value row shown in the profile panel."""

    label: str
    value: str


class SectionCard(Component):
    """Card listing the links of one navigation section."""

    def __init__(self, section: NavSection) -> None:
        self.section = section

    def render(self) -> str:
        links = "".join(
            f'<li><a href="{self.escape(link.href)}" hx-get="{self.escape(link.href)}" '
            f'hx-target="#main-content" hx-push-url="true" hx-indicator="#loading-indicator">'
            f'<span class="nav-icon">{link.icon}</span> {self.escape(link.label)}</a></li>'
            for link in self.section.links
        )
        return (
            f'<section class="surface-panel dashboard-card" data-category="{self.escape(self.section.category.value)}">'
            f'<h2 class="dashboard-card__title">{self.escape(self.section.title)}</h2>'
            f'<ul class="dashboard-card__links">{links}</ul>'
            "</section>"
        )


class SectionCardGrid(Component):
    def __init__(self, sections: Sequence[NavSection]) -> None:
        self.sections = list(sections)

    def render(self) -> str:
        if not self.sections:
            return ""
        return f'<div class="dashboard-grid">{"".join(SectionCard(s).render() for s in self.sections)}</div>'


class ProfilePanel(Component):
    """Read-only view of the caller's own profile."""

    def __init__(self, profile: Profile) -> None:
        self.profile = profile

    def fields(self) -> Sequence[ProfileField]:
        p = self.profile
        rows = [
            ProfileField("Name", p.display_name),
            ProfileField("Email", p.email),
            ProfileField("Role", p.role.value.capitalize()),
        ]
        if p.username:
            rows.append(ProfileField("Username", p.username))
        if p.is_verified is not None:
            rows.append(ProfileField("Email verified", "Yes" if p.is_verified else "No"))
        if p.created_at is not None:
            rows.append(ProfileField("Member since", p.created_at.strftime("%Y-%m-%d")))
        return rows

    def render(self) -> str:
        rows = "".join(
            f"<dt>{self.escape(f.label)}</dt><dd>{self.escape(f.value)}</dd>" for f in self.fields()
        )
        return f"""
        <section class="surface-panel profile-panel">
            <header class="profile-panel__header">
                <span class="user-avatar user-avatar--large" aria-hidden="true">{self.escape(self.profile.initials)}</span>
                <h2>{self.escape(self.profile.display_name)}</h2>
            </header>
            <dl class="profile-panel__fields">{rows}</dl>
        </section>"""
