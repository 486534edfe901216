"""
Role Authorization Table.

Why:
    One static table answers "may this role use this part of the dashboard?".
    Route guards and the navigation both read it, so a link is shown exactly
    when the page behind it would render.

Design:
    Pure lookups, no I/O. Unknown roles or categories are denied.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .domain import Role, RouteCategory, parse_role


ROLE_GRANTS: Mapping[Role, frozenset] = MappingProxyType(
    {
        Role.ADMIN: frozenset({RouteCategory.USER_MANAGEMENT, RouteCategory.OWN_PROFILE}),
        Role.MANAGER: frozenset({RouteCategory.MARKET_MANAGEMENT, RouteCategory.OWN_PROFILE}),
        Role.SELLER: frozenset({RouteCategory.OWN_PROFILE}),
        Role.BUYER: frozenset({RouteCategory.OWN_PROFILE}),
    }
)

# Display label per managed entity type (user lists are grouped by role).
ENTITY_LABELS: Mapping[Role, str] = MappingProxyType(
    {
        Role.BUYER: "Buyers",
        Role.SELLER: "Sellers",
        Role.MANAGER: "Managers",
        Role.ADMIN: "Admins",
    }
)

# Order in which managed roles appear in menus and dashboard cards.
MANAGED_ROLES: Tuple[Role, ...] = (Role.BUYER, Role.SELLER, Role.MANAGER, Role.ADMIN)

# Route prefix per category; used to build links from the table.
CATEGORY_PATHS: Mapping[RouteCategory, str] = MappingProxyType(
    {
        RouteCategory.USER_MANAGEMENT: "/dashboard/users",
        RouteCategory.MARKET_MANAGEMENT: "/dashboard/markets",
        RouteCategory.OWN_PROFILE: "/dashboard/profile",
    }
)


def _as_role(role: object) -> Optional[Role]:
    if isinstance(role, Role):
        return role
    return parse_role(role)


def _as_category(category: object) -> Optional[RouteCategory]:
    if isinstance(category, RouteCategory):
        return category
    try:
        return RouteCategory(category)
    except ValueError:
        return None


def can_access(role: object, category: object) -> bool:
    """Return True if `role` is granted `category`; default deny."""
    r = _as_role(role)
    c = _as_category(category)
    if r is None or c is None:
        return False
    return c in ROLE_GRANTS.get(r, frozenset())


def entity_label(role: Role) -> str:
    return ENTITY_LABELS[role]


@dataclass(frozen=True)
class NavLink:
    href: str
    label: str
    icon: str = ""


@dataclass(frozen=True)
class NavSection:
    title: str
    category: RouteCategory
    links: Tuple[NavLink, ...]


_ICONS = {Role.BUYER: "🛒", Role.SELLER: "🏬", Role.MANAGER: "🧑‍💼", Role.ADMIN: "🛡️"}


def nav_sections(role: object) -> Tuple[NavSection, ...]:
    """Return the link groups a role may see, derived from ROLE_GRANTS.

    Behavior:
        - user-management yields one link per managed role.
        - market-management yields the markets overview link.
        - own-profile is not a section (it lives in the user menu).
    """
    sections = []
    if can_access(role, RouteCategory.USER_MANAGEMENT):
        base = CATEGORY_PATHS[RouteCategory.USER_MANAGEMENT]
        links = tuple(
            NavLink(href=f"{base}/{managed.value}", label=ENTITY_LABELS[managed], icon=_ICONS[managed])
            for managed in MANAGED_ROLES
        )
        sections.append(NavSection("User Management", RouteCategory.USER_MANAGEMENT, links))
    if can_access(role, RouteCategory.MARKET_MANAGEMENT):
        link = NavLink(href=CATEGORY_PATHS[RouteCategory.MARKET_MANAGEMENT], label="Markets", icon="💼")
        sections.append(NavSection("Market Management", RouteCategory.MARKET_MANAGEMENT, (link,)))
    return tuple(sections)


__all__ = [
    "ROLE_GRANTS",
    "ENTITY_LABELS",
    "MANAGED_ROLES",
    "CATEGORY_PATHS",
    "NavLink",
    "NavSection",
    "can_access",
    "entity_label",
    "nav_sections",
]
