"""
Identity domain constants and simple helpers.

Why:
- Centralize the closed role enumeration to avoid drift between the web layer,
  the API client and the authorization table.
- Keep route categories explicit so guards and navigation name the same thing.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Marketplace roles. Closed set; nothing outside it is a valid role."""

    BUYER = "buyer"
    SELLER = "seller"
    MANAGER = "manager"
    ADMIN = "admin"


class RouteCategory(str, Enum):
    USER_MANAGEMENT = "user-management"
    MARKET_MANAGEMENT = "market-management"
    OWN_PROFILE = "own-profile"


# Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset(r.value for r in Role)

# Roles that may be chosen on the public registration form.
SELF_REGISTER_ROLES = (Role.MANAGER, Role.ADMIN)


def parse_role(value: object) -> Optional[Role]:
    """Return the Role for an exact role value, else None.

    Path parameters and API payloads are untrusted; no case folding or plural
    forms are accepted so that `/users/Admins` stays an invalid parameter.
    """
    if not isinstance(value, str) or value not in ALLOWED_ROLES:
        return None
    return Role(value)


__all__ = ["Role", "RouteCategory", "ALLOWED_ROLES", "SELF_REGISTER_ROLES", "parse_role"]
