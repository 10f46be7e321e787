"""
Purpose: Caller identity as handed over by the authentication layer.
What it does:
Defines who is calling (user, role, home organization) without any
dependency on Django's auth models, so the core can be driven from tests,
scripts or any web framework.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """
    Roles known to the church transportation app.
    TRANSPORTATION_TEAM members are the drivers.
    """
    USER = "USER"
    TRANSPORTATION_TEAM = "TRANSPORTATION_TEAM"
    ADMIN = "ADMIN"
    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    PLATFORM_USER = "PLATFORM_USER"


PLATFORM_ROLES = (UserRole.PLATFORM_ADMIN, UserRole.PLATFORM_USER)


@dataclass(frozen=True)
class CallerIdentity:
    user_id: str
    role: UserRole
    organization_id: Optional[str] = None

    @classmethod
    def new(cls, user_id, role, organization_id=None) -> CallerIdentity:
        if isinstance(role, str) and not isinstance(role, UserRole):
            role = UserRole(role)
        return cls(
            user_id=str(user_id),
            role=role,
            organization_id=str(organization_id) if organization_id is not None else None,
        )

    @property
    def is_platform_user(self) -> bool:
        return self.role in PLATFORM_ROLES
