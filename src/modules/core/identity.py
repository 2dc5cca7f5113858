"""Caller identity passed explicitly into services.

Views build an ``Identity`` from the authenticated Django user and hand it to
the service layer; services never read ``request.user`` themselves.

Roles are Django auth groups named after ``Roles``.  A Django superuser is
treated as ``SuperAdmin``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class Roles:
    USER = "User"
    ADMIN = "Admin"
    SUPER_ADMIN = "SuperAdmin"

    ALL: frozenset[str] = frozenset({USER, ADMIN, SUPER_ADMIN})
    PRIVILEGED: frozenset[str] = frozenset({ADMIN, SUPER_ADMIN})


@dataclass(frozen=True)
class Identity:
    user_id: Optional[int] = None
    is_authenticated: bool = False
    roles: frozenset[str] = field(default_factory=frozenset)
    email: str = ""

    @property
    def is_privileged(self) -> bool:
        """Admin or SuperAdmin."""
        return bool(self.roles & Roles.PRIVILEGED)

    @property
    def is_super_admin(self) -> bool:
        return Roles.SUPER_ADMIN in self.roles

    def has_any_role(self, roles: frozenset[str]) -> bool:
        return self.is_authenticated and bool(self.roles & roles)

    @classmethod
    def anonymous(cls) -> Identity:
        return cls()

    @classmethod
    def from_user(cls, user: Any) -> Identity:
        if user is None or not getattr(user, "is_authenticated", False):
            return cls.anonymous()
        roles = set(user.groups.values_list("name", flat=True))
        if getattr(user, "is_superuser", False):
            roles.add(Roles.SUPER_ADMIN)
        return cls(
            user_id=user.pk,
            is_authenticated=True,
            roles=frozenset(roles & Roles.ALL),
            email=getattr(user, "email", "") or "",
        )
