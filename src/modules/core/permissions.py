"""Role-based DRF permission classes.

A denied check raises DRF's ``NotAuthenticated`` (no credentials) or
``PermissionDenied``; both are classified by the error pipeline.
"""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from modules.core.identity import Identity, Roles


class HasAnyRole(BasePermission):
    allowed_roles: frozenset[str] = frozenset()
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view) -> bool:
        return Identity.from_user(request.user).has_any_role(self.allowed_roles)


class IsUserOrAbove(HasAnyRole):
    allowed_roles = Roles.ALL


class IsPrivileged(HasAnyRole):
    """Admin or SuperAdmin."""

    allowed_roles = Roles.PRIVILEGED
    message = "Administrator privileges are required."


class IsSuperAdmin(HasAnyRole):
    allowed_roles = frozenset({Roles.SUPER_ADMIN})
    message = "SuperAdmin privileges are required."
