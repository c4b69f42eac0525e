"""
View-level permissions shared by the apps.
"""

from rest_framework import permissions


class IsUserInRole(permissions.BasePermission):
    """
    View-level permission to allow access only to users with a specific role.
    Usage: permission_classes=[IsAuthenticated, IsUserInRole.of("admin")]
    """

    message = "User does not have required role to get an access."
    role_names = frozenset()

    def has_permission(self, request, view):
        role = getattr(request.user, "role", None)
        if not role:
            return False
        return role.name in self.role_names

    @classmethod
    def of(cls, *role_names):
        """Build a permission class bound to the given role names."""
        return type(
            "IsUserInRole",
            (cls,),
            {"role_names": frozenset(role_names)},
        )
