"""
Role-based permissions.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices, STAFF_ROLES


def HasRole(*roles):
    """
    Build a permission class admitting only the given roles.

    Usage:
        permission_classes = [HasRole(RoleChoices.CLERK, RoleChoices.ADMIN)]
    """
    allowed = frozenset(roles)

    class _HasRole(permissions.BasePermission):
        message = 'Your role is not allowed to perform this action.'

        def has_permission(self, request, view):
            user = request.user
            if not user or not user.is_authenticated:
                return False
            return user.role in allowed

    _HasRole.__name__ = 'HasRole_' + '_'.join(sorted(allowed))
    return _HasRole


IsAdmin = HasRole(RoleChoices.ADMIN)
IsOfficeStaff = HasRole(*STAFF_ROLES)
