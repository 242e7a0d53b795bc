from rest_framework import permissions

from utils.rbac import is_admin


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to admins (superusers or role == "admin"), verified
    against the database rather than the token claims.
    """

    message = "Admin privileges required"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and is_admin(request.user))


class IsAuthenticatedForWrites(permissions.BasePermission):
    """
    Read-only for anonymous users; any state change needs an authenticated
    actor. Ownership and role checks happen in the service layer.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)
