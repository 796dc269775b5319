from rest_framework import permissions
import logging

logger = logging.getLogger('cinetrack')

class IsOwner(permissions.BasePermission):
    """
    Custom permission to only allow owners of an object to access it.
    The owner field name can be overridden per view with `owner_field`.
    """
    owner_field = 'owner'  # Default owner field name

    def has_object_permission(self, request, view, obj):
        field = getattr(view, 'owner_field', self.owner_field)
        owner = getattr(obj, field, None)
        if owner is None:
            logger.warning(f"Owner field '{field}' not found on {obj.__class__.__name__}")
            return False

        return owner == request.user


class IsAdminRole(permissions.BasePermission):
    """
    Allows access only to users with the ADMIN role or Django staff.
    """
    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(user.is_staff or getattr(user, 'is_admin', False))


class IsNotBlocked(permissions.BasePermission):
    """
    Denies access to blocked users.
    """
    message = "Your account has been blocked."

    def has_permission(self, request, view):
        if not hasattr(request.user, 'is_blocked'):
            return True
        return not request.user.is_blocked
