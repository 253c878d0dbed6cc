"""Role-based DRF permissions shared by vendor and admin endpoints."""

from rest_framework import permissions


def user_role(user):
    if not user or not getattr(user, 'is_authenticated', False):
        return None
    return getattr(user, 'role', None)


class IsVendor(permissions.BasePermission):
    """Allow only authenticated, non-blocked vendor accounts."""

    message = 'Vendor account required.'

    def has_permission(self, request, view):
        user = request.user
        return user_role(user) == 'vendor' and not getattr(user, 'is_blocked', False)


class IsPlatformAdmin(permissions.BasePermission):
    """Allow platform admins (role ``admin``) and Django staff users."""

    message = 'Admin access required.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user_role(user) == 'admin' or bool(user.is_staff)
