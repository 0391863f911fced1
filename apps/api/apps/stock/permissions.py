"""
DRF Permission classes for pharmacy back-office RBAC.

Roles:
- Pharmacist: Full access (stock writes, imports, corrections, sales)
- Cashier: Read-only stock and catalog (selling: apps.sales.permissions)
- Superuser: Full access
"""
from rest_framework import permissions

PHARMACIST_GROUP = 'Pharmacist'
CASHIER_GROUP = 'Cashier'


def _in_group(user, *names):
    return user.groups.filter(name__in=names).exists()


class IsPharmacyStaff(permissions.BasePermission):
    """
    Any pharmacy staff may read; only Pharmacists (or superusers) may write.
    """

    message = 'Access requires Pharmacist or Cashier role; writes require Pharmacist.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.is_superuser:
            return True

        if request.method in permissions.SAFE_METHODS:
            return _in_group(request.user, PHARMACIST_GROUP, CASHIER_GROUP)

        return _in_group(request.user, PHARMACIST_GROUP)


class IsPharmacist(permissions.BasePermission):
    """Allow access only to Pharmacists or superusers."""

    message = 'This operation requires the Pharmacist role.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if request.user.is_superuser:
            return True

        return _in_group(request.user, PHARMACIST_GROUP)

