"""
DRF Permission classes for sales module RBAC.

Point of sale (draft tabs, settlement, sale history, fiscal receipt backfill):
- Pharmacist: allowed
- Cashier: allowed
- Superuser: Full access
"""
from rest_framework import permissions

from apps.stock.permissions import CASHIER_GROUP, PHARMACIST_GROUP


class CanSell(permissions.BasePermission):
    """
    Allow access to users in Pharmacist or Cashier groups, or superusers.
    """

    message = 'Selling requires Pharmacist or Cashier role, or admin privileges.'

    def has_permission(self, request, view):
        """Check if user is superuser or in allowed groups."""
        if not request.user or not request.user.is_authenticated:
            return False

        # Superusers have full access
        if request.user.is_superuser:
            return True

        return request.user.groups.filter(name__in=[PHARMACIST_GROUP, CASHIER_GROUP]).exists()
