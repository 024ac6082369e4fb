"""
Custom permission classes for purchases app.

This module defines permission classes for controlling access to
purchases and settlement transfers.
"""
from rest_framework.permissions import BasePermission


class IsGroupMemberForPurchase(BasePermission):
    """
    Permission to check if user is a member of the purchase's group.

    Usage:
        class PurchaseViewSet(viewsets.GenericViewSet):
            permission_classes = [IsAuthenticated, IsGroupMemberForPurchase]
    """

    message = 'You must be a member of this group to view this purchase.'

    def has_object_permission(self, request, view, obj):
        """Check if user can access the purchase."""
        return obj.group.has_member(request.user)


class IsGroupMemberForSettlement(BasePermission):
    """
    Permission to view a settlement transfer.

    Allows if the user is a member of the purchase's group.
    """

    message = 'You do not have permission to view this settlement.'

    def has_object_permission(self, request, view, obj):
        return obj.purchase.group.has_member(request.user)


class CanCompleteSettlement(BasePermission):
    """
    Permission to mark a settlement transfer as completed.

    Allows if:
    - User is the payer or the payee of the transfer
    - User is the group owner (can confirm any transfer)
    """

    message = 'Only the payer, the payee or the group owner can complete a settlement.'

    def has_object_permission(self, request, view, obj):
        if obj.involves(request.user):
            return True

        return obj.purchase.group.owner_id == request.user.pk
