"""
Custom permission classes for the clothing exchange API.
"""

from rest_framework import permissions


class IsSwapParticipant(permissions.BasePermission):
    """
    Object-level permission for swaps: only the requester or the item owner.

    Works with either a Swap model instance or a SwapRecord snapshot, since
    both expose requester_id and owner_id.

    Usage:
        permission = IsSwapParticipant()
        if not permission.has_object_permission(request, self, swap):
            ...
    """

    message = 'You do not have permission to access this swap.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        """
        Check the authenticated user is one of the two parties.

        Args:
            request: HTTP request object
            view: View being accessed
            obj: Swap or SwapRecord

        Returns:
            bool: True if the user is requester or owner
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.pk in (obj.requester_id, obj.owner_id)


class IsItemOwner(permissions.BasePermission):
    """Object-level permission: only the owner of an item."""

    message = 'Only the item owner can view its swap requests.'

    def has_object_permission(self, request, view, obj):
        if not request.user or not request.user.is_authenticated:
            return False

        return obj.owner_id == request.user.pk
