from rest_framework import permissions


class CanApproveQuotes(permissions.BasePermission):
    """
    Only sales managers and above may approve, reject or return quotes.
    """
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.can_approve_quotes


class CanManagePricing(permissions.BasePermission):
    """
    Commission tiers and container mappings are maintained by system admins.
    Everyone authenticated may read them.
    """
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.role == 'system_admin'


class CanViewQuote(permissions.BasePermission):
    """
    Object-level check: sales reps only see quotes they created or were assigned.
    """
    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.can_view_all_quotes:
            return True
        return user.pk in (obj.created_by_id, obj.assigned_to_id, obj.current_assignee_id)
