"""
Permission classes for the shipments app.

Everyone authenticated may read shipments and payments; recording a payment
is limited to the ``admin`` and ``accountant`` roles.
"""
from rest_framework.permissions import BasePermission


class CanRecordPayments(BasePermission):
    """
    Allow payment submission to admins and accountants only.

    Usage:
        def get_permissions(self):
            if self.action == 'create':
                return [IsAuthenticated(), CanRecordPayments()]
            return super().get_permissions()
    """

    message = 'Only administrators and accountants can record payments.'

    def has_permission(self, request, view):
        return bool(getattr(request.user, 'can_record_payments', False))
