from django.utils.translation import gettext_lazy as _
from rest_framework.permissions import BasePermission

from .models import Roles


class IsBusinessMember(BasePermission):
    """Authenticated user that belongs to a business (tenant)"""
    message = _('You do not belong to a business.')

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.business_id)


class IsBusinessAdmin(IsBusinessMember):
    """Only admins of the caller's business"""
    message = _('You do not have permission to perform this action.')

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.role == Roles.ADMIN


class IsBusinessManager(IsBusinessMember):
    """Admins or managers of the caller's business"""
    message = _('You do not have permission to perform this action.')

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.role in Roles.MANAGEMENT
