# permissions.py
from rest_framework.permissions import BasePermission
from .models import Role

class IsSuperAdminOrAdmin(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and user.is_platform_admin

class IsSellerOrAdmin(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return (
            user.is_authenticated and
            (user.role == Role.SELLER or user.is_platform_admin)
        )
