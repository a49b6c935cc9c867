from rest_framework import permissions


class _RolePermission(permissions.BasePermission):
    message = "Insufficient permissions"
    role_attr = ""

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, self.role_attr, False))


class IsStaffRole(_RolePermission):
    role_attr = "is_staff_role"


class IsCourier(_RolePermission):
    role_attr = "is_courier"


class IsReviewer(_RolePermission):
    role_attr = "is_reviewer"


class IsStaffOrReviewer(permissions.BasePermission):
    message = "Insufficient permissions"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_staff_role or user.is_reviewer))
