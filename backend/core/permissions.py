from rest_framework.permissions import BasePermission, SAFE_METHODS

from . import roles


class RolePermission(BasePermission):
    """Grant access to authenticated users whose role is in `allowed_roles`"""
    allowed_roles = ()
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        return roles.has_role(request.user, self.allowed_roles)


class IsAdministrator(RolePermission):
    allowed_roles = (roles.ADMINISTRATOR,)


class IsManagement(RolePermission):
    allowed_roles = tuple(roles.MANAGEMENT)


class IsManagementOrEmployee(RolePermission):
    allowed_roles = tuple(roles.MANAGEMENT + roles.EMPLOYEES)


class IsAdministratorOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return roles.has_role(request.user, (roles.ADMINISTRATOR,))


class IsManagementOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return roles.is_management(request.user)
