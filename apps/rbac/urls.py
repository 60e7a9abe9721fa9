"""
RBAC API URLs.

Provides endpoints for:
- Role management (CRUD, granted permissions)
- Permission management (list, create)
- Role and permission assignments
"""
from django.urls import path
from apps.rbac.views import (
    RoleListView,
    RoleDetailView,
    RolePermissionsView,
    PermissionListView,
    AssignRoleView,
    RevokeRoleView,
    AssignPermissionView,
    RevokePermissionView,
    UserRolesView,
)

app_name = 'rbac'

urlpatterns = [
    # Role endpoints
    path('roles', RoleListView.as_view(), name='role-list'),
    path('roles/<int:role_id>', RoleDetailView.as_view(), name='role-detail'),
    path('roles/<int:role_id>/permissions', RolePermissionsView.as_view(), name='role-permissions'),

    # Permission endpoints
    path('permissions', PermissionListView.as_view(), name='permission-list'),

    # Assignment endpoints
    path('assign-role', AssignRoleView.as_view(), name='assign-role'),
    path('revoke-role', RevokeRoleView.as_view(), name='revoke-role'),
    path('assign-permission', AssignPermissionView.as_view(), name='assign-permission'),
    path('revoke-permission', RevokePermissionView.as_view(), name='revoke-permission'),
    path('users/<int:user_id>/roles', UserRolesView.as_view(), name='user-roles'),
]
