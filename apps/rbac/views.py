"""
RBAC REST API views.

Implements endpoints for:
- Roles (CRUD) and the permissions granted to them
- Permissions (list, create)
- Role assignment and revocation for users
- Permission grant and revocation for roles

Every endpoint requires a token carrying the ``admin-access`` ability.
"""
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import NotFound
from apps.core.permissions import requires_abilities
from apps.rbac.models import User, Role, Permission
from apps.rbac.services import RBACService
from apps.rbac.serializers import (
    RoleSerializer, PermissionSerializer, RoleAssignmentSerializer,
    PermissionAssignmentSerializer, UserRoleSerializer, RolePermissionSerializer,
)


def _get_role(role_id):
    role = Role.objects.prefetch_related('permissions').filter(pk=role_id).first()
    if role is None:
        raise NotFound('Role not found')
    return role


@extend_schema(tags=['RBAC - Roles'])
@requires_abilities('admin-access')
class RoleListView(APIView):
    """
    GET /api/roles - List roles with their permissions
    POST /api/roles - Create a role
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(summary='List roles', responses={200: RoleSerializer(many=True)})
    def get(self, request):
        roles = Role.objects.prefetch_related('permissions').all()
        return Response(RoleSerializer(roles, many=True).data)

    @extend_schema(
        summary='Create role',
        request=RoleSerializer,
        responses={201: RoleSerializer, 400: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Create Role',
                value={'name': 'coach', 'description': 'Can review member plans'},
                request_only=True
            ),
        ]
    )
    def post(self, request):
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = serializer.save()
        return Response(RoleSerializer(role).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=['RBAC - Roles'])
@requires_abilities('admin-access')
class RoleDetailView(APIView):
    """
    GET /api/roles/{id}
    PUT /api/roles/{id}
    DELETE /api/roles/{id} - also removes the role's assignments and grants
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(summary='Get role', responses={200: RoleSerializer, 404: OpenApiTypes.OBJECT})
    def get(self, request, role_id):
        return Response(RoleSerializer(_get_role(role_id)).data)

    @extend_schema(summary='Update role', request=RoleSerializer, responses={200: RoleSerializer})
    def put(self, request, role_id):
        role = _get_role(role_id)
        serializer = RoleSerializer(role, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        was_active = role.is_active
        role = serializer.save()

        if role.is_active != was_active:
            RBACService.invalidate_role_cache(role)

        return Response(RoleSerializer(role).data)

    @extend_schema(summary='Delete role', responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def delete(self, request, role_id):
        RBACService.delete_role(_get_role(role_id), deleted_by=request.user, request=request)
        return Response({'message': 'Role deleted successfully'})


@extend_schema(
    tags=['RBAC - Roles'],
    summary="List a role's permissions",
    responses={200: PermissionSerializer(many=True), 404: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class RolePermissionsView(APIView):
    """GET /api/roles/{id}/permissions"""
    permission_classes = [IsAuthenticated]

    def get(self, request, role_id):
        role = _get_role(role_id)
        return Response(PermissionSerializer(role.get_permissions(), many=True).data)


@extend_schema(tags=['RBAC - Permissions'])
@requires_abilities('admin-access')
class PermissionListView(APIView):
    """
    GET /api/permissions - List all permissions
    POST /api/permissions - Create a permission
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(summary='List permissions', responses={200: PermissionSerializer(many=True)})
    def get(self, request):
        return Response(PermissionSerializer(Permission.objects.all(), many=True).data)

    @extend_schema(summary='Create permission', request=PermissionSerializer, responses={201: PermissionSerializer})
    def post(self, request):
        serializer = PermissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        permission = serializer.save()
        return Response(PermissionSerializer(permission).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['RBAC - Assignments'],
    summary='Assign role to user',
    request=RoleAssignmentSerializer,
    responses={201: UserRoleSerializer, 400: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            'Already Assigned',
            value={'error': 'User already has this role', 'code': 'ALREADY_ASSIGNED'},
            response_only=True,
            status_codes=['400']
        ),
    ]
)
@requires_abilities('admin-access')
class AssignRoleView(APIView):
    """POST /api/assign-role"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = RoleAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user_role = RBACService.assign_role(
            serializer.validated_data['user'],
            serializer.validated_data['role'],
            assigned_by=request.user,
            request=request,
        )
        return Response(UserRoleSerializer(user_role).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['RBAC - Assignments'],
    summary='Revoke role from user',
    request=RoleAssignmentSerializer,
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class RevokeRoleView(APIView):
    """POST /api/revoke-role"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = RoleAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        RBACService.revoke_role(
            serializer.validated_data['user'],
            serializer.validated_data['role'],
            revoked_by=request.user,
            request=request,
        )
        return Response({'message': 'Role revoked successfully'})


@extend_schema(
    tags=['RBAC - Assignments'],
    summary='Grant permission to role',
    request=PermissionAssignmentSerializer,
    responses={201: RolePermissionSerializer, 400: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class AssignPermissionView(APIView):
    """POST /api/assign-permission"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PermissionAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        grant = RBACService.grant_permission(
            serializer.validated_data['role'],
            serializer.validated_data['permission'],
            assigned_by=request.user,
            request=request,
        )
        return Response(RolePermissionSerializer(grant).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['RBAC - Assignments'],
    summary='Revoke permission from role',
    request=PermissionAssignmentSerializer,
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class RevokePermissionView(APIView):
    """POST /api/revoke-permission"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PermissionAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        RBACService.revoke_permission(
            serializer.validated_data['role'],
            serializer.validated_data['permission'],
            revoked_by=request.user,
            request=request,
        )
        return Response({'message': 'Permission revoked successfully'})


@extend_schema(
    tags=['RBAC - Assignments'],
    summary="List a user's roles",
    responses={200: RoleSerializer(many=True), 404: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class UserRolesView(APIView):
    """GET /api/users/{id}/roles - roles with their permissions"""
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            raise NotFound('User not found')

        roles = RBACService.get_user_roles(user)
        return Response(RoleSerializer(roles, many=True).data)
