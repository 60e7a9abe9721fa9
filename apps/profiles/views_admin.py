"""
Admin user management views.

Every endpoint requires a token carrying the ``admin-access`` ability.
"""
import logging
from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.permissions import requires_abilities
from apps.profiles.serializers import (
    AdminUserUpdateSerializer, OnboardingSerializer, BulkUserUpdateSerializer,
    PreferenceSerializer,
)
from apps.profiles.services import (
    PreferenceService, ProfileService, UserAdminService, get_user_or_404,
)
from apps.profiles.views import paginated
from apps.rbac.models import User
from apps.rbac.serializers import UserSerializer

logger = logging.getLogger(__name__)

TRUTHY = ('true', '1', 'yes')


def _flag(value):
    return value.lower() in TRUTHY


@extend_schema(
    tags=['Admin - Users'],
    summary='List users',
    parameters=[
        OpenApiParameter(
            name='search',
            type=OpenApiTypes.STR,
            location=OpenApiParameter.QUERY,
            description='Match username, email, first or last name'
        ),
        OpenApiParameter(name='is_active', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY),
        OpenApiParameter(name='email_verified', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY),
        OpenApiParameter(name='page', type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
    ],
    responses={200: UserSerializer(many=True), 403: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class AllUsersView(APIView):
    """GET /api/all-users"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        queryset = User.objects.prefetch_related('roles').order_by('-created_at', '-id')

        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )

        is_active = request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=_flag(is_active))

        email_verified = request.query_params.get('email_verified')
        if email_verified is not None:
            queryset = queryset.filter(email_verified_at__isnull=not _flag(email_verified))

        return paginated(request, queryset, UserSerializer)


@extend_schema(tags=['Admin - Users'])
@requires_abilities('admin-access')
class AdminUserDetailView(APIView):
    """
    GET /api/users/{id}
    PUT /api/users/{id}
    DELETE /api/users/{id}
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(summary='Get user', responses={200: UserSerializer, 404: OpenApiTypes.OBJECT})
    def get(self, request, user_id):
        return Response(UserSerializer(get_user_or_404(user_id)).data)

    @extend_schema(
        summary='Update user',
        request=AdminUserUpdateSerializer,
        responses={200: UserSerializer, 400: OpenApiTypes.OBJECT},
    )
    def put(self, request, user_id):
        user = get_user_or_404(user_id)
        serializer = AdminUserUpdateSerializer(user, data=request.data)
        serializer.is_valid(raise_exception=True)

        changes = dict(serializer.validated_data)
        is_active = changes.pop('is_active', None)
        if changes:
            user = ProfileService.update_profile(user, changes)
        if is_active is not None and is_active != user.is_active:
            user = UserAdminService.set_active(user, is_active, actor=request.user, request=request)

        return Response(UserSerializer(user).data)

    @extend_schema(summary='Delete user', responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def delete(self, request, user_id):
        UserAdminService.delete_user(get_user_or_404(user_id), actor=request.user, request=request)
        return Response({'message': 'User deleted successfully'})


@extend_schema(
    tags=['Admin - Users'],
    summary='Deactivate user',
    description='Disable the account and revoke all of its tokens.',
    request=None,
    responses={200: UserSerializer, 404: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class DeactivateUserView(APIView):
    """POST /api/users/{id}/deactivate"""
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        user = UserAdminService.set_active(
            get_user_or_404(user_id), False, actor=request.user, request=request
        )
        return Response({'message': 'User deactivated successfully', 'user': UserSerializer(user).data})


@extend_schema(
    tags=['Admin - Users'],
    summary='Activate user',
    request=None,
    responses={200: UserSerializer, 404: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class ActivateUserView(APIView):
    """POST /api/users/{id}/activate"""
    permission_classes = [IsAuthenticated]

    def post(self, request, user_id):
        user = UserAdminService.set_active(
            get_user_or_404(user_id), True, actor=request.user, request=request
        )
        return Response({'message': 'User activated successfully', 'user': UserSerializer(user).data})


@extend_schema(
    tags=['Admin - Users'],
    summary='Set onboarding state',
    request=OnboardingSerializer,
    responses={200: UserSerializer, 400: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class UserOnboardingView(APIView):
    """PUT /api/users/{id}/onboarding"""
    permission_classes = [IsAuthenticated]

    def put(self, request, user_id):
        user = get_user_or_404(user_id)
        serializer = OnboardingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = ProfileService.set_onboarding(user, serializer.validated_data['onboarding_completed'])
        return Response(UserSerializer(user).data)


@extend_schema(
    tags=['Admin - Users'],
    summary='User statistics',
    responses={200: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            'Stats',
            value={
                'total_users': 120,
                'active_users': 114,
                'verified_users': 101,
                'onboarded_users': 87,
                'users_by_fitness_level': {'beginner': 70, 'intermediate': 38, 'advanced': 12},
                'users_by_activity_level': {'sedentary': 40, 'moderately_active': 80},
                'recent_registrations': 17
            },
            response_only=True
        ),
    ]
)
@requires_abilities('admin-access')
class UserStatsView(APIView):
    """GET /api/user-stats"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserAdminService.stats())


@extend_schema(
    tags=['Admin - Users'],
    summary="List a user's preferences",
    responses={200: PreferenceSerializer(many=True), 404: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class AdminUserPreferencesView(APIView):
    """GET /api/users/{id}/preferences"""
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        preferences = PreferenceService.list_for_user(get_user_or_404(user_id))
        return Response(PreferenceSerializer(preferences, many=True).data)


@extend_schema(
    tags=['Admin - Users'],
    summary='Bulk update users',
    description='Set `is_active` on many users at once. Deactivated users lose all their tokens.',
    request=BulkUserUpdateSerializer,
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            'Deactivate',
            value={'user_ids': [4, 8, 15], 'is_active': False},
            request_only=True
        ),
    ]
)
@requires_abilities('admin-access')
class BulkUpdateUsersView(APIView):
    """POST /api/bulk-update-users"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = BulkUserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updated = UserAdminService.bulk_update(
            serializer.validated_data['user_ids'],
            {'is_active': serializer.validated_data['is_active']},
            actor=request.user,
            request=request,
        )
        logger.info(
            "Users bulk updated",
            extra={'updated_count': updated, 'actor_id': request.user.id}
        )
        return Response({'message': 'Users updated successfully', 'updated_count': updated})
