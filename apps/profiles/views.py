"""
Profile REST API views.

Implements endpoints for:
- Viewing and updating a user profile
- The caller's key/value preferences
- Fitness assessments and weekly assessment status
"""
import logging
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination
from rest_framework.exceptions import ValidationError
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import Unauthorized
from apps.core.permissions import IsEmailVerified, is_self_or_admin, token_abilities, ADMIN_ABILITY
from apps.profiles.serializers import (
    ProfileUpdateSerializer, PreferenceSerializer, PreferenceBulkSerializer,
    FitnessAssessmentSerializer, WeeklyStatusSerializer,
)
from apps.profiles.services import (
    AssessmentService, PreferenceService, ProfileService, get_user_or_404,
)
from apps.profiles.models import FitnessAssessment
from apps.rbac.serializers import UserSerializer

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def paginated(request, queryset, serializer_class):
    paginator = StandardResultsSetPagination()
    page = paginator.paginate_queryset(queryset, request)

    if page is not None:
        serializer = serializer_class(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    return Response(serializer_class(queryset, many=True).data)


def ensure_self_or_admin(request, user_id):
    if not is_self_or_admin(request, user_id):
        raise Unauthorized('You can only access your own data')


class UserProfileView(APIView):
    """
    GET /api/auth/user-profile/{id}
    PUT /api/auth/user-profile/{id} - verified email, own profile unless admin
    """
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.request.method == 'PUT':
            return [IsAuthenticated(), IsEmailVerified()]
        return super().get_permissions()

    @extend_schema(
        tags=['Profile'],
        summary='Get user profile',
        responses={200: UserSerializer, 404: OpenApiTypes.OBJECT},
    )
    def get(self, request, user_id):
        return Response(UserSerializer(get_user_or_404(user_id)).data)

    @extend_schema(
        tags=['Profile'],
        summary='Update user profile',
        description='''
Update profile fields. Omitted fields are left unchanged.

Setting `onboarding_completed` to true records the completion time.
        ''',
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer, 400: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Update Goals',
                value={
                    'fitness_goals': ['build_muscle', 'improve_strength'],
                    'available_equipment': ['dumbbells', 'bench'],
                    'time_constraints_minutes': 45
                },
                request_only=True
            ),
        ]
    )
    def put(self, request, user_id):
        ensure_self_or_admin(request, user_id)
        user = get_user_or_404(user_id)

        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = ProfileService.update_profile(user, serializer.validated_data)

        logger.info(
            "Profile updated",
            extra={'user_id': user.id, 'fields': sorted(serializer.validated_data)}
        )
        return Response({
            'message': 'Profile updated successfully',
            'user': UserSerializer(user).data,
        })


class PreferenceListView(APIView):
    """
    GET /api/preferences - the caller's preferences
    PUT /api/preferences - create or replace preferences by name
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=['Profile'], summary='List preferences', responses={200: PreferenceSerializer(many=True)})
    def get(self, request):
        preferences = PreferenceService.list_for_user(request.user)
        return Response(PreferenceSerializer(preferences, many=True).data)

    @extend_schema(
        tags=['Profile'],
        summary='Upsert preferences',
        request=PreferenceBulkSerializer,
        responses={200: PreferenceSerializer(many=True), 400: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Preferences',
                value={'preferences': [
                    {'name': 'units', 'value': 'metric', 'value_type': 'string'},
                    {'name': 'rest_seconds', 'value': 90, 'value_type': 'integer'},
                ]},
                request_only=True
            ),
        ]
    )
    def put(self, request):
        serializer = PreferenceBulkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        PreferenceService.upsert_many(request.user, serializer.validated_data['preferences'])
        preferences = PreferenceService.list_for_user(request.user)
        return Response(PreferenceSerializer(preferences, many=True).data)


class PreferenceDetailView(APIView):
    """DELETE /api/preferences/{name}"""
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=['Profile'], summary='Delete preference', responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT})
    def delete(self, request, name):
        PreferenceService.delete(request.user, name)
        return Response({'message': 'Preference deleted successfully'})


@extend_schema(tags=['Fitness Assessments'])
class FitnessAssessmentCreateView(APIView):
    """
    POST /api/fitness-assessment

    ``user_id`` defaults to the caller. Only admins may record an
    assessment for someone else.
    """
    permission_classes = [IsAuthenticated, IsEmailVerified]

    @extend_schema(
        summary='Record fitness assessment',
        request=FitnessAssessmentSerializer,
        responses={201: FitnessAssessmentSerializer, 400: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Initial Assessment',
                value={
                    'assessment_type': 'initial_onboarding',
                    'assessment_data': {'pushups': 12, 'plank_seconds': 45},
                    'score': 52.5
                },
                request_only=True
            ),
        ]
    )
    def post(self, request):
        serializer = FitnessAssessmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user_id = serializer.validated_data.get('user_id', request.user.id)
        ensure_self_or_admin(request, user_id)

        assessment = serializer.save(user_id=user_id, created_by=request.user)
        logger.info(
            "Fitness assessment recorded",
            extra={
                'assessment_id': assessment.id,
                'user_id': user_id,
                'assessment_type': assessment.assessment_type,
            }
        )
        return Response(FitnessAssessmentSerializer(assessment).data, status=status.HTTP_201_CREATED)


@extend_schema(
    tags=['Fitness Assessments'],
    summary='List fitness assessments',
    parameters=[
        OpenApiParameter(
            name='user_id',
            type=OpenApiTypes.INT,
            location=OpenApiParameter.QUERY,
            description='Filter by user (admins only; others always see their own)'
        ),
        OpenApiParameter(
            name='assessment_type',
            type=OpenApiTypes.STR,
            location=OpenApiParameter.QUERY,
            description='Filter by assessment type'
        ),
        OpenApiParameter(name='page', type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
    ],
    responses={200: FitnessAssessmentSerializer(many=True)},
)
class FitnessAssessmentListView(APIView):
    """GET /api/fitness-assessments"""
    permission_classes = [IsAuthenticated, IsEmailVerified]

    def get(self, request):
        queryset = FitnessAssessment.objects.select_related('created_by').newest_first()

        if ADMIN_ABILITY in token_abilities(request):
            user_id = request.query_params.get('user_id')
            if user_id:
                if not user_id.isdigit():
                    raise ValidationError({'user_id': 'Must be an integer.'})
                queryset = queryset.filter(user_id=user_id)
        else:
            queryset = queryset.for_user(request.user)

        assessment_type = request.query_params.get('assessment_type')
        if assessment_type:
            queryset = queryset.of_type(assessment_type)

        return paginated(request, queryset, FitnessAssessmentSerializer)


@extend_schema(
    tags=['Fitness Assessments'],
    summary='Weekly assessment status',
    description='Whether the caller has submitted a `weekly` assessment in the current Monday-Sunday week.',
    responses={200: WeeklyStatusSerializer},
)
class WeeklyAssessmentStatusView(APIView):
    """GET /api/fitness-assessments/weekly-status"""
    permission_classes = [IsAuthenticated, IsEmailVerified]

    def get(self, request):
        weekly_status = AssessmentService.weekly_status(request.user)
        return Response(WeeklyStatusSerializer(weekly_status).data)


@extend_schema(tags=['Fitness Assessments'])
class FitnessAssessmentDetailView(APIView):
    """
    GET /api/fitness-assessments/{id}
    PUT /api/fitness-assessments/{id}
    DELETE /api/fitness-assessments/{id}
    """
    permission_classes = [IsAuthenticated, IsEmailVerified]

    def get_assessment(self, request, assessment_id):
        assessment = AssessmentService.get(assessment_id)
        ensure_self_or_admin(request, assessment.user_id)
        return assessment

    @extend_schema(summary='Get fitness assessment', responses={200: FitnessAssessmentSerializer})
    def get(self, request, assessment_id):
        return Response(FitnessAssessmentSerializer(self.get_assessment(request, assessment_id)).data)

    @extend_schema(
        summary='Update fitness assessment',
        request=FitnessAssessmentSerializer,
        responses={200: FitnessAssessmentSerializer, 400: OpenApiTypes.OBJECT},
    )
    def put(self, request, assessment_id):
        assessment = self.get_assessment(request, assessment_id)
        serializer = FitnessAssessmentSerializer(assessment, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        assessment = serializer.save()
        return Response(FitnessAssessmentSerializer(assessment).data)

    @extend_schema(summary='Delete fitness assessment', responses={200: OpenApiTypes.OBJECT})
    def delete(self, request, assessment_id):
        self.get_assessment(request, assessment_id).delete()
        return Response({'message': 'Assessment deleted successfully'})


@extend_schema(
    tags=['Fitness Assessments'],
    summary="List a user's assessments",
    responses={200: FitnessAssessmentSerializer(many=True), 403: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
)
class UserAssessmentsView(APIView):
    """
    GET /api/users/{id}/assessments
    GET /api/users/{id}/assessments/{type}
    """
    permission_classes = [IsAuthenticated, IsEmailVerified]

    def get(self, request, user_id, assessment_type=None):
        ensure_self_or_admin(request, user_id)
        user = get_user_or_404(user_id)

        assessments = AssessmentService.history(user, assessment_type)
        return Response(FitnessAssessmentSerializer(assessments, many=True).data)
