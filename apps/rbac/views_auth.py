"""
Authentication REST API views.

Implements endpoints for:
- User registration
- Login and logout
- Email verification (link, code, resend, status)
- Access token management
- Debug helpers for the verification flow (DEBUG only)
"""
import logging
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django_ratelimit.decorators import ratelimit
from django.utils.decorators import method_decorator
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import InvalidOrExpiredVerificationToken, Unauthorized
from apps.core.logging import SecurityLogger
from apps.core.permissions import requires_abilities
from apps.rbac.services import AuthService, TokenService, VerificationService
from apps.rbac.serializers import (
    RegistrationSerializer, LoginSerializer, VerifyCodeSerializer,
    ResendVerificationSerializer, UserSerializer, SessionSerializer,
    AccessTokenSerializer, ServiceTokenRequestSerializer,
)

logger = logging.getLogger(__name__)


def _client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


@extend_schema(
    tags=['Authentication'],
    summary='Register new user',
    description='''
Create an unverified account and email a verification link and six digit code.

The account cannot log in until the email is verified.

**No authentication required** - this is a public endpoint.

**Rate limit**: 5 requests/hour per IP address
    ''',
    request=RegistrationSerializer,
    responses={
        201: OpenApiTypes.OBJECT,
        400: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Registration Request',
            value={
                'username': 'jdoe',
                'email': 'john@example.com',
                'password': 'SecurePass123!',
                'first_name': 'John',
                'last_name': 'Doe',
                'age': 29,
                'gender': 'male',
                'activity_level': 'lightly_active'
            },
            request_only=True
        ),
        OpenApiExample(
            'Success Response',
            value={
                'message': 'Registration successful. Please check your email for verification.',
                'user_id': 42
            },
            response_only=True,
            status_codes=['201']
        ),
    ]
)
class RegistrationView(APIView):
    """
    POST /api/auth/register

    No authentication required.
    """
    authentication_classes = []
    permission_classes = []

    @method_decorator(ratelimit(key='ip', rate='5/h', method='POST', block=True))
    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        user = AuthService.register(
            email=data.pop('email'),
            password=data.pop('password'),
            username=data.pop('username'),
            request=request,
            **data
        )

        return Response(
            {
                'message': 'Registration successful. Please check your email for verification.',
                'user_id': user.id,
            },
            status=status.HTTP_201_CREATED
        )


@extend_schema(
    tags=['Authentication'],
    summary='Login user',
    description='''
Authenticate with email and password.

Returns an opaque bearer token, the abilities it carries and its expiry.
An account whose email is not verified gets 403 with `requires_verification: true`.

**Rate limit**: 5 requests/minute per IP address
    ''',
    request=LoginSerializer,
    responses={
        200: SessionSerializer,
        401: OpenApiTypes.OBJECT,
        403: OpenApiTypes.OBJECT,
        429: OpenApiTypes.OBJECT,
    },
    examples=[
        OpenApiExample(
            'Login Request',
            value={'email': 'john@example.com', 'password': 'SecurePass123!'},
            request_only=True
        ),
        OpenApiExample(
            'Unverified Email',
            value={
                'error': 'Email not verified',
                'code': 'EMAIL_UNVERIFIED',
                'requires_verification': True
            },
            response_only=True,
            status_codes=['403']
        ),
        OpenApiExample(
            'Rate Limit Exceeded',
            value={
                'error': 'Rate limit exceeded. Please try again later.',
                'code': 'RATE_LIMIT_EXCEEDED',
                'retry_after': 60
            },
            response_only=True,
            status_codes=['429']
        )
    ]
)
class LoginView(APIView):
    """
    POST /api/auth/login

    No authentication required.
    """
    authentication_classes = []
    permission_classes = []

    @method_decorator(ratelimit(key='ip', rate='5/m', method='POST', block=True))
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = AuthService.login(
            email=serializer.validated_data['email'],
            password=serializer.validated_data['password'],
            ip_address=_client_ip(request),
        )

        return Response(SessionSerializer(session).data, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Authentication'],
    summary='Verify email by link',
    parameters=[
        OpenApiParameter('token', OpenApiTypes.STR, OpenApiParameter.QUERY, required=True),
    ],
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT},
)
class VerifyEmailView(APIView):
    """
    GET /api/auth/verify-email?token=...

    The link token is valid for 24 hours after it was sent.
    """
    authentication_classes = []
    permission_classes = []

    def get(self, request):
        token = request.query_params.get('token')
        if not token:
            raise InvalidOrExpiredVerificationToken('Verification token required')

        VerificationService.verify_by_token(token)
        return Response({'message': 'Email verified successfully'})


@extend_schema(
    tags=['Authentication'],
    summary='Verify email by code',
    description='''
Verify the account with the six digit code from the verification email.

On success the user is logged in: the response carries a bearer token exactly
like the login endpoint. Codes expire 15 minutes after they are issued.

**Rate limit**: 10 requests/15 minutes per IP address
    ''',
    request=VerifyCodeSerializer,
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 429: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            'Invalid Code',
            value={'error': 'Invalid verification code', 'code': 'INVALID_CODE'},
            response_only=True,
            status_codes=['400']
        ),
    ]
)
class VerifyCodeView(APIView):
    """POST /api/auth/verify-code"""
    authentication_classes = []
    permission_classes = []

    @method_decorator(ratelimit(key='ip', rate='10/15m', method='POST', block=True))
    def post(self, request):
        serializer = VerifyCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = VerificationService.verify_by_code(
            serializer.validated_data['email'],
            serializer.validated_data['code'],
        )

        data = {'message': 'Email verified successfully with code'}
        data.update(SessionSerializer(session).data)
        return Response(data, status=status.HTTP_200_OK)


@extend_schema(
    tags=['Authentication'],
    summary='Resend verification email',
    description='Issue a new link and code. Only one challenge may be issued every 5 minutes.',
    request=ResendVerificationSerializer,
    responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT, 429: OpenApiTypes.OBJECT},
)
class ResendVerificationView(APIView):
    """POST /api/auth/resend-verification"""
    authentication_classes = []
    permission_classes = []

    @method_decorator(ratelimit(key='ip', rate='5/h', method='POST', block=True))
    def post(self, request):
        serializer = ResendVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        VerificationService.resend(serializer.validated_data['email'])
        return Response({'message': 'Verification email sent'})


@extend_schema(
    tags=['Authentication'],
    summary='Email verification status',
    responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
)
class EmailVerificationStatusView(APIView):
    """GET /api/auth/email-verification-status/{user_id}"""
    authentication_classes = []
    permission_classes = []

    def get(self, request, user_id):
        return Response(VerificationService.status(user_id))


class DebugOnlyMixin:
    """
    Restrict a view to DEBUG deployments.

    Every use is recorded as a critical security event.
    """
    authentication_classes = []
    permission_classes = []

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        if not settings.DEBUG:
            raise Unauthorized('Debug mode required')

        SecurityLogger.log_debug_endpoint_used(
            endpoint=request.path,
            target_email=kwargs.get('email'),
            ip_address=_client_ip(request),
        )


@extend_schema(tags=['Debug'], summary='Read current verification code', responses=OpenApiTypes.OBJECT)
class DebugVerificationCodeView(DebugOnlyMixin, APIView):
    """GET /api/auth/debug-verification-code/{email}"""

    def get(self, request, email):
        return Response(VerificationService.debug_code(email))


@extend_schema(tags=['Debug'], summary='Read verification status', responses=OpenApiTypes.OBJECT)
class DebugUserStatusView(DebugOnlyMixin, APIView):
    """GET /api/auth/debug-user-status/{email}"""

    def get(self, request, email):
        return Response(VerificationService.debug_status(email))


@extend_schema(tags=['Debug'], summary='Reset verification', request=None, responses=OpenApiTypes.OBJECT)
class DebugResetVerificationView(DebugOnlyMixin, APIView):
    """POST /api/auth/debug-reset-verification/{email}"""

    def post(self, request, email):
        return Response(VerificationService.debug_reset(email))


@extend_schema(
    tags=['Authentication'],
    summary='Get current user',
    responses={200: UserSerializer, 401: OpenApiTypes.OBJECT},
)
class CurrentUserView(APIView):
    """
    GET /api/auth/user

    Requires a bearer token.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


@extend_schema(
    tags=['Authentication'],
    summary='Logout',
    description='Revoke the token used for this request. Other tokens keep working.',
    responses={200: OpenApiTypes.OBJECT, 401: OpenApiTypes.OBJECT},
)
class LogoutView(APIView):
    """DELETE /api/auth/logout"""
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        TokenService.revoke(request.auth)
        return Response({'message': 'Logged out successfully'})


@extend_schema(
    tags=['Authentication'],
    summary='Logout from all devices',
    responses={200: OpenApiTypes.OBJECT, 401: OpenApiTypes.OBJECT},
)
class LogoutAllView(APIView):
    """DELETE /api/auth/logout-all"""
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        TokenService.revoke_all(request.user, request=request)
        return Response({'message': 'Logged out from all devices'})


@extend_schema(
    tags=['Authentication'],
    summary='Refresh token',
    description='''
Exchange the presented token for a new one with the same name and abilities.

The presented token is revoked and cannot be used again.
    ''',
    request=None,
    responses={200: OpenApiTypes.OBJECT, 401: OpenApiTypes.OBJECT},
    examples=[
        OpenApiExample(
            'Success Response',
            value={
                'token': 'Xc2o0k9F...',
                'abilities': ['access-workouts', 'manage-profile'],
                'expires_at': '2027-01-01T00:00:00Z'
            },
            response_only=True
        )
    ]
)
class RefreshTokenView(APIView):
    """POST /api/auth/refresh"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        token, plain_text = TokenService.rotate(request.auth)
        return Response({
            'token': plain_text,
            'abilities': token.abilities,
            'expires_at': token.expires_at,
        })


@extend_schema(
    tags=['Tokens'],
    summary='List my tokens',
    responses={200: AccessTokenSerializer(many=True)},
)
class TokenListView(APIView):
    """GET /api/auth/tokens"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        tokens = TokenService.list_for_user(request.user)
        return Response(AccessTokenSerializer(tokens, many=True).data)


@extend_schema(
    tags=['Tokens'],
    summary='Revoke one of my tokens',
    responses={200: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
)
class TokenRevokeView(APIView):
    """DELETE /api/auth/tokens/{token_id}"""
    permission_classes = [IsAuthenticated]

    def delete(self, request, token_id):
        TokenService.revoke_for_user(request.user, token_id)
        return Response({'message': 'Token revoked successfully'})


@extend_schema(
    tags=['Tokens'],
    summary='Validate token',
    description='Used by other services to check a bearer token and read its abilities.',
    responses={200: OpenApiTypes.OBJECT, 401: OpenApiTypes.OBJECT},
)
class ValidateTokenView(APIView):
    """GET /api/auth/validate"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user, token = request.user, request.auth
        return Response({
            'valid': True,
            'user_id': user.id,
            'email': user.email,
            'email_verified': user.email_verified,
            'abilities': token.abilities,
            'token_name': token.name,
            'last_used_at': token.last_used_at,
        })


@extend_schema(
    tags=['Tokens'],
    summary='Create service token',
    description='''
Mint a token for another internal service. The token belongs to a dedicated
service account.

**Required ability**: `admin-access`
    ''',
    request=ServiceTokenRequestSerializer,
    responses={201: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
)
@requires_abilities('admin-access')
class CreateServiceTokenView(APIView):
    """POST /api/auth/create-service-token"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = ServiceTokenRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        token, plain_text = TokenService.create_service_token(
            service_name=serializer.validated_data['service_name'],
            abilities=serializer.validated_data.get('abilities'),
            actor=request.user,
            ip_address=_client_ip(request),
        )

        return Response(
            {
                'service_token': plain_text,
                'abilities': token.abilities,
                'expires_at': token.expires_at,
            },
            status=status.HTTP_201_CREATED
        )
