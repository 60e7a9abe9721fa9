"""
Exception taxonomy and custom exception handlers for DRF.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from django_ratelimit.exceptions import Ratelimited
from django.conf import settings

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying a rate limited endpoint
DEFAULT_RETRY_AFTER = 60
AUTH_RETRY_AFTER = {
    '/auth/register': 3600,
    '/auth/login': 60,
    '/auth/verify-code': 900,
    '/auth/resend-verification': 300,
}


def _retry_after_for(path):
    for prefix, seconds in AUTH_RETRY_AFTER.items():
        if prefix in path:
            return seconds
    return DEFAULT_RETRY_AFTER


def _client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def _log_rate_limit(request):
    """Record a rate limit hit and return the retry-after window."""
    from apps.core.logging import SecurityLogger

    email = None
    data = getattr(request, 'data', None)
    if isinstance(data, dict):
        email = data.get('email')

    retry_after = _retry_after_for(request.path)

    SecurityLogger.log_rate_limit_exceeded(
        endpoint=request.path,
        ip_address=_client_ip(request),
        user_email=email,
        limit='Rate limit exceeded'
    )
    logger.warning(
        "Rate limit exceeded",
        extra={
            'request_id': getattr(request, 'request_id', None),
            'path': request.path,
            'method': request.method,
            'retry_after': retry_after,
        }
    )
    return retry_after


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns a consistent format.

    Every error body carries ``error``, ``code`` and ``request_id``.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, Ratelimited):
        retry_after = _log_rate_limit(request)
        response = Response(
            {
                'error': 'Rate limit exceeded. Please try again later.',
                'code': 'RATE_LIMIT_EXCEEDED',
                'request_id': request_id,
                'retry_after': retry_after,
            },
            status=status.HTTP_429_TOO_MANY_REQUESTS
        )
        response['Retry-After'] = str(retry_after)
        return response

    if isinstance(exc, FitneaseException):
        logger.info(
            f"Service error: {exc.__class__.__name__}",
            extra={
                'error_code': exc.code,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            }
        )
        body = {'error': exc.message, 'code': exc.code}
        body.update(exc.details)
        body['request_id'] = request_id
        response = Response(body, status=exc.status_code)
        if exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS and 'retry_after' in exc.details:
            response['Retry-After'] = str(exc.details['retry_after'])
        return response

    # Call DRF's default exception handler
    response = exception_handler(exc, context)

    if response is None:
        logger.error(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'exception': str(exc),
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=True
        )
        return Response(
            {
                'error': 'Internal server error',
                'code': 'INTERNAL_ERROR',
                'detail': str(exc) if settings.DEBUG else 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    logger.warning(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'status_code': response.status_code,
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        }
    )

    if isinstance(exc, DRFValidationError):
        response.data = {
            'error': 'Validation error',
            'code': 'VALIDATION_ERROR',
            'details': response.data,
        }
    elif isinstance(response.data, dict) and 'detail' in response.data:
        detail = response.data.pop('detail')
        response.data['error'] = str(detail)
        response.data['code'] = getattr(detail, 'code', 'error').upper()

    if isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response


class FitneaseException(Exception):
    """Base exception for service errors."""

    status_code = 400
    code = 'ERROR'
    default_message = 'Request failed'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class DuplicateIdentity(FitneaseException):
    """Raised when a username or email is already registered."""
    code = 'DUPLICATE_IDENTITY'
    default_message = 'Username or email already taken'


class InvalidCredentials(FitneaseException):
    """Raised when email/password do not match an account."""
    status_code = 401
    code = 'INVALID_CREDENTIALS'
    default_message = 'Invalid credentials'


class AccountDisabled(FitneaseException):
    """Raised when an inactive account attempts to log in."""
    status_code = 403
    code = 'ACCOUNT_DISABLED'
    default_message = 'Account disabled'


class EmailUnverified(FitneaseException):
    """Raised when an account has not verified its email."""
    status_code = 403
    code = 'EMAIL_UNVERIFIED'
    default_message = 'Email not verified'


class InvalidToken(FitneaseException):
    """Raised when a bearer token is unknown or expired."""
    status_code = 401
    code = 'INVALID_TOKEN'
    default_message = 'Invalid token'


class TokenNotFound(FitneaseException):
    status_code = 404
    code = 'TOKEN_NOT_FOUND'
    default_message = 'Token not found'


class InvalidOrExpiredVerificationToken(FitneaseException):
    code = 'INVALID_VERIFICATION_TOKEN'
    default_message = 'Invalid or expired verification token'


class InvalidCode(FitneaseException):
    code = 'INVALID_CODE'
    default_message = 'Invalid verification code'


class CodeExpired(FitneaseException):
    code = 'CODE_EXPIRED'
    default_message = 'Verification code has expired'


class RateLimited(FitneaseException):
    """Raised when an action is repeated inside its cool-down window."""
    status_code = 429
    code = 'RATE_LIMITED'
    default_message = 'Please wait before trying again'


class AlreadyAssigned(FitneaseException):
    code = 'ALREADY_ASSIGNED'
    default_message = 'User already has this role'


class NotAssigned(FitneaseException):
    code = 'NOT_ASSIGNED'
    default_message = 'User does not have this role'


class AlreadyGranted(FitneaseException):
    code = 'ALREADY_GRANTED'
    default_message = 'Role already has this permission'


class NotGranted(FitneaseException):
    code = 'NOT_GRANTED'
    default_message = 'Role does not have this permission'


class NotFound(FitneaseException):
    """Raised when an entity lookup fails."""
    status_code = 404
    code = 'NOT_FOUND'
    default_message = 'Not found'


class Unauthorized(FitneaseException):
    """Raised when the caller lacks a required ability."""
    status_code = 403
    code = 'UNAUTHORIZED'
    default_message = 'Unauthorized'


class NotPendingVerification(FitneaseException):
    """Raised when a resend is requested for an unknown or verified account."""
    code = 'NOT_PENDING_VERIFICATION'
    default_message = 'User not found or already verified'
