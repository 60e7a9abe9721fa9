"""
Bearer token authentication middleware.

Resolves ``Authorization: Bearer <token>`` once per request so that DRF
authentication, permission classes and logging all see the same identity.
"""
import logging
from django.utils.deprecation import MiddlewareMixin

from apps.core.exceptions import InvalidToken
from apps.core.logging import SecurityLogger
from apps.core.sentry_utils import set_user_context

logger = logging.getLogger(__name__)


class TokenAuthMiddleware(MiddlewareMixin):
    """
    Attach the presented access token to the request.

    This middleware:
    1. Extracts the bearer secret from the Authorization header
    2. Resolves it through TokenService (which records last use)
    3. Sets request.access_token on success, request.token_error on failure

    It never rejects a request itself. Views decide whether authentication
    is required, and MiddlewareAuthentication turns token_error into a 401.
    """

    keyword = 'Bearer'

    def process_request(self, request):
        request.access_token = None
        request.token_error = None

        plain_text = self._get_bearer(request)
        if not plain_text:
            return None

        from apps.rbac.services import TokenService

        try:
            access_token = TokenService.resolve(plain_text)
        except InvalidToken as e:
            request.token_error = e
            SecurityLogger.log_invalid_token(
                ip_address=self._client_ip(request),
                path=request.path
            )
            return None

        request.access_token = access_token
        set_user_context(access_token.user)

        logger.debug(
            "Bearer token resolved",
            extra={
                'user_id': access_token.user_id,
                'token_id': access_token.id,
                'request_id': getattr(request, 'request_id', None),
            }
        )
        return None

    def _get_bearer(self, request):
        header = request.META.get('HTTP_AUTHORIZATION', '')
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != self.keyword.lower():
            return None
        return parts[1]

    def _client_ip(self, request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
