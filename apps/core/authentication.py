"""
Custom DRF authentication classes.
"""
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed


class MiddlewareAuthentication(BaseAuthentication):
    """
    DRF authentication class that uses the identity set by TokenAuthMiddleware.

    The middleware resolves the bearer token once per request; this class
    hands the resulting ``(user, access_token)`` pair to DRF so that
    ``request.auth`` is the AccessToken and its ability snapshot.
    """

    def authenticate(self, request):
        django_request = request._request

        token_error = getattr(django_request, 'token_error', None)
        if token_error is not None:
            raise AuthenticationFailed(token_error.message, code='invalid_token')

        access_token = getattr(django_request, 'access_token', None)
        if access_token is None:
            return None

        return (access_token.user, access_token)

    def authenticate_header(self, request):
        return 'Bearer'
