"""
Custom authentication backend.

Provides email-based authentication for Django admin. API clients use
bearer tokens instead (see TokenAuthMiddleware).
"""
from django.contrib.auth.backends import BaseBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailAuthBackend(BaseBackend):
    """
    Authenticate using email address instead of username.

    Only active accounts with a verified email may sign in.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        # Django admin passes email as 'username' parameter
        email = username or kwargs.get('email')

        if not email or not password:
            return None

        user = User.objects.by_email(email)
        if user is None:
            # Run the default password hasher once to reduce timing
            # difference between existing and non-existing users
            User().set_password(password)
            return None

        if user.check_password(password) and user.is_active and user.email_verified:
            return user

        return None

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
