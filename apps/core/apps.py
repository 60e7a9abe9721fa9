from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging
import sys

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Perform startup validation checks when Django initializes.

        Only runs for the development server and gunicorn so that
        migrations, shell and the test runner work without full config.
        """
        if 'runserver' not in sys.argv and 'gunicorn' not in sys.argv[0]:
            return

        self._validate_security_settings()
        self._validate_downstream_settings()

        logger.info("All startup security validations passed")

    def _validate_security_settings(self):
        """Validate SECRET_KEY strength and production hardening."""
        debug = getattr(settings, 'DEBUG', False)
        secret_key = getattr(settings, 'SECRET_KEY', None)

        if not secret_key:
            raise ImproperlyConfigured(
                "SECRET_KEY must be set in environment variables. "
                "Generate with: "
                "python -c \"import secrets; print(secrets.token_urlsafe(50))\""
            )

        if len(secret_key) < 50:
            logger.warning(
                f"SECRET_KEY is shorter than recommended "
                f"(current: {len(secret_key)}, recommended: 50+)"
            )

        if debug:
            return

        weak_patterns = ['change-me', 'insecure', '12345', 'password']
        secret_lower = secret_key.lower()
        for pattern in weak_patterns:
            if pattern in secret_lower:
                raise ImproperlyConfigured(
                    f"SECRET_KEY appears to be a default or weak value (contains '{pattern}')."
                )

        if not getattr(settings, 'SECURE_SSL_REDIRECT', False):
            logger.warning("SECURE_SSL_REDIRECT is not enabled in production.")

    def _validate_downstream_settings(self):
        """Warn when notification collaborators are not configured."""
        if not getattr(settings, 'SERVICE_API_TOKEN', None):
            logger.warning(
                "SERVICE_API_TOKEN is not set. Calls to the comms and engagement "
                "services will be sent without credentials."
            )
