"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    settings.CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'fitnease-auth-tests',
        }
    }
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    settings.RATELIMIT_ENABLE = False
    settings.SECURE_SSL_REDIRECT = False
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.SERVICE_API_TOKEN = 'service-token'
    django.setup()


DEFAULT_PASSWORD = 'SecurePass123!'


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def make_user(db):
    """Factory for accounts. Accounts are verified unless ``verified=False``."""
    from django.utils import timezone
    from apps.rbac.models import User

    counter = {'n': 0}

    def _make_user(email=None, password=DEFAULT_PASSWORD, verified=True, **fields):
        counter['n'] += 1
        email = email or f"member{counter['n']}@example.com"
        fields.setdefault('first_name', 'Test')
        fields.setdefault('last_name', 'Member')
        fields.setdefault('age', 30)
        if verified:
            fields.setdefault('email_verified_at', timezone.now())
        return User.objects.create_user(email=email, password=password, **fields)

    return _make_user


@pytest.fixture
def user(make_user):
    """A verified, active account."""
    return make_user(email='jane@example.com', username='jane')


@pytest.fixture
def unverified_user(make_user):
    """An account with a pending verification challenge."""
    from apps.rbac.services import VerificationService

    account = make_user(email='pending@example.com', username='pending', verified=False)
    return VerificationService.issue_challenge(account, enforce_cooldown=False)


@pytest.fixture
def admin_role(db):
    from apps.rbac.models import Role
    role, _ = Role.objects.get_or_create(name='admin', defaults={'description': 'Administrator'})
    return role


@pytest.fixture
def admin_user(make_user, admin_role):
    """A verified account holding the admin role."""
    from apps.rbac.models import UserRole

    account = make_user(email='admin@example.com', username='admin')
    UserRole.objects.create(user=account, role=admin_role)
    return account


def _client_for(account):
    from rest_framework.test import APIClient
    from apps.rbac.services import TokenService

    _, plain_text = TokenService.mint(account)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {plain_text}')
    client.token = plain_text
    return client


@pytest.fixture
def auth_client(user):
    """API client authenticated as ``user``."""
    return _client_for(user)


@pytest.fixture
def admin_client(admin_user):
    """API client whose token carries ``admin-access``."""
    return _client_for(admin_user)
