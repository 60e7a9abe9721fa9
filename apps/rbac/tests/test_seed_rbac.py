"""
Tests for the seed_rbac management command.
"""
from io import StringIO

import pytest
from django.core.management import call_command

from apps.rbac.models import Permission, Role, RolePermission, User
from apps.rbac.services import AbilityResolver, RBACService


@pytest.mark.django_db
class TestSeedRbac:

    def test_seeds_roles_and_permissions(self):
        call_command('seed_rbac', stdout=StringIO())

        assert set(Role.objects.values_list('name', flat=True)) == {
            'admin', 'premium', 'user', 'member', 'mentor',
        }
        assert Permission.objects.filter(name='admin-access').exists()
        assert RolePermission.objects.filter(role__name='admin').count() == Permission.objects.count()

    def test_is_idempotent(self):
        call_command('seed_rbac', stdout=StringIO())
        out = StringIO()

        call_command('seed_rbac', stdout=out)

        assert Role.objects.count() == 5
        assert '0 permissions and 0 roles created' in out.getvalue()

    def test_demo_users(self):
        call_command('seed_rbac', '--with-demo-users', '--demo-password', 'DemoPass123!', stdout=StringIO())

        admin = User.objects.by_email('admin@fitnease.local')
        assert admin.email_verified
        assert admin.check_password('DemoPass123!')
        assert RBACService.has_role(admin, 'admin')
        assert 'admin-access' in AbilityResolver.resolve(admin)

        tester = User.objects.by_email('test@fitnease.local')
        assert 'admin-access' not in AbilityResolver.resolve(tester)
