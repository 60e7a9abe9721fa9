"""
Tests for RBACService and ability resolution.
"""
import pytest

from apps.core.exceptions import AlreadyAssigned, AlreadyGranted, NotAssigned, NotGranted
from apps.rbac.models import AuditLog, Permission, Role, RolePermission, UserRole
from apps.rbac.services import AbilityResolver, RBACService, TokenService


@pytest.fixture
def coach_role(db):
    return Role.objects.create(name='coach', description='Reviews member plans')


@pytest.fixture
def review_permission(db):
    return Permission.objects.create(name='review-plans')


@pytest.mark.django_db
class TestRoleAssignment:

    def test_assign_role(self, user, coach_role, admin_user):
        user_role = RBACService.assign_role(user, coach_role, assigned_by=admin_user)

        assert user_role.assigned_by == admin_user
        assert RBACService.has_role(user, 'coach')
        assert AuditLog.objects.filter(action='role_assigned', target_id=user.id).exists()

    def test_second_assignment_rejected(self, user, coach_role):
        RBACService.assign_role(user, coach_role)

        with pytest.raises(AlreadyAssigned):
            RBACService.assign_role(user, coach_role)

        assert UserRole.objects.filter(user=user, role=coach_role).count() == 1

    def test_revoke_role(self, user, coach_role):
        RBACService.assign_role(user, coach_role)

        RBACService.revoke_role(user, coach_role)

        assert not RBACService.has_role(user, 'coach')

    def test_revoke_unassigned_role(self, user, coach_role):
        with pytest.raises(NotAssigned):
            RBACService.revoke_role(user, coach_role)

    def test_inactive_role_is_not_held(self, user, admin_role):
        RBACService.assign_role(user, admin_role)
        Role.objects.filter(pk=admin_role.pk).update(is_active=False)

        assert not RBACService.has_role(user, 'admin')
        assert user.role_names() == set()
        assert 'admin-access' not in AbilityResolver.resolve(user)


@pytest.mark.django_db
class TestPermissionGrants:

    def test_grant_reaches_role_holders(self, user, coach_role, review_permission):
        RBACService.assign_role(user, coach_role)

        assert not RBACService.has_permission(user, 'review-plans')

        RBACService.grant_permission(coach_role, review_permission)

        assert RBACService.has_permission(user, 'review-plans')

    def test_second_grant_rejected(self, coach_role, review_permission):
        RBACService.grant_permission(coach_role, review_permission)

        with pytest.raises(AlreadyGranted):
            RBACService.grant_permission(coach_role, review_permission)

    def test_revoke_permission_invalidates_cache(self, user, coach_role, review_permission):
        RBACService.assign_role(user, coach_role)
        RBACService.grant_permission(coach_role, review_permission)
        assert RBACService.has_permission(user, 'review-plans')

        RBACService.revoke_permission(coach_role, review_permission)

        assert not RBACService.has_permission(user, 'review-plans')

    def test_revoke_missing_grant(self, coach_role, review_permission):
        with pytest.raises(NotGranted):
            RBACService.revoke_permission(coach_role, review_permission)

    def test_inactive_permission_is_ignored(self, user, coach_role, review_permission):
        RBACService.assign_role(user, coach_role)
        RBACService.grant_permission(coach_role, review_permission)
        Permission.objects.filter(pk=review_permission.pk).update(is_active=False)
        RBACService.invalidate_permission_cache(user)

        assert not RBACService.has_permission(user, 'review-plans')
        assert not coach_role.get_permissions().exists()

    def test_role_permissions_skip_inactive_grants(self, coach_role, review_permission):
        grant = RBACService.grant_permission(coach_role, review_permission)
        other = Permission.objects.create(name='view-reports')
        RBACService.grant_permission(coach_role, other)
        RolePermission.objects.filter(pk=grant.pk).update(is_active=False)

        assert [p.name for p in coach_role.get_permissions()] == ['view-reports']

    def test_delete_role_removes_edges(self, user, coach_role, review_permission):
        RBACService.assign_role(user, coach_role)
        RBACService.grant_permission(coach_role, review_permission)

        RBACService.delete_role(coach_role)

        assert not Role.objects.filter(name='coach').exists()
        assert not UserRole.objects.filter(user=user).exists()
        assert not RBACService.has_permission(user, 'review-plans')


@pytest.mark.django_db
class TestAbilityResolution:

    def test_admin_role_toggles_admin_access(self, user, admin_role):
        assert 'admin-access' not in AbilityResolver.resolve(user)

        RBACService.assign_role(user, admin_role)
        assert 'admin-access' in AbilityResolver.resolve(user)

        RBACService.revoke_role(user, admin_role)
        assert 'admin-access' not in AbilityResolver.resolve(user)

    def test_inactive_role_grants_nothing(self, user, admin_role):
        RBACService.assign_role(user, admin_role)
        Role.objects.filter(pk=admin_role.pk).update(is_active=False)

        assert 'admin-access' not in AbilityResolver.resolve(user)

    def test_permission_grants_do_not_add_abilities(self, user, coach_role):
        admin_permission = Permission.objects.create(name='admin-access')
        RBACService.grant_permission(coach_role, admin_permission)
        RBACService.assign_role(user, coach_role)

        assert 'admin-access' not in AbilityResolver.resolve(user)

    def test_existing_token_keeps_its_snapshot(self, user, admin_role):
        token, _ = TokenService.mint(user)

        RBACService.assign_role(user, admin_role)

        token.refresh_from_db()
        assert 'admin-access' not in token.abilities
