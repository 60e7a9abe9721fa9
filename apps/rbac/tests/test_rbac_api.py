"""
Tests for RBAC admin endpoints.
"""
import pytest
from rest_framework import status

from apps.rbac.models import Permission, Role, UserRole, RolePermission


@pytest.mark.django_db
class TestAdminAbilityRequired:

    @pytest.mark.parametrize('method,path', [
        ('get', '/api/roles'),
        ('get', '/api/permissions'),
        ('post', '/api/assign-role'),
        ('get', '/api/all-users'),
        ('get', '/api/user-stats'),
    ])
    def test_rejects_token_without_admin_access(self, auth_client, method, path):
        response = getattr(auth_client, method)(path, {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['error'] == 'Unauthorized'

    def test_rejects_request_without_token(self, api_client, db):
        response = api_client.get('/api/roles')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_ability_snapshot_is_used(self, auth_client, user, admin_role):
        # Role granted after the token was minted
        UserRole.objects.create(user=user, role=admin_role)

        response = auth_client.get('/api/roles')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestRoleEndpoints:

    def test_create_and_list_roles(self, admin_client):
        response = admin_client.post(
            '/api/roles',
            {'name': 'coach', 'description': 'Reviews member plans'},
            format='json'
        )
        assert response.status_code == status.HTTP_201_CREATED

        response = admin_client.get('/api/roles')
        assert response.status_code == status.HTTP_200_OK
        assert {role['name'] for role in response.data} >= {'admin', 'coach'}

    def test_duplicate_role_name(self, admin_client, admin_role):
        response = admin_client.post('/api/roles', {'name': 'admin'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_role(self, admin_client):
        role = Role.objects.create(name='coach')

        response = admin_client.put(f'/api/roles/{role.id}', {'description': 'Updated'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        role.refresh_from_db()
        assert role.description == 'Updated'

    def test_delete_role(self, admin_client):
        role = Role.objects.create(name='coach')

        response = admin_client.delete(f'/api/roles/{role.id}')

        assert response.status_code == status.HTTP_200_OK
        assert not Role.objects.filter(pk=role.pk).exists()

    def test_unknown_role(self, admin_client):
        response = admin_client.get('/api/roles/999999')

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestAssignmentEndpoints:

    def test_assign_and_revoke_role(self, admin_client, user):
        role = Role.objects.create(name='premium')
        payload = {'user_id': user.id, 'role_id': role.id}

        response = admin_client.post('/api/assign-role', payload, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user_id'] == user.id

        response = admin_client.post('/api/assign-role', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'ALREADY_ASSIGNED'

        response = admin_client.get(f'/api/users/{user.id}/roles')
        assert [item['name'] for item in response.data] == ['premium']

        response = admin_client.post('/api/revoke-role', payload, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert not UserRole.objects.filter(user=user, role=role).exists()

        response = admin_client.post('/api/revoke-role', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'NOT_ASSIGNED'

    def test_assign_unknown_user(self, admin_client, admin_role):
        response = admin_client.post(
            '/api/assign-role',
            {'user_id': 999999, 'role_id': admin_role.id},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'user_id' in response.data['details']

    def test_grant_and_revoke_permission(self, admin_client):
        role = Role.objects.create(name='coach')
        permission = Permission.objects.create(name='review-plans')
        payload = {'role_id': role.id, 'permission_id': permission.id}

        response = admin_client.post('/api/assign-permission', payload, format='json')
        assert response.status_code == status.HTTP_201_CREATED

        response = admin_client.get(f'/api/roles/{role.id}/permissions')
        assert [item['name'] for item in response.data] == ['review-plans']

        response = admin_client.post('/api/assign-permission', payload, format='json')
        assert response.data['code'] == 'ALREADY_GRANTED'

        response = admin_client.post('/api/revoke-permission', payload, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert not RolePermission.objects.filter(role=role).exists()

    def test_role_permissions_hide_inactive(self, admin_client):
        role = Role.objects.create(name='coach')
        active = Permission.objects.create(name='review-plans')
        retired = Permission.objects.create(name='legacy-export', is_active=False)
        RolePermission.objects.create(role=role, permission=active)
        RolePermission.objects.create(role=role, permission=retired)

        response = admin_client.get(f'/api/roles/{role.id}/permissions')

        assert [item['name'] for item in response.data] == ['review-plans']

    def test_create_permission(self, admin_client):
        response = admin_client.post(
            '/api/permissions',
            {'name': 'view-reports', 'description': 'See usage reports'},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert Permission.objects.filter(name='view-reports').exists()
