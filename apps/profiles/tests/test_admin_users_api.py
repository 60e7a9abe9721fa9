"""
Tests for admin user management endpoints.
"""
from decimal import Decimal

import pytest
from rest_framework import status

from apps.core.exceptions import InvalidToken
from apps.profiles.models import FitnessAssessment, UserPreference
from apps.profiles.services import UserAdminService
from apps.rbac.models import AccessToken, AuditLog, User
from apps.rbac.services import TokenService


@pytest.mark.django_db
class TestAllUsers:

    def test_lists_users_paginated(self, admin_client, make_user):
        for _ in range(3):
            make_user()

        response = admin_client.get('/api/all-users', {'page_size': 2})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 4
        assert len(response.data['results']) == 2
        assert response.data['next'] is not None

    def test_search(self, admin_client, make_user):
        make_user(email='runner@example.com', first_name='Ada')
        make_user(email='lifter@example.com', first_name='Grace')

        response = admin_client.get('/api/all-users', {'search': 'ada'})

        assert [item['email'] for item in response.data['results']] == ['runner@example.com']

    def test_filter_by_flags(self, admin_client, make_user):
        make_user(email='off@example.com', is_active=False)
        make_user(email='pending@example.com', verified=False)

        response = admin_client.get('/api/all-users', {'is_active': 'false'})
        assert [item['email'] for item in response.data['results']] == ['off@example.com']

        response = admin_client.get('/api/all-users', {'email_verified': 'false'})
        assert [item['email'] for item in response.data['results']] == ['pending@example.com']


@pytest.mark.django_db
class TestAdminUserDetail:

    def test_get_unknown_user(self, admin_client):
        response = admin_client.get('/api/users/999999')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['code'] == 'NOT_FOUND'

    def test_update_email_must_be_unique(self, admin_client, user, make_user):
        make_user(email='taken@example.com')

        response = admin_client.put(f'/api/users/{user.id}', {'email': 'Taken@Example.com'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data['details']

    def test_update_deactivates(self, admin_client, user):
        TokenService.mint(user)

        response = admin_client.put(
            f'/api/users/{user.id}',
            {'first_name': 'Janet', 'is_active': False},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.first_name == 'Janet'
        assert user.is_active is False
        assert not AccessToken.objects.filter(user=user).exists()

    def test_delete(self, admin_client, admin_user, user):
        user_id = user.id

        response = admin_client.delete(f'/api/users/{user_id}')

        assert response.status_code == status.HTTP_200_OK
        assert not User.objects.filter(pk=user_id).exists()
        log = AuditLog.objects.by_action('user_deleted').get()
        assert log.user == admin_user
        assert log.target_id == user_id


@pytest.mark.django_db
class TestActivation:

    def test_deactivate_revokes_tokens(self, admin_client, user):
        _, plain_text = TokenService.mint(user)

        response = admin_client.post(f'/api/users/{user.id}/deactivate')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['is_active'] is False
        with pytest.raises(InvalidToken):
            TokenService.resolve(plain_text)
        assert AuditLog.objects.by_action('user_deactivated').exists()

    def test_activate(self, admin_client, make_user):
        account = make_user(is_active=False)

        response = admin_client.post(f'/api/users/{account.id}/activate')

        assert response.status_code == status.HTTP_200_OK
        account.refresh_from_db()
        assert account.is_active is True

    def test_onboarding(self, admin_client, user):
        response = admin_client.put(
            f'/api/users/{user.id}/onboarding',
            {'onboarding_completed': True},
            format='json'
        )
        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.onboarding_completed_at is not None

        admin_client.put(f'/api/users/{user.id}/onboarding', {'onboarding_completed': False}, format='json')
        user.refresh_from_db()
        assert user.onboarding_completed is False
        assert user.onboarding_completed_at is None


@pytest.mark.django_db
class TestBulkUpdate:

    def test_bulk_deactivate(self, admin_client, make_user):
        first, second, untouched = make_user(), make_user(), make_user()
        TokenService.mint(first)

        response = admin_client.post(
            '/api/bulk-update-users',
            {'user_ids': [first.id, second.id], 'is_active': False},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['updated_count'] == 2
        assert set(User.objects.filter(is_active=False).values_list('id', flat=True)) == {first.id, second.id}
        assert not AccessToken.objects.filter(user=first).exists()
        untouched.refresh_from_db()
        assert untouched.is_active is True

    def test_rejects_other_fields(self, admin_client, user):
        response = admin_client.post(
            '/api/bulk-update-users',
            {'user_ids': [user.id], 'is_active': True, 'email': 'x@example.com'},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_rejects_empty_ids(self, admin_client):
        response = admin_client.post(
            '/api/bulk-update-users',
            {'user_ids': [], 'is_active': False},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_service_rejects_unknown_field(self, user):
        with pytest.raises(ValueError):
            UserAdminService.bulk_update([user.id], {'email_verified_at': None})


@pytest.mark.django_db
class TestUserStats:

    def test_stats(self, admin_client, admin_user, user, make_user):
        make_user(is_active=False, verified=False, onboarding_completed=True)
        FitnessAssessment.objects.create(user=user, assessment_type='weekly', score=Decimal('82'))

        response = admin_client.get('/api/user-stats')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_users'] == 3
        assert response.data['active_users'] == 2
        assert response.data['verified_users'] == 2
        assert response.data['onboarded_users'] == 1
        assert response.data['users_by_fitness_level'] == {
            'beginner': 2, 'intermediate': 0, 'advanced': 1,
        }
        assert response.data['recent_registrations'] == 3

    def test_user_preferences(self, admin_client, user):
        UserPreference.objects.create(user=user, name='units', value='imperial')

        response = admin_client.get(f'/api/users/{user.id}/preferences')

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['value'] == 'imperial'
