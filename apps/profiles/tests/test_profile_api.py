"""
Tests for profile, preference and assessment endpoints.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from apps.profiles.models import FitnessAssessment, UserPreference
from apps.profiles.services import AssessmentService
from apps.rbac.services import TokenService


@pytest.fixture
def unverified_client(unverified_user):
    _, plain_text = TokenService.mint(unverified_user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {plain_text}')
    return client


@pytest.mark.django_db
class TestUserProfile:

    def test_get_profile(self, auth_client, make_user):
        other = make_user()

        response = auth_client.get(f'/api/auth/user-profile/{other.id}')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['email'] == other.email

    def test_update_own_profile(self, auth_client, user):
        response = auth_client.put(
            f'/api/auth/user-profile/{user.id}',
            {
                'fitness_goals': ['build_muscle', 'build_muscle', 'general_fitness'],
                'available_equipment': ['dumbbells'],
                'onboarding_completed': True,
            },
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.fitness_goals == ['build_muscle', 'general_fitness']
        assert user.onboarding_completed is True
        assert user.onboarding_completed_at is not None

    def test_invalid_choice(self, auth_client, user):
        response = auth_client.put(
            f'/api/auth/user-profile/{user.id}',
            {'target_muscle_groups': ['wings']},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'target_muscle_groups' in response.data['details']

    def test_cannot_update_someone_else(self, auth_client, make_user):
        other = make_user()

        response = auth_client.put(f'/api/auth/user-profile/{other.id}', {'age': 40}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        other.refresh_from_db()
        assert other.age == 30

    def test_admin_can_update_someone_else(self, admin_client, user):
        response = admin_client.put(f'/api/auth/user-profile/{user.id}', {'age': 41}, format='json')

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.age == 41

    def test_update_requires_verified_email(self, unverified_client, unverified_user):
        response = unverified_client.put(
            f'/api/auth/user-profile/{unverified_user.id}',
            {'age': 40},
            format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestPreferences:

    def test_upsert_and_list(self, auth_client, user):
        response = auth_client.put(
            '/api/preferences',
            {'preferences': [
                {'name': 'units', 'value': 'metric', 'value_type': 'string'},
                {'name': 'rest_seconds', 'value': 90, 'value_type': 'integer'},
            ]},
            format='json'
        )
        assert response.status_code == status.HTTP_200_OK

        auth_client.put(
            '/api/preferences',
            {'preferences': [{'name': 'rest_seconds', 'value': 60, 'value_type': 'integer'}]},
            format='json'
        )

        response = auth_client.get('/api/preferences')
        assert {item['name']: item['value'] for item in response.data} == {
            'rest_seconds': 60,
            'units': 'metric',
        }
        assert UserPreference.objects.filter(user=user).count() == 2

    def test_type_mismatch(self, auth_client):
        response = auth_client.put(
            '/api/preferences',
            {'preferences': [{'name': 'rest_seconds', 'value': 'long', 'value_type': 'integer'}]},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete(self, auth_client, user):
        UserPreference.objects.create(user=user, name='units', value='metric')

        response = auth_client.delete('/api/preferences/units')
        assert response.status_code == status.HTTP_200_OK

        response = auth_client.delete('/api/preferences/units')
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestFitnessAssessments:

    def test_record_for_self(self, auth_client, user):
        response = auth_client.post(
            '/api/fitness-assessment',
            {
                'assessment_type': 'initial_onboarding',
                'assessment_data': {'pushups': 30},
                'score': '72.50',
            },
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assessment = FitnessAssessment.objects.get(pk=response.data['id'])
        assert assessment.user == user
        assert assessment.created_by == user
        user.refresh_from_db()
        assert user.fitness_level == 'advanced'

    def test_non_admin_cannot_record_for_others(self, auth_client, make_user):
        other = make_user()

        response = auth_client.post(
            '/api/fitness-assessment',
            {'user_id': other.id, 'assessment_type': 'weekly'},
            format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not FitnessAssessment.objects.exists()

    def test_admin_records_for_others(self, admin_client, admin_user, user):
        response = admin_client.post(
            '/api/fitness-assessment',
            {'user_id': user.id, 'assessment_type': 'weekly', 'score': 50},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assessment = FitnessAssessment.objects.get(pk=response.data['id'])
        assert assessment.user == user
        assert assessment.created_by == admin_user

    def test_score_out_of_range(self, auth_client):
        response = auth_client.post(
            '/api/fitness-assessment',
            {'assessment_type': 'weekly', 'score': '1000'},
            format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_verified_email(self, unverified_client):
        response = unverified_client.post(
            '/api/fitness-assessment',
            {'assessment_type': 'weekly'},
            format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_is_limited_to_own_assessments(self, auth_client, user, make_user):
        other = make_user()
        FitnessAssessment.objects.create(user=user, assessment_type='weekly')
        FitnessAssessment.objects.create(user=other, assessment_type='weekly')

        response = auth_client.get('/api/fitness-assessments', {'user_id': other.id})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['user_id'] == user.id

    def test_admin_filters_by_user_and_type(self, admin_client, user):
        FitnessAssessment.objects.create(user=user, assessment_type='weekly')
        FitnessAssessment.objects.create(user=user, assessment_type='initial_onboarding')

        response = admin_client.get(
            '/api/fitness-assessments',
            {'user_id': user.id, 'assessment_type': 'weekly'}
        )

        assert response.data['count'] == 1

    def test_detail_update_and_delete(self, auth_client, user, make_user):
        assessment = FitnessAssessment.objects.create(user=user, assessment_type='weekly')
        other = make_user()

        response = auth_client.put(
            f'/api/fitness-assessments/{assessment.id}',
            {'notes': 'Felt strong', 'user_id': other.id},
            format='json'
        )
        assert response.status_code == status.HTTP_200_OK
        assessment.refresh_from_db()
        assert assessment.notes == 'Felt strong'
        assert assessment.user_id == user.id

        response = auth_client.delete(f'/api/fitness-assessments/{assessment.id}')
        assert response.status_code == status.HTTP_200_OK
        assert not FitnessAssessment.objects.filter(pk=assessment.pk).exists()

    def test_detail_of_someone_else(self, auth_client, make_user):
        assessment = FitnessAssessment.objects.create(user=make_user(), assessment_type='weekly')

        response = auth_client.get(f'/api/fitness-assessments/{assessment.id}')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_user_assessments_by_type(self, auth_client, user):
        FitnessAssessment.objects.create(user=user, assessment_type='weekly')
        FitnessAssessment.objects.create(user=user, assessment_type='initial_onboarding')

        response = auth_client.get(f'/api/users/{user.id}/assessments/weekly')

        assert response.status_code == status.HTTP_200_OK
        assert [item['assessment_type'] for item in response.data] == ['weekly']

        response = auth_client.get(f'/api/users/{user.id}/assessments')
        assert len(response.data) == 2


@pytest.mark.django_db
class TestWeeklyStatus:

    def test_current_week_bounds(self):
        week_start, week_end = AssessmentService.current_week()

        assert week_start.weekday() == 0
        assert (week_start.hour, week_start.minute, week_start.second) == (0, 0, 0)
        assert week_end - week_start == timedelta(days=7) - timedelta(microseconds=1)

    def test_not_completed(self, auth_client):
        response = auth_client.get('/api/fitness-assessments/weekly-status')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['completed_this_week'] is False
        assert response.data['this_week_assessment'] is None
        assert response.data['last_assessment'] is None

    def test_completed_this_week(self, auth_client, user):
        week_start, _ = AssessmentService.current_week()
        FitnessAssessment.objects.create(
            user=user, assessment_type='weekly',
            score=Decimal('50'), assessment_date=week_start - timedelta(days=3),
        )
        current = FitnessAssessment.objects.create(
            user=user, assessment_type='weekly',
            score=Decimal('55'), assessment_date=timezone.now(),
        )

        response = auth_client.get('/api/fitness-assessments/weekly-status')

        assert response.data['completed_this_week'] is True
        assert response.data['this_week_assessment']['id'] == current.id
        assert response.data['last_assessment']['id'] == current.id

    def test_only_weekly_type_counts(self, auth_client, user):
        FitnessAssessment.objects.create(user=user, assessment_type='initial_onboarding')

        response = auth_client.get('/api/fitness-assessments/weekly-status')

        assert response.data['completed_this_week'] is False
