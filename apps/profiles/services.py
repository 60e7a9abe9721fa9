"""
Profile services.

Implements:
- ProfileService: profile updates and onboarding state
- PreferenceService: typed key/value preferences
- AssessmentService: assessment history and weekly status
- UserAdminService: account activation, bulk updates and statistics
"""
import logging
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Count, OuterRef, Subquery
from django.utils import timezone

from apps.core.exceptions import NotFound
from apps.profiles.models import (
    FitnessAssessment, FitnessLevel, UserPreference, project_fitness_level,
)
from apps.rbac.models import AuditLog, User
from apps.rbac.services import TokenService

logger = logging.getLogger(__name__)

WEEKLY_ASSESSMENT_TYPE = 'weekly'


def get_user_or_404(user_id) -> User:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFound('User not found')
    return user


class ProfileService:
    """Service for profile updates."""

    @classmethod
    def update_profile(cls, user: User, changes: Dict[str, Any]) -> User:
        """
        Apply validated profile changes.

        Setting ``onboarding_completed`` to true stamps ``onboarding_completed_at``;
        setting it to false clears the stamp.
        """
        changes = dict(changes)
        if 'onboarding_completed' in changes:
            completed = changes['onboarding_completed']
            changes['onboarding_completed_at'] = timezone.now() if completed else None

        for field, value in changes.items():
            setattr(user, field, value)
        user.save(update_fields=list(changes) + ['updated_at'])
        return user

    @classmethod
    def set_onboarding(cls, user: User, completed: bool) -> User:
        return cls.update_profile(user, {'onboarding_completed': completed})


class PreferenceService:
    """Service for typed key/value user preferences."""

    @classmethod
    def list_for_user(cls, user: User):
        return UserPreference.objects.filter(user=user).order_by('name')

    @classmethod
    @transaction.atomic
    def upsert_many(cls, user: User, items: Iterable[Dict[str, Any]]) -> List[UserPreference]:
        """
        Create or replace preferences by name.

        Args:
            items: Validated dicts with name, value and value_type
        """
        saved = []
        for item in items:
            preference, _ = UserPreference.objects.update_or_create(
                user=user,
                name=item['name'],
                defaults={
                    'value': UserPreference.encode(item['value'], item['value_type']),
                    'value_type': item['value_type'],
                },
            )
            saved.append(preference)
        return saved

    @classmethod
    def delete(cls, user: User, name: str) -> None:
        deleted, _ = UserPreference.objects.filter(user=user, name=name).delete()
        if not deleted:
            raise NotFound('Preference not found')


class AssessmentService:
    """Service for fitness assessments."""

    @classmethod
    def get(cls, assessment_id) -> FitnessAssessment:
        assessment = (
            FitnessAssessment.objects
            .select_related('user', 'created_by')
            .filter(pk=assessment_id)
            .first()
        )
        if assessment is None:
            raise NotFound('Assessment not found')
        return assessment

    @classmethod
    def history(cls, user: User, assessment_type: Optional[str] = None):
        queryset = FitnessAssessment.objects.for_user(user).select_related('created_by')
        if assessment_type:
            queryset = queryset.of_type(assessment_type)
        return queryset.newest_first()

    @staticmethod
    def current_week(now=None):
        """Monday 00:00 to Sunday 23:59:59.999999 of the current week, local time."""
        now = timezone.localtime(now or timezone.now())
        monday = now.date() - timedelta(days=now.weekday())
        week_start = timezone.make_aware(datetime.combine(monday, time.min), now.tzinfo)
        week_end = week_start + timedelta(days=7) - timedelta(microseconds=1)
        return week_start, week_end

    @classmethod
    def weekly_status(cls, user: User) -> Dict[str, Any]:
        """Whether the user has submitted a weekly assessment this week."""
        week_start, week_end = cls.current_week()
        weekly = cls.history(user, WEEKLY_ASSESSMENT_TYPE)

        this_week = weekly.filter(assessment_date__range=(week_start, week_end)).first()
        last = weekly.first()

        def summary(assessment):
            if assessment is None:
                return None
            return {
                'id': assessment.id,
                'submitted_at': assessment.assessment_date,
                'score': assessment.score,
            }

        return {
            'completed_this_week': this_week is not None,
            'week_start': week_start,
            'week_end': week_end,
            'this_week_assessment': summary(this_week),
            'last_assessment': summary(last),
        }


class UserAdminService:
    """
    Service for admin account management.
    """

    BULK_UPDATABLE_FIELDS = {'is_active'}

    @classmethod
    @transaction.atomic
    def set_active(cls, user: User, is_active: bool, actor: Optional[User] = None,
                   request=None) -> User:
        """
        Activate or deactivate an account.

        Deactivation also revokes every token the account holds.
        """
        user.is_active = is_active
        user.save(update_fields=['is_active', 'updated_at'])

        if not is_active:
            TokenService.revoke_all(user, actor=actor, request=request)

        AuditLog.log_action(
            action='user_activated' if is_active else 'user_deactivated',
            user=actor,
            target_type='User',
            target_id=user.id,
            diff={'is_active': is_active},
            request=request,
        )
        return user

    @classmethod
    @transaction.atomic
    def delete_user(cls, user: User, actor: Optional[User] = None, request=None) -> None:
        user_id, email = user.id, user.email
        user.delete()

        AuditLog.log_action(
            action='user_deleted',
            user=actor,
            target_type='User',
            target_id=user_id,
            metadata={'email': email},
            request=request,
        )
        logger.info("User deleted", extra={'user_id': user_id})

    @classmethod
    @transaction.atomic
    def bulk_update(cls, user_ids: List[int], updates: Dict[str, Any],
                    actor: Optional[User] = None, request=None) -> int:
        """
        Apply the same change to many accounts. Only ``is_active`` may change.

        Deactivated accounts lose all their tokens.
        """
        unknown = set(updates) - cls.BULK_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be bulk updated: {sorted(unknown)}")

        users = User.objects.filter(pk__in=user_ids)
        updated = users.update(updated_at=timezone.now(), **updates)

        if updates.get('is_active') is False:
            for user in users:
                TokenService.revoke_all(user, actor=actor, request=request)

        AuditLog.log_action(
            action='users_bulk_updated',
            user=actor,
            target_type='User',
            diff=updates,
            metadata={'user_ids': list(user_ids), 'updated_count': updated},
            request=request,
        )
        return updated

    @classmethod
    def fitness_level_counts(cls) -> Dict[str, int]:
        """Count users per derived fitness level."""
        history = FitnessAssessment.objects.filter(user=OuterRef('pk')).order_by('-assessment_date', '-id')
        rows = User.objects.annotate(
            latest_data=Subquery(history.values('assessment_data')[:1]),
            latest_score=Subquery(history.filter(score__isnull=False).values('score')[:1]),
        ).values_list('latest_data', 'latest_score')

        counts = {level: 0 for level in FitnessLevel.values}
        for latest_data, latest_score in rows:
            counts[project_fitness_level(latest_data, latest_score)] += 1
        return counts

    @classmethod
    def stats(cls) -> Dict[str, Any]:
        since = timezone.now() - timedelta(days=30)
        activity_levels = (
            User.objects.values('activity_level')
            .annotate(count=Count('id'))
            .order_by('activity_level')
        )

        return {
            'total_users': User.objects.count(),
            'active_users': User.objects.active().count(),
            'verified_users': User.objects.verified().count(),
            'onboarded_users': User.objects.filter(onboarding_completed=True).count(),
            'users_by_fitness_level': cls.fitness_level_counts(),
            'users_by_activity_level': {
                row['activity_level']: row['count'] for row in activity_levels
            },
            'recent_registrations': User.objects.filter(created_at__gte=since).count(),
        }


