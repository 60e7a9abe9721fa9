"""
Profile models: user preferences and fitness assessments.

The fitness level shown on a profile is never stored. It is projected
from the user's assessments every time it is read.
"""
import json
from decimal import Decimal
from django.conf import settings
from django.db import models
from django.utils import timezone
from apps.core.models import BaseModel


class FitnessLevel(models.TextChoices):
    BEGINNER = 'beginner', 'Beginner'
    INTERMEDIATE = 'intermediate', 'Intermediate'
    ADVANCED = 'advanced', 'Advanced'


INTERMEDIATE_SCORE = Decimal('40')
ADVANCED_SCORE = Decimal('70')


def level_for_score(score):
    """Map an assessment score to a fitness level."""
    score = Decimal(str(score))
    if score >= ADVANCED_SCORE:
        return FitnessLevel.ADVANCED.value
    if score >= INTERMEDIATE_SCORE:
        return FitnessLevel.INTERMEDIATE.value
    return FitnessLevel.BEGINNER.value


def project_fitness_level(latest_data=None, latest_score=None):
    """
    Derive a fitness level.

    Args:
        latest_data: assessment_data of the most recent assessment
        latest_score: score of the most recent assessment that has one

    An explicit ``fitness_level`` in the latest assessment wins, then the
    latest score, then beginner.
    """
    if isinstance(latest_data, dict):
        explicit = latest_data.get('fitness_level')
        if explicit in FitnessLevel.values:
            return explicit

    if latest_score is not None:
        return level_for_score(latest_score)

    return FitnessLevel.BEGINNER.value


class FitnessAssessmentQuerySet(models.QuerySet):

    def for_user(self, user):
        return self.filter(user=user)

    def of_type(self, assessment_type):
        return self.filter(assessment_type=assessment_type)

    def newest_first(self):
        return self.order_by('-assessment_date', '-id')


class FitnessAssessmentManager(models.Manager.from_queryset(FitnessAssessmentQuerySet)):
    """Manager for FitnessAssessment queries."""

    def fitness_level_for(self, user):
        """Project the fitness level for a user from their assessments."""
        history = self.for_user(user).newest_first()
        latest = history.values('assessment_data').first()
        latest_score = (
            history.filter(score__isnull=False)
            .values_list('score', flat=True)
            .first()
        )
        return project_fitness_level(
            latest['assessment_data'] if latest else None,
            latest_score,
        )


class FitnessAssessment(BaseModel):
    """
    A single fitness assessment for a user.

    ``assessment_data`` is free-form JSON. It may carry an explicit
    ``fitness_level`` that overrides the score.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='fitness_assessments',
        help_text="Assessed user"
    )
    assessment_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Assessment type (e.g., 'initial_onboarding', 'weekly')"
    )
    assessment_data = models.JSONField(default=dict, help_text="Assessment answers and measurements")
    score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Score between 0 and 999.99"
    )
    assessment_date = models.DateTimeField(default=timezone.now, db_index=True)
    notes = models.TextField(blank=True, default='')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assessments_created',
        help_text="User who recorded the assessment"
    )

    objects = FitnessAssessmentManager()

    class Meta:
        db_table = 'fitness_assessments'
        ordering = ['-assessment_date', '-id']
        indexes = [
            models.Index(fields=['user', 'assessment_type', 'assessment_date'], name='assessment_user_type_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.assessment_type} ({self.assessment_date:%Y-%m-%d})"


class PreferenceType(models.TextChoices):
    STRING = 'string', 'String'
    INTEGER = 'integer', 'Integer'
    BOOLEAN = 'boolean', 'Boolean'
    JSON = 'json', 'JSON'


class UserPreference(BaseModel):
    """
    Sparse key/value preference for a user.

    Values are stored as text and decoded according to ``value_type``.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='preferences'
    )
    name = models.CharField(max_length=100, help_text="Preference key")
    value = models.TextField(blank=True, default='', help_text="Encoded preference value")
    value_type = models.CharField(
        max_length=10,
        choices=PreferenceType.choices,
        default=PreferenceType.STRING
    )

    class Meta:
        db_table = 'user_preferences'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['user', 'name'], name='unique_user_preference'),
        ]

    def __str__(self):
        return f"{self.user_id}:{self.name}"

    @staticmethod
    def encode(value, value_type):
        """Encode a Python value for storage. Raises ValueError on mismatch."""
        if value_type == PreferenceType.JSON:
            return json.dumps(value)
        if value_type == PreferenceType.BOOLEAN:
            if isinstance(value, bool):
                return 'true' if value else 'false'
            if str(value).lower() in ('true', 'false', '1', '0'):
                return 'true' if str(value).lower() in ('true', '1') else 'false'
            raise ValueError("Expected a boolean")
        if value_type == PreferenceType.INTEGER:
            if isinstance(value, bool):
                raise ValueError("Expected an integer")
            return str(int(value))
        return '' if value is None else str(value)

    @property
    def typed_value(self):
        if self.value_type == PreferenceType.JSON:
            return json.loads(self.value) if self.value else None
        if self.value_type == PreferenceType.BOOLEAN:
            return self.value == 'true'
        if self.value_type == PreferenceType.INTEGER:
            return int(self.value)
        return self.value
