"""
Profile serializers: profile updates, preferences, assessments and admin user management.
"""
from decimal import Decimal
from rest_framework import serializers

from apps.profiles.models import FitnessAssessment, UserPreference, PreferenceType
from apps.rbac.models import (
    User, Gender, ActivityLevel, MuscleGroup, FitnessGoal, Equipment,
)
from apps.rbac.serializers import ChoiceListField, UserSummarySerializer


class ProfileUpdateSerializer(serializers.Serializer):
    """Partial update of the editable profile fields."""

    username = serializers.CharField(required=False, max_length=50)
    first_name = serializers.CharField(required=False, max_length=50)
    last_name = serializers.CharField(required=False, max_length=50)
    age = serializers.IntegerField(required=False, min_value=18, max_value=100)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=Gender.choices, required=False, allow_null=True)
    phone_number = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=20)
    profile_picture = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    activity_level = serializers.ChoiceField(choices=ActivityLevel.choices, required=False)
    target_muscle_groups = ChoiceListField(MuscleGroup.choices, required=False)
    fitness_goals = ChoiceListField(FitnessGoal.choices, required=False)
    available_equipment = ChoiceListField(Equipment.choices, required=False)
    medical_conditions = serializers.CharField(required=False, allow_blank=True)
    workout_experience_years = serializers.IntegerField(required=False, min_value=0, max_value=80)
    time_constraints_minutes = serializers.IntegerField(required=False, min_value=5, max_value=480)
    onboarding_completed = serializers.BooleanField(required=False)

    def validate_username(self, value):
        if not value.strip():
            raise serializers.ValidationError("Username cannot be empty.")
        return value.strip()

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No profile fields provided.")
        return attrs


class AdminUserUpdateSerializer(ProfileUpdateSerializer):
    """Profile update performed by an admin; may also change the account state."""

    email = serializers.EmailField(required=False, max_length=100)
    is_active = serializers.BooleanField(required=False)

    def validate_email(self, value):
        value = User.objects.normalize_email(value)
        queryset = User.objects.filter(email=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("Email already in use.")
        return value


class OnboardingSerializer(serializers.Serializer):
    onboarding_completed = serializers.BooleanField(required=True)


class BulkUserUpdateSerializer(serializers.Serializer):
    """Apply ``is_active`` to a set of users."""

    user_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        max_length=500
    )
    is_active = serializers.BooleanField(required=True)

    def validate(self, attrs):
        if self.initial_data and set(self.initial_data) - {'user_ids', 'is_active'}:
            raise serializers.ValidationError("Only is_active can be bulk updated.")
        return attrs


class PreferenceSerializer(serializers.ModelSerializer):
    """Read representation with the decoded value."""

    value = serializers.SerializerMethodField()

    class Meta:
        model = UserPreference
        fields = ['id', 'name', 'value', 'value_type', 'updated_at']
        read_only_fields = fields

    def get_value(self, obj):
        return obj.typed_value


class PreferenceItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    value = serializers.JSONField(allow_null=True)
    value_type = serializers.ChoiceField(choices=PreferenceType.choices, default=PreferenceType.STRING)

    def validate(self, attrs):
        try:
            UserPreference.encode(attrs['value'], attrs['value_type'])
        except (TypeError, ValueError):
            raise serializers.ValidationError(
                {'value': f"Value does not match type '{attrs['value_type']}'."}
            )
        return attrs


class PreferenceBulkSerializer(serializers.Serializer):
    preferences = PreferenceItemSerializer(many=True, allow_empty=False)


class FitnessAssessmentSerializer(serializers.ModelSerializer):
    """
    Serializer for FitnessAssessment.

    ``user_id`` is optional on create and defaults to the caller.
    """

    user_id = serializers.IntegerField(required=False)
    assessment_data = serializers.DictField(required=False, default=dict)
    score = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=Decimal('0'),
        max_value=Decimal('999.99'),
        required=False,
        allow_null=True
    )
    created_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = FitnessAssessment
        fields = [
            'id', 'user_id', 'assessment_type', 'assessment_data', 'score',
            'assessment_date', 'notes', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_by', 'created_at', 'updated_at']
        extra_kwargs = {
            'assessment_date': {'required': False},
            'notes': {'required': False},
        }

    def validate_user_id(self, value):
        if not User.objects.filter(pk=value).exists():
            raise serializers.ValidationError("User not found.")
        return value

    def update(self, instance, validated_data):
        # An assessment never moves between users
        validated_data.pop('user_id', None)
        return super().update(instance, validated_data)


class WeeklyAssessmentSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    submitted_at = serializers.DateTimeField()
    score = serializers.DecimalField(max_digits=5, decimal_places=2, allow_null=True)


class WeeklyStatusSerializer(serializers.Serializer):
    completed_this_week = serializers.BooleanField()
    week_start = serializers.DateTimeField()
    week_end = serializers.DateTimeField()
    this_week_assessment = WeeklyAssessmentSummarySerializer(allow_null=True)
    last_assessment = WeeklyAssessmentSummarySerializer(allow_null=True)
