"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Authentication (registration, login, email verification)
- Users and access tokens
- Roles, permissions and their assignments
"""
from rest_framework import serializers
from apps.rbac.models import (
    User, Permission, Role, UserRole, RolePermission, AccessToken,
    Gender, ActivityLevel,
)


class ChoiceListField(serializers.ListField):
    """List of enumerated values, each validated against ``choices``."""

    def __init__(self, choices, **kwargs):
        kwargs.setdefault('child', serializers.ChoiceField(choices=choices))
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        # Duplicates are dropped, first occurrence wins
        values = super().to_internal_value(data)
        return list(dict.fromkeys(values))


# ===== AUTHENTICATION SERIALIZERS =====

class RegistrationSerializer(serializers.Serializer):
    """Serializer for user registration."""

    username = serializers.CharField(required=True, max_length=50)
    email = serializers.EmailField(required=True, max_length=100)
    password = serializers.CharField(
        required=True,
        write_only=True,
        min_length=8,
        style={'input_type': 'password'}
    )
    first_name = serializers.CharField(required=True, max_length=50)
    last_name = serializers.CharField(required=True, max_length=50)
    age = serializers.IntegerField(required=True, min_value=18, max_value=100)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=Gender.choices, required=False, allow_null=True)
    phone_number = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=20)
    activity_level = serializers.ChoiceField(
        choices=ActivityLevel.choices,
        required=False,
        default=ActivityLevel.SEDENTARY
    )

    def validate_email(self, value):
        """Normalize email to lowercase."""
        return User.objects.normalize_email(value)

    def validate_username(self, value):
        if not value.strip():
            raise serializers.ValidationError("Username cannot be empty.")
        return value.strip()


class LoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )

    def validate_email(self, value):
        return User.objects.normalize_email(value)


class VerifyCodeSerializer(serializers.Serializer):
    """Serializer for six digit code verification."""

    email = serializers.EmailField(required=True)
    code = serializers.RegexField(
        r'^\d{6}$',
        required=True,
        error_messages={'invalid': 'Code must be exactly 6 digits.'}
    )


class ResendVerificationSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)


# ===== USER SERIALIZERS =====

class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model.

    ``fitness_level`` is derived from the latest fitness assessment and is
    never written directly.
    """

    email_verified = serializers.BooleanField(read_only=True)
    fitness_level = serializers.CharField(read_only=True)
    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name',
            'age', 'date_of_birth', 'gender', 'phone_number', 'profile_picture',
            'activity_level', 'target_muscle_groups', 'fitness_goals',
            'available_equipment', 'medical_conditions', 'workout_experience_years',
            'time_constraints_minutes', 'fitness_level',
            'is_active', 'email_verified', 'email_verified_at',
            'last_login_at', 'active_days', 'last_active_date',
            'onboarding_completed', 'onboarding_completed_at',
            'roles', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_roles(self, obj):
        return sorted(role.name for role in obj.roles.all())


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation for nested output."""

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name']
        read_only_fields = fields


class SessionSerializer(serializers.Serializer):
    """Login/verify-code response: user, plain-text token and ability snapshot."""

    user = UserSerializer(read_only=True)
    token = serializers.CharField(read_only=True)
    abilities = serializers.ListField(child=serializers.CharField(), read_only=True)
    expires_at = serializers.DateTimeField(read_only=True, allow_null=True)


# ===== TOKEN SERIALIZERS =====

class AccessTokenSerializer(serializers.ModelSerializer):
    """Token metadata. The secret itself is never serialized."""

    class Meta:
        model = AccessToken
        fields = ['id', 'name', 'abilities', 'last_used_at', 'expires_at', 'created_at']
        read_only_fields = fields


class ServiceTokenRequestSerializer(serializers.Serializer):
    service_name = serializers.CharField(required=True, max_length=100)
    abilities = serializers.ListField(
        child=serializers.CharField(max_length=100),
        required=False,
        allow_empty=False
    )


# ===== PERMISSION SERIALIZERS =====

class PermissionSerializer(serializers.ModelSerializer):
    """Serializer for Permission model."""

    class Meta:
        model = Permission
        fields = ['id', 'name', 'description', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


# ===== ROLE SERIALIZERS =====

class RoleSerializer(serializers.ModelSerializer):
    """Serializer for Role model with its granted permissions."""

    permissions = PermissionSerializer(many=True, read_only=True)
    user_count = serializers.SerializerMethodField()

    class Meta:
        model = Role
        fields = [
            'id', 'name', 'description', 'is_active',
            'permissions', 'user_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'permissions', 'user_count', 'created_at', 'updated_at']

    def get_user_count(self, obj):
        return obj.user_roles.count()


class RoleAssignmentSerializer(serializers.Serializer):
    """Serializer for assigning or revoking a role."""

    user_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), source='user')
    role_id = serializers.PrimaryKeyRelatedField(queryset=Role.objects.all(), source='role')


class PermissionAssignmentSerializer(serializers.Serializer):
    """Serializer for granting or revoking a permission on a role."""

    role_id = serializers.PrimaryKeyRelatedField(queryset=Role.objects.all(), source='role')
    permission_id = serializers.PrimaryKeyRelatedField(
        queryset=Permission.objects.all(),
        source='permission'
    )


class UserRoleSerializer(serializers.ModelSerializer):
    """Serializer for a user's role assignment."""

    user_id = serializers.IntegerField(read_only=True)
    role_id = serializers.IntegerField(read_only=True)
    assigned_by = serializers.IntegerField(source='assigned_by_id', read_only=True, allow_null=True)

    class Meta:
        model = UserRole
        fields = ['id', 'user_id', 'role_id', 'assigned_by', 'assigned_at']
        read_only_fields = fields


class RolePermissionSerializer(serializers.ModelSerializer):
    """Serializer for a role's permission grant."""

    role_id = serializers.IntegerField(read_only=True)
    permission_id = serializers.IntegerField(read_only=True)
    assigned_by = serializers.IntegerField(source='assigned_by_id', read_only=True, allow_null=True)

    class Meta:
        model = RolePermission
        fields = ['id', 'role_id', 'permission_id', 'assigned_by', 'assigned_at']
        read_only_fields = fields
