"""
RBAC and credential models.

Implements:
- User (global account identity with verification state and typed profile)
- Role (named permission bundle)
- Permission (named capability atom)
- UserRole (maps roles to users, with assignment provenance)
- RolePermission (maps permissions to roles, with assignment provenance)
- AccessToken (opaque bearer credential with an ability snapshot)
- AuditLog (audit trail for account and RBAC changes)
"""
import hashlib
import logging
from datetime import timedelta
from django.contrib.auth.hashers import make_password, check_password
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from apps.core.models import BaseModel

logger = logging.getLogger(__name__)


def hash_token(plain_text):
    """Return the irreversible reference stored for a bearer secret."""
    return hashlib.sha256(plain_text.encode('utf-8')).hexdigest()


class Gender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'
    OTHER = 'other', 'Other'


class ActivityLevel(models.TextChoices):
    SEDENTARY = 'sedentary', 'Sedentary'
    LIGHTLY_ACTIVE = 'lightly_active', 'Lightly active'
    MODERATELY_ACTIVE = 'moderately_active', 'Moderately active'
    VERY_ACTIVE = 'very_active', 'Very active'


class MuscleGroup(models.TextChoices):
    CHEST = 'chest', 'Chest'
    BACK = 'back', 'Back'
    SHOULDERS = 'shoulders', 'Shoulders'
    ARMS = 'arms', 'Arms'
    CORE = 'core', 'Core'
    LEGS = 'legs', 'Legs'
    GLUTES = 'glutes', 'Glutes'
    FULL_BODY = 'full_body', 'Full body'


class FitnessGoal(models.TextChoices):
    LOSE_WEIGHT = 'lose_weight', 'Lose weight'
    BUILD_MUSCLE = 'build_muscle', 'Build muscle'
    IMPROVE_STRENGTH = 'improve_strength', 'Improve strength'
    IMPROVE_ENDURANCE = 'improve_endurance', 'Improve endurance'
    INCREASE_FLEXIBILITY = 'increase_flexibility', 'Increase flexibility'
    GENERAL_FITNESS = 'general_fitness', 'General fitness'


class Equipment(models.TextChoices):
    NONE = 'none', 'No equipment'
    DUMBBELLS = 'dumbbells', 'Dumbbells'
    BARBELL = 'barbell', 'Barbell'
    KETTLEBELL = 'kettlebell', 'Kettlebell'
    RESISTANCE_BANDS = 'resistance_bands', 'Resistance bands'
    PULL_UP_BAR = 'pull_up_bar', 'Pull-up bar'
    BENCH = 'bench', 'Bench'
    MAT = 'mat', 'Exercise mat'
    TREADMILL = 'treadmill', 'Treadmill'
    STATIONARY_BIKE = 'stationary_bike', 'Stationary bike'


class UserManager(models.Manager):
    """
    Manager for User queries.

    Compatible with Django's authentication system and admin interface.
    """

    def active(self):
        return self.filter(is_active=True)

    def verified(self):
        return self.filter(email_verified_at__isnull=False)

    def by_email(self, email):
        """Find user by email."""
        return self.filter(email=self.normalize_email(email)).first()

    def create_user(self, email, password=None, **extra_fields):
        """
        Create a new user with hashed password.

        This method is compatible with Django's authentication system.
        """
        if not email:
            raise ValueError('Email address is required')

        email = self.normalize_email(email)
        extra_fields.setdefault('username', email.split('@')[0])
        extra_fields.setdefault('is_active', True)
        extra_fields.setdefault('is_superuser', False)

        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create a verified superuser.

        This method is required for Django's createsuperuser command.
        """
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('email_verified_at', timezone.now())

        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)

    @classmethod
    def normalize_email(cls, email):
        """Lowercase and strip an email address."""
        return (email or '').strip().lower()

    def get_by_natural_key(self, email):
        return self.get(**{self.model.USERNAME_FIELD: email})


class User(BaseModel):
    """
    Account identity record.

    An account can log in only when it is active and its email has been
    verified. Verification challenge fields are null once verified.

    This is the AUTH_USER_MODEL for the whole service, including Django admin.
    """

    username = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique username"
    )
    email = models.EmailField(
        max_length=100,
        unique=True,
        help_text="User email address (unique)"
    )
    password_hash = models.CharField(
        max_length=255,
        help_text="Hashed password",
        db_column='password_hash'
    )

    # Status
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether the account may log in"
    )
    is_superuser = models.BooleanField(
        default=False,
        help_text="Django admin access (not used by the API)"
    )

    # Django admin compatibility
    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    # Email Verification
    email_verified_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the email was verified (null = unverified)"
    )
    email_verification_token = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
        help_text="Link-based verification token"
    )
    email_verification_code = models.CharField(
        max_length=6,
        null=True,
        blank=True,
        help_text="Six digit verification code"
    )
    email_verification_code_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the verification code expires"
    )
    email_verification_sent_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current verification challenge was issued"
    )

    # Activity Tracking
    last_login_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last login timestamp"
    )
    active_days = models.PositiveIntegerField(
        default=0,
        help_text="Number of distinct calendar days with a login"
    )
    last_active_date = models.DateField(
        null=True,
        blank=True,
        help_text="Calendar day of the most recent counted activity"
    )

    # Profile
    first_name = models.CharField(max_length=50, help_text="User first name")
    last_name = models.CharField(max_length=50, help_text="User last name")
    age = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text="Age in years (18-100)"
    )
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(
        max_length=10,
        choices=Gender.choices,
        null=True,
        blank=True
    )
    activity_level = models.CharField(
        max_length=20,
        choices=ActivityLevel.choices,
        default=ActivityLevel.SEDENTARY
    )
    target_muscle_groups = models.JSONField(
        default=list,
        blank=True,
        help_text="List of MuscleGroup values"
    )
    fitness_goals = models.JSONField(
        default=list,
        blank=True,
        help_text="List of FitnessGoal values"
    )
    available_equipment = models.JSONField(
        default=list,
        blank=True,
        help_text="List of Equipment values"
    )
    medical_conditions = models.TextField(blank=True, default='')
    workout_experience_years = models.PositiveSmallIntegerField(default=0)
    time_constraints_minutes = models.PositiveSmallIntegerField(
        default=20,
        help_text="Preferred workout length in minutes"
    )
    phone_number = models.CharField(max_length=20, null=True, blank=True)
    profile_picture = models.CharField(max_length=255, null=True, blank=True)

    # Onboarding
    onboarding_completed = models.BooleanField(default=False)
    onboarding_completed_at = models.DateTimeField(null=True, blank=True)

    roles = models.ManyToManyField(
        'Role',
        through='UserRole',
        through_fields=('user', 'role'),
        related_name='users',
        blank=True
    )

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'created_at'], name='users_active_created_idx'),
            models.Index(fields=['email_verified_at', 'is_active'], name='users_verified_active_idx'),
        ]

    def __str__(self):
        return self.email

    @property
    def password(self):
        """
        Alias for password_hash to maintain Django admin compatibility.
        """
        return self.password_hash

    @password.setter
    def password(self, value):
        self.password_hash = value

    def check_password(self, raw_password):
        """Check if provided password matches stored hash."""
        return check_password(raw_password, self.password_hash)

    def set_password(self, raw_password):
        """Set user password (hashes automatically)."""
        self.password_hash = make_password(raw_password)

    def set_unusable_password(self):
        self.password_hash = make_password(None)

    def get_full_name(self):
        """Return full name or email if name not set."""
        if self.first_name or self.last_name:
            return f"{self.first_name} {self.last_name}".strip()
        return self.email

    def get_short_name(self):
        return self.first_name or self.email

    @property
    def email_verified(self):
        return self.email_verified_at is not None

    @property
    def fitness_level(self):
        """Fitness level projected from the latest assessment."""
        from apps.profiles.models import FitnessAssessment
        return FitnessAssessment.objects.fitness_level_for(self)

    def record_login(self):
        """
        Update last_login_at and count today as an active day.

        The day counter uses a conditional UPDATE so concurrent logins on
        the same calendar day increment it at most once.
        """
        now = timezone.now()
        today = timezone.localdate(now)

        User.objects.filter(pk=self.pk).update(last_login_at=now)
        counted = (
            User.objects
            .filter(pk=self.pk)
            .filter(Q(last_active_date__isnull=True) | ~Q(last_active_date=today))
            .update(active_days=F('active_days') + 1, last_active_date=today)
        )

        self.refresh_from_db(fields=['last_login_at', 'active_days', 'last_active_date'])
        return bool(counted)

    def role_names(self):
        """Names of the active roles held by this user."""
        return set(self.roles.filter(is_active=True).values_list('name', flat=True))

    @property
    def is_authenticated(self):
        """Always True for User instances (Django auth compatibility)."""
        return True

    @property
    def is_anonymous(self):
        """Always False for User instances (Django auth compatibility)."""
        return False

    @property
    def is_staff(self):
        """Superusers may use Django admin."""
        return self.is_superuser

    def has_perm(self, perm, obj=None):
        return self.is_active and self.is_superuser

    def has_perms(self, perm_list, obj=None):
        return self.is_active and self.is_superuser

    def has_module_perms(self, app_label):
        return self.is_active and self.is_superuser

    def natural_key(self):
        return (self.email,)


class PermissionManager(models.Manager):
    """Manager for Permission queries."""

    def active(self):
        return self.filter(is_active=True)

    def by_name(self, name):
        return self.filter(name=name).first()


class Permission(BaseModel):
    """
    Named capability atom (e.g., 'admin-access').

    Permissions are granted to roles, never directly to users.
    """

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Permission name (e.g., 'admin-access')"
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default='',
        help_text="Human-readable description"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive permissions are ignored by permission checks"
    )

    objects = PermissionManager()

    class Meta:
        db_table = 'permissions'
        ordering = ['name']

    def __str__(self):
        return self.name


class RoleManager(models.Manager):
    """Manager for Role queries."""

    def active(self):
        return self.filter(is_active=True)

    def by_name(self, name):
        return self.filter(name=name).first()


class Role(BaseModel):
    """
    Named permission bundle assignable to users.

    Deleting a role removes all of its user assignments and permission grants.
    """

    name = models.CharField(
        max_length=50,
        unique=True,
        help_text="Role name (e.g., 'admin', 'premium', 'member')"
    )
    description = models.CharField(
        max_length=255,
        blank=True,
        default='',
        help_text="Role description"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive roles grant no permissions"
    )

    permissions = models.ManyToManyField(
        Permission,
        through='RolePermission',
        through_fields=('role', 'permission'),
        related_name='roles',
        blank=True
    )

    objects = RoleManager()

    class Meta:
        db_table = 'roles'
        ordering = ['name']

    def __str__(self):
        return self.name

    def get_permissions(self):
        """Get all active permissions granted to this role."""
        return Permission.objects.filter(
            role_permissions__role=self,
            role_permissions__is_active=True,
            is_active=True
        ).distinct()


class UserRole(BaseModel):
    """
    Maps roles to users.

    A (user, role) pair is assigned at most once.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='user_roles',
        help_text="User who has this role"
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='user_roles',
        help_text="Role assigned to the user"
    )

    # Audit fields
    assigned_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='role_assignments_made',
        help_text="User who assigned this role"
    )
    assigned_at = models.DateTimeField(
        default=timezone.now,
        help_text="When role was assigned"
    )

    class Meta:
        db_table = 'user_roles'
        ordering = ['user', 'role']
        constraints = [
            models.UniqueConstraint(fields=['user', 'role'], name='unique_user_role'),
        ]

    def __str__(self):
        return f"{self.user.email} -> {self.role.name}"


class RolePermission(BaseModel):
    """
    Maps permissions to roles.

    A (role, permission) pair is granted at most once.
    """

    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='role_permissions',
        help_text="Role that grants this permission"
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name='role_permissions',
        help_text="Permission being granted"
    )
    is_active = models.BooleanField(default=True)

    # Audit fields
    assigned_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='permission_grants_made',
        help_text="User who granted this permission"
    )
    assigned_at = models.DateTimeField(
        default=timezone.now,
        help_text="When permission was granted"
    )

    class Meta:
        db_table = 'role_permissions'
        ordering = ['role', 'permission']
        constraints = [
            models.UniqueConstraint(fields=['role', 'permission'], name='unique_role_permission'),
        ]

    def __str__(self):
        return f"{self.role.name} -> {self.permission.name}"


class AccessTokenManager(models.Manager):
    """Manager for AccessToken queries."""

    def for_user(self, user):
        return self.filter(user=user)

    def unexpired(self):
        return self.filter(Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now()))

    def find_by_plain_text(self, plain_text):
        """Look up an unexpired token by the secret presented by a client."""
        if not plain_text:
            return None
        return (
            self.unexpired()
            .select_related('user')
            .filter(token_hash=hash_token(plain_text))
            .first()
        )


class AccessToken(BaseModel):
    """
    Opaque bearer credential owned by one user.

    Only the SHA-256 of the secret is stored. The ability list is a snapshot
    taken at mint time and never changes afterwards.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='access_tokens',
        help_text="Token owner"
    )
    name = models.CharField(
        max_length=100,
        help_text="Token label (e.g., 'mobile' or a service name)"
    )
    token_hash = models.CharField(
        max_length=64,
        unique=True,
        help_text="SHA-256 of the plain-text secret"
    )
    abilities = models.JSONField(
        default=list,
        help_text="Ability snapshot taken at mint time"
    )
    last_used_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Expiry (null = never expires)"
    )

    objects = AccessTokenManager()

    class Meta:
        db_table = 'access_tokens'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user.email} - {self.name}"

    def can(self, ability):
        return ability in (self.abilities or [])

    def touch(self):
        """Record that the token was just used."""
        self.last_used_at = timezone.now()
        AccessToken.objects.filter(pk=self.pk).update(last_used_at=self.last_used_at)

    @staticmethod
    def default_expiry(days):
        return timezone.now() + timedelta(days=days) if days else None


class AuditLogManager(models.Manager):
    """Manager for AuditLog queries."""

    def for_user(self, user):
        return self.filter(user=user)

    def by_action(self, action):
        return self.filter(action=action)

    def by_target(self, target_type, target_id=None):
        qs = self.filter(target_type=target_type)
        if target_id is not None:
            qs = qs.filter(target_id=target_id)
        return qs


class AuditLog(BaseModel):
    """
    Audit trail for account lifecycle and RBAC changes.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action (null for system actions)"
    )
    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Action performed (e.g., 'role_assigned', 'tokens_revoked')"
    )
    target_type = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Type of target entity (e.g., 'User', 'Role')"
    )
    target_id = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="ID of target entity"
    )
    diff = models.JSONField(
        default=dict,
        blank=True,
        help_text="Before/after changes in JSON format"
    )
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default='')
    request_id = models.CharField(max_length=64, blank=True, default='')
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context metadata"
    )

    objects = AuditLogManager()

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
            models.Index(fields=['user', 'created_at'], name='audit_user_created_idx'),
        ]

    def __str__(self):
        user_str = self.user.email if self.user else 'System'
        return f"{user_str} - {self.action}"

    @classmethod
    def log_action(cls, action, user=None, target_type='', target_id=None,
                   diff=None, metadata=None, request=None):
        """
        Convenience method to create an audit log entry.

        Args:
            action: Action being performed
            user: User performing the action (None for system actions)
            target_type: Type of target entity
            target_id: ID of target entity
            diff: Before/after changes
            metadata: Additional context
            request: Django or DRF request (for IP, user agent, request ID)

        Returns:
            AuditLog instance
        """
        if user is not None and not getattr(user, 'is_authenticated', False):
            user = None

        ip_address = None
        user_agent = ''
        request_id = ''
        if request is not None:
            meta = request.META
            forwarded = meta.get('HTTP_X_FORWARDED_FOR')
            ip_address = forwarded.split(',')[0].strip() if forwarded else meta.get('REMOTE_ADDR')
            user_agent = meta.get('HTTP_USER_AGENT', '')
            request_id = getattr(request, 'request_id', '') or ''

        return cls.objects.create(
            action=action,
            user=user,
            target_type=target_type,
            target_id=target_id,
            diff=diff or {},
            metadata=metadata or {},
            ip_address=ip_address or None,
            user_agent=user_agent,
            request_id=request_id,
        )
