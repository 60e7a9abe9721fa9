"""
Django admin configuration for RBAC app.
"""
from django.contrib import admin
from .models import (
    User,
    Permission,
    Role,
    UserRole,
    RolePermission,
    AccessToken,
    AuditLog,
)


class UserRoleInline(admin.TabularInline):
    model = UserRole
    fk_name = 'user'
    extra = 0
    readonly_fields = ['assigned_by', 'assigned_at']


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    """
    Admin for the account model.

    Passwords and verification secrets are read-only here.
    """
    list_display = ['email', 'username', 'first_name', 'last_name', 'is_active', 'email_verified_at', 'created_at']
    list_filter = ['is_active', 'is_superuser', 'activity_level', 'onboarding_completed', 'created_at']
    search_fields = ['email', 'username', 'first_name', 'last_name']
    ordering = ['-created_at']
    inlines = [UserRoleInline]

    fieldsets = (
        (None, {
            'fields': ('email', 'username', 'password_hash')
        }),
        ('Personal Info', {
            'fields': ('first_name', 'last_name', 'age', 'date_of_birth', 'gender', 'phone_number', 'profile_picture')
        }),
        ('Fitness Profile', {
            'fields': (
                'activity_level', 'target_muscle_groups', 'fitness_goals', 'available_equipment',
                'medical_conditions', 'workout_experience_years', 'time_constraints_minutes',
            )
        }),
        ('Status', {
            'fields': ('is_active', 'is_superuser', 'onboarding_completed', 'onboarding_completed_at')
        }),
        ('Email Verification', {
            'fields': ('email_verified_at', 'email_verification_sent_at', 'email_verification_code_expires_at')
        }),
        ('Activity', {
            'fields': ('last_login_at', 'active_days', 'last_active_date', 'created_at', 'updated_at')
        }),
    )
    readonly_fields = [
        'password_hash', 'created_at', 'updated_at', 'last_login_at',
        'active_days', 'last_active_date', 'email_verification_sent_at',
        'email_verification_code_expires_at',
    ]


@admin.register(AccessToken)
class AccessTokenAdmin(admin.ModelAdmin):
    """Token metadata only. Secrets are never stored."""
    list_display = ['user', 'name', 'last_used_at', 'expires_at', 'created_at']
    search_fields = ['user__email', 'name']
    readonly_fields = ['user', 'name', 'token_hash', 'abilities', 'last_used_at', 'expires_at', 'created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'user', 'target_type', 'target_id', 'created_at']
    list_filter = ['action', 'target_type']
    search_fields = ['user__email', 'action']
    readonly_fields = [f.name for f in AuditLog._meta.fields]


admin.site.register(Permission)
admin.site.register(Role)
admin.site.register(RolePermission)
