# Generated migration for accounts, RBAC graph, access tokens and audit log

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('username', models.CharField(help_text='Unique username', max_length=50, unique=True)),
                ('email', models.EmailField(help_text='User email address (unique)', max_length=100, unique=True)),
                ('password_hash', models.CharField(db_column='password_hash', help_text='Hashed password', max_length=255)),
                ('is_active', models.BooleanField(db_index=True, default=True, help_text='Whether the account may log in')),
                ('is_superuser', models.BooleanField(default=False, help_text='Django admin access (not used by the API)')),
                ('email_verified_at', models.DateTimeField(blank=True, db_index=True, help_text='When the email was verified (null = unverified)', null=True)),
                ('email_verification_token', models.CharField(blank=True, db_index=True, help_text='Link-based verification token', max_length=64, null=True)),
                ('email_verification_code', models.CharField(blank=True, help_text='Six digit verification code', max_length=6, null=True)),
                ('email_verification_code_expires_at', models.DateTimeField(blank=True, help_text='When the verification code expires', null=True)),
                ('email_verification_sent_at', models.DateTimeField(blank=True, help_text='When the current verification challenge was issued', null=True)),
                ('last_login_at', models.DateTimeField(blank=True, help_text='Last login timestamp', null=True)),
                ('active_days', models.PositiveIntegerField(default=0, help_text='Number of distinct calendar days with a login')),
                ('last_active_date', models.DateField(blank=True, help_text='Calendar day of the most recent counted activity', null=True)),
                ('first_name', models.CharField(help_text='User first name', max_length=50)),
                ('last_name', models.CharField(help_text='User last name', max_length=50)),
                ('age', models.PositiveSmallIntegerField(blank=True, help_text='Age in years (18-100)', null=True)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('gender', models.CharField(blank=True, choices=[('male', 'Male'), ('female', 'Female'), ('other', 'Other')], max_length=10, null=True)),
                ('activity_level', models.CharField(choices=[('sedentary', 'Sedentary'), ('lightly_active', 'Lightly active'), ('moderately_active', 'Moderately active'), ('very_active', 'Very active')], default='sedentary', max_length=20)),
                ('target_muscle_groups', models.JSONField(blank=True, default=list, help_text='List of MuscleGroup values')),
                ('fitness_goals', models.JSONField(blank=True, default=list, help_text='List of FitnessGoal values')),
                ('available_equipment', models.JSONField(blank=True, default=list, help_text='List of Equipment values')),
                ('medical_conditions', models.TextField(blank=True, default='')),
                ('workout_experience_years', models.PositiveSmallIntegerField(default=0)),
                ('time_constraints_minutes', models.PositiveSmallIntegerField(default=20, help_text='Preferred workout length in minutes')),
                ('phone_number', models.CharField(blank=True, max_length=20, null=True)),
                ('profile_picture', models.CharField(blank=True, max_length=255, null=True)),
                ('onboarding_completed', models.BooleanField(default=False)),
                ('onboarding_completed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'users',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['is_active', 'created_at'], name='users_active_created_idx'),
                    models.Index(fields=['email_verified_at', 'is_active'], name='users_verified_active_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Permission',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(help_text="Permission name (e.g., 'admin-access')", max_length=100, unique=True)),
                ('description', models.CharField(blank=True, default='', help_text='Human-readable description', max_length=255)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive permissions are ignored by permission checks')),
            ],
            options={
                'db_table': 'permissions',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(help_text="Role name (e.g., 'admin', 'premium', 'member')", max_length=50, unique=True)),
                ('description', models.CharField(blank=True, default='', help_text='Role description', max_length=255)),
                ('is_active', models.BooleanField(default=True, help_text='Inactive roles grant no permissions')),
            ],
            options={
                'db_table': 'roles',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When role was assigned')),
                ('assigned_by', models.ForeignKey(blank=True, help_text='User who assigned this role', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='role_assignments_made', to='rbac.user')),
                ('role', models.ForeignKey(help_text='Role assigned to the user', on_delete=django.db.models.deletion.CASCADE, related_name='user_roles', to='rbac.role')),
                ('user', models.ForeignKey(help_text='User who has this role', on_delete=django.db.models.deletion.CASCADE, related_name='user_roles', to='rbac.user')),
            ],
            options={
                'db_table': 'user_roles',
                'ordering': ['user', 'role'],
                'constraints': [
                    models.UniqueConstraint(fields=('user', 'role'), name='unique_user_role'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RolePermission',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('is_active', models.BooleanField(default=True)),
                ('assigned_at', models.DateTimeField(default=django.utils.timezone.now, help_text='When permission was granted')),
                ('assigned_by', models.ForeignKey(blank=True, help_text='User who granted this permission', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='permission_grants_made', to='rbac.user')),
                ('permission', models.ForeignKey(help_text='Permission being granted', on_delete=django.db.models.deletion.CASCADE, related_name='role_permissions', to='rbac.permission')),
                ('role', models.ForeignKey(help_text='Role that grants this permission', on_delete=django.db.models.deletion.CASCADE, related_name='role_permissions', to='rbac.role')),
            ],
            options={
                'db_table': 'role_permissions',
                'ordering': ['role', 'permission'],
                'constraints': [
                    models.UniqueConstraint(fields=('role', 'permission'), name='unique_role_permission'),
                ],
            },
        ),
        migrations.AddField(
            model_name='user',
            name='roles',
            field=models.ManyToManyField(blank=True, related_name='users', through='rbac.UserRole', through_fields=('user', 'role'), to='rbac.role'),
        ),
        migrations.AddField(
            model_name='role',
            name='permissions',
            field=models.ManyToManyField(blank=True, related_name='roles', through='rbac.RolePermission', through_fields=('role', 'permission'), to='rbac.permission'),
        ),
        migrations.CreateModel(
            name='AccessToken',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('name', models.CharField(help_text="Token label (e.g., 'mobile' or a service name)", max_length=100)),
                ('token_hash', models.CharField(help_text='SHA-256 of the plain-text secret', max_length=64, unique=True)),
                ('abilities', models.JSONField(default=list, help_text='Ability snapshot taken at mint time')),
                ('last_used_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Expiry (null = never expires)', null=True)),
                ('user', models.ForeignKey(help_text='Token owner', on_delete=django.db.models.deletion.CASCADE, related_name='access_tokens', to='rbac.user')),
            ],
            options={
                'db_table': 'access_tokens',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(help_text='Unique numeric identifier', primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the record was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the record was last updated')),
                ('action', models.CharField(db_index=True, help_text="Action performed (e.g., 'role_assigned', 'tokens_revoked')", max_length=100)),
                ('target_type', models.CharField(db_index=True, help_text="Type of target entity (e.g., 'User', 'Role')", max_length=50)),
                ('target_id', models.BigIntegerField(blank=True, help_text='ID of target entity', null=True)),
                ('diff', models.JSONField(blank=True, default=dict, help_text='Before/after changes in JSON format')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, default='')),
                ('request_id', models.CharField(blank=True, default='', max_length=64)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional context metadata')),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the action (null for system actions)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='rbac.user')),
            ],
            options={
                'db_table': 'audit_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
                    models.Index(fields=['user', 'created_at'], name='audit_user_created_idx'),
                ],
            },
        ),
    ]
