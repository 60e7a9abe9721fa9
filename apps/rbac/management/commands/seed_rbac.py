"""
Management command to seed the canonical roles and permissions.

Creates the permission catalogue and the admin, premium, user, member and
mentor roles, and grants every permission to admin. This command is
idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from apps.rbac.models import User, Permission, Role, RolePermission, UserRole


class Command(BaseCommand):
    help = 'Seed canonical roles and permissions (idempotent)'

    CANONICAL_PERMISSIONS = [
        ('admin-access', 'Full admin access'),
        ('premium-features', 'Access to premium features'),
        ('access-workouts', 'Access to workout features'),
        ('manage-profile', 'Manage user profile'),
        ('social-features', 'Access to social features'),
    ]

    CANONICAL_ROLES = [
        ('admin', 'Administrator with full access'),
        ('premium', 'Premium user with extended features'),
        ('user', 'Regular user'),
        ('member', 'Regular fitness member'),
        ('mentor', 'Fitness mentor who leads training groups'),
    ]

    DEMO_USERS = [
        {
            'username': 'admin',
            'email': 'admin@fitnease.local',
            'first_name': 'Admin',
            'last_name': 'User',
            'age': 30,
            'role': 'admin',
        },
        {
            'username': 'testuser',
            'email': 'test@fitnease.local',
            'first_name': 'Test',
            'last_name': 'User',
            'age': 25,
            'activity_level': 'moderately_active',
            'role': 'user',
        },
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--with-demo-users',
            action='store_true',
            help='Also create verified demo admin and test accounts',
        )
        parser.add_argument(
            '--demo-password',
            default='password',
            help='Password for demo accounts (default: password)',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        created_permissions = 0
        for name, description in self.CANONICAL_PERMISSIONS:
            _, created = Permission.objects.update_or_create(
                name=name,
                defaults={'description': description},
            )
            if created:
                created_permissions += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Created permission: {name}'))

        created_roles = 0
        for name, description in self.CANONICAL_ROLES:
            _, created = Role.objects.update_or_create(
                name=name,
                defaults={'description': description},
            )
            if created:
                created_roles += 1
                self.stdout.write(self.style.SUCCESS(f'✓ Created role: {name}'))

        admin_role = Role.objects.get(name='admin')
        for permission in Permission.objects.all():
            RolePermission.objects.get_or_create(role=admin_role, permission=permission)

        if options['with_demo_users']:
            self._seed_demo_users(options['demo_password'])

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✓ Seeding complete: {created_permissions} permissions and '
                f'{created_roles} roles created'
            )
        )

    def _seed_demo_users(self, password):
        for data in self.DEMO_USERS:
            data = dict(data)
            role = Role.objects.get(name=data.pop('role'))
            email = data.pop('email')

            user = User.objects.by_email(email)
            if user is None:
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    email_verified_at=timezone.now(),
                    **data
                )
                self.stdout.write(self.style.SUCCESS(f'✓ Created demo user: {email}'))
            else:
                self.stdout.write(self.style.HTTP_INFO(f'  Exists: {email}'))

            UserRole.objects.get_or_create(user=user, role=role)
