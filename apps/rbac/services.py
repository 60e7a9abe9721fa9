"""
RBAC, credential and verification services.

Implements:
- AbilityResolver: coarse token abilities derived from role membership
- TokenService: opaque bearer token minting, resolution and revocation
- VerificationService: email verification challenge (link + six digit code)
- AuthService: registration and login
- RBACService: role/permission edges and cached permission checks
"""
import logging
import secrets
import string
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.exceptions import (
    AccountDisabled, AlreadyAssigned, AlreadyGranted, DuplicateIdentity,
    EmailUnverified, InvalidCode, InvalidCredentials, CodeExpired,
    InvalidOrExpiredVerificationToken, InvalidToken, NotAssigned, NotFound,
    NotGranted, NotPendingVerification, RateLimited, TokenNotFound,
)
from apps.core.logging import SecurityLogger
from apps.core.tasks import dispatch
from apps.integrations import tasks as notifications
from apps.rbac.models import (
    AccessToken, AuditLog, Permission, Role, RolePermission, User, UserRole,
    hash_token,
)

logger = logging.getLogger(__name__)

# Verification challenge timings
VERIFICATION_CODE_TTL = timedelta(minutes=15)
VERIFICATION_LINK_TTL = timedelta(hours=24)
VERIFICATION_RESEND_COOLDOWN = timedelta(minutes=5)
VERIFICATION_TOKEN_LENGTH = 64
VERIFICATION_TOKEN_ALPHABET = string.ascii_letters + string.digits

# Every authenticated user gets these, whatever their roles
BASELINE_ABILITIES = (
    'access-workouts',
    'manage-profile',
    'social-features',
    'ml-access',
    'tracking-access',
    'planning-access',
)
ROLE_ABILITIES = (
    ('admin', 'admin-access'),
    ('premium', 'premium-features'),
)
SERVICE_TOKEN_ABILITIES = ('read-data', 'write-data')


def abilities_for_roles(role_names: Iterable[str]) -> List[str]:
    """
    Map a set of role names to token abilities.

    The baseline always comes first, followed by one extra ability per
    privileged role held. Role permission grants are not consulted.
    """
    role_names = set(role_names)
    abilities = list(BASELINE_ABILITIES)
    for role_name, ability in ROLE_ABILITIES:
        if role_name in role_names:
            abilities.append(ability)
    return abilities


class AbilityResolver:
    """Resolves the ability snapshot embedded in a freshly minted token."""

    @classmethod
    def resolve(cls, user: User) -> List[str]:
        return abilities_for_roles(user.role_names())


class TokenService:
    """
    Service for opaque bearer tokens.

    The plain-text secret is returned exactly once from ``mint``; only its
    SHA-256 is persisted.
    """

    @classmethod
    def default_name(cls) -> str:
        return getattr(settings, 'ACCESS_TOKEN_NAME', 'fitnease-mobile')

    @classmethod
    def mint(cls, user: User, name: Optional[str] = None,
             abilities: Optional[Iterable[str]] = None,
             expires_in_days: Optional[int] = None) -> Tuple[AccessToken, str]:
        """
        Create a token for a user.

        Args:
            user: Token owner
            name: Token label (defaults to ACCESS_TOKEN_NAME)
            abilities: Ability snapshot (defaults to the user's resolved abilities)
            expires_in_days: Lifetime in days (defaults to ACCESS_TOKEN_EXPIRATION_DAYS,
                0 means the token never expires)

        Returns:
            Tuple of (AccessToken, plain-text secret)
        """
        if abilities is None:
            abilities = AbilityResolver.resolve(user)
        if expires_in_days is None:
            expires_in_days = getattr(settings, 'ACCESS_TOKEN_EXPIRATION_DAYS', 365)

        plain_text = secrets.token_urlsafe(40)
        token = AccessToken.objects.create(
            user=user,
            name=name or cls.default_name(),
            token_hash=hash_token(plain_text),
            abilities=list(abilities),
            expires_at=AccessToken.default_expiry(expires_in_days),
        )

        logger.info(
            "Access token minted",
            extra={'user_id': user.id, 'token_id': token.id, 'token_name': token.name}
        )
        return token, plain_text

    @classmethod
    def resolve(cls, plain_text: str) -> AccessToken:
        """
        Resolve a presented secret to its token and record the use.

        Raises:
            InvalidToken: Token is unknown, expired or owned by a disabled account
        """
        token = AccessToken.objects.find_by_plain_text(plain_text)
        if token is None or not token.user.is_active:
            raise InvalidToken()

        token.touch()
        return token

    @classmethod
    def revoke(cls, token: AccessToken) -> None:
        token.delete()

    @classmethod
    def revoke_all(cls, user: User, actor: Optional[User] = None, request=None) -> int:
        """Delete every token the user owns. Returns the number deleted."""
        deleted, _ = AccessToken.objects.for_user(user).delete()

        AuditLog.log_action(
            action='tokens_revoked',
            user=actor or user,
            target_type='User',
            target_id=user.id,
            metadata={'count': deleted},
            request=request,
        )
        return deleted

    @classmethod
    @transaction.atomic
    def rotate(cls, current: AccessToken) -> Tuple[AccessToken, str]:
        """
        Replace a token with a new one carrying the same name and abilities.

        The old secret stops working immediately.
        """
        user, name, abilities = current.user, current.name, list(current.abilities)
        current.delete()
        return cls.mint(user, name=name, abilities=abilities)

    @classmethod
    def refresh(cls, plain_text: str) -> Tuple[AccessToken, str]:
        return cls.rotate(cls.resolve(plain_text))

    @classmethod
    def list_for_user(cls, user: User):
        return AccessToken.objects.unexpired().filter(user=user).order_by('-created_at')

    @classmethod
    def revoke_for_user(cls, user: User, token_id) -> None:
        """
        Revoke one of the user's own tokens.

        Raises:
            TokenNotFound: The id does not name a token owned by this user
        """
        token = AccessToken.objects.for_user(user).filter(pk=token_id).first()
        if token is None:
            raise TokenNotFound()
        cls.revoke(token)

    @classmethod
    def service_account(cls) -> User:
        """Return the account that owns service tokens, creating it on first use."""
        email = getattr(settings, 'SERVICE_ACCOUNT_EMAIL', 'service@fitnease.local')
        user = User.objects.by_email(email)
        if user is not None:
            return user

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=email,
                    username='system_service',
                    first_name='System',
                    last_name='Service',
                    age=25,
                    email_verified_at=timezone.now(),
                )
        except IntegrityError:
            user = User.objects.get(email=User.objects.normalize_email(email))
        return user

    @classmethod
    def create_service_token(cls, service_name: str, abilities: Optional[Iterable[str]] = None,
                             actor: Optional[User] = None,
                             ip_address: Optional[str] = None) -> Tuple[AccessToken, str]:
        """Mint a token for another internal service."""
        abilities = list(abilities) if abilities else list(SERVICE_TOKEN_ABILITIES)
        token, plain_text = cls.mint(cls.service_account(), name=service_name, abilities=abilities)

        SecurityLogger.log_service_token_created(
            actor=actor,
            service_name=service_name,
            abilities=abilities,
            ip_address=ip_address,
        )
        AuditLog.log_action(
            action='service_token_created',
            user=actor,
            target_type='AccessToken',
            target_id=token.id,
            metadata={'service_name': service_name, 'abilities': abilities},
        )
        return token, plain_text


class VerificationService:
    """
    Email verification workflow.

    A challenge is a 64 character link token plus a six digit code. The code
    lives for 15 minutes, the link for 24 hours, and a new challenge cannot
    be issued within 5 minutes of the previous one.
    """

    CHALLENGE_FIELDS = [
        'email_verification_token',
        'email_verification_code',
        'email_verification_code_expires_at',
        'email_verification_sent_at',
    ]

    @staticmethod
    def generate_token() -> str:
        return ''.join(
            secrets.choice(VERIFICATION_TOKEN_ALPHABET)
            for _ in range(VERIFICATION_TOKEN_LENGTH)
        )

    @staticmethod
    def generate_code() -> str:
        return str(100000 + secrets.randbelow(900000))

    @classmethod
    def issue_challenge(cls, user: User, enforce_cooldown: bool = True) -> User:
        """
        Replace the user's challenge with a fresh token and code.

        The previous token and code stop working.

        Raises:
            RateLimited: A challenge was issued less than 5 minutes ago
        """
        now = timezone.now()
        challenge = {
            'email_verification_token': cls.generate_token(),
            'email_verification_code': cls.generate_code(),
            'email_verification_code_expires_at': now + VERIFICATION_CODE_TTL,
            'email_verification_sent_at': now,
        }

        queryset = User.objects.filter(pk=user.pk)
        if enforce_cooldown:
            queryset = queryset.filter(
                Q(email_verification_sent_at__isnull=True)
                | Q(email_verification_sent_at__lte=now - VERIFICATION_RESEND_COOLDOWN)
            )

        if not queryset.update(**challenge):
            sent_at = User.objects.filter(pk=user.pk).values_list(
                'email_verification_sent_at', flat=True
            ).first()
            retry_after = VERIFICATION_RESEND_COOLDOWN.total_seconds()
            if sent_at:
                retry_after = (sent_at + VERIFICATION_RESEND_COOLDOWN - now).total_seconds()
            raise RateLimited(
                'Please wait before requesting another verification email',
                details={'retry_after': max(int(retry_after), 1)}
            )

        for field, value in challenge.items():
            setattr(user, field, value)
        return user

    @classmethod
    def _complete(cls, user: User, method: str) -> User:
        """Mark the account verified and clear the challenge in one UPDATE."""
        now = timezone.now()
        updated = User.objects.filter(pk=user.pk, email_verified_at__isnull=True).update(
            email_verified_at=now,
            **{field: None for field in cls.CHALLENGE_FIELDS}
        )
        if not updated:
            raise InvalidOrExpiredVerificationToken()

        user.email_verified_at = now
        for field in cls.CHALLENGE_FIELDS:
            setattr(user, field, None)

        AuditLog.log_action(
            action='email_verified',
            user=user,
            target_type='User',
            target_id=user.id,
            metadata={'method': method},
        )

        dispatch(notifications.send_welcome_email, user.id)
        dispatch(notifications.notify_email_verification, user.id)
        dispatch(notifications.delete_verification_notification, user.id)

        logger.info("Email verified", extra={'user_id': user.id, 'method': method})
        return user

    @classmethod
    @transaction.atomic
    def verify_by_token(cls, token: str) -> User:
        """
        Verify an account from the emailed link.

        Raises:
            InvalidOrExpiredVerificationToken: Unknown token, already verified,
                or more than 24 hours since the challenge was issued
        """
        user = None
        if token:
            user = User.objects.filter(
                email_verification_token=token,
                email_verified_at__isnull=True,
            ).first()

        if user is None or user.email_verification_sent_at is None:
            raise InvalidOrExpiredVerificationToken()
        if user.email_verification_sent_at + VERIFICATION_LINK_TTL <= timezone.now():
            raise InvalidOrExpiredVerificationToken('Verification token expired')

        return cls._complete(user, method='link')

    @classmethod
    @transaction.atomic
    def verify_by_code(cls, email: str, code: str) -> Dict[str, Any]:
        """
        Verify an account with the six digit code and log it in.

        Returns:
            Dict with user, token, abilities and expires_at

        Raises:
            InvalidCode: No unverified account with this email and code
            CodeExpired: The code matched but is older than 15 minutes
            AccountDisabled: The account has been deactivated
        """
        user = User.objects.filter(
            email=User.objects.normalize_email(email),
            email_verification_code=code,
            email_verified_at__isnull=True,
        ).first()

        if user is None:
            raise InvalidCode()
        expires_at = user.email_verification_code_expires_at
        if expires_at is None or expires_at <= timezone.now():
            raise CodeExpired()
        if not user.is_active:
            raise AccountDisabled()

        cls._complete(user, method='code')
        return AuthService.start_session(user)

    @classmethod
    @transaction.atomic
    def resend(cls, email: str) -> User:
        """
        Issue a new challenge and send it.

        Raises:
            NotPendingVerification: No unverified account with this email
            RateLimited: Previous challenge is less than 5 minutes old
        """
        user = User.objects.filter(
            email=User.objects.normalize_email(email),
            email_verified_at__isnull=True,
        ).first()
        if user is None:
            raise NotPendingVerification()

        cls.issue_challenge(user)
        dispatch(notifications.send_verification_email, user.id)
        return user

    @classmethod
    def status(cls, user_id) -> Dict[str, Any]:
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            raise NotFound('User not found')
        return {
            'email_verified': user.email_verified,
            'email_verified_at': user.email_verified_at,
        }

    # Debug helpers (views only expose these when DEBUG is on)

    @classmethod
    def debug_code(cls, email: str) -> Dict[str, Any]:
        user = User.objects.filter(
            email=User.objects.normalize_email(email),
            email_verified_at__isnull=True,
        ).first()
        if user is None:
            raise NotFound('User not found or already verified')
        if not user.email_verification_code:
            raise NotFound('No verification code found')

        expires_at = user.email_verification_code_expires_at
        return {
            'email': user.email,
            'verification_code': user.email_verification_code,
            'expires_at': expires_at,
            'is_expired': expires_at is not None and expires_at <= timezone.now(),
        }

    @classmethod
    def debug_status(cls, email: str) -> Dict[str, Any]:
        user = User.objects.by_email(email)
        if user is None:
            raise NotFound('User not found')

        expires_at = user.email_verification_code_expires_at
        return {
            'email': user.email,
            'username': user.username,
            'is_verified': user.email_verified,
            'email_verified_at': user.email_verified_at,
            'has_verification_code': user.email_verification_code is not None,
            'verification_code': user.email_verification_code,
            'code_expires_at': expires_at,
            'code_is_expired': expires_at <= timezone.now() if expires_at else None,
            'created_at': user.created_at,
        }

    @classmethod
    @transaction.atomic
    def debug_reset(cls, email: str) -> Dict[str, Any]:
        """Return an account to the unverified state with a fresh challenge."""
        user = User.objects.by_email(email)
        if user is None:
            raise NotFound('User not found')

        User.objects.filter(pk=user.pk).update(email_verified_at=None)
        user.email_verified_at = None
        cls.issue_challenge(user, enforce_cooldown=False)

        return {
            'message': 'User verification status reset successfully',
            'email': user.email,
            'new_verification_code': user.email_verification_code,
            'expires_at': user.email_verification_code_expires_at,
        }


class AuthService:
    """
    Service for account registration and password login.
    """

    @classmethod
    def register(cls, email: str, password: str, username: str,
                 request=None, **profile_fields) -> User:
        """
        Create an unverified account and send its verification challenge.

        Raises:
            DuplicateIdentity: Username or email already registered
        """
        email = User.objects.normalize_email(email)
        if User.objects.filter(Q(email=email) | Q(username=username)).exists():
            raise DuplicateIdentity()

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    username=username,
                    **profile_fields
                )
                VerificationService.issue_challenge(user, enforce_cooldown=False)

                AuditLog.log_action(
                    action='user_registered',
                    user=user,
                    target_type='User',
                    target_id=user.id,
                    request=request,
                )

                dispatch(notifications.send_verification_email, user.id)
                dispatch(notifications.notify_user_registration, user.id)
        except IntegrityError:
            raise DuplicateIdentity()

        logger.info("User registered", extra={'user_id': user.id})
        return user

    @classmethod
    def authenticate(cls, email: str, password: str,
                     ip_address: Optional[str] = None) -> User:
        """
        Check credentials, then the active flag, then verification.

        Raises:
            InvalidCredentials: Unknown email or wrong password
            AccountDisabled: Account deactivated
            EmailUnverified: Email not verified yet
        """
        user = User.objects.by_email(email)

        if user is None:
            # Hash anyway so unknown emails cost the same as wrong passwords
            User().set_password(password)
            SecurityLogger.log_failed_login(email, ip_address, reason='unknown_email')
            raise InvalidCredentials()

        if not user.check_password(password):
            SecurityLogger.log_failed_login(email, ip_address, reason='wrong_password')
            raise InvalidCredentials()

        if not user.is_active:
            SecurityLogger.log_failed_login(email, ip_address, reason='account_disabled')
            raise AccountDisabled()

        if not user.email_verified:
            raise EmailUnverified(details={'requires_verification': True})

        return user

    @classmethod
    def start_session(cls, user: User) -> Dict[str, Any]:
        """Record the login and mint a token carrying the user's abilities."""
        user.record_login()
        abilities = AbilityResolver.resolve(user)
        token, plain_text = TokenService.mint(user, abilities=abilities)

        dispatch(notifications.track_user_login, user.id)

        return {
            'user': user,
            'token': plain_text,
            'abilities': abilities,
            'expires_at': token.expires_at,
        }

    @classmethod
    @transaction.atomic
    def login(cls, email: str, password: str, ip_address: Optional[str] = None) -> Dict[str, Any]:
        """
        Authenticate and start a session.

        Returns:
            Dict with user, token (plain text), abilities and expires_at
        """
        user = cls.authenticate(email, password, ip_address=ip_address)
        session = cls.start_session(user)
        logger.info("User logged in", extra={'user_id': user.id})
        return session


class RBACService:
    """
    Service for RBAC operations: role/permission edges and permission checks.
    """

    PERMISSION_CACHE_TTL = 300  # 5 minutes

    @staticmethod
    def _cache_key(user_id) -> str:
        return f"rbac:permissions:user:{user_id}"

    @classmethod
    def get_user_permissions(cls, user: User) -> Set[str]:
        """
        Names of every active permission reachable through the user's active roles.

        Results are cached for 5 minutes.
        """
        cache_key = cls._cache_key(user.id)
        cached = cache.get(cache_key)
        if cached is not None:
            return set(cached)

        names = set(
            Permission.objects.filter(
                is_active=True,
                role_permissions__is_active=True,
                role_permissions__role__is_active=True,
                role_permissions__role__user_roles__user=user,
            ).values_list('name', flat=True).distinct()
        )
        cache.set(cache_key, list(names), cls.PERMISSION_CACHE_TTL)
        return names

    @classmethod
    def invalidate_permission_cache(cls, user: User) -> None:
        cache.delete(cls._cache_key(user.id))

    @classmethod
    def invalidate_role_cache(cls, role: Role) -> None:
        """Invalidate cached permissions for every holder of a role."""
        user_ids = UserRole.objects.filter(role=role).values_list('user_id', flat=True)
        cache.delete_many([cls._cache_key(user_id) for user_id in user_ids])

    @classmethod
    def has_role(cls, user: User, role_name: str) -> bool:
        return role_name in user.role_names()

    @classmethod
    def has_permission(cls, user: User, permission_name: str) -> bool:
        return permission_name in cls.get_user_permissions(user)

    @classmethod
    def get_user_roles(cls, user: User):
        return Role.objects.filter(user_roles__user=user).prefetch_related('permissions').distinct()

    @classmethod
    @transaction.atomic
    def assign_role(cls, user: User, role: Role, assigned_by: Optional[User] = None,
                    request=None) -> UserRole:
        """
        Assign a role to a user.

        Raises:
            AlreadyAssigned: The user already holds the role
        """
        if UserRole.objects.filter(user=user, role=role).exists():
            raise AlreadyAssigned()

        try:
            with transaction.atomic():
                user_role = UserRole.objects.create(user=user, role=role, assigned_by=assigned_by)
        except IntegrityError:
            raise AlreadyAssigned()

        AuditLog.log_action(
            action='role_assigned',
            user=assigned_by,
            target_type='User',
            target_id=user.id,
            diff={'role': {'added': role.name}},
            request=request,
        )
        cls.invalidate_permission_cache(user)
        return user_role

    @classmethod
    @transaction.atomic
    def revoke_role(cls, user: User, role: Role, revoked_by: Optional[User] = None,
                    request=None) -> None:
        """
        Remove a role from a user.

        Raises:
            NotAssigned: The user does not hold the role
        """
        deleted, _ = UserRole.objects.filter(user=user, role=role).delete()
        if not deleted:
            raise NotAssigned()

        AuditLog.log_action(
            action='role_revoked',
            user=revoked_by,
            target_type='User',
            target_id=user.id,
            diff={'role': {'removed': role.name}},
            request=request,
        )
        cls.invalidate_permission_cache(user)

    @classmethod
    @transaction.atomic
    def grant_permission(cls, role: Role, permission: Permission,
                         assigned_by: Optional[User] = None, request=None) -> RolePermission:
        """
        Grant a permission to a role.

        Raises:
            AlreadyGranted: The role already holds the permission
        """
        if RolePermission.objects.filter(role=role, permission=permission).exists():
            raise AlreadyGranted()

        try:
            with transaction.atomic():
                grant = RolePermission.objects.create(
                    role=role,
                    permission=permission,
                    assigned_by=assigned_by,
                )
        except IntegrityError:
            raise AlreadyGranted()

        AuditLog.log_action(
            action='permission_granted',
            user=assigned_by,
            target_type='Role',
            target_id=role.id,
            diff={'permission': {'added': permission.name}},
            request=request,
        )
        cls.invalidate_role_cache(role)
        return grant

    @classmethod
    @transaction.atomic
    def revoke_permission(cls, role: Role, permission: Permission,
                          revoked_by: Optional[User] = None, request=None) -> None:
        """
        Remove a permission from a role.

        Raises:
            NotGranted: The role does not hold the permission
        """
        deleted, _ = RolePermission.objects.filter(role=role, permission=permission).delete()
        if not deleted:
            raise NotGranted()

        AuditLog.log_action(
            action='permission_revoked',
            user=revoked_by,
            target_type='Role',
            target_id=role.id,
            diff={'permission': {'removed': permission.name}},
            request=request,
        )
        cls.invalidate_role_cache(role)

    @classmethod
    def delete_role(cls, role: Role, deleted_by: Optional[User] = None, request=None) -> None:
        """Delete a role together with its assignments and grants."""
        with transaction.atomic():
            cls.invalidate_role_cache(role)
            role_id, role_name = role.id, role.name
            role.delete()

            AuditLog.log_action(
                action='role_deleted',
                user=deleted_by,
                target_type='Role',
                target_id=role_id,
                metadata={'name': role_name},
                request=request,
            )
