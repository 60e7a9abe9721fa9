"""
Tests for AuthService and VerificationService.
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from apps.core.exceptions import (
    AccountDisabled, CodeExpired, DuplicateIdentity, EmailUnverified,
    InvalidCode, InvalidCredentials, InvalidOrExpiredVerificationToken,
    NotPendingVerification, RateLimited,
)
from apps.rbac.models import AuditLog, User
from apps.rbac.services import (
    AuthService, VerificationService, VERIFICATION_RESEND_COOLDOWN,
)


@pytest.mark.django_db
class TestRegister:

    def test_register_creates_unverified_user_with_challenge(self):
        user = AuthService.register(
            email='  New.User@Example.COM ',
            password='SecurePass123!',
            username='newuser',
            first_name='New',
            last_name='User',
            age=25,
        )

        assert user.email == 'new.user@example.com'
        assert user.email_verified is False
        assert user.check_password('SecurePass123!')
        assert len(user.email_verification_token) == 64
        assert len(user.email_verification_code) == 6
        assert AuditLog.objects.filter(action='user_registered', target_id=user.id).exists()

    def test_register_queues_notifications_after_commit(self, django_capture_on_commit_callbacks):
        with patch('apps.integrations.tasks.send_verification_email.delay') as mock_email, \
                patch('apps.integrations.tasks.notify_user_registration.delay') as mock_notify:
            with django_capture_on_commit_callbacks(execute=True):
                user = AuthService.register(
                    email='queued@example.com',
                    password='SecurePass123!',
                    username='queued',
                    first_name='Q',
                    last_name='User',
                    age=40,
                )

        mock_email.assert_called_once_with(user.id)
        mock_notify.assert_called_once_with(user.id)

    def test_broker_failure_does_not_fail_registration(self, django_capture_on_commit_callbacks):
        with patch(
            'apps.integrations.tasks.send_verification_email.delay',
            side_effect=ConnectionError('broker down')
        ), patch('apps.integrations.tasks.notify_user_registration.delay'):
            with django_capture_on_commit_callbacks(execute=True):
                user = AuthService.register(
                    email='offline@example.com',
                    password='SecurePass123!',
                    username='offline',
                    first_name='O',
                    last_name='User',
                    age=33,
                )

        assert User.objects.filter(pk=user.pk).exists()

    def test_duplicate_email_rejected(self, user):
        with pytest.raises(DuplicateIdentity):
            AuthService.register(
                email='JANE@example.com',
                password='SecurePass123!',
                username='someone_else',
                first_name='J',
                last_name='D',
                age=30,
            )

    def test_duplicate_username_rejected(self, user):
        with pytest.raises(DuplicateIdentity):
            AuthService.register(
                email='other@example.com',
                password='SecurePass123!',
                username='jane',
                first_name='J',
                last_name='D',
                age=30,
            )


@pytest.mark.django_db
class TestAuthenticate:
    """Credentials are checked before the active flag, which is checked before verification."""

    def test_unknown_email(self):
        with pytest.raises(InvalidCredentials):
            AuthService.authenticate('nobody@example.com', 'whatever123')

    def test_wrong_password_beats_disabled_and_unverified(self, make_user):
        make_user(email='locked@example.com', verified=False, is_active=False)

        with pytest.raises(InvalidCredentials):
            AuthService.authenticate('locked@example.com', 'wrong-password')

    def test_disabled_beats_unverified(self, make_user):
        make_user(email='locked@example.com', verified=False, is_active=False)

        with pytest.raises(AccountDisabled):
            AuthService.authenticate('locked@example.com', 'SecurePass123!')

    def test_unverified_requires_verification(self, unverified_user):
        with pytest.raises(EmailUnverified) as exc_info:
            AuthService.authenticate(unverified_user.email, 'SecurePass123!')

        assert exc_info.value.details == {'requires_verification': True}

    def test_valid_credentials(self, user):
        assert AuthService.authenticate('Jane@Example.com', 'SecurePass123!') == user

    def test_failed_login_is_security_logged(self, user):
        with patch('apps.rbac.services.SecurityLogger.log_failed_login') as mock_log:
            with pytest.raises(InvalidCredentials):
                AuthService.authenticate(user.email, 'wrong-password', ip_address='10.0.0.1')

        mock_log.assert_called_once_with(user.email, '10.0.0.1', reason='wrong_password')


@pytest.mark.django_db
class TestLogin:

    def test_login_returns_session(self, user):
        session = AuthService.login(user.email, 'SecurePass123!')

        assert session['user'] == user
        assert session['token']
        assert 'access-workouts' in session['abilities']
        assert 'admin-access' not in session['abilities']
        assert session['expires_at'] is not None

    def test_active_days_counted_once_per_day(self, user):
        AuthService.login(user.email, 'SecurePass123!')
        AuthService.login(user.email, 'SecurePass123!')

        user.refresh_from_db()
        assert user.active_days == 1
        assert user.last_active_date == timezone.localdate()
        assert user.last_login_at is not None

    def test_new_day_counts_again(self, user):
        User.objects.filter(pk=user.pk).update(
            active_days=3,
            last_active_date=timezone.localdate() - timedelta(days=1),
        )

        AuthService.login(user.email, 'SecurePass123!')

        user.refresh_from_db()
        assert user.active_days == 4


@pytest.mark.django_db
class TestVerification:

    def test_verify_by_code_returns_session(self, unverified_user):
        session = VerificationService.verify_by_code(
            unverified_user.email, unverified_user.email_verification_code
        )

        unverified_user.refresh_from_db()
        assert unverified_user.email_verified is True
        assert unverified_user.email_verification_code is None
        assert unverified_user.email_verification_token is None
        assert session['token']
        assert session['user'].active_days == 1

    def test_wrong_code(self, unverified_user):
        with pytest.raises(InvalidCode):
            VerificationService.verify_by_code(unverified_user.email, '000000')

    def test_expired_code(self, unverified_user):
        User.objects.filter(pk=unverified_user.pk).update(
            email_verification_code_expires_at=timezone.now() - timedelta(seconds=1)
        )

        with pytest.raises(CodeExpired):
            VerificationService.verify_by_code(
                unverified_user.email, unverified_user.email_verification_code
            )

    def test_code_for_disabled_account(self, unverified_user):
        User.objects.filter(pk=unverified_user.pk).update(is_active=False)

        with pytest.raises(AccountDisabled):
            VerificationService.verify_by_code(
                unverified_user.email, unverified_user.email_verification_code
            )

        unverified_user.refresh_from_db()
        assert unverified_user.email_verified is False

    def test_verify_by_token(self, unverified_user):
        user = VerificationService.verify_by_token(unverified_user.email_verification_token)

        assert user.email_verified is True
        assert AuditLog.objects.filter(action='email_verified', target_id=user.id).exists()

    def test_token_cannot_be_used_twice(self, unverified_user):
        token = unverified_user.email_verification_token
        VerificationService.verify_by_token(token)

        with pytest.raises(InvalidOrExpiredVerificationToken):
            VerificationService.verify_by_token(token)

    def test_link_expires_after_24_hours(self, unverified_user):
        User.objects.filter(pk=unverified_user.pk).update(
            email_verification_sent_at=timezone.now() - timedelta(hours=24, seconds=1)
        )

        with pytest.raises(InvalidOrExpiredVerificationToken):
            VerificationService.verify_by_token(unverified_user.email_verification_token)

    def test_resend_within_cooldown_is_rate_limited(self, unverified_user):
        with pytest.raises(RateLimited) as exc_info:
            VerificationService.resend(unverified_user.email)

        assert 0 < exc_info.value.details['retry_after'] <= VERIFICATION_RESEND_COOLDOWN.total_seconds()

    def test_resend_invalidates_previous_challenge(self, unverified_user):
        old_code = unverified_user.email_verification_code
        old_token = unverified_user.email_verification_token
        User.objects.filter(pk=unverified_user.pk).update(
            email_verification_sent_at=timezone.now() - VERIFICATION_RESEND_COOLDOWN
        )

        VerificationService.resend(unverified_user.email)

        unverified_user.refresh_from_db()
        assert unverified_user.email_verification_token != old_token
        if unverified_user.email_verification_code != old_code:
            with pytest.raises(InvalidCode):
                VerificationService.verify_by_code(unverified_user.email, old_code)
        with pytest.raises(InvalidOrExpiredVerificationToken):
            VerificationService.verify_by_token(old_token)

    def test_resend_for_verified_account(self, user):
        with pytest.raises(NotPendingVerification):
            VerificationService.resend(user.email)

    def test_debug_reset_returns_account_to_unverified(self, user):
        result = VerificationService.debug_reset(user.email)

        user.refresh_from_db()
        assert user.email_verified is False
        assert result['new_verification_code'] == user.email_verification_code
