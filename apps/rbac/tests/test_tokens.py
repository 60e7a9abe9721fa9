"""
Tests for opaque access tokens.
"""
from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone

from apps.core.exceptions import InvalidToken, TokenNotFound
from apps.rbac.models import AccessToken, AuditLog, User, hash_token
from apps.rbac.services import TokenService, SERVICE_TOKEN_ABILITIES


@pytest.mark.django_db
class TestTokenService:

    def test_mint_then_resolve_round_trip(self, user):
        token, plain_text = TokenService.mint(user, abilities=['access-workouts'])

        resolved = TokenService.resolve(plain_text)

        assert resolved.pk == token.pk
        assert resolved.user == user
        assert resolved.abilities == ['access-workouts']
        assert resolved.last_used_at is not None

    def test_only_hash_is_stored(self, user):
        token, plain_text = TokenService.mint(user)

        assert token.token_hash == hash_token(plain_text)
        assert not AccessToken.objects.filter(token_hash=plain_text).exists()

    def test_unknown_token(self, db):
        with pytest.raises(InvalidToken):
            TokenService.resolve('not-a-real-token')

    def test_expired_token(self, user):
        token, plain_text = TokenService.mint(user)
        AccessToken.objects.filter(pk=token.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        with pytest.raises(InvalidToken):
            TokenService.resolve(plain_text)

    def test_token_of_disabled_user(self, user):
        _, plain_text = TokenService.mint(user)
        User.objects.filter(pk=user.pk).update(is_active=False)

        with pytest.raises(InvalidToken):
            TokenService.resolve(plain_text)

    @override_settings(ACCESS_TOKEN_EXPIRATION_DAYS=0)
    def test_zero_days_never_expires(self, user):
        token, _ = TokenService.mint(user)

        assert token.expires_at is None

    @override_settings(ACCESS_TOKEN_NAME='fitnease-test')
    def test_default_name(self, user):
        token, _ = TokenService.mint(user)

        assert token.name == 'fitnease-test'

    def test_refresh_invalidates_old_secret(self, user):
        old_token, old_plain = TokenService.mint(user, name='phone', abilities=['manage-profile'])

        new_token, new_plain = TokenService.refresh(old_plain)

        assert new_plain != old_plain
        assert new_token.name == 'phone'
        assert new_token.abilities == ['manage-profile']
        assert not AccessToken.objects.filter(pk=old_token.pk).exists()
        with pytest.raises(InvalidToken):
            TokenService.resolve(old_plain)
        assert TokenService.resolve(new_plain).pk == new_token.pk

    def test_revoke_all(self, user, make_user):
        other = make_user()
        TokenService.mint(user)
        TokenService.mint(user)
        TokenService.mint(other)

        assert TokenService.revoke_all(user) == 2
        assert not AccessToken.objects.filter(user=user).exists()
        assert AccessToken.objects.filter(user=other).count() == 1
        assert AuditLog.objects.filter(action='tokens_revoked', target_id=user.id).exists()

    def test_revoke_for_user_only_touches_own_tokens(self, user, make_user):
        other = make_user()
        other_token, _ = TokenService.mint(other)

        with pytest.raises(TokenNotFound):
            TokenService.revoke_for_user(user, other_token.id)

        assert AccessToken.objects.filter(pk=other_token.pk).exists()

    def test_list_hides_expired_tokens(self, user):
        live, _ = TokenService.mint(user)
        expired, _ = TokenService.mint(user)
        AccessToken.objects.filter(pk=expired.pk).update(expires_at=timezone.now() - timedelta(days=1))

        assert list(TokenService.list_for_user(user)) == [live]

    def test_service_token(self, admin_user):
        token, plain_text = TokenService.create_service_token('workouts-service', actor=admin_user)

        assert token.name == 'workouts-service'
        assert token.abilities == list(SERVICE_TOKEN_ABILITIES)
        assert token.user.email_verified is True
        assert TokenService.resolve(plain_text).pk == token.pk

    def test_service_account_is_reused(self, db):
        assert TokenService.service_account().pk == TokenService.service_account().pk
