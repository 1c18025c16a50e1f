"""Tests for password registration/login and session tokens."""

import time

import pytest
from jose import jwt

from relationship_os.domain.enums import Role
from relationship_os.services import auth_service
from relationship_os.services.auth_service import create_access_token, decode_token
from relationship_os.services.errors import AuthenticationError, ConflictError, ValidationError


class TestSessionTokens:
    def test_token_carries_id_and_role(self, settings):
        token = create_access_token("user-1", "SELLER", settings)
        payload = decode_token(token, settings)
        assert payload["id"] == "user-1"
        assert payload["role"] == "SELLER"

    def test_token_expires_in_seven_days(self, settings):
        token = create_access_token("user-1", "SELLER", settings)
        remaining = jwt.get_unverified_claims(token)["exp"] - time.time()
        assert 7 * 86400 - 60 < remaining <= 7 * 86400

    def test_wrong_secret_is_rejected(self, settings):
        token = jwt.encode({"id": "u", "role": "ADMIN"}, "other-secret", algorithm="HS256")
        assert decode_token(token, settings) is None

    def test_garbage_is_rejected(self, settings):
        assert decode_token("not-a-token", settings) is None


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_defaults_to_customer(self, db_session, settings):
        result = await auth_service.register(db_session, settings, " New@Test.com ", "pw12345")
        assert result.user.role == Role.CUSTOMER.value
        assert result.user.email == "new@test.com"
        assert decode_token(result.token, settings)["id"] == result.user.id

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, settings, make_user):
        await make_user(email="taken@test.com")
        with pytest.raises(ConflictError):
            await auth_service.register(db_session, settings, "TAKEN@test.com", "pw")

    @pytest.mark.asyncio
    async def test_missing_password_is_validation_error(self, db_session, settings):
        with pytest.raises(ValidationError):
            await auth_service.register(db_session, settings, "a@test.com", "")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_with_correct_password(self, db_session, settings, make_user):
        user = await make_user(email="pw@test.com", password="s3cret")
        result = await auth_service.login(db_session, settings, "pw@test.com", "s3cret")
        assert result.user.id == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, settings, make_user):
        await make_user(email="pw@test.com", password="s3cret")
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await auth_service.login(db_session, settings, "pw@test.com", "nope")

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, settings):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await auth_service.login(db_session, settings, "ghost@test.com", "x")

    @pytest.mark.asyncio
    async def test_sso_only_account_cannot_use_password(self, db_session, settings, make_user):
        await make_user(email="sso@test.com", external_sub="auth0|1")
        with pytest.raises(AuthenticationError, match="Single Sign-On"):
            await auth_service.login(db_session, settings, "sso@test.com", "anything")
