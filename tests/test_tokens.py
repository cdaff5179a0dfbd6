"""Token lifecycle tests: issuing, validating and hashing JWTs."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from collabhub.config import Settings
from collabhub.errors import AuthenticationError, TokenExpiredError, TokenInvalidError
from collabhub.models.user import User
from collabhub.roles import GlobalStatus
from collabhub.services.tokens import REFRESH_TOKEN_TYPE, TokenManager
from tests.test_constants import TEST_JWT_REFRESH_SECRET, TEST_JWT_SECRET


def _user(status: GlobalStatus = GlobalStatus.ACTIVE) -> User:
    """User instance without a DB."""
    return User(id=uuid.uuid4(), email="ada@example.com", global_status=status, password_hash="x")


class TestIssue:
    def test_access_token_round_trips_identity(self, tokens):
        user = _user()
        pair = tokens.issue(user)
        claims = tokens.validate_access(pair.access_token)
        assert claims.user_id == user.id
        assert claims.email == "ada@example.com"
        assert claims.global_status == GlobalStatus.ACTIVE

    def test_access_token_lives_fifteen_minutes(self, tokens):
        now = datetime.now(UTC).replace(microsecond=0)
        claims = tokens.validate_access(tokens.issue(_user(), now=now).access_token)
        assert claims.expires_at - claims.issued_at == timedelta(minutes=15)

    def test_refresh_token_lives_seven_days_and_is_typed(self, tokens):
        now = datetime.now(UTC).replace(microsecond=0)
        pair = tokens.issue(_user(), now=now)
        claims = tokens.validate_refresh(pair.refresh_token)
        assert claims.expires_at - claims.issued_at == timedelta(days=7)
        assert claims.token_type == REFRESH_TOKEN_TYPE

    def test_refresh_payload_carries_no_identity_claims(self, tokens):
        payload = jwt.get_unverified_claims(tokens.issue(_user()).refresh_token)
        assert "email" not in payload
        assert "globalStatus" not in payload

    def test_two_pairs_in_the_same_second_differ(self, tokens):
        user = _user()
        now = datetime.now(UTC)
        first, second = tokens.issue(user, now=now), tokens.issue(user, now=now)
        assert first.refresh_token != second.refresh_token


class TestValidate:
    def test_access_and_refresh_keys_are_not_interchangeable(self, tokens):
        pair = tokens.issue(_user())
        with pytest.raises(TokenInvalidError):
            tokens.validate_access(pair.refresh_token)
        with pytest.raises(TokenInvalidError):
            tokens.validate_refresh(pair.access_token)

    def test_expired_access_token_is_distinguished(self, tokens):
        issued = datetime.now(UTC) - timedelta(hours=1)
        pair = tokens.issue(_user(), now=issued)
        with pytest.raises(TokenExpiredError) as exc:
            tokens.validate_access(pair.access_token)
        assert exc.value.reason == "token_expired"

    def test_expired_refresh_token_is_distinguished(self, tokens):
        pair = tokens.issue(_user(), now=datetime.now(UTC) - timedelta(days=8))
        with pytest.raises(TokenExpiredError):
            tokens.validate_refresh(pair.refresh_token)

    def test_tampered_token_is_invalid(self, tokens):
        token = tokens.issue(_user()).access_token
        with pytest.raises(TokenInvalidError) as exc:
            tokens.validate_access(token[:-4] + "XXXX")
        assert exc.value.reason == "invalid_token"

    @pytest.mark.parametrize("garbage", ["", "not.a.valid.token", "abc"])
    def test_garbage_is_invalid(self, tokens, garbage):
        with pytest.raises(TokenInvalidError):
            tokens.validate_access(garbage)

    def test_refresh_token_with_wrong_type_is_invalid(self, tokens):
        now = int(datetime.now(UTC).timestamp())
        token = jwt.encode(
            {"userId": str(uuid.uuid4()), "type": "access", "iat": now, "exp": now + 60},
            TEST_JWT_REFRESH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            tokens.validate_refresh(token)

    def test_refresh_token_without_type_is_accepted(self, tokens):
        now = int(datetime.now(UTC).timestamp())
        user_id = uuid.uuid4()
        token = jwt.encode(
            {"userId": str(user_id), "iat": now, "exp": now + 60},
            TEST_JWT_REFRESH_SECRET,
            algorithm="HS256",
        )
        assert tokens.validate_refresh(token).user_id == user_id

    def test_access_token_missing_claims_is_invalid(self, tokens):
        now = int(datetime.now(UTC).timestamp())
        token = jwt.encode({"userId": str(uuid.uuid4()), "iat": now, "exp": now + 60}, TEST_JWT_SECRET)
        with pytest.raises(TokenInvalidError):
            tokens.validate_access(token)

    def test_validation_errors_are_authentication_errors(self, tokens):
        with pytest.raises(AuthenticationError):
            tokens.validate_access("nope")


class TestHashing:
    def test_hash_is_deterministic_and_not_the_token(self, tokens):
        token = tokens.issue(_user()).refresh_token
        digest = tokens.hash_refresh_token(token)
        assert digest == tokens.hash_refresh_token(token)
        assert token not in digest
        assert len(digest) == 64

    def test_hash_depends_on_secret(self, tokens, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("TOKEN_HASH_SECRET", "another-secret")
        other = TokenManager(Settings())
        assert other.hash_refresh_token("t") != tokens.hash_refresh_token("t")


class TestConfiguration:
    def test_identical_secrets_are_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("JWT_REFRESH_SECRET", TEST_JWT_SECRET)
        with pytest.raises(RuntimeError):
            TokenManager(Settings())

    def test_missing_secret_is_rejected(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("JWT_SECRET", "")
        with pytest.raises(RuntimeError):
            TokenManager(Settings())
