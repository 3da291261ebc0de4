"""
Unit tests for core.security module.
Tests password hashing, access/refresh token issuance and validation, and temporary tokens.
"""
import datetime as dt
import hashlib
import uuid
from types import SimpleNamespace

import jwt
import pytest

from watchvibe.config import settings
from watchvibe.core.security import (
    TokenExpired,
    TokenInvalid,
    generate_temporary_token,
    hash_password,
    hash_temporary_token,
    issue_access_token,
    issue_refresh_token,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)


def _user(**overrides):
    fields = {
        "id": uuid.uuid4(),
        "email": "alice@x.com",
        "username": "alice",
        "full_name": "Alice Liddell",
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        assert hash_password("TestPassword123") != hash_password("TestPassword123")

    def test_hash_is_not_plain_text(self):
        hashed = hash_password("TestPassword123")
        assert isinstance(hashed, str)
        assert hashed != "TestPassword123"

    def test_verify_password_correct_and_incorrect(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("WrongPassword456", hashed) is False

    def test_verify_password_handles_garbage_hash(self):
        """A corrupt stored hash is a mismatch, not a crash."""
        assert verify_password("TestPassword123", "not-a-hash") is False
        assert verify_password("TestPassword123", "") is False


class TestAccessAndRefreshTokens:
    def test_access_token_carries_identity_fields(self):
        user = _user()
        payload = verify_access_token(issue_access_token(user))
        assert payload["sub"] == str(user.id)
        assert payload["email"] == "alice@x.com"
        assert payload["username"] == "alice"
        assert payload["fullName"] == "Alice Liddell"

    def test_access_token_expiry_matches_configuration(self):
        payload = verify_access_token(issue_access_token(_user()))
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - settings.access_token_expire_minutes) < 1

    def test_refresh_token_carries_only_id(self):
        user = _user()
        payload = verify_refresh_token(issue_refresh_token(user))
        assert payload["sub"] == str(user.id)
        assert "email" not in payload
        diff_days = (payload["exp"] - payload["iat"]) / 86400
        assert abs(diff_days - settings.refresh_token_expire_days) < 0.01

    def test_tokens_minted_back_to_back_differ(self):
        user = _user()
        assert issue_refresh_token(user) != issue_refresh_token(user)

    def test_access_token_is_not_a_refresh_token(self):
        """Each kind is signed with its own secret and rejected by the other verifier."""
        user = _user()
        with pytest.raises(TokenInvalid):
            verify_refresh_token(issue_access_token(user))
        with pytest.raises(TokenInvalid):
            verify_access_token(issue_refresh_token(user))

    def test_garbage_token_is_invalid(self):
        with pytest.raises(TokenInvalid):
            verify_refresh_token("invalid.token.here")

    def test_expired_refresh_token(self):
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=1)
        token = jwt.encode(
            {"sub": "x", "type": "refresh", "iat": past - dt.timedelta(days=1), "exp": past},
            settings.refresh_token_secret,
            algorithm=settings.jwt_alg,
        )
        with pytest.raises(TokenExpired):
            verify_refresh_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "x", "type": "refresh"}, "wrong-secret", algorithm="HS256")
        with pytest.raises(TokenInvalid):
            verify_refresh_token(token)


class TestTemporaryToken:
    def test_hash_is_sha256_of_plain(self):
        token = generate_temporary_token()
        assert token.hashed_token == hashlib.sha256(token.plain_token.encode()).hexdigest()
        assert hash_temporary_token(token.plain_token) == token.hashed_token
        assert token.plain_token != token.hashed_token

    def test_plain_token_is_random(self):
        assert generate_temporary_token().plain_token != generate_temporary_token().plain_token

    def test_expiry_is_twenty_minutes_out(self):
        before = dt.datetime.now(dt.timezone.utc)
        token = generate_temporary_token()
        window = token.expiry - before
        assert dt.timedelta(minutes=19, seconds=59) <= window <= dt.timedelta(minutes=20, seconds=1)
