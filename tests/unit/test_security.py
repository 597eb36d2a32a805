"""
Unit tests for security utilities.

Tests password hashing, JWT generation, and token validation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError

from tenantcms.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)


@pytest.mark.unit
class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        """Test password hashing."""
        password = "TestPassword123!"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # Bcrypt prefix

    def test_verify_password(self):
        hashed = hash_password("TestPassword123!")

        assert verify_password("TestPassword123!", hashed) is True
        assert verify_password("WrongPassword123!", hashed) is False

    def test_different_hashes_for_same_password(self):
        """Hashing the same password twice produces different hashes (salt)."""
        password = "TestPassword123!"
        hash1 = hash_password(password)
        hash2 = hash_password(password)

        assert hash1 != hash2
        assert verify_password(password, hash1) is True
        assert verify_password(password, hash2) is True


@pytest.mark.unit
class TestJWTTokens:
    """Test JWT token generation and validation."""

    def test_create_access_token(self):
        token = create_access_token(subject=42)
        payload = decode_token(token)

        assert payload["sub"] == "42"
        assert payload["type"] == "access"

    def test_extra_claims(self):
        token = create_access_token(subject=42, extra_claims={"tenant": 3})
        assert decode_token(token)["tenant"] == 3

    def test_extra_claims_cannot_override_type(self):
        token = create_access_token(subject=42, extra_claims={"type": "refresh", "sub": "1"})
        payload = decode_token(token)

        assert payload["type"] == "access"
        assert payload["sub"] == "42"

    def test_token_expiration(self):
        payload = decode_token(create_access_token(subject=42))

        assert "iat" in payload
        assert datetime.fromtimestamp(payload["exp"], tz=timezone.utc) > datetime.now(timezone.utc)

    def test_custom_expiration(self):
        token = create_access_token(subject=42, expires_delta=timedelta(minutes=5))
        payload = decode_token(token)

        # Should expire in ~5 minutes
        assert 4 * 60 <= payload["exp"] - payload["iat"] <= 6 * 60

    def test_expired_token_rejected(self):
        token = create_access_token(subject=42, expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            decode_token(token)

    def test_decode_invalid_token(self):
        with pytest.raises(JWTError):
            decode_token("invalid.token.here")
