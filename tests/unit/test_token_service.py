"""Unit tests for TokenService.

Tests JWT access token issuance/verification and opaque refresh tokens.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import jwt
import pytest

from school_portal.errors import InvalidTokenError, TokenConfigurationError
from school_portal.models.account import Identity, Role
from school_portal.services.token_service import JWT_ALGORITHM, TokenService

JWT_SECRET = "token-service-test-secret"


@pytest.fixture
def tokens():
    """TokenService with a deterministic secret and 15 minute expiry."""
    return TokenService(MagicMock(jwt_secret=JWT_SECRET, access_token_expire_minutes=15))


@pytest.fixture
def identity():
    return Identity(account_id=uuid4(), email="alice@example.com", role=Role.ADMIN)


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------

class TestAccessToken:
    def test_issue_and_verify_round_trip(self, tokens, identity):
        token = tokens.issue_access_token(identity)
        assert tokens.verify_access_token(token) == identity

    def test_claims_carry_identity_and_expiry(self, tokens, identity):
        token = tokens.issue_access_token(identity)
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])

        assert payload["sub"] == str(identity.account_id)
        assert payload["email"] == "alice@example.com"
        assert payload["role"] == "admin"
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_expired_token_rejected(self, tokens, identity):
        now = datetime.now(timezone.utc)
        expired = jwt.encode(
            {
                "sub": str(identity.account_id),
                "email": identity.email,
                "role": "admin",
                "iat": now - timedelta(hours=1),
                "exp": now - timedelta(minutes=1),
            },
            JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError, match="expired"):
            tokens.verify_access_token(expired)

    def test_token_signed_with_other_secret_rejected(self, tokens, identity):
        forged = TokenService(
            MagicMock(jwt_secret="attacker-secret", access_token_expire_minutes=15)
        ).issue_access_token(identity)

        with pytest.raises(InvalidTokenError, match="Invalid"):
            tokens.verify_access_token(forged)

    def test_garbage_rejected(self, tokens):
        with pytest.raises(InvalidTokenError):
            tokens.verify_access_token("not.a.jwt")

    def test_token_without_role_rejected(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(uuid4()), "email": "x@example.com", "exp": now + timedelta(minutes=5)},
            JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError, match="payload"):
            tokens.verify_access_token(token)

    def test_unknown_role_rejected(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": str(uuid4()),
                "email": "x@example.com",
                "role": "superuser",
                "exp": now + timedelta(minutes=5),
            },
            JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(InvalidTokenError):
            tokens.verify_access_token(token)

    def test_missing_secret_is_configuration_error(self, identity):
        tokens = TokenService(MagicMock(jwt_secret="", access_token_expire_minutes=15))

        with pytest.raises(TokenConfigurationError):
            tokens.issue_access_token(identity)


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------

class TestRefreshToken:
    def test_refresh_token_is_80_hex_chars(self):
        token = TokenService.issue_refresh_token()
        assert len(token) == 80
        int(token, 16)

    def test_refresh_tokens_are_unique(self):
        assert len({TokenService.issue_refresh_token() for _ in range(50)}) == 50

    def test_hash_is_sha256_hex(self):
        assert TokenService.hash_refresh_token("abc") == hashlib.sha256(b"abc").hexdigest()
