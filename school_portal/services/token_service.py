"""Access token signing/verification and opaque refresh token generation."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
import structlog

from school_portal.config import Settings, get_settings
from school_portal.errors import InvalidTokenError, TokenConfigurationError
from school_portal.models.account import Identity, Role

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 40


class TokenService:
    """Stateless access tokens (JWT) and opaque refresh tokens."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)

    def _secret(self) -> str:
        secret = self.settings.jwt_secret
        if not secret:
            logger.error("jwt_secret_missing")
            raise TokenConfigurationError()
        return secret

    def issue_access_token(self, identity: Identity) -> str:
        """Create a signed JWT access token.

        Args:
            identity: Account id, email and role to assert

        Returns:
            Encoded JWT string

        Raises:
            TokenConfigurationError: If no signing secret is configured
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(identity.account_id),
            "email": identity.email,
            "role": identity.role.value,
            "iat": now,
            "exp": now + self.access_token_ttl,
        }
        token = jwt.encode(payload, self._secret(), algorithm=JWT_ALGORITHM)
        logger.debug(
            "access_token_created",
            account_id=str(identity.account_id),
            expires_minutes=self.settings.access_token_expire_minutes,
        )
        return token

    def verify_access_token(self, token: str) -> Identity:
        """Decode and validate a JWT access token.

        Args:
            token: Encoded JWT string

        Returns:
            Identity asserted by the token

        Raises:
            InvalidTokenError: If the token is malformed, expired, mis-signed
                or lacks the identity claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret(),
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Access token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug("access_token_rejected", reason=str(e))
            raise InvalidTokenError("Invalid access token")

        try:
            return Identity(
                account_id=UUID(payload["sub"]),
                email=payload["email"],
                role=Role(payload["role"]),
            )
        except (KeyError, ValueError):
            raise InvalidTokenError("Invalid token payload")

    @staticmethod
    def issue_refresh_token() -> str:
        """Generate an opaque, high-entropy refresh token (80 hex chars)."""
        return secrets.token_hex(REFRESH_TOKEN_BYTES)

    @staticmethod
    def hash_refresh_token(raw_token: str) -> str:
        """SHA-256 digest under which a refresh token is stored."""
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
