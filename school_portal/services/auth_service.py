"""Authentication workflow: registration, login, password change and
refresh-token rotation."""

import asyncio
from functools import lru_cache
from typing import Optional
from uuid import UUID

import structlog

from school_portal.errors import (
    AccountDeactivatedError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    InvalidRefreshTokenError,
    NotAuthenticatedError,
    NotFoundError,
    WeakPasswordError,
)
from school_portal.models.account import Account, Identity, Role
from school_portal.models.auth import AuthData, LoginData, TokenPair
from school_portal.services.account_store import AccountStore
from school_portal.services.passwords import (
    hash_password,
    hash_password_async,
    verify_password_async,
)
from school_portal.services.token_service import TokenService

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


@lru_cache
def _dummy_hash() -> str:
    """Hash compared against when the email is unknown, so a missing
    account costs the same bcrypt round as a wrong password."""
    return hash_password("dummy-password-for-timing")


def check_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


class AuthService:
    """Orchestrates credential checks against the store and token issuance."""

    def __init__(self, store: AccountStore, tokens: TokenService):
        self.store = store
        self.tokens = tokens

    async def create_account(
        self,
        name: str,
        email: str,
        password: str,
        age: Optional[int] = None,
        role: Role = Role.STUDENT,
    ) -> Account:
        """Hash the password and store a new active account.

        Raises:
            WeakPasswordError: If the password is shorter than 6 characters
            AccountExistsError: If the email is already taken
        """
        check_password_strength(password)

        return await self.store.create_account(
            name=name,
            email=email,
            password_hash=await hash_password_async(password),
            role=role,
            age=age,
        )

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        age: Optional[int] = None,
    ) -> AuthData:
        """Create a student account and issue an access token.

        Raises:
            WeakPasswordError: If the password is shorter than 6 characters
            AccountExistsError: If the email is already taken
        """
        account = await self.create_account(name, email, password, age=age)
        token = self.tokens.issue_access_token(Identity.from_account(account))

        logger.info("user_registered", account_id=str(account.id), email=account.email)
        return AuthData(user=account, token=token)

    async def login(self, email: str, password: str) -> LoginData:
        """Verify credentials and issue an access token plus a new refresh token.

        Unknown email and wrong password produce the same error.

        Raises:
            InvalidCredentialsError: If the email or password is wrong
            AccountDeactivatedError: If the credentials are right but the
                account is inactive
        """
        result = await self.store.get_by_email(email)

        if result is None:
            await verify_password_async(password, await asyncio.to_thread(_dummy_hash))
            logger.warning("login_failed", reason="invalid_credentials")
            raise InvalidCredentialsError()

        account, password_hash = result

        if not await verify_password_async(password, password_hash):
            logger.warning(
                "login_failed", account_id=str(account.id), reason="invalid_credentials"
            )
            raise InvalidCredentialsError()

        if not account.is_active:
            logger.warning(
                "login_failed", account_id=str(account.id), reason="account_deactivated"
            )
            raise AccountDeactivatedError()

        token = self.tokens.issue_access_token(Identity.from_account(account))
        refresh_token = self.tokens.issue_refresh_token()
        await self.store.set_refresh_token_hash(
            account.id, self.tokens.hash_refresh_token(refresh_token)
        )

        logger.info("user_logged_in", account_id=str(account.id), email=account.email)
        return LoginData(user=account, token=token, refresh_token=refresh_token)

    async def get_profile(self, account_id: UUID) -> Account:
        account = await self.store.get_by_id(account_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def change_password(
        self,
        account_id: Optional[UUID],
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace the password after checking the current one.

        Also clears the temporary/must-change flags and stamps the change time.

        Raises:
            NotAuthenticatedError: If no account id is given
            WeakPasswordError: If the new password is shorter than 6 characters
            NotFoundError: If the account no longer exists
            InvalidCurrentPasswordError: If the current password does not match
        """
        if account_id is None:
            raise NotAuthenticatedError()

        check_password_strength(new_password)

        result = await self.store.get_credentials(account_id)
        if result is None:
            raise NotFoundError("User not found")

        _, password_hash = result
        if not await verify_password_async(current_password, password_hash):
            logger.warning("password_change_rejected", account_id=str(account_id))
            raise InvalidCurrentPasswordError()

        await self.store.update_password(
            account_id, await hash_password_async(new_password)
        )

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access token and rotate it.

        Raises:
            InvalidRefreshTokenError: If no account holds the token
        """
        new_refresh_token = self.tokens.issue_refresh_token()
        account = await self.store.rotate_refresh_token_hash(
            self.tokens.hash_refresh_token(refresh_token),
            self.tokens.hash_refresh_token(new_refresh_token),
        )

        if account is None:
            logger.warning("refresh_token_rejected")
            raise InvalidRefreshTokenError()

        token = self.tokens.issue_access_token(Identity.from_account(account))
        logger.info("refresh_token_rotated", account_id=str(account.id))
        return TokenPair(token=token, refresh_token=new_refresh_token)

    async def revoke(self, account_id: UUID) -> None:
        """Clear the stored refresh token. Safe to call repeatedly."""
        await self.store.set_refresh_token_hash(account_id, None)
        logger.info("refresh_token_revoked", account_id=str(account_id))
