"""FastAPI dependencies: service providers, authentication and authorization."""

from typing import Callable, Iterable, Optional
from uuid import UUID

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from school_portal.config import get_settings
from school_portal.errors import (
    AuthorizationError,
    InvalidTokenError,
    NotAuthenticatedError,
    RateLimitedError,
)
from school_portal.models.account import Identity, Role
from school_portal.services.account_store import AccountStore
from school_portal.services.auth_service import AuthService
from school_portal.services.email_service import EmailService
from school_portal.services.provisioning_service import BatchProvisioner
from school_portal.services.redis_service import RateLimiter, get_login_rate_limiter
from school_portal.services.token_service import TokenService

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------

def get_token_service() -> TokenService:
    return TokenService()


def get_account_store() -> AccountStore:
    return AccountStore()


def get_auth_service(
    store: AccountStore = Depends(get_account_store),
    tokens: TokenService = Depends(get_token_service),
) -> AuthService:
    return AuthService(store, tokens)


def get_email_service(request: Request) -> EmailService:
    """Mailer created by the application lifespan."""
    email_service = getattr(request.app.state, "email_service", None)
    if email_service is None:
        email_service = EmailService()
        request.app.state.email_service = email_service
    return email_service


def get_batch_provisioner(
    store: AccountStore = Depends(get_account_store),
    email_service: EmailService = Depends(get_email_service),
) -> BatchProvisioner:
    return BatchProvisioner(
        store, email_service, max_batch_size=get_settings().batch_max_size
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    """Resolve the caller's identity from the Bearer token.

    The identity comes from the token claims alone; the account is not
    re-read, so a deactivated account keeps access until its token expires.

    Raises:
        NotAuthenticatedError: If the token is missing or fails verification
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError("Access token is required")

    try:
        identity = tokens.verify_access_token(credentials.credentials)
    except InvalidTokenError as e:
        raise NotAuthenticatedError(e.message)

    request.state.identity = identity
    structlog.contextvars.bind_contextvars(account_id=str(identity.account_id))
    return identity


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

def authorize(identity: Identity, allowed_roles: Iterable[Role]) -> None:
    """Single role check used by every protected route.

    Raises:
        AuthorizationError: If the identity's role is not permitted
    """
    allowed = frozenset(allowed_roles)
    if allowed and identity.role not in allowed:
        logger.warning(
            "access_denied",
            account_id=str(identity.account_id),
            role=identity.role.value,
            required=sorted(r.value for r in allowed),
        )
        raise AuthorizationError()


def authorize_owner_or_admin(identity: Identity, account_id: UUID) -> None:
    """Allow admins, or the account holder acting on their own record."""
    if identity.account_id == account_id:
        return
    authorize(identity, {Role.ADMIN})


def require_roles(*roles: Role) -> Callable:
    """Build a dependency that admits only the given roles.

    Usage:
        @router.get("/stats", dependencies=[Depends(require_roles(Role.ADMIN))])
    """
    allowed = frozenset(roles)

    async def dependency(
        identity: Identity = Depends(get_current_identity),
    ) -> Identity:
        authorize(identity, allowed)
        return identity

    return dependency


require_admin = require_roles(Role.ADMIN)


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

async def enforce_login_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_login_rate_limiter),
) -> None:
    """Reject login attempts over the per-address limit, before credentials
    are looked at.

    Raises:
        RateLimitedError: If the caller exhausted the window
    """
    address = request.client.host if request.client else "unknown"
    allowed, _ = await limiter.hit(address)

    if not allowed:
        logger.warning("login_rate_limited", client=address)
        minutes = max(1, limiter.window_seconds // 60)
        raise RateLimitedError(
            f"Too many login attempts, please try again in {minutes} minutes."
        )
