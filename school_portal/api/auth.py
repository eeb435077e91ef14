"""Authentication API endpoints."""

import structlog
from fastapi import APIRouter, Depends, status

from school_portal.api.dependencies import (
    enforce_login_rate_limit,
    get_auth_service,
    get_current_identity,
)
from school_portal.models.account import Identity
from school_portal.models.auth import (
    AuthData,
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    ProfileData,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
)
from school_portal.models.response import ApiResponse
from school_portal.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthData]:
    """Create a student account and return it with an access token.

    Raises:
        ValidationError 400: Password shorter than 6 characters
        ConflictError 400: Email already registered
    """
    data = await auth_service.register(
        name=request.name,
        email=request.email,
        password=request.password,
        age=request.age,
    )
    return ApiResponse(success=True, data=data, message="User registered successfully")


@router.post("/login", dependencies=[Depends(enforce_login_rate_limit)])
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[LoginData]:
    """Login with email and password.

    Attempts are limited per client address (429 once exhausted).

    Raises:
        AuthenticationError 401: Wrong credentials or deactivated account
        RateLimitedError 429: Too many attempts in the window
    """
    data = await auth_service.login(request.email, request.password)
    return ApiResponse(success=True, data=data, message="Login successful")


@router.get("/profile")
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[ProfileData]:
    """Current account, read fresh from the store."""
    account = await auth_service.get_profile(identity.account_id)
    return ApiResponse(
        success=True,
        data=ProfileData(user=account),
        message="Profile retrieved successfully",
    )


@router.put("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    identity: Identity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Change the current account's password and clear its temporary flags."""
    await auth_service.change_password(
        identity.account_id,
        request.current_password,
        request.new_password,
    )
    return ApiResponse(success=True, message="Password changed successfully")


@router.post("/refresh")
async def refresh(
    request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[TokenPair]:
    """Exchange a refresh token for a new pair. The presented token is
    invalidated."""
    data = await auth_service.refresh(request.refresh_token)
    return ApiResponse(success=True, data=data, message="Token refreshed successfully")


@router.post("/logout")
async def logout(
    identity: Identity = Depends(get_current_identity),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """Revoke the stored refresh token. Access tokens expire on their own."""
    await auth_service.revoke(identity.account_id)
    return ApiResponse(success=True, message="Logged out successfully")
