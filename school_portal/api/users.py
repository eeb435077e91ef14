"""User management API endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status

from school_portal.api.dependencies import (
    authorize,
    authorize_owner_or_admin,
    get_account_store,
    get_auth_service,
    get_current_identity,
    require_admin,
)
from school_portal.errors import AuthorizationError, NotFoundError
from school_portal.models.account import Account, Identity, Role
from school_portal.models.auth import CreateUserRequest, UpdateUserRequest
from school_portal.models.response import ApiResponse
from school_portal.services.account_store import AccountStore
from school_portal.services.auth_service import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _forbid_self(admin: Identity, user_id: UUID, action: str) -> None:
    if admin.account_id == user_id:
        raise AuthorizationError(f"Cannot {action} your own account")


@router.get("")
async def list_users(
    admin: Identity = Depends(require_admin),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[list[Account]]:
    """List all accounts, newest first (admin only)."""
    accounts = await store.list_accounts()
    return ApiResponse(
        success=True, data=accounts, message=f"Retrieved {len(accounts)} users"
    )


@router.post("/add-user", status_code=status.HTTP_201_CREATED)
async def create_user(
    request: CreateUserRequest,
    admin: Identity = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[Account]:
    """Create an account with a chosen password and role (admin only)."""
    account = await auth_service.create_account(
        name=request.name,
        email=request.email,
        password=request.password,
        age=request.age,
        role=request.role,
    )

    logger.info(
        "admin_created_user",
        admin_id=str(admin.account_id),
        new_account_id=str(account.id),
        role=account.role.value,
    )
    return ApiResponse(success=True, data=account, message="User created successfully")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    identity: Identity = Depends(get_current_identity),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[Account]:
    """Get one account (the account holder or an admin)."""
    authorize_owner_or_admin(identity, user_id)

    account = await store.get_by_id(user_id)
    if account is None:
        raise NotFoundError("User not found")
    return ApiResponse(success=True, data=account, message="User retrieved successfully")


@router.put("/{user_id}")
async def update_user(
    user_id: UUID,
    request: UpdateUserRequest,
    identity: Identity = Depends(get_current_identity),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[Account]:
    """Update profile fields. Role and active flag are admin-only."""
    authorize_owner_or_admin(identity, user_id)
    if request.role is not None or request.is_active is not None:
        authorize(identity, {Role.ADMIN})
        if request.is_active is False or request.role == Role.STUDENT:
            _forbid_self(identity, user_id, "demote or deactivate")

    account = await store.update_account(
        user_id,
        name=request.name,
        age=request.age,
        role=request.role,
        is_active=request.is_active,
    )
    if account is None:
        raise NotFoundError("User not found")

    logger.info(
        "user_updated",
        actor_id=str(identity.account_id),
        target_account_id=str(user_id),
    )
    return ApiResponse(success=True, data=account, message="User updated successfully")


@router.post("/{user_id}/deactivate")
async def deactivate_user(
    user_id: UUID,
    admin: Identity = Depends(require_admin),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[Account]:
    """Deactivate an account and revoke its refresh token (admin only).

    Access tokens already issued stay valid until they expire.
    """
    _forbid_self(admin, user_id, "deactivate")

    account = await store.update_account(user_id, is_active=False)
    if account is None:
        raise NotFoundError("User not found")

    logger.info(
        "admin_deactivated_user",
        admin_id=str(admin.account_id),
        target_account_id=str(user_id),
    )
    return ApiResponse(success=True, data=account, message="User deactivated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    admin: Identity = Depends(require_admin),
    store: AccountStore = Depends(get_account_store),
) -> ApiResponse[None]:
    """Hard-delete an account (admin only, never your own)."""
    _forbid_self(admin, user_id, "delete")

    if not await store.delete_account(user_id):
        raise NotFoundError("User not found")

    logger.info(
        "admin_deleted_user",
        admin_id=str(admin.account_id),
        deleted_account_id=str(user_id),
    )
    return ApiResponse(success=True, message="User deleted successfully")
