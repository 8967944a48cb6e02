"""
Admin API Endpoints.

Account provisioning, blocking and user inspection (admin-only).
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import Principal
from backend.app.core.guards import require_admin
from backend.app.models.enums import UserRole
from backend.app.schemas.admin import (
    UserCreate,
    UserListResponse,
    UserListItem,
    LedgerEntryResponse,
    UserStatusRequest,
    AdminActionResponse,
)
from backend.app.services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/users", response_model=UserListItem, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Provision an account.

    The wallet opens with `initial_coin_balance` coins.
    """
    user = await UserService.create_user(db, email=payload.email, name=payload.name, role=payload.role)
    return UserListItem.model_validate(user)


@router.get("/users", response_model=UserListResponse)
async def list_users(
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all users in the system (admin-only).

    Returns paginated user list with role, account id and balance.
    """
    users, total = await UserService.list_users(db, role=role, page=page, page_size=page_size)
    return UserListResponse(
        users=[UserListItem.model_validate(user) for user in users],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/users/{user_id}", response_model=UserListItem)
async def get_user(
    user_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService.get_user(db, user_id)
    return UserListItem.model_validate(user)


@router.get("/users/{user_id}/ledger", response_model=List[LedgerEntryResponse])
async def get_user_ledger(
    user_id: int,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every debit and credit applied to the user's wallet, oldest first."""
    await UserService.get_user(db, user_id)
    entries = await UserService.ledger_entries(db, user_id, limit=limit, offset=offset)
    return [LedgerEntryResponse.model_validate(entry) for entry in entries]


@router.post("/users/{user_id}/block", response_model=AdminActionResponse)
async def block_user(
    user_id: int,
    payload: Optional[UserStatusRequest] = None,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Block an account (admin-only).

    The user is refused from their next request on. Admins cannot be blocked.
    """
    user = await UserService.set_active(
        db, admin.user_id, user_id, active=False, reason=payload.reason if payload else None
    )
    return AdminActionResponse(message=f"User {user.email} has been blocked", user=UserListItem.model_validate(user))


@router.post("/users/{user_id}/unblock", response_model=AdminActionResponse)
async def unblock_user(
    user_id: int,
    payload: Optional[UserStatusRequest] = None,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await UserService.set_active(
        db, admin.user_id, user_id, active=True, reason=payload.reason if payload else None
    )
    return AdminActionResponse(message=f"User {user.email} has been unblocked", user=UserListItem.model_validate(user))
