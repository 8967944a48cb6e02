"""
Notification API Endpoints.

The caller's own inbox; every route is scoped to the authenticated user.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.models.notification import NotificationType
from backend.app.services.notification_service import NotificationService
from backend.app.schemas.notification import (
    NotificationResponse,
    NotificationStatsResponse,
    MarkAllReadResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await NotificationService.list_for_user(
        db,
        current_user.user_id,
        unread_only=unread_only,
        type=type,
        limit=limit,
        offset=offset
    )


@router.get("/stats", response_model=NotificationStatsResponse)
async def notification_stats(
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Total and unread counts, overall and per notification type."""
    return await NotificationService.stats(db, current_user.user_id)


@router.patch("/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    type: Optional[NotificationType] = Query(None),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    updated = await NotificationService.mark_all_read(db, current_user.user_id, type=type)
    return {"success": True, "updated": updated}


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not await NotificationService.mark_read(db, notification_id, current_user.user_id):
        raise ResourceNotFoundError("Notification", notification_id)
    return {"success": True}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Remove one notification from the caller's inbox. Other users' ids are reported as not found."""
    if not await NotificationService.delete(db, notification_id, current_user.user_id):
        raise ResourceNotFoundError("Notification", notification_id)
    return {"success": True}
