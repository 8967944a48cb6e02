"""
Notification Service.

Fire-and-forget in-app notifications. Notifications are written through a
session of their own on the caller's engine, after the booking change has
committed; a failure here is logged and never reaches the caller or touches
the caller's session state.
"""

import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, case
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from backend.app.db.session import atomic
from backend.app.models.notification import Notification, NotificationType

logger = logging.getLogger("starbooking.notifications")


class NotificationService:

    @staticmethod
    async def notify(
        db: AsyncSession,
        user_id: int,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[Notification]:
        """Create a single notification. Returns None if delivery failed."""
        try:
            async with _sink_session(db) as sink:
                notif = Notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    metadata_payload=metadata
                )
                sink.add(notif)
                await sink.commit()
            return notif
        except Exception:
            logger.warning(
                "Notification dropped",
                exc_info=True,
                extra={"user_id": user_id, "notification_type": type.value}
            )
            return None

    @staticmethod
    async def notify_many(
        db: AsyncSession,
        user_ids: List[int],
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """Send the same notification to several users. Returns how many were written."""
        if not user_ids:
            return 0
        try:
            async with _sink_session(db) as sink:
                sink.add_all([
                    Notification(
                        user_id=uid,
                        type=type,
                        title=title,
                        message=message,
                        metadata_payload=metadata
                    )
                    for uid in user_ids
                ])
                await sink.commit()
            return len(user_ids)
        except Exception:
            logger.warning(
                "Bulk notification dropped",
                exc_info=True,
                extra={"recipients": len(user_ids), "notification_type": type.value}
            )
            return 0

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: int,
        unread_only: bool = False,
        type: Optional[NotificationType] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Notification]:
        """Newest first, optionally narrowed to unread and/or one type."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)
        if type is not None:
            query = query.where(Notification.type == type)
        query = (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def mark_read(db: AsyncSession, notification_id: int, user_id: int) -> bool:
        """Mark one of the user's notifications as read. False if it is not theirs."""
        async with atomic(db):
            result = await db.execute(
                update(Notification).where(
                    Notification.id == notification_id,
                    Notification.user_id == user_id
                ).values(
                    is_read=True,
                    read_at=func.coalesce(Notification.read_at, datetime.now(timezone.utc))
                )
            )
        return result.rowcount > 0

    @staticmethod
    async def mark_all_read(db: AsyncSession, user_id: int, type: Optional[NotificationType] = None) -> int:
        stmt = update(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read == False
        )
        if type is not None:
            stmt = stmt.where(Notification.type == type)
        async with atomic(db):
            result = await db.execute(stmt.values(is_read=True, read_at=datetime.now(timezone.utc)))
        return result.rowcount

    @staticmethod
    async def delete(db: AsyncSession, notification_id: int, user_id: int) -> bool:
        async with atomic(db):
            result = await db.execute(
                delete(Notification).where(
                    Notification.id == notification_id,
                    Notification.user_id == user_id
                )
            )
        return result.rowcount > 0

    @staticmethod
    async def stats(db: AsyncSession, user_id: int) -> Dict[str, Any]:
        """
        Inbox counters for one user.

        Returns {"total", "unread", "by_type": [{"type", "total", "unread"}]},
        with by_type ordered by type name and only listing types that occur.
        """
        unread_expr = func.sum(case((Notification.is_read == False, 1), else_=0))
        result = await db.execute(
            select(Notification.type, func.count(Notification.id), unread_expr)
            .where(Notification.user_id == user_id)
            .group_by(Notification.type)
            .order_by(Notification.type)
        )
        by_type = [
            {"type": row[0], "total": row[1], "unread": int(row[2] or 0)}
            for row in result.all()
        ]
        return {
            "total": sum(item["total"] for item in by_type),
            "unread": sum(item["unread"] for item in by_type),
            "by_type": by_type,
        }


def _sink_session(db: AsyncSession) -> AsyncSession:
    return AsyncSession(bind=db.bind, expire_on_commit=False)
