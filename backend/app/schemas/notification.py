"""
Notification Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any, List
from backend.app.models.notification import NotificationType


class NotificationResponse(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    metadata_payload: Optional[Dict[str, Any]]
    is_read: bool
    created_at: datetime
    read_at: Optional[datetime]

    class Config:
        from_attributes = True


class NotificationTypeCount(BaseModel):
    type: NotificationType
    total: int
    unread: int


class NotificationStatsResponse(BaseModel):
    """Inbox counters: overall and broken down by notification type."""
    total: int
    unread: int
    by_type: List[NotificationTypeCount] = Field(default_factory=list)


class MarkAllReadResponse(BaseModel):
    success: bool = True
    updated: int
