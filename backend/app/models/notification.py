"""
Notification Database Model.

In-app inbox rows written after a booking or payment change commits.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, Enum, Index
from sqlalchemy.sql import func
from backend.app.db.session import Base
import enum


class NotificationType(str, enum.Enum):
    INFO = "INFO"
    APPOINTMENT_UPDATE = "APPOINTMENT_UPDATE"
    DEDICATION_UPDATE = "DEDICATION_UPDATE"
    LIVE_SHOW_UPDATE = "LIVE_SHOW_UPDATE"
    PAYMENT_UPDATE = "PAYMENT_UPDATE"


class Notification(Base):
    """
    One message in a user's inbox.

    `metadata_payload` carries the ids the client needs to deep-link
    (appointment_id, transaction_id, live_show_id, ...).
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_inbox", "user_id", "is_read", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    type = Column(Enum(NotificationType), default=NotificationType.INFO, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    metadata_payload = Column(JSON, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, user={self.user_id}, type={self.type}, read={self.is_read})>"
