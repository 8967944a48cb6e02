"""
Dedication Request database model.

A fan asks a star for a pre-recorded video.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Date
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import DedicationRequestStatus
from backend.app.models.transaction_enums import PaymentMode


class DedicationRequest(Base):
    """
    Dedication request model.

    Payment is released on delivery of the video, not on approval.
    """
    __tablename__ = "dedication_requests"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_id = Column(String(20), unique=True, nullable=False, index=True)

    # Parties
    fan_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Request details
    occasion = Column(String(100), nullable=False)
    event_name = Column(String(255), nullable=False)
    event_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)

    # Payment
    price = Column(Integer, default=0, nullable=False)
    payment_mode = Column(Enum(PaymentMode), default=PaymentMode.COIN, nullable=False)
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=True, index=True)

    status = Column(Enum(DedicationRequestStatus), default=DedicationRequestStatus.PENDING, nullable=False, index=True)
    video_url = Column(String(500), nullable=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DedicationRequest(id={self.id}, tracking='{self.tracking_id}', status='{self.status.value}')>"
