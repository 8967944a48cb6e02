"""
Live Show database model.

A ticketed live session hosted by a star.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Date
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import LiveShowStatus

UNLIMITED_CAPACITY = -1


class LiveShow(Base):
    """
    Live show model.

    The hosting fee is paid by the star at creation through `transaction_id`.
    Attendance fees live on the LiveShowAttendance rows.
    """
    __tablename__ = "live_shows"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    session_title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(20), nullable=False)

    attendance_fee = Column(Integer, default=0, nullable=False)
    hosting_price = Column(Integer, default=0, nullable=False)
    max_capacity = Column(Integer, default=UNLIMITED_CAPACITY, nullable=False)
    current_attendees = Column(Integer, default=0, nullable=False)

    show_code = Column(String(20), unique=True, nullable=False, index=True)
    invite_link = Column(String(500), nullable=False)

    # Hosting fee payment
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=True, index=True)

    status = Column(Enum(LiveShowStatus), default=LiveShowStatus.SCHEDULED, nullable=False, index=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_at_capacity(self) -> bool:
        if self.max_capacity == UNLIMITED_CAPACITY:
            return False
        return self.current_attendees >= self.max_capacity

    def __repr__(self):
        return f"<LiveShow(id={self.id}, code='{self.show_code}', status='{self.status.value}')>"
