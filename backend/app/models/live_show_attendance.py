"""
Live Show Attendance database model.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import AttendanceStatus
from backend.app.models.transaction_enums import PaymentMode


class LiveShowAttendance(Base):
    """
    A fan's seat in a live show.

    One row per (show, fan). A fan who left can rejoin; the row is reused.
    """
    __tablename__ = "live_show_attendances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    live_show_id = Column(Integer, ForeignKey('live_shows.id'), nullable=False, index=True)
    fan_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Payment
    attendance_fee = Column(Integer, default=0, nullable=False)
    payment_mode = Column(Enum(PaymentMode), default=PaymentMode.COIN, nullable=False)
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=True, index=True)

    status = Column(Enum(AttendanceStatus), default=AttendanceStatus.PENDING, nullable=False, index=True)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("live_show_id", "fan_id", name="uq_attendance_show_fan"),
    )

    def __repr__(self):
        return f"<LiveShowAttendance(id={self.id}, show={self.live_show_id}, fan={self.fan_id}, status='{self.status.value}')>"
