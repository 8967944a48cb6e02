"""
Appointment database model.

A fan books a time with a star.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Date
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import AppointmentStatus
from backend.app.models.transaction_enums import PaymentMode


class Appointment(Base):
    """
    Appointment model.

    Flow: PENDING -> APPROVED | REJECTED | CANCELLED, APPROVED -> CANCELLED
    (only while unpaid), APPROVED -> REFUNDED (admin refund). The booked
    slot's date and window are copied onto `date` and `time`, so they survive
    the slot being deleted later.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Parties
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    fan_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Slot
    time_slot_id = Column(Integer, ForeignKey('time_slots.id', ondelete="SET NULL"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(20), nullable=False)

    # Payment
    price = Column(Integer, default=0, nullable=False)
    payment_mode = Column(Enum(PaymentMode), default=PaymentMode.COIN, nullable=False)
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=True, index=True)

    status = Column(Enum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False, index=True)

    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Appointment(id={self.id}, star={self.star_id}, fan={self.fan_id}, status='{self.status.value}')>"
