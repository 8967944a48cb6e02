"""
Availability database models.

A star publishes one Availability per calendar day, each holding one or
more TimeSlots. Fans book appointments against a slot; approval reserves
it and cancellation or refund of an approved appointment frees it again.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Date, UniqueConstraint
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.booking_enums import TimeSlotStatus


class Availability(Base):
    __tablename__ = "availabilities"
    __table_args__ = (
        UniqueConstraint("star_id", "date", name="uq_availability_star_date"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Availability(id={self.id}, star={self.star_id}, date={self.date})>"


class TimeSlot(Base):
    """
    One bookable window, stored as 24-hour "HH:MM" bounds.

    `star_id` and `date` repeat the parent availability's values so a slot
    can be checked and copied onto an appointment without a join.
    """
    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("availability_id", "start_time", "end_time", name="uq_time_slot_window"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    availability_id = Column(Integer, ForeignKey('availabilities.id', ondelete="CASCADE"), nullable=False, index=True)
    star_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    date = Column(Date, nullable=False)

    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(Enum(TimeSlotStatus), default=TimeSlotStatus.AVAILABLE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def __repr__(self):
        return f"<TimeSlot(id={self.id}, date={self.date}, slot='{self.label}', status='{self.status.value}')>"
