"""
Appointment schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional
from backend.app.models.booking_enums import AppointmentStatus
from backend.app.models.transaction_enums import PaymentMode


class AppointmentCreate(BaseModel):
    """Schema for booking one of a star's time slots."""
    star_id: int
    time_slot_id: int
    price: int = Field(0, ge=0)
    payment_mode: PaymentMode = PaymentMode.COIN


class AppointmentReschedule(BaseModel):
    time_slot_id: int


class AppointmentResponse(BaseModel):
    """Schema for displaying an appointment."""
    id: int
    star_id: int
    fan_id: int
    time_slot_id: Optional[int]
    date: date
    time: str
    price: int
    payment_mode: PaymentMode
    transaction_id: Optional[int]
    status: AppointmentStatus
    approved_at: Optional[datetime]
    rejected_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    refunded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
