"""
Dedication request schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional
from backend.app.models.booking_enums import DedicationRequestStatus
from backend.app.models.transaction_enums import PaymentMode


class DedicationRequestCreate(BaseModel):
    """Schema for requesting a dedication video."""
    star_id: int
    occasion: str = Field(..., min_length=1, max_length=100)
    event_name: str = Field(..., min_length=1, max_length=255)
    event_date: date
    description: str = Field(..., min_length=1)
    price: int = Field(0, ge=0)
    payment_mode: PaymentMode = PaymentMode.COIN


class DedicationDeliver(BaseModel):
    """Finished video, already uploaded to media storage."""
    video_url: str = Field(..., min_length=1, max_length=500)


class DedicationRequestResponse(BaseModel):
    id: int
    tracking_id: str
    fan_id: int
    star_id: int
    occasion: str
    event_name: str
    event_date: date
    description: str
    price: int
    payment_mode: PaymentMode
    transaction_id: Optional[int]
    status: DedicationRequestStatus
    video_url: Optional[str]
    approved_at: Optional[datetime]
    rejected_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    completed_at: Optional[datetime]
    refunded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
