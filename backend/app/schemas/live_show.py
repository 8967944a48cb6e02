"""
Live show and attendance schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from backend.app.models.booking_enums import LiveShowStatus, AttendanceStatus
from backend.app.models.live_show import UNLIMITED_CAPACITY
from backend.app.models.transaction_enums import PaymentMode


class LiveShowCreate(BaseModel):
    """Schema for scheduling a live show."""
    session_title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date: date
    time: str = Field(..., min_length=1, max_length=20)
    attendance_fee: int = Field(0, ge=0)
    hosting_price: int = Field(0, ge=0)
    max_capacity: int = Field(UNLIMITED_CAPACITY, ge=UNLIMITED_CAPACITY)  # -1 = unlimited
    payment_mode: PaymentMode = PaymentMode.COIN


class LiveShowReschedule(BaseModel):
    date: date
    time: str = Field(..., min_length=1, max_length=20)


class LiveShowResponse(BaseModel):
    id: int
    star_id: int
    session_title: str
    description: Optional[str]
    date: date
    time: str
    attendance_fee: int
    hosting_price: int
    max_capacity: int
    current_attendees: int
    show_code: str
    invite_link: str
    transaction_id: Optional[int]
    status: LiveShowStatus
    cancelled_at: Optional[datetime]
    completed_at: Optional[datetime]
    refunded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendanceJoin(BaseModel):
    payment_mode: PaymentMode = PaymentMode.COIN


class AttendanceResponse(BaseModel):
    id: int
    live_show_id: int
    fan_id: int
    star_id: int
    attendance_fee: int
    payment_mode: PaymentMode
    transaction_id: Optional[int]
    status: AttendanceStatus
    cancelled_at: Optional[datetime]
    completed_at: Optional[datetime]
    refunded_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FanOutFailureResponse(BaseModel):
    id: int
    reason: str

    class Config:
        from_attributes = True


class FanOutReportResponse(BaseModel):
    """Per-attendance outcome of a cancel/complete fan-out."""
    succeeded: List[int]
    failed: List[FanOutFailureResponse]

    class Config:
        from_attributes = True


class LiveShowFanOutResponse(BaseModel):
    success: bool = True
    live_show: LiveShowResponse
    report: FanOutReportResponse
