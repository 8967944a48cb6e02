"""
Availability and time slot schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List
from backend.app.models.booking_enums import TimeSlotStatus


class AvailabilityCreate(BaseModel):
    """Slots as "HH:MM-HH:MM" or "h:MM AM - h:MM PM"."""
    date: date
    time_slots: List[str] = Field(..., min_length=1)


class TimeSlotResponse(BaseModel):
    id: int
    availability_id: int
    star_id: int
    date: date
    start_time: str
    end_time: str
    label: str
    status: TimeSlotStatus

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    id: int
    star_id: int
    date: date
    time_slots: List[TimeSlotResponse]
    created_at: datetime
    updated_at: datetime
