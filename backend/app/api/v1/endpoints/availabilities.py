"""
Availability API Endpoints.

Stars publish and remove time slots; any signed-in user can browse a star's
slots to book one.
"""

from datetime import date
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.guards import require_role
from backend.app.domain.bookings.availability_service import AvailabilityService, AvailabilityWithSlots
from backend.app.models.enums import UserRole
from backend.app.schemas.availability import AvailabilityCreate, AvailabilityResponse, TimeSlotResponse

router = APIRouter(prefix="/availabilities", tags=["Availabilities"])


def _to_response(entry: AvailabilityWithSlots) -> AvailabilityResponse:
    availability, slots = entry
    return AvailabilityResponse(
        id=availability.id,
        star_id=availability.star_id,
        date=availability.date,
        time_slots=[TimeSlotResponse.model_validate(slot) for slot in slots],
        created_at=availability.created_at,
        updated_at=availability.updated_at
    )


@router.post("", response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
async def create_availability(
    payload: AvailabilityCreate,
    current_user: Principal = Depends(require_role([UserRole.STAR])),
    db: AsyncSession = Depends(get_db)
):
    """Publish slots for a day; slots for a day already published are merged in."""
    return _to_response(await AvailabilityService.create(db, current_user, payload.date, payload.time_slots))


@router.get("", response_model=List[AvailabilityResponse])
async def list_availabilities(
    star_id: Optional[int] = Query(None, description="Defaults to the calling star"),
    from_date: Optional[date] = Query(None),
    available_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    entries = await AvailabilityService.list_for(
        db, current_user,
        star_id=star_id,
        from_date=from_date,
        available_only=available_only,
        limit=limit,
        offset=offset
    )
    return [_to_response(entry) for entry in entries]


@router.get("/{availability_id}", response_model=AvailabilityResponse)
async def get_availability(
    availability_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return _to_response(await AvailabilityService.get(db, availability_id))


@router.delete("/{availability_id}")
async def delete_availability(
    availability_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Refused while any slot of the day has a pending or approved appointment."""
    await AvailabilityService.delete(db, current_user, availability_id)
    return {"success": True}


@router.delete("/slots/{time_slot_id}")
async def delete_time_slot(
    time_slot_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    await AvailabilityService.delete_slot(db, current_user, time_slot_id)
    return {"success": True}
