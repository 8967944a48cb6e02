"""
Appointment API Endpoints.

Fans book a star's time slot; stars approve or reject; fans cancel or
reschedule onto another slot. Admins may act on any appointment.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.guards import require_role
from backend.app.domain.bookings.appointment_service import AppointmentService
from backend.app.models.booking_enums import AppointmentStatus
from backend.app.models.enums import UserRole
from backend.app.schemas.appointment import AppointmentCreate, AppointmentReschedule, AppointmentResponse

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    current_user: Principal = Depends(require_role([UserRole.FAN])),
    db: AsyncSession = Depends(get_db)
):
    """Book one of a star's time slots; a priced booking escrows the fan's coins."""
    return await AppointmentService.create(
        db, current_user,
        star_id=payload.star_id,
        time_slot_id=payload.time_slot_id,
        price=payload.price,
        payment_mode=payload.payment_mode
    )


@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await AppointmentService.list_for(db, current_user, status=status, limit=limit, offset=offset)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await AppointmentService.get(db, current_user, appointment_id)


@router.post("/{appointment_id}/approve", response_model=AppointmentResponse)
async def approve_appointment(
    appointment_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Approve and release the payment to the star."""
    return await AppointmentService.approve(db, current_user, appointment_id)


@router.post("/{appointment_id}/reject", response_model=AppointmentResponse)
async def reject_appointment(
    appointment_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await AppointmentService.reject(db, current_user, appointment_id)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.FAN, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await AppointmentService.cancel(db, current_user, appointment_id)


@router.patch("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    payload: AppointmentReschedule,
    appointment_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.FAN, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await AppointmentService.reschedule(db, current_user, appointment_id, payload.time_slot_id)
