"""
Live Show API Endpoints.

Stars schedule, reschedule, cancel and complete shows; fans join and leave.
Cancel and complete settle every attendance and report per-item failures.
"""

from datetime import date
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.exceptions import BookingRuleError
from backend.app.core.guards import require_role
from backend.app.domain.bookings.live_show_service import LiveShowService
from backend.app.models.booking_enums import LiveShowStatus
from backend.app.models.enums import UserRole
from backend.app.models.transaction_enums import PaymentMode
from backend.app.schemas.live_show import (
    FanOutReportResponse,
    LiveShowCreate,
    LiveShowReschedule,
    LiveShowResponse,
    AttendanceJoin,
    AttendanceResponse,
    LiveShowFanOutResponse,
)

router = APIRouter(prefix="/live-shows", tags=["Live Shows"])


@router.post("", response_model=LiveShowResponse, status_code=status.HTTP_201_CREATED)
async def create_live_show(
    payload: LiveShowCreate,
    current_user: Principal = Depends(require_role([UserRole.STAR])),
    db: AsyncSession = Depends(get_db)
):
    """Schedule a show; a hosting price is paid to the platform right away."""
    if payload.max_capacity == 0:
        raise BookingRuleError("max_capacity must be -1 (unlimited) or at least 1")
    return await LiveShowService.create(
        db, current_user,
        session_title=payload.session_title,
        description=payload.description,
        date=payload.date,
        time=payload.time,
        attendance_fee=payload.attendance_fee,
        hosting_price=payload.hosting_price,
        max_capacity=payload.max_capacity,
        payment_mode=payload.payment_mode
    )


@router.get("", response_model=List[LiveShowResponse])
async def list_live_shows(
    star_id: Optional[int] = Query(None),
    status: Optional[LiveShowStatus] = Query(None),
    from_date: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.list_shows(
        db, star_id=star_id, status=status, from_date=from_date, limit=limit, offset=offset
    )


@router.get("/code/{show_code}", response_model=LiveShowResponse)
async def get_live_show_by_code(
    show_code: str = Path(..., min_length=1, max_length=20),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.get_by_code(db, show_code)


@router.get("/{show_id}", response_model=LiveShowResponse)
async def get_live_show(
    show_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.get(db, show_id)


@router.patch("/{show_id}/reschedule", response_model=LiveShowResponse)
async def reschedule_live_show(
    payload: LiveShowReschedule,
    show_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.reschedule(db, current_user, show_id, payload.date, payload.time)


@router.post("/{show_id}/cancel", response_model=LiveShowFanOutResponse)
async def cancel_live_show(
    show_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel the show and return every attendee's fee.

    Succeeds even when some attendances could not be settled; those are in
    `report.failed` and in the reconciliation queue.
    """
    show, report = await LiveShowService.cancel(db, current_user, show_id)
    return LiveShowFanOutResponse(
        live_show=LiveShowResponse.model_validate(show),
        report=FanOutReportResponse.model_validate(report)
    )


@router.post("/{show_id}/complete", response_model=LiveShowFanOutResponse)
async def complete_live_show(
    show_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Mark the show completed and release attendance fees to the star."""
    show, report = await LiveShowService.complete_attendance(db, current_user, show_id)
    return LiveShowFanOutResponse(
        live_show=LiveShowResponse.model_validate(show),
        report=FanOutReportResponse.model_validate(report)
    )


@router.post("/{show_id}/join", response_model=AttendanceResponse, status_code=status.HTTP_201_CREATED)
async def join_live_show(
    show_id: int = Path(...),
    payload: Optional[AttendanceJoin] = None,
    current_user: Principal = Depends(require_role([UserRole.FAN])),
    db: AsyncSession = Depends(get_db)
):
    payment_mode = payload.payment_mode if payload else PaymentMode.COIN
    return await LiveShowService.join(db, current_user, show_id, payment_mode=payment_mode)


@router.post("/{show_id}/leave", response_model=AttendanceResponse)
async def leave_live_show(
    show_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.FAN])),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.leave(db, current_user, show_id)


@router.get("/{show_id}/attendances", response_model=List[AttendanceResponse])
async def list_live_show_attendances(
    show_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await LiveShowService.list_attendances(db, current_user, show_id)
