"""
Dedication Request API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.guards import require_role
from backend.app.domain.bookings.dedication_service import DedicationService
from backend.app.models.booking_enums import DedicationRequestStatus
from backend.app.models.enums import UserRole
from backend.app.schemas.dedication_request import (
    DedicationRequestCreate,
    DedicationDeliver,
    DedicationRequestResponse,
)

router = APIRouter(prefix="/dedication-requests", tags=["Dedication Requests"])


@router.post("", response_model=DedicationRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_dedication_request(
    payload: DedicationRequestCreate,
    current_user: Principal = Depends(require_role([UserRole.FAN])),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.create(
        db, current_user,
        star_id=payload.star_id,
        occasion=payload.occasion,
        event_name=payload.event_name,
        event_date=payload.event_date,
        description=payload.description,
        price=payload.price,
        payment_mode=payload.payment_mode
    )


@router.get("", response_model=List[DedicationRequestResponse])
async def list_dedication_requests(
    status: Optional[DedicationRequestStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.list_for(db, current_user, status=status, limit=limit, offset=offset)


@router.get("/tracking/{tracking_id}", response_model=DedicationRequestResponse)
async def get_by_tracking_id(
    tracking_id: str = Path(..., min_length=3, max_length=20),
    db: AsyncSession = Depends(get_db)
):
    """Public lookup by tracking id. No authentication required."""
    return await DedicationService.get_by_tracking_id(db, tracking_id)


@router.get("/{request_id}", response_model=DedicationRequestResponse)
async def get_dedication_request(
    request_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.get(db, current_user, request_id)


@router.post("/{request_id}/approve", response_model=DedicationRequestResponse)
async def approve_dedication_request(
    request_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.approve(db, current_user, request_id)


@router.post("/{request_id}/reject", response_model=DedicationRequestResponse)
async def reject_dedication_request(
    request_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.reject(db, current_user, request_id)


@router.post("/{request_id}/cancel", response_model=DedicationRequestResponse)
async def cancel_dedication_request(
    request_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.FAN, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    return await DedicationService.cancel(db, current_user, request_id)


@router.post("/{request_id}/deliver", response_model=DedicationRequestResponse)
async def deliver_dedication(
    payload: DedicationDeliver,
    request_id: int = Path(...),
    current_user: Principal = Depends(require_role([UserRole.STAR, UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Attach the video and release the payment to the star."""
    return await DedicationService.deliver(db, current_user, request_id, payload.video_url)
