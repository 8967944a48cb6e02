"""
Admin Ledger API Endpoints.

Refunds and the reconciliation queue of failed fan-out items.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import Principal
from backend.app.core.guards import require_admin
from backend.app.domain.bookings.reconciliation import ReconciliationService
from backend.app.domain.bookings.refunds import RefundService
from backend.app.models.reconciliation_item import ReconciliationStatus
from backend.app.schemas.live_show import FanOutReportResponse
from backend.app.schemas.transaction import (
    LedgerActionResponse,
    ReconciliationItemResponse,
    RefundedBookingResponse,
    TransactionResponse,
)

# Registers the live show fan-out steps used by retry
from backend.app.domain.bookings import live_show_service  # noqa: F401

router = APIRouter(prefix="/admin", tags=["Admin - Ledger"])


@router.post("/transactions/{transaction_id}/refund", response_model=LedgerActionResponse)
async def refund_transaction(
    transaction_id: int = Path(..., description="Transaction ID"),
    current_user: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Reverse a COMPLETED transaction and void the booking it paid for.

    The receiver is debited and the payer credited. Whether the receiver may
    go negative is controlled by `allow_negative_refund`. The booking moves
    to REFUNDED; a refunded scheduled show also returns every attendee's fee.
    """
    outcome = await RefundService.refund(db, transaction_id)

    booking = None
    if outcome.booking is not None:
        booking = RefundedBookingResponse(
            type=type(outcome.booking).__name__,
            id=outcome.booking.id,
            status=outcome.booking.status.value
        )
    return LedgerActionResponse(
        message="Transaction refunded",
        transaction=TransactionResponse.model_validate(outcome.transaction),
        booking=booking,
        report=FanOutReportResponse.model_validate(outcome.report) if outcome.report is not None else None
    )


@router.get("/reconciliation", response_model=List[ReconciliationItemResponse])
async def list_reconciliation_items(
    status: Optional[ReconciliationStatus] = Query(None),
    task_name: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Fan-out items that failed and need an operator."""
    return await ReconciliationService.list_items(db, status=status, task_name=task_name, limit=limit, offset=offset)


@router.post("/reconciliation/{item_id}/retry", response_model=ReconciliationItemResponse)
async def retry_reconciliation_item(
    item_id: int = Path(..., description="Reconciliation item ID"),
    current_user: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Re-run the failed step for a single item."""
    return await ReconciliationService.retry(db, item_id)
