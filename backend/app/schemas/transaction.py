"""
Wallet and ledger schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List
from backend.app.models.transaction_enums import TransactionType, PaymentMode, TransactionStatus
from backend.app.models.reconciliation_item import ReconciliationStatus
from backend.app.schemas.live_show import FanOutReportResponse


class TransactionResponse(BaseModel):
    """Schema for displaying a ledger transaction."""
    id: int
    type: TransactionType
    payer_id: int
    receiver_id: int
    amount: int
    payment_mode: PaymentMode
    status: TransactionStatus
    description: Optional[str]
    meta_data: Optional[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    refunded_at: Optional[datetime]

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    success: bool = True
    user_id: int
    balance: int


class TransactionListResponse(BaseModel):
    success: bool = True
    transactions: List[TransactionResponse]
    limit: int
    offset: int


class RefundedBookingResponse(BaseModel):
    """The booking a refund voided."""
    type: str
    id: int
    status: str


class LedgerActionResponse(BaseModel):
    """Response for admin ledger actions (refund)."""
    success: bool = True
    message: str
    transaction: TransactionResponse
    booking: Optional[RefundedBookingResponse] = None
    report: Optional[FanOutReportResponse] = None  # attendances of a refunded scheduled show


class ReconciliationItemResponse(BaseModel):
    id: int
    task_name: str
    booking_id: int
    transaction_id: Optional[int]
    error_message: str
    payload: Optional[Dict[str, Any]]
    status: ReconciliationStatus
    created_at: datetime
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True
