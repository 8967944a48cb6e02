"""
Wallet API Endpoints.

Read-only views of the caller's coin balance and transaction history.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.core.guards import ensure_actor
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.transaction_enums import TransactionType, PaymentMode, TransactionStatus
from backend.app.schemas.transaction import BalanceResponse, TransactionListResponse, TransactionResponse

router = APIRouter(prefix="/wallet", tags=["Wallet"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current coin balance of the caller."""
    balance = await TransactionEngine.get_balance(db, current_user.user_id)
    return BalanceResponse(user_id=current_user.user_id, balance=balance)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    type: Optional[TransactionType] = Query(None),
    payment_mode: Optional[PaymentMode] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Transactions the caller paid or received, newest first."""
    transactions = await TransactionEngine.list_user_transactions(
        db, current_user.user_id,
        type=type, payment_mode=payment_mode, status=status,
        limit=limit, offset=offset
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        limit=limit,
        offset=offset
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: int = Path(...),
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    transaction = await TransactionEngine.get_transaction(db, transaction_id)
    ensure_actor(current_user, transaction.payer_id, transaction.receiver_id)
    return transaction
