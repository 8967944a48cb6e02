"""
Star API Endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user, Principal
from backend.app.domain.stars.star_service import StarService
from backend.app.schemas.star import (
    BecomeStarRequest,
    BecomeStarResponse,
    AccountIdPatternsResponse,
    StarProfileResponse,
)

router = APIRouter(prefix="/stars", tags=["Stars"])


@router.get("/account-id-patterns", response_model=AccountIdPatternsResponse)
async def get_account_id_patterns(db: AsyncSession = Depends(get_db)):
    """Preview one free standard id and one free gold id."""
    return await StarService.account_id_patterns(db)


@router.post("/become", response_model=BecomeStarResponse)
async def become_star(
    payload: BecomeStarRequest,
    current_user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Pay for a plan and become a star.

    Only fans without pending or approved bookings may upgrade. The new role
    applies to the very next request; no new token is needed.
    """
    user, transaction = await StarService.become_star(
        db, current_user,
        plan=payload.plan,
        amount=payload.amount,
        payment_mode=payload.payment_mode,
        payment_description=payload.payment_description,
        account_id=payload.account_id
    )
    return BecomeStarResponse(
        message="You are now a star",
        user=StarProfileResponse.model_validate(user),
        transaction_id=transaction.id,
        plan=payload.plan
    )
