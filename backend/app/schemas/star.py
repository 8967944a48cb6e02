"""
Become-star schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional
from backend.app.models.enums import UserRole, StarPlan
from backend.app.models.transaction_enums import PaymentMode


class BecomeStarRequest(BaseModel):
    plan: StarPlan
    amount: int = Field(..., gt=0)
    payment_mode: PaymentMode = PaymentMode.COIN
    payment_description: Optional[str] = Field(None, max_length=255)  # EXTERNAL only
    account_id: Optional[str] = Field(None, min_length=1, max_length=20)


class StarProfileResponse(BaseModel):
    id: int
    account_id: Optional[str]
    role: UserRole

    class Config:
        from_attributes = True


class BecomeStarResponse(BaseModel):
    success: bool = True
    message: str
    user: StarProfileResponse
    transaction_id: int
    plan: StarPlan


class AccountIdPatternsResponse(BaseModel):
    """Unused sample ids in each plan's shape."""
    standard: str
    gold: str
