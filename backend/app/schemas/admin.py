"""
Admin API Schema Definitions.

Pydantic schemas for admin endpoints.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from backend.app.models.enums import UserRole
from backend.app.models.transaction_enums import LedgerEntryType


class UserCreate(BaseModel):
    """Schema for provisioning an account."""
    email: EmailStr = Field(..., description="User email address")
    name: Optional[str] = Field(None, max_length=100)
    role: UserRole = Field(default=UserRole.FAN, description="User role (defaults to FAN)")


class UserListItem(BaseModel):
    """Schema for user in list response."""
    id: int
    email: str
    name: Optional[str]
    role: UserRole
    account_id: Optional[str]
    wallet_balance: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Schema for list users response."""
    users: List[UserListItem]
    total: int
    page: int
    page_size: int


class LedgerEntryResponse(BaseModel):
    """One wallet mutation from the journal."""
    id: int
    transaction_id: int
    entry_type: LedgerEntryType
    account_owner_id: int
    amount: int
    reason: str
    created_at: datetime

    class Config:
        from_attributes = True


class UserStatusRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AdminActionResponse(BaseModel):
    """Result of a block/unblock action."""
    success: bool = True
    message: str
    user: UserListItem
