"""
Helpers shared by the booking lifecycle services.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.enums import UserRole
from backend.app.models.transaction import Transaction
from backend.app.models.user import User

ModelT = TypeVar("ModelT")


async def load_for_update(db: AsyncSession, model: Type[ModelT], booking_id: int, label: str) -> ModelT:
    """Load a booking row locked for the rest of the unit of work."""
    result = await db.execute(
        select(model)
        .where(model.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise ResourceNotFoundError(label, booking_id)
    return booking


async def load(db: AsyncSession, model: Type[ModelT], booking_id: int, label: str) -> ModelT:
    booking = await db.get(model, booking_id, populate_existing=True)
    if booking is None:
        raise ResourceNotFoundError(label, booking_id)
    return booking


async def linked_transaction(db: AsyncSession, transaction_id: Optional[int]) -> Optional[Transaction]:
    if transaction_id is None:
        return None
    return await TransactionEngine.get_transaction(db, transaction_id)


async def get_star(db: AsyncSession, star_id: int) -> User:
    """Load a user that must be an active star."""
    result = await db.execute(
        select(User).where(User.id == star_id, User.role == UserRole.STAR, User.is_active == True)
    )
    star = result.scalar_one_or_none()
    if star is None:
        raise ResourceNotFoundError("Star", star_id)
    return star
