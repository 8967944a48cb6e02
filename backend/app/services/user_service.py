"""
User Service.

Account provisioning and read access for operators. Opening the account is
the only place a wallet balance is written outside the Transaction Engine.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AccountStateError,
    ConflictError,
    InsufficientPermissionsError,
    ResourceNotFoundError,
)
from backend.app.db.session import atomic
from backend.app.models.enums import UserRole
from backend.app.models.ledger_entry import WalletLedgerEntry
from backend.app.models.user import User

logger = logging.getLogger("starbooking.users")


class UserService:

    @staticmethod
    async def create_user(
        db: AsyncSession,
        email: str,
        name: Optional[str] = None,
        role: UserRole = UserRole.FAN,
        opening_balance: Optional[int] = None
    ) -> User:
        """
        Open an account with the configured welcome coins.

        Raises:
            ConflictError: email already registered
        """
        balance = settings.initial_coin_balance if opening_balance is None else opening_balance

        async with atomic(db):
            existing = await db.scalar(select(User.id).where(User.email == email))
            if existing is not None:
                raise ConflictError("Email already registered", {"email": email})

            user = User(email=email, name=name, role=role, is_active=True, wallet_balance=balance)
            db.add(user)
            await db.flush()
            await db.refresh(user)

        logger.info("User created", extra={"user_id": user.id, "role": role.value, "opening_balance": balance})
        return user

    @staticmethod
    async def list_users(
        db: AsyncSession,
        role: Optional[UserRole] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[User], int]:
        count_query = select(func.count(User.id))
        query = select(User)
        if role:
            count_query = count_query.where(User.role == role)
            query = query.where(User.role == role)

        total = await db.scalar(count_query)
        query = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * page_size).limit(page_size)
        result = await db.execute(query)
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def get_user(db: AsyncSession, user_id: int) -> User:
        user = await db.get(User, user_id, populate_existing=True)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    @staticmethod
    async def ledger_entries(db: AsyncSession, user_id: int, limit: int = 100, offset: int = 0) -> List[WalletLedgerEntry]:
        """Journal of every wallet mutation for a user, oldest first."""
        result = await db.execute(
            select(WalletLedgerEntry)
            .where(WalletLedgerEntry.account_owner_id == user_id)
            .order_by(WalletLedgerEntry.id.asc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    @staticmethod
    async def set_active(
        db: AsyncSession,
        admin_id: int,
        user_id: int,
        active: bool,
        reason: Optional[str] = None
    ) -> User:
        """
        Block or unblock an account.

        A blocked user is refused on their next request (the auth dependency
        re-reads `is_active`); their wallet and bookings are left untouched.

        Raises:
            ResourceNotFoundError: unknown user
            InsufficientPermissionsError: blocking an admin
            AccountStateError: blocking yourself, or no change to apply
        """
        async with atomic(db):
            result = await db.execute(
                select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
            )
            user = result.scalar_one_or_none()
            if user is None:
                raise ResourceNotFoundError("User", user_id)

            if not active:
                if user.id == admin_id:
                    raise AccountStateError("Cannot block yourself", {"user_id": user_id})
                if user.role == UserRole.ADMIN:
                    raise InsufficientPermissionsError("Cannot block another admin user", {"user_id": user_id})

            if user.is_active == active:
                state = "active" if active else "blocked"
                raise AccountStateError(f"User is already {state}", {"user_id": user_id})

            user.is_active = active
        await db.refresh(user)

        logger.info(
            "User %s", "unblocked" if active else "blocked",
            extra={"user_id": user_id, "admin_id": admin_id, "reason": reason}
        )
        return user
