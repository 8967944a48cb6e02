"""
Transaction Engine (Domain Logic).

The only writer of wallet balances. Every operation runs as exactly one unit
of work over the transaction row and the wallet(s) it touches: read inside
the unit, validate, write, commit. Any failure rolls the whole unit back.

Wallets are changed with single `wallet_balance = wallet_balance + n`
statements, never read-modify-write. Transaction rows are locked
`FOR UPDATE` so two concurrent completions of the same id serialize and the
second one fails the PENDING check.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AmountInvalidError,
    PayerNotFoundError,
    ReceiverNotFoundError,
    InsufficientBalanceError,
    TransactionNotFoundError,
    InvalidStateTransitionError,
    ResourceNotFoundError,
)
from backend.app.db.session import atomic
from backend.app.domain.ledger.descriptions import describe_transaction
from backend.app.models.ledger_entry import WalletLedgerEntry
from backend.app.models.transaction import Transaction
from backend.app.models.transaction_enums import (
    TransactionType,
    PaymentMode,
    TransactionStatus,
    LedgerEntryType,
)
from backend.app.models.user import User

logger = logging.getLogger("starbooking.ledger")


class TransactionEngine:

    @staticmethod
    async def create_transaction(
        db: AsyncSession,
        type: TransactionType,
        payer_id: int,
        receiver_id: int,
        amount: int,
        payment_mode: PaymentMode,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Transaction:
        """
        Open a PENDING transaction.

        COIN mode debits the payer immediately (escrow). EXTERNAL mode leaves
        wallets untouched; the amount is assumed collected off-ledger.

        Raises:
            AmountInvalidError: amount <= 0
            PayerNotFoundError / ReceiverNotFoundError
            InsufficientBalanceError: COIN mode and payer balance < amount
        """
        if amount is None or amount <= 0:
            raise AmountInvalidError(amount)

        async with atomic(db):
            if not await _user_exists(db, payer_id):
                raise PayerNotFoundError(payer_id)
            if not await _user_exists(db, receiver_id):
                raise ReceiverNotFoundError(receiver_id)

            if payment_mode == PaymentMode.COIN:
                await _debit(db, payer_id, amount, guarded=True)

            transaction = Transaction(
                type=type,
                payer_id=payer_id,
                receiver_id=receiver_id,
                amount=amount,
                payment_mode=payment_mode,
                status=TransactionStatus.PENDING,
                description=description or describe_transaction(type),
                meta_data=metadata,
            )
            db.add(transaction)
            await db.flush()

            if payment_mode == PaymentMode.COIN:
                _journal(db, transaction.id, payer_id, LedgerEntryType.DEBIT, amount, "escrow")
                await db.flush()

            await db.refresh(transaction)

        logger.info(
            "Transaction created",
            extra={
                "transaction_id": transaction.id,
                "type": type.value,
                "payment_mode": payment_mode.value,
                "amount": amount,
            }
        )
        return transaction

    @staticmethod
    async def complete_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        """
        Release a PENDING transaction to the receiver.

        The receiver is credited in both modes: for COIN the escrowed coins
        move to the receiver, for EXTERNAL the off-ledger payment is credited
        as coins.
        """
        async with atomic(db):
            transaction = await _lock_transaction(db, transaction_id)
            _require_status(transaction, TransactionStatus.PENDING)

            await _credit(db, transaction.receiver_id, transaction.amount)
            _journal(db, transaction.id, transaction.receiver_id, LedgerEntryType.CREDIT, transaction.amount, "release")

            transaction.status = TransactionStatus.COMPLETED
            transaction.completed_at = _now()
            await db.flush()
            await db.refresh(transaction)

        logger.info("Transaction completed", extra={"transaction_id": transaction_id})
        return transaction

    @staticmethod
    async def cancel_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        """
        Cancel a PENDING transaction and credit the payer.

        COIN returns the escrowed coins. EXTERNAL turns the unfulfilled
        obligation into a coin credit instead of a gateway refund.
        """
        async with atomic(db):
            transaction = await _lock_transaction(db, transaction_id)
            _require_status(transaction, TransactionStatus.PENDING)

            await _credit(db, transaction.payer_id, transaction.amount)
            _journal(db, transaction.id, transaction.payer_id, LedgerEntryType.CREDIT, transaction.amount, "cancel")

            transaction.status = TransactionStatus.CANCELLED
            transaction.cancelled_at = _now()
            await db.flush()
            await db.refresh(transaction)

        logger.info("Transaction cancelled", extra={"transaction_id": transaction_id})
        return transaction

    @staticmethod
    async def refund_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        """
        Reverse a COMPLETED transaction: debit receiver, credit payer.

        With `allow_negative_refund` the receiver may go below zero if the
        coins were already spent; otherwise the refund is refused.
        """
        async with atomic(db):
            transaction = await _lock_transaction(db, transaction_id)
            _require_status(transaction, TransactionStatus.COMPLETED)

            new_balance = await _debit(
                db,
                transaction.receiver_id,
                transaction.amount,
                guarded=not settings.allow_negative_refund
            )
            _journal(db, transaction.id, transaction.receiver_id, LedgerEntryType.DEBIT, transaction.amount, "refund")

            await _credit(db, transaction.payer_id, transaction.amount)
            _journal(db, transaction.id, transaction.payer_id, LedgerEntryType.CREDIT, transaction.amount, "refund")

            transaction.status = TransactionStatus.REFUNDED
            transaction.refunded_at = _now()
            await db.flush()
            await db.refresh(transaction)

        if new_balance < 0:
            logger.warning(
                "Refund left receiver wallet negative",
                extra={
                    "transaction_id": transaction_id,
                    "receiver_id": transaction.receiver_id,
                    "balance": new_balance,
                }
            )
        logger.info("Transaction refunded", extra={"transaction_id": transaction_id})
        return transaction

    @staticmethod
    async def get_balance(db: AsyncSession, user_id: int) -> int:
        """Current wallet balance of a user."""
        result = await db.execute(select(User.wallet_balance).where(User.id == user_id))
        balance = result.scalar_one_or_none()
        if balance is None:
            raise ResourceNotFoundError("User", user_id)
        return balance

    @staticmethod
    async def get_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
        result = await db.execute(
            select(Transaction)
            .where(Transaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    @staticmethod
    async def list_user_transactions(
        db: AsyncSession,
        user_id: int,
        type: Optional[TransactionType] = None,
        payment_mode: Optional[PaymentMode] = None,
        status: Optional[TransactionStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Transaction]:
        """Transactions where the user paid or received, newest first."""
        query = select(Transaction).where(
            or_(Transaction.payer_id == user_id, Transaction.receiver_id == user_id)
        )
        if type:
            query = query.where(Transaction.type == type)
        if payment_mode:
            query = query.where(Transaction.payment_mode == payment_mode)
        if status:
            query = query.where(Transaction.status == status)

        query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())


def _now() -> datetime:
    return datetime.now(timezone.utc)


async def _user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def _lock_transaction(db: AsyncSession, transaction_id: int) -> Transaction:
    result = await db.execute(
        select(Transaction)
        .where(Transaction.id == transaction_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    transaction = result.scalar_one_or_none()
    if not transaction:
        raise TransactionNotFoundError(transaction_id)
    return transaction


def _require_status(transaction: Transaction, expected: TransactionStatus) -> None:
    if transaction.status != expected:
        raise InvalidStateTransitionError(transaction.id, transaction.status.value, expected.value)


async def _credit(db: AsyncSession, user_id: int, amount: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(wallet_balance=User.wallet_balance + amount)
        .execution_options(synchronize_session=False)
    )


async def _debit(db: AsyncSession, user_id: int, amount: int, guarded: bool) -> int:
    """
    Atomically subtract `amount` and return the new balance.

    A guarded debit only matches rows holding at least `amount`, so the
    balance check and the write are one statement.
    """
    stmt = update(User).where(User.id == user_id)
    if guarded:
        stmt = stmt.where(User.wallet_balance >= amount)
    result = await db.execute(
        stmt.values(wallet_balance=User.wallet_balance - amount)
        .execution_options(synchronize_session=False)
    )

    balance = await db.execute(select(User.wallet_balance).where(User.id == user_id))
    current = balance.scalar_one()
    if result.rowcount == 0:
        raise InsufficientBalanceError(user_id, required=amount, available=current)
    return current


def _journal(
    db: AsyncSession,
    transaction_id: int,
    account_owner_id: int,
    entry_type: LedgerEntryType,
    amount: int,
    reason: str
) -> None:
    db.add(WalletLedgerEntry(
        transaction_id=transaction_id,
        account_owner_id=account_owner_id,
        entry_type=entry_type,
        amount=amount,
        reason=reason,
    ))
