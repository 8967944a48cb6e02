"""
Wallet ledger entry database model.

Append-only journal of every wallet mutation.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, String
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.transaction_enums import LedgerEntryType


class WalletLedgerEntry(Base):
    """
    Wallet ledger entry model.

    Written in the same unit of work as the balance change it records.
    NO updates or deletions allowed.
    """
    __tablename__ = "wallet_ledger_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Linkage
    transaction_id = Column(Integer, ForeignKey('transactions.id'), nullable=False, index=True)

    # Entry details
    entry_type = Column(Enum(LedgerEntryType), nullable=False)  # DEBIT or CREDIT
    account_owner_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    amount = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False)  # escrow, release, cancel, refund

    # Timestamps (Immutable - no updated_at)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<WalletLedgerEntry(id={self.id}, type='{self.entry_type.value}', amount={self.amount})>"
