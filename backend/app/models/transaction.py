"""
Transaction database model.

One row per payment between two users. Status moves only through the
Transaction Engine.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, JSON, Index
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.transaction_enums import TransactionType, PaymentMode, TransactionStatus


class Transaction(Base):
    """
    Transaction model.

    The row is never deleted. A refund changes the status of this row rather
    than creating a reversal row; the per-status timestamps keep the original
    completion time after a refund.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    type = Column(Enum(TransactionType), nullable=False, index=True)

    # Parties
    payer_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    # Financials (immutable after creation)
    amount = Column(Integer, nullable=False)
    payment_mode = Column(Enum(PaymentMode), nullable=False, index=True)

    status = Column(Enum(TransactionStatus), default=TransactionStatus.PENDING, nullable=False, index=True)

    description = Column(String(255), nullable=True)
    meta_data = Column("metadata", JSON, nullable=True)

    # Lifecycle timestamps
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_transactions_payer_created", "payer_id", "created_at"),
        Index("ix_transactions_receiver_created", "receiver_id", "created_at"),
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, type='{self.type.value}', status='{self.status.value}', amount={self.amount})>"
