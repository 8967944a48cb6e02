"""
Reconciliation Item Model.

Stores fan-out items that failed so they can be retried one id at a time.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
import enum


class ReconciliationStatus(str, enum.Enum):
    FAILED = "FAILED"
    RESOLVED = "RESOLVED"


class ReconciliationItem(Base):
    """
    Reconciliation queue table.
    One row per attendance whose cancel/complete step failed during a fan-out.
    """
    __tablename__ = "reconciliation_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    task_name = Column(String(100), nullable=False, index=True)
    booking_id = Column(Integer, nullable=False, index=True)
    transaction_id = Column(Integer, nullable=True, index=True)
    error_message = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)

    status = Column(Enum(ReconciliationStatus), default=ReconciliationStatus.FAILED, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ReconciliationItem(id={self.id}, task='{self.task_name}', booking={self.booking_id}, status='{self.status}')>"
