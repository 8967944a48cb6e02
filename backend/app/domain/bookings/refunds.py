"""
Admin refunds.

Reversing a COMPLETED transaction also moves the booking it pays for to
REFUNDED in the same unit of work, so a booking never stays fulfilled with
its money gone. Side effects of voiding the booking follow:

- an approved appointment gives its time slot back
- a refunded SCHEDULED show is closed and its attendances are cancelled
  with their fees returned, as for a cancelled show

A transaction without a booking (a star plan payment) is only reversed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import atomic
from backend.app.domain.bookings import booking_state
from backend.app.domain.bookings.availability_service import AvailabilityService
from backend.app.domain.bookings.live_show_service import release_attendances
from backend.app.domain.bookings.reconciliation import FanOutReport
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.appointment import Appointment
from backend.app.models.booking_enums import AppointmentStatus, LiveShowStatus
from backend.app.models.dedication_request import DedicationRequest
from backend.app.models.live_show import LiveShow
from backend.app.models.live_show_attendance import LiveShowAttendance
from backend.app.models.notification import NotificationType
from backend.app.models.transaction import Transaction
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("starbooking.refunds")

BOOKING_MODELS = (Appointment, DedicationRequest, LiveShow, LiveShowAttendance)


@dataclass
class RefundOutcome:
    transaction: Transaction
    booking: Optional[booking_state.Booking] = None
    report: Optional[FanOutReport] = None


class RefundService:

    @staticmethod
    async def refund(db: AsyncSession, transaction_id: int) -> RefundOutcome:
        """
        Refund a COMPLETED transaction and void its booking.

        Raises:
            TransactionNotFoundError: unknown transaction
            InvalidStateTransitionError: transaction not COMPLETED
            InsufficientBalanceError: receiver cannot cover the refund
        """
        async with atomic(db):
            booking = await _booking_for(db, transaction_id)
            transaction = await TransactionEngine.refund_transaction(db, transaction_id)

            closes_show = False
            if booking is not None:
                held_slot = isinstance(booking, Appointment) and booking.status == AppointmentStatus.APPROVED
                closes_show = isinstance(booking, LiveShow) and booking.status == LiveShowStatus.SCHEDULED

                booking_state.transition(booking, booking_state.REFUND_TARGETS[type(booking)], transaction)
                if held_slot:
                    await AvailabilityService.release_slot(db, booking.time_slot_id)
                await db.flush()
                await db.refresh(booking)

        report = None
        if closes_show:
            report = await release_attendances(db, booking)
            await db.refresh(booking)
            await db.refresh(transaction)

        logger.info(
            "Refund applied",
            extra={
                "transaction_id": transaction_id,
                "booking": type(booking).__name__ if booking is not None else None,
                "booking_id": booking.id if booking is not None else None,
            }
        )
        await NotificationService.notify(
            db, transaction.payer_id,
            title="Payment refunded",
            message=f"{transaction.amount} coins were refunded to your wallet",
            type=NotificationType.PAYMENT_UPDATE,
            metadata={"transaction_id": transaction.id}
        )
        return RefundOutcome(transaction=transaction, booking=booking, report=report)


async def _booking_for(db: AsyncSession, transaction_id: int) -> Optional[booking_state.Booking]:
    """The booking paid for by `transaction_id`, locked, if there is one."""
    for model in BOOKING_MODELS:
        result = await db.execute(
            select(model)
            .where(model.transaction_id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalars().first()
        if booking is not None:
            return booking
    return None
