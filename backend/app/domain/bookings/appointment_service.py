"""
Appointment Service (Domain Logic).

A fan books one of a star's published time slots. Paid appointments open an
APPOINTMENT_PAYMENT transaction (fan -> star) in the same unit of work as
the booking; approval releases it to the star and reserves the slot,
rejection or cancellation returns it to the fan.
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import Principal
from backend.app.core.exceptions import BookingRuleError, BookingStateConflictError
from backend.app.core.guards import ensure_actor
from backend.app.db.session import atomic
from backend.app.domain.bookings import booking_state
from backend.app.domain.bookings.availability_service import AvailabilityService
from backend.app.domain.bookings.common import load, load_for_update, linked_transaction, get_star
from backend.app.domain.ledger.descriptions import describe_transaction
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.appointment import Appointment
from backend.app.models.booking_enums import AppointmentStatus
from backend.app.models.enums import UserRole
from backend.app.models.notification import NotificationType
from backend.app.models.transaction_enums import TransactionType, PaymentMode, TransactionStatus
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("starbooking.appointments")


class AppointmentService:

    @staticmethod
    async def create(
        db: AsyncSession,
        actor: Principal,
        star_id: int,
        time_slot_id: int,
        price: int = 0,
        payment_mode: PaymentMode = PaymentMode.COIN
    ) -> Appointment:
        """
        Book `time_slot_id` with `star_id` as `actor` (the fan).

        Several fans may request the same slot; it is only reserved once an
        appointment on it is approved.

        When `price > 0` the payment transaction is opened in the same unit;
        in COIN mode the fan's coins are escrowed immediately.

        Raises:
            ResourceNotFoundError: star missing or not a star, or slot not theirs
            SlotUnavailableError: slot already reserved
            BookingRuleError: fan booking themselves
            InsufficientBalanceError: COIN mode without enough coins
        """
        if star_id == actor.user_id:
            raise BookingRuleError("You cannot book an appointment with yourself")

        async with atomic(db):
            star = await get_star(db, star_id)
            slot = await AvailabilityService.bookable_slot(db, star_id, time_slot_id)

            appointment = Appointment(
                star_id=star_id,
                fan_id=actor.user_id,
                time_slot_id=slot.id,
                date=slot.date,
                time=slot.label,
                price=price,
                payment_mode=payment_mode,
                status=AppointmentStatus.PENDING,
            )
            db.add(appointment)
            await db.flush()

            if price > 0:
                transaction = await TransactionEngine.create_transaction(
                    db,
                    type=TransactionType.APPOINTMENT_PAYMENT,
                    payer_id=actor.user_id,
                    receiver_id=star_id,
                    amount=price,
                    payment_mode=payment_mode,
                    description=describe_transaction(TransactionType.APPOINTMENT_PAYMENT, star.name),
                    metadata={
                        "appointment_id": appointment.id,
                        "date": appointment.date.isoformat(),
                        "time": appointment.time
                    }
                )
                appointment.transaction_id = transaction.id
                await db.flush()

            await db.refresh(appointment)

        logger.info(
            "Appointment created",
            extra={"appointment_id": appointment.id, "star_id": star_id, "fan_id": actor.user_id, "price": price}
        )
        await NotificationService.notify(
            db, star_id,
            title="New appointment request",
            message=f"You have a new appointment request for {appointment.date.isoformat()} at {appointment.time}",
            type=NotificationType.APPOINTMENT_UPDATE,
            metadata={"appointment_id": appointment.id}
        )
        return appointment

    @staticmethod
    async def list_for(
        db: AsyncSession,
        actor: Principal,
        status: Optional[AppointmentStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Appointment]:
        """Fans see what they booked, stars what was booked with them, admins everything."""
        query = select(Appointment)
        if actor.role == UserRole.FAN:
            query = query.where(Appointment.fan_id == actor.user_id)
        elif actor.role == UserRole.STAR:
            query = query.where(Appointment.star_id == actor.user_id)
        if status:
            query = query.where(Appointment.status == status)

        query = query.order_by(Appointment.created_at.desc(), Appointment.id.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, actor: Principal, appointment_id: int) -> Appointment:
        appointment = await load(db, Appointment, appointment_id, "Appointment")
        ensure_actor(actor, appointment.fan_id, appointment.star_id)
        return appointment

    @staticmethod
    async def approve(db: AsyncSession, actor: Principal, appointment_id: int) -> Appointment:
        """PENDING -> APPROVED. Reserves the slot and releases the payment to the star."""
        async with atomic(db):
            appointment = await load_for_update(db, Appointment, appointment_id, "Appointment")
            ensure_actor(actor, appointment.star_id, message="Only the star can approve this appointment")
            booking_state.require_transition(appointment, AppointmentStatus.APPROVED)
            await AvailabilityService.reserve_slot(db, appointment.time_slot_id)

            transaction = await linked_transaction(db, appointment.transaction_id)
            if transaction is not None:
                transaction = await TransactionEngine.complete_transaction(db, transaction.id)

            booking_state.transition(appointment, AppointmentStatus.APPROVED, transaction)
            await db.flush()
            await db.refresh(appointment)

        logger.info("Appointment approved", extra={"appointment_id": appointment_id})
        await NotificationService.notify(
            db, appointment.fan_id,
            title="Appointment approved",
            message=f"Your appointment on {appointment.date.isoformat()} at {appointment.time} was approved",
            type=NotificationType.APPOINTMENT_UPDATE,
            metadata={"appointment_id": appointment_id}
        )
        return appointment

    @staticmethod
    async def reject(db: AsyncSession, actor: Principal, appointment_id: int) -> Appointment:
        """PENDING -> REJECTED. Returns the payment to the fan."""
        async with atomic(db):
            appointment = await load_for_update(db, Appointment, appointment_id, "Appointment")
            ensure_actor(actor, appointment.star_id, message="Only the star can reject this appointment")
            booking_state.require_transition(appointment, AppointmentStatus.REJECTED)

            transaction = await linked_transaction(db, appointment.transaction_id)
            if transaction is not None and transaction.status == TransactionStatus.PENDING:
                transaction = await TransactionEngine.cancel_transaction(db, transaction.id)

            booking_state.transition(appointment, AppointmentStatus.REJECTED, transaction)
            await db.flush()
            await db.refresh(appointment)

        logger.info("Appointment rejected", extra={"appointment_id": appointment_id})
        await NotificationService.notify(
            db, appointment.fan_id,
            title="Appointment rejected",
            message="Your appointment request was rejected",
            type=NotificationType.APPOINTMENT_UPDATE,
            metadata={"appointment_id": appointment_id}
        )
        return appointment

    @staticmethod
    async def cancel(db: AsyncSession, actor: Principal, appointment_id: int) -> Appointment:
        """
        Cancel as the fan (or admin).

        A pending payment is returned and an approved (free) appointment gives
        its slot back. Once the payment has been released to the star the
        appointment can no longer be cancelled here; that takes an admin refund.
        """
        async with atomic(db):
            appointment = await load_for_update(db, Appointment, appointment_id, "Appointment")
            ensure_actor(actor, appointment.fan_id, message="Only the fan can cancel this appointment")
            booking_state.require_transition(appointment, AppointmentStatus.CANCELLED)
            held_slot = appointment.status == AppointmentStatus.APPROVED

            transaction = await linked_transaction(db, appointment.transaction_id)
            if transaction is not None and transaction.status == TransactionStatus.PENDING:
                transaction = await TransactionEngine.cancel_transaction(db, transaction.id)

            booking_state.transition(appointment, AppointmentStatus.CANCELLED, transaction)
            if held_slot:
                await AvailabilityService.release_slot(db, appointment.time_slot_id)
            await db.flush()
            await db.refresh(appointment)

        logger.info("Appointment cancelled", extra={"appointment_id": appointment_id, "actor_id": actor.user_id})
        await NotificationService.notify(
            db, appointment.star_id,
            title="Appointment cancelled",
            message=f"The appointment on {appointment.date.isoformat()} at {appointment.time} was cancelled",
            type=NotificationType.APPOINTMENT_UPDATE,
            metadata={"appointment_id": appointment_id}
        )
        return appointment

    @staticmethod
    async def reschedule(
        db: AsyncSession,
        actor: Principal,
        appointment_id: int,
        time_slot_id: int
    ) -> Appointment:
        """
        Move an appointment to another of the same star's slots.

        An approved appointment gives its old slot back and goes to PENDING
        for the star to confirm again, which is only possible while nothing
        has been paid out.

        Raises:
            ResourceNotFoundError: slot missing or belongs to another star
            SlotUnavailableError: new slot already reserved
            BookingRuleError: new slot is the current one
        """
        async with atomic(db):
            appointment = await load_for_update(db, Appointment, appointment_id, "Appointment")
            ensure_actor(actor, appointment.fan_id, message="Only the fan can reschedule this appointment")
            booking_state.require_transition(appointment, AppointmentStatus.PENDING)

            if time_slot_id == appointment.time_slot_id:
                raise BookingRuleError(
                    "Appointment is already booked on this time slot",
                    {"appointment_id": appointment.id, "time_slot_id": time_slot_id}
                )
            slot = await AvailabilityService.bookable_slot(db, appointment.star_id, time_slot_id)

            transaction = await linked_transaction(db, appointment.transaction_id)
            held_slot = appointment.status == AppointmentStatus.APPROVED
            if held_slot and transaction is not None and transaction.status == TransactionStatus.COMPLETED:
                raise BookingStateConflictError(
                    "Appointment", appointment.id, AppointmentStatus.PENDING.value, transaction.status.value
                )

            booking_state.transition(appointment, AppointmentStatus.PENDING, transaction)
            if held_slot:
                await AvailabilityService.release_slot(db, appointment.time_slot_id)
            appointment.time_slot_id = slot.id
            appointment.date = slot.date
            appointment.time = slot.label
            appointment.approved_at = None
            await db.flush()
            await db.refresh(appointment)

        logger.info(
            "Appointment rescheduled",
            extra={"appointment_id": appointment_id, "time_slot_id": time_slot_id}
        )
        await NotificationService.notify(
            db, appointment.star_id,
            title="Appointment rescheduled",
            message=f"An appointment was moved to {appointment.date.isoformat()} at {appointment.time}",
            type=NotificationType.APPOINTMENT_UPDATE,
            metadata={"appointment_id": appointment_id}
        )
        return appointment
