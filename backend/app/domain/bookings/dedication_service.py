"""
Dedication Request Service (Domain Logic).

A fan asks a star for a personalised video. The payment is escrowed when the
request is submitted and only released when the star delivers the video;
approval alone moves no money.

Flow:
    PENDING -> APPROVED -> COMPLETED (deliver)
    PENDING -> REJECTED | CANCELLED (payment returned)
"""

import logging
from datetime import date as date_type
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.dependencies import Principal
from backend.app.core.exceptions import BookingRuleError, ResourceNotFoundError
from backend.app.core.guards import ensure_actor
from backend.app.db.session import atomic
from backend.app.domain.bookings import booking_state
from backend.app.domain.bookings.common import load, load_for_update, linked_transaction, get_star
from backend.app.domain.ledger.descriptions import describe_transaction
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.booking_enums import DedicationRequestStatus
from backend.app.models.dedication_request import DedicationRequest
from backend.app.models.enums import UserRole
from backend.app.models.notification import NotificationType
from backend.app.models.transaction_enums import TransactionType, PaymentMode, TransactionStatus
from backend.app.services.identifiers import generate_tracking_id
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("starbooking.dedications")


class DedicationService:

    @staticmethod
    async def create(
        db: AsyncSession,
        actor: Principal,
        star_id: int,
        occasion: str,
        event_name: str,
        event_date: date_type,
        description: str,
        price: int = 0,
        payment_mode: PaymentMode = PaymentMode.COIN
    ) -> DedicationRequest:
        """
        Submit a dedication request and escrow its price.

        Raises:
            ResourceNotFoundError: star missing or not a star
            BookingRuleError: fan requesting from themselves
            InsufficientBalanceError: COIN mode without enough coins
            IdentifierSpaceExhaustedError: no free tracking id
        """
        if star_id == actor.user_id:
            raise BookingRuleError("You cannot request a dedication from yourself")

        async with atomic(db):
            star = await get_star(db, star_id)
            tracking_id = await generate_tracking_id(db)

            request = DedicationRequest(
                tracking_id=tracking_id,
                fan_id=actor.user_id,
                star_id=star_id,
                occasion=occasion,
                event_name=event_name,
                event_date=event_date,
                description=description,
                price=price,
                payment_mode=payment_mode,
                status=DedicationRequestStatus.PENDING,
            )
            db.add(request)
            await db.flush()

            if price > 0:
                transaction = await TransactionEngine.create_transaction(
                    db,
                    type=TransactionType.DEDICATION_REQUEST_PAYMENT,
                    payer_id=actor.user_id,
                    receiver_id=star_id,
                    amount=price,
                    payment_mode=payment_mode,
                    description=describe_transaction(TransactionType.DEDICATION_REQUEST_PAYMENT, star.name),
                    metadata={"dedication_request_id": request.id, "tracking_id": tracking_id}
                )
                request.transaction_id = transaction.id
                await db.flush()

            await db.refresh(request)

        logger.info(
            "Dedication request created",
            extra={"dedication_request_id": request.id, "tracking_id": tracking_id, "price": price}
        )
        await NotificationService.notify(
            db, star_id,
            title="New dedication request",
            message=f"New {occasion} dedication request for {event_name}",
            type=NotificationType.DEDICATION_UPDATE,
            metadata={"dedication_request_id": request.id, "tracking_id": tracking_id}
        )
        return request

    @staticmethod
    async def list_for(
        db: AsyncSession,
        actor: Principal,
        status: Optional[DedicationRequestStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[DedicationRequest]:
        query = select(DedicationRequest)
        if actor.role == UserRole.FAN:
            query = query.where(DedicationRequest.fan_id == actor.user_id)
        elif actor.role == UserRole.STAR:
            query = query.where(DedicationRequest.star_id == actor.user_id)
        if status:
            query = query.where(DedicationRequest.status == status)

        query = query.order_by(DedicationRequest.created_at.desc(), DedicationRequest.id.desc())
        result = await db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, actor: Principal, request_id: int) -> DedicationRequest:
        request = await load(db, DedicationRequest, request_id, "DedicationRequest")
        ensure_actor(actor, request.fan_id, request.star_id)
        return request

    @staticmethod
    async def get_by_tracking_id(db: AsyncSession, tracking_id: str) -> DedicationRequest:
        """Public lookup; the tracking id itself is the credential."""
        result = await db.execute(
            select(DedicationRequest).where(DedicationRequest.tracking_id == tracking_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise ResourceNotFoundError("DedicationRequest", tracking_id)
        return request

    @staticmethod
    async def approve(db: AsyncSession, actor: Principal, request_id: int) -> DedicationRequest:
        async with atomic(db):
            request = await load_for_update(db, DedicationRequest, request_id, "DedicationRequest")
            ensure_actor(actor, request.star_id, message="Only the star can approve this request")

            transaction = await linked_transaction(db, request.transaction_id)
            booking_state.transition(request, DedicationRequestStatus.APPROVED, transaction)
            await db.flush()
            await db.refresh(request)

        logger.info("Dedication request approved", extra={"dedication_request_id": request_id})
        await NotificationService.notify(
            db, request.fan_id,
            title="Dedication request approved",
            message=f"Your dedication request {request.tracking_id} was approved",
            type=NotificationType.DEDICATION_UPDATE,
            metadata={"dedication_request_id": request_id}
        )
        return request

    @staticmethod
    async def reject(db: AsyncSession, actor: Principal, request_id: int) -> DedicationRequest:
        async with atomic(db):
            request = await load_for_update(db, DedicationRequest, request_id, "DedicationRequest")
            ensure_actor(actor, request.star_id, message="Only the star can reject this request")
            booking_state.require_transition(request, DedicationRequestStatus.REJECTED)

            transaction = await _release_escrow_to_fan(db, request)
            booking_state.transition(request, DedicationRequestStatus.REJECTED, transaction)
            await db.flush()
            await db.refresh(request)

        logger.info("Dedication request rejected", extra={"dedication_request_id": request_id})
        await NotificationService.notify(
            db, request.fan_id,
            title="Dedication request rejected",
            message=f"Your dedication request {request.tracking_id} was rejected",
            type=NotificationType.DEDICATION_UPDATE,
            metadata={"dedication_request_id": request_id}
        )
        return request

    @staticmethod
    async def cancel(db: AsyncSession, actor: Principal, request_id: int) -> DedicationRequest:
        """Fan withdraws a request the star has not answered yet."""
        async with atomic(db):
            request = await load_for_update(db, DedicationRequest, request_id, "DedicationRequest")
            ensure_actor(actor, request.fan_id, message="Only the fan can cancel this request")
            booking_state.require_transition(request, DedicationRequestStatus.CANCELLED)

            transaction = await _release_escrow_to_fan(db, request)
            booking_state.transition(request, DedicationRequestStatus.CANCELLED, transaction)
            await db.flush()
            await db.refresh(request)

        logger.info("Dedication request cancelled", extra={"dedication_request_id": request_id})
        await NotificationService.notify(
            db, request.star_id,
            title="Dedication request cancelled",
            message=f"Dedication request {request.tracking_id} was cancelled by the fan",
            type=NotificationType.DEDICATION_UPDATE,
            metadata={"dedication_request_id": request_id}
        )
        return request

    @staticmethod
    async def deliver(db: AsyncSession, actor: Principal, request_id: int, video_url: str) -> DedicationRequest:
        """
        Attach the finished video and release the payment to the star.

        APPROVED -> COMPLETED; the video and the payout commit together.
        """
        async with atomic(db):
            request = await load_for_update(db, DedicationRequest, request_id, "DedicationRequest")
            ensure_actor(actor, request.star_id, message="Only the star can deliver this request")
            booking_state.require_transition(request, DedicationRequestStatus.COMPLETED)

            transaction = await linked_transaction(db, request.transaction_id)
            if transaction is not None:
                transaction = await TransactionEngine.complete_transaction(db, transaction.id)

            request.video_url = video_url
            booking_state.transition(request, DedicationRequestStatus.COMPLETED, transaction)
            await db.flush()
            await db.refresh(request)

        logger.info("Dedication video delivered", extra={"dedication_request_id": request_id})
        await NotificationService.notify(
            db, request.fan_id,
            title="Your dedication is ready",
            message=f"The video for {request.event_name} has been delivered",
            type=NotificationType.DEDICATION_UPDATE,
            metadata={"dedication_request_id": request_id, "tracking_id": request.tracking_id}
        )
        return request


async def _release_escrow_to_fan(db: AsyncSession, request: DedicationRequest):
    transaction = await linked_transaction(db, request.transaction_id)
    if transaction is not None and transaction.status == TransactionStatus.PENDING:
        transaction = await TransactionEngine.cancel_transaction(db, transaction.id)
    return transaction
