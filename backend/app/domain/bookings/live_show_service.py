"""
Live Show Service (Domain Logic).

Stars host ticketed live sessions. The hosting fee (star -> platform) is
settled when the show is created. Fans join with an attendance fee that is
escrowed until the star completes the show, or returned when the fan
leaves or the show is cancelled.

Cancel and complete are fan-out operations: the show status is committed
first, then every active attendance is settled in its own unit of work.
Failures do not stop the loop; they are reported and queued for
reconciliation.
"""

import logging
from datetime import date as date_type
from typing import List, Optional, Tuple

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.dependencies import Principal
from backend.app.core.exceptions import (
    BookingRuleError,
    CapacityReachedError,
    DuplicateBookingError,
    InvalidBookingTransitionError,
    ResourceNotFoundError,
)
from backend.app.core.guards import ensure_actor
from backend.app.db.session import atomic
from backend.app.domain.bookings import booking_state
from backend.app.domain.bookings.common import load, load_for_update, linked_transaction, get_star
from backend.app.domain.bookings.reconciliation import FanOutReport, fan_out_task, run_fan_out
from backend.app.domain.ledger.descriptions import describe_transaction
from backend.app.domain.ledger.platform_account import resolve_platform_account_id
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.booking_enums import LiveShowStatus, AttendanceStatus
from backend.app.models.live_show import LiveShow, UNLIMITED_CAPACITY
from backend.app.models.live_show_attendance import LiveShowAttendance
from backend.app.models.notification import NotificationType
from backend.app.models.transaction_enums import TransactionType, PaymentMode
from backend.app.services.identifiers import generate_show_code
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("starbooking.live_shows")

CANCEL_ATTENDANCE_TASK = "live_show.cancel_attendance"
COMPLETE_ATTENDANCE_TASK = "live_show.complete_attendance"


def build_invite_link(show_code: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/live/{show_code}"


class LiveShowService:

    @staticmethod
    async def create(
        db: AsyncSession,
        actor: Principal,
        session_title: str,
        date: date_type,
        time: str,
        attendance_fee: int = 0,
        hosting_price: int = 0,
        max_capacity: int = UNLIMITED_CAPACITY,
        description: Optional[str] = None,
        payment_mode: PaymentMode = PaymentMode.COIN
    ) -> LiveShow:
        """
        Create a SCHEDULED show and settle its hosting fee.

        A positive `hosting_price` opens a LIVE_SHOW_HOSTING_PAYMENT from the
        star to the platform account and completes it in the same unit, so
        the show never exists without its fee paid.

        Raises:
            InsufficientBalanceError: star cannot cover the hosting fee
            PlatformAccountMissingError: no platform account configured
            IdentifierSpaceExhaustedError: no free show code
        """
        async with atomic(db):
            show_code = await generate_show_code(db)
            show = LiveShow(
                star_id=actor.user_id,
                session_title=session_title,
                description=description,
                date=date,
                time=time,
                attendance_fee=attendance_fee,
                hosting_price=hosting_price,
                max_capacity=max_capacity,
                current_attendees=0,
                show_code=show_code,
                invite_link=build_invite_link(show_code),
                status=LiveShowStatus.SCHEDULED,
            )
            db.add(show)
            await db.flush()

            if hosting_price > 0:
                platform_id = await resolve_platform_account_id(db)
                transaction = await TransactionEngine.create_transaction(
                    db,
                    type=TransactionType.LIVE_SHOW_HOSTING_PAYMENT,
                    payer_id=actor.user_id,
                    receiver_id=platform_id,
                    amount=hosting_price,
                    payment_mode=payment_mode,
                    metadata={"live_show_id": show.id, "show_code": show_code}
                )
                transaction = await TransactionEngine.complete_transaction(db, transaction.id)
                booking_state.check_coupling(show, LiveShowStatus.SCHEDULED, transaction)
                show.transaction_id = transaction.id
                await db.flush()

            await db.refresh(show)

        logger.info(
            "Live show created",
            extra={"live_show_id": show.id, "show_code": show.show_code, "hosting_price": hosting_price}
        )
        return show

    @staticmethod
    async def list_shows(
        db: AsyncSession,
        star_id: Optional[int] = None,
        status: Optional[LiveShowStatus] = None,
        from_date: Optional[date_type] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[LiveShow]:
        query = select(LiveShow)
        if star_id:
            query = query.where(LiveShow.star_id == star_id)
        if status:
            query = query.where(LiveShow.status == status)
        if from_date:
            query = query.where(LiveShow.date >= from_date)

        query = query.order_by(LiveShow.date.asc(), LiveShow.id.asc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, show_id: int) -> LiveShow:
        return await load(db, LiveShow, show_id, "LiveShow")

    @staticmethod
    async def get_by_code(db: AsyncSession, show_code: str) -> LiveShow:
        result = await db.execute(
            select(LiveShow)
            .where(LiveShow.show_code == show_code.upper())
            .execution_options(populate_existing=True)
        )
        show = result.scalar_one_or_none()
        if show is None:
            raise ResourceNotFoundError("LiveShow", show_code)
        return show

    @staticmethod
    async def reschedule(db: AsyncSession, actor: Principal, show_id: int, date: date_type, time: str) -> LiveShow:
        async with atomic(db):
            show = await load_for_update(db, LiveShow, show_id, "LiveShow")
            ensure_actor(actor, show.star_id, message="Only the star can reschedule this show")
            if show.status != LiveShowStatus.SCHEDULED:
                raise InvalidBookingTransitionError(
                    "LiveShow", show.id, show.status.value, LiveShowStatus.SCHEDULED.value
                )
            show.date = date
            show.time = time
            await db.flush()
            await db.refresh(show)

        fan_ids = await _attendee_fan_ids(db, show_id)
        logger.info("Live show rescheduled", extra={"live_show_id": show_id})
        await NotificationService.notify_many(
            db, fan_ids,
            title="Live show rescheduled",
            message=f"{show.session_title} moved to {date.isoformat()} at {time}",
            type=NotificationType.LIVE_SHOW_UPDATE,
            metadata={"live_show_id": show_id}
        )
        return show

    @staticmethod
    async def cancel(db: AsyncSession, actor: Principal, show_id: int) -> Tuple[LiveShow, FanOutReport]:
        """
        Cancel a show and return every attendee's fee.

        The show is CANCELLED first in its own unit; attendances are then
        cancelled one by one. The hosting fee is not returned.
        """
        async with atomic(db):
            show = await load_for_update(db, LiveShow, show_id, "LiveShow")
            ensure_actor(actor, show.star_id, message="Only the star can cancel this show")
            hosting = await linked_transaction(db, show.transaction_id)
            booking_state.transition(show, LiveShowStatus.CANCELLED, hosting)

        report = await release_attendances(db, show)
        await db.refresh(show)

        logger.info(
            "Live show cancelled",
            extra={"live_show_id": show_id, "refunded": len(report.succeeded), "failed": len(report.failed)}
        )
        return show, report

    @staticmethod
    async def complete_attendance(db: AsyncSession, actor: Principal, show_id: int) -> Tuple[LiveShow, FanOutReport]:
        """Mark the show COMPLETED and release every attendance fee to the star."""
        async with atomic(db):
            show = await load_for_update(db, LiveShow, show_id, "LiveShow")
            ensure_actor(actor, show.star_id, message="Only the star can complete this show")
            hosting = await linked_transaction(db, show.transaction_id)
            booking_state.transition(show, LiveShowStatus.COMPLETED, hosting)

        items = await _active_attendances(db, show_id)
        report = await run_fan_out(db, COMPLETE_ATTENDANCE_TASK, items, payload={"live_show_id": show_id})
        await db.refresh(show)

        logger.info(
            "Live show completed",
            extra={"live_show_id": show_id, "settled": len(report.succeeded), "failed": len(report.failed)}
        )
        return show, report

    @staticmethod
    async def join(
        db: AsyncSession,
        actor: Principal,
        show_id: int,
        payment_mode: PaymentMode = PaymentMode.COIN
    ) -> LiveShowAttendance:
        """
        Reserve a seat for `actor` (the fan).

        A fan who left earlier gets their old attendance row back. The seat
        counter is incremented with a capacity-guarded UPDATE.

        Raises:
            BookingRuleError: show not SCHEDULED, or star joining own show
            DuplicateBookingError: already attending
            CapacityReachedError: show full
            InsufficientBalanceError: COIN mode without enough coins
        """
        async with atomic(db):
            show = await load_for_update(db, LiveShow, show_id, "LiveShow")
            if show.status != LiveShowStatus.SCHEDULED:
                raise BookingRuleError("Live show is not open for booking", {"live_show_id": show_id})
            if show.star_id == actor.user_id:
                raise BookingRuleError("You cannot join your own live show", {"live_show_id": show_id})

            attendance = await _find_attendance(db, show_id, actor.user_id)
            if attendance is not None and attendance.status != AttendanceStatus.CANCELLED:
                raise DuplicateBookingError(
                    "You have already joined this live show",
                    {"live_show_id": show_id, "attendance_id": attendance.id}
                )

            await _take_seat(db, show)

            if attendance is None:
                attendance = LiveShowAttendance(
                    live_show_id=show_id,
                    fan_id=actor.user_id,
                    star_id=show.star_id,
                    status=AttendanceStatus.PENDING,
                )
                db.add(attendance)
            else:
                booking_state.transition(attendance, AttendanceStatus.PENDING)
                attendance.cancelled_at = None

            attendance.attendance_fee = show.attendance_fee
            attendance.payment_mode = payment_mode
            attendance.transaction_id = None
            await db.flush()

            if show.attendance_fee > 0:
                star = await get_star(db, show.star_id)
                transaction = await TransactionEngine.create_transaction(
                    db,
                    type=TransactionType.LIVE_SHOW_ATTENDANCE_PAYMENT,
                    payer_id=actor.user_id,
                    receiver_id=show.star_id,
                    amount=show.attendance_fee,
                    payment_mode=payment_mode,
                    description=describe_transaction(TransactionType.LIVE_SHOW_ATTENDANCE_PAYMENT, star.name),
                    metadata={"live_show_id": show_id, "attendance_id": attendance.id, "show_code": show.show_code}
                )
                attendance.transaction_id = transaction.id
                await db.flush()

            await db.refresh(attendance)

        logger.info(
            "Live show joined",
            extra={"live_show_id": show_id, "attendance_id": attendance.id, "fan_id": actor.user_id}
        )
        await NotificationService.notify(
            db, attendance.star_id,
            title="New live show attendee",
            message=f"A fan joined {show.session_title}",
            type=NotificationType.LIVE_SHOW_UPDATE,
            metadata={"live_show_id": show_id, "attendance_id": attendance.id}
        )
        return attendance

    @staticmethod
    async def leave(db: AsyncSession, actor: Principal, show_id: int) -> LiveShowAttendance:
        """Give up a seat before the show; the attendance fee is returned."""
        async with atomic(db):
            show = await load_for_update(db, LiveShow, show_id, "LiveShow")
            if show.status != LiveShowStatus.SCHEDULED:
                raise BookingRuleError("Live show has already ended or been cancelled", {"live_show_id": show_id})
            attendance = await _find_attendance(db, show_id, actor.user_id)
            if attendance is None:
                raise ResourceNotFoundError("LiveShowAttendance")

            await _settle_cancel(db, attendance)

        logger.info("Live show left", extra={"live_show_id": show_id, "attendance_id": attendance.id})
        await NotificationService.notify(
            db, attendance.star_id,
            title="Attendee left",
            message=f"A fan left {show.session_title}",
            type=NotificationType.LIVE_SHOW_UPDATE,
            metadata={"live_show_id": show_id, "attendance_id": attendance.id}
        )
        return attendance

    @staticmethod
    async def list_attendances(db: AsyncSession, actor: Principal, show_id: int) -> List[LiveShowAttendance]:
        """The star and admins see every attendance; a fan sees only their own."""
        show = await load(db, LiveShow, show_id, "LiveShow")
        query = select(LiveShowAttendance).where(LiveShowAttendance.live_show_id == show_id)
        if not (actor.is_admin or actor.user_id == show.star_id):
            query = query.where(LiveShowAttendance.fan_id == actor.user_id)
        result = await db.execute(query.order_by(LiveShowAttendance.id.asc()))
        return list(result.scalars().all())


async def release_attendances(db: AsyncSession, show: LiveShow) -> FanOutReport:
    """
    Cancel every PENDING attendance of a closed show and return the fees.

    Runs after the show's own status change has been committed. Fans whose
    fee came back are notified.
    """
    # A failed item rolls back and expires `show`
    show_id, session_title = show.id, show.session_title

    items = await _active_attendances(db, show_id)
    report = await run_fan_out(db, CANCEL_ATTENDANCE_TASK, items, payload={"live_show_id": show_id})
    await NotificationService.notify_many(
        db, await _fan_ids(db, report.succeeded),
        title="Live show cancelled",
        message=f"{session_title} was cancelled. Your attendance fee has been returned.",
        type=NotificationType.LIVE_SHOW_UPDATE,
        metadata={"live_show_id": show_id}
    )
    return report


@fan_out_task(CANCEL_ATTENDANCE_TASK)
async def cancel_attendance(db: AsyncSession, attendance_id: int) -> LiveShowAttendance:
    """One attendance of a cancelled show: return the fee, mark CANCELLED."""
    async with atomic(db):
        attendance = await load_for_update(db, LiveShowAttendance, attendance_id, "LiveShowAttendance")
        await _settle_cancel(db, attendance)
    return attendance


@fan_out_task(COMPLETE_ATTENDANCE_TASK)
async def complete_attendance(db: AsyncSession, attendance_id: int) -> LiveShowAttendance:
    """One attendance of a completed show: release the fee, mark COMPLETED."""
    async with atomic(db):
        attendance = await load_for_update(db, LiveShowAttendance, attendance_id, "LiveShowAttendance")
        booking_state.require_transition(attendance, AttendanceStatus.COMPLETED)

        transaction = await linked_transaction(db, attendance.transaction_id)
        if transaction is not None:
            transaction = await TransactionEngine.complete_transaction(db, transaction.id)

        booking_state.transition(attendance, AttendanceStatus.COMPLETED, transaction)
        await db.flush()
        await db.refresh(attendance)
    return attendance


async def _settle_cancel(db: AsyncSession, attendance: LiveShowAttendance) -> None:
    """
    Cancel the attendance's transaction and free its seat.

    A transaction already settled elsewhere makes this fail with
    InvalidStateTransitionError, leaving the attendance untouched.
    """
    booking_state.require_transition(attendance, AttendanceStatus.CANCELLED)

    transaction = await linked_transaction(db, attendance.transaction_id)
    if transaction is not None:
        transaction = await TransactionEngine.cancel_transaction(db, transaction.id)

    booking_state.transition(attendance, AttendanceStatus.CANCELLED, transaction)
    await db.execute(
        update(LiveShow)
        .where(LiveShow.id == attendance.live_show_id, LiveShow.current_attendees > 0)
        .values(current_attendees=LiveShow.current_attendees - 1)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    await db.refresh(attendance)


async def _take_seat(db: AsyncSession, show: LiveShow) -> None:
    result = await db.execute(
        update(LiveShow)
        .where(
            LiveShow.id == show.id,
            or_(
                LiveShow.max_capacity == UNLIMITED_CAPACITY,
                LiveShow.current_attendees < LiveShow.max_capacity
            )
        )
        .values(current_attendees=LiveShow.current_attendees + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise CapacityReachedError(show.id)


async def _find_attendance(db: AsyncSession, show_id: int, fan_id: int) -> Optional[LiveShowAttendance]:
    result = await db.execute(
        select(LiveShowAttendance)
        .where(LiveShowAttendance.live_show_id == show_id, LiveShowAttendance.fan_id == fan_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _active_attendances(db: AsyncSession, show_id: int) -> List[Tuple[int, Optional[int]]]:
    """(attendance id, transaction id) for every PENDING attendance, as plain values."""
    result = await db.execute(
        select(LiveShowAttendance.id, LiveShowAttendance.transaction_id)
        .where(
            LiveShowAttendance.live_show_id == show_id,
            LiveShowAttendance.status == AttendanceStatus.PENDING
        )
        .order_by(LiveShowAttendance.id.asc())
    )
    return [(row.id, row.transaction_id) for row in result.all()]


async def _attendee_fan_ids(db: AsyncSession, show_id: int) -> List[int]:
    result = await db.execute(
        select(LiveShowAttendance.fan_id).where(
            LiveShowAttendance.live_show_id == show_id,
            LiveShowAttendance.status == AttendanceStatus.PENDING
        )
    )
    return list(result.scalars().all())


async def _fan_ids(db: AsyncSession, attendance_ids: List[int]) -> List[int]:
    if not attendance_ids:
        return []
    result = await db.execute(
        select(LiveShowAttendance.fan_id).where(LiveShowAttendance.id.in_(attendance_ids))
    )
    return list(result.scalars().all())
