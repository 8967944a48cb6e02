"""
Star Service (Domain Logic).

Promotes a fan to star after a paid plan. Payment, role change and public
account id assignment commit together or not at all.
"""

import logging
from typing import Dict, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.dependencies import Principal
from backend.app.core.exceptions import AmountInvalidError, BookingRuleError, InsufficientPermissionsError
from backend.app.db.session import atomic
from backend.app.domain.bookings.common import load_for_update
from backend.app.domain.ledger.platform_account import resolve_platform_account_id
from backend.app.domain.ledger.transaction_engine import TransactionEngine
from backend.app.models.appointment import Appointment
from backend.app.models.booking_enums import AppointmentStatus, DedicationRequestStatus, AttendanceStatus
from backend.app.models.dedication_request import DedicationRequest
from backend.app.models.enums import UserRole, StarPlan
from backend.app.models.live_show_attendance import LiveShowAttendance
from backend.app.models.notification import NotificationType
from backend.app.models.transaction import Transaction
from backend.app.models.transaction_enums import TransactionType, PaymentMode
from backend.app.models.user import User
from backend.app.services.identifiers import (
    generate_account_id,
    generate_gold_account_id,
    is_gold_account_id,
)
from backend.app.services.notification_service import NotificationService

logger = logging.getLogger("starbooking.stars")


class StarService:

    @staticmethod
    async def account_id_patterns(db: AsyncSession) -> Dict[str, str]:
        """One unused standard id and one unused gold id, for preview."""
        return {
            "standard": await generate_account_id(db),
            "gold": await generate_gold_account_id(db),
        }

    @staticmethod
    async def open_commitments(db: AsyncSession, fan_id: int) -> Dict[str, int]:
        """Counts of bookings the fan still has in flight."""
        dedications = await db.scalar(
            select(func.count(DedicationRequest.id)).where(
                DedicationRequest.fan_id == fan_id,
                DedicationRequest.status.in_([DedicationRequestStatus.PENDING, DedicationRequestStatus.APPROVED])
            )
        )
        appointments = await db.scalar(
            select(func.count(Appointment.id)).where(
                Appointment.fan_id == fan_id,
                Appointment.status.in_([AppointmentStatus.PENDING, AppointmentStatus.APPROVED])
            )
        )
        attendances = await db.scalar(
            select(func.count(LiveShowAttendance.id)).where(
                LiveShowAttendance.fan_id == fan_id,
                LiveShowAttendance.status == AttendanceStatus.PENDING
            )
        )
        return {
            "dedication_requests": dedications or 0,
            "appointments": appointments or 0,
            "live_show_attendances": attendances or 0,
        }

    @staticmethod
    async def become_star(
        db: AsyncSession,
        actor: Principal,
        plan: StarPlan,
        amount: int,
        payment_mode: PaymentMode = PaymentMode.COIN,
        payment_description: Optional[str] = None,
        account_id: Optional[str] = None
    ) -> Tuple[User, Transaction]:
        """
        Pay for `plan` and become a star.

        The BECOME_STAR_PAYMENT goes to the platform account and is completed
        immediately. A requested `account_id` is used when free; otherwise
        one is generated, in the gold pattern for GOLD plans.

        Raises:
            InsufficientPermissionsError: caller is not a fan
            BookingRuleError: open commitments, or unusable account id
            AmountInvalidError / InsufficientBalanceError
        """
        if actor.role != UserRole.FAN:
            raise InsufficientPermissionsError("Only fans can become stars")
        if amount is None or amount <= 0:
            raise AmountInvalidError(amount)
        if account_id is not None:
            _validate_requested_account_id(account_id, plan)

        async with atomic(db):
            commitments = await StarService.open_commitments(db, actor.user_id)
            total = sum(commitments.values())
            if total > 0:
                raise BookingRuleError(
                    f"You have {total} pending commitment(s) that must be completed or cancelled before becoming a star",
                    commitments
                )

            if account_id is not None:
                taken = await db.scalar(select(User.id).where(User.account_id == account_id))
                if taken is not None:
                    raise BookingRuleError("Account ID already exists, please try again", {"account_id": account_id})
            elif plan == StarPlan.GOLD:
                account_id = await generate_gold_account_id(db)
            else:
                account_id = await generate_account_id(db)

            platform_id = await resolve_platform_account_id(db)
            description = None
            if payment_mode == PaymentMode.EXTERNAL and payment_description:
                description = payment_description

            transaction = await TransactionEngine.create_transaction(
                db,
                type=TransactionType.BECOME_STAR_PAYMENT,
                payer_id=actor.user_id,
                receiver_id=platform_id,
                amount=amount,
                payment_mode=payment_mode,
                description=description,
                metadata={"plan": plan.value}
            )
            transaction = await TransactionEngine.complete_transaction(db, transaction.id)

            user = await load_for_update(db, User, actor.user_id, "User")
            user.role = UserRole.STAR
            user.account_id = account_id
            await db.flush()
            await db.refresh(user)

        logger.info(
            "Fan promoted to star",
            extra={"user_id": actor.user_id, "plan": plan.value, "transaction_id": transaction.id}
        )
        await NotificationService.notify(
            db, actor.user_id,
            title="Welcome aboard",
            message=f"You are now a star. Your account id is {account_id}",
            type=NotificationType.PAYMENT_UPDATE,
            metadata={"transaction_id": transaction.id, "plan": plan.value}
        )
        return user, transaction


def _validate_requested_account_id(account_id: str, plan: StarPlan) -> None:
    if not account_id.isdigit() or len(account_id) != settings.account_id_length or account_id[0] == "0":
        raise BookingRuleError(
            f"Account ID must be {settings.account_id_length} digits without a leading zero",
            {"account_id": account_id}
        )
    if plan == StarPlan.GOLD and not is_gold_account_id(account_id):
        raise BookingRuleError("Gold account IDs must follow the AAAAAA or ABABAB pattern", {"account_id": account_id})
