"""
Booking state machines and the booking/transaction coupling check.

Every booking status write goes through `transition()`, which rejects:
- moves the booking's own state machine does not allow
- a fulfilled status unless the linked transaction is COMPLETED
- a cancelled, rejected or refunded status unless the linked transaction is
  CANCELLED or REFUNDED

Bookings without a transaction (free bookings) only obey their state machine.
"""

import enum
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional, Union

from backend.app.core.exceptions import InvalidBookingTransitionError, BookingStateConflictError
from backend.app.models.appointment import Appointment
from backend.app.models.booking_enums import (
    AppointmentStatus,
    DedicationRequestStatus,
    LiveShowStatus,
    AttendanceStatus,
)
from backend.app.models.dedication_request import DedicationRequest
from backend.app.models.live_show import LiveShow
from backend.app.models.live_show_attendance import LiveShowAttendance
from backend.app.models.transaction import Transaction
from backend.app.models.transaction_enums import TransactionStatus

Booking = Union[Appointment, DedicationRequest, LiveShow, LiveShowAttendance]


class Outcome(str, enum.Enum):
    """What a booking status means for the money behind it."""
    OPEN = "OPEN"
    FULFILLED = "FULFILLED"
    VOIDED = "VOIDED"


TRANSITIONS: Dict[type, Dict[enum.Enum, FrozenSet[enum.Enum]]] = {
    Appointment: {
        AppointmentStatus.PENDING: frozenset({
            AppointmentStatus.APPROVED, AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED,
            AppointmentStatus.PENDING,  # reschedule
        }),
        AppointmentStatus.APPROVED: frozenset({
            AppointmentStatus.CANCELLED, AppointmentStatus.PENDING, AppointmentStatus.REFUNDED,
        }),
        AppointmentStatus.REJECTED: frozenset(),
        AppointmentStatus.CANCELLED: frozenset(),
        AppointmentStatus.REFUNDED: frozenset(),
    },
    DedicationRequest: {
        DedicationRequestStatus.PENDING: frozenset({
            DedicationRequestStatus.APPROVED, DedicationRequestStatus.REJECTED, DedicationRequestStatus.CANCELLED,
        }),
        DedicationRequestStatus.APPROVED: frozenset({DedicationRequestStatus.COMPLETED}),
        DedicationRequestStatus.COMPLETED: frozenset({DedicationRequestStatus.REFUNDED}),
        DedicationRequestStatus.REJECTED: frozenset(),
        DedicationRequestStatus.CANCELLED: frozenset(),
        DedicationRequestStatus.REFUNDED: frozenset(),
    },
    LiveShow: {
        LiveShowStatus.SCHEDULED: frozenset({
            LiveShowStatus.COMPLETED, LiveShowStatus.CANCELLED, LiveShowStatus.REFUNDED,
        }),
        LiveShowStatus.COMPLETED: frozenset({LiveShowStatus.REFUNDED}),
        LiveShowStatus.CANCELLED: frozenset({LiveShowStatus.REFUNDED}),
        LiveShowStatus.REFUNDED: frozenset(),
    },
    LiveShowAttendance: {
        AttendanceStatus.PENDING: frozenset({AttendanceStatus.COMPLETED, AttendanceStatus.CANCELLED}),
        AttendanceStatus.COMPLETED: frozenset({AttendanceStatus.REFUNDED}),
        AttendanceStatus.CANCELLED: frozenset({AttendanceStatus.PENDING}),  # rejoin
        AttendanceStatus.REFUNDED: frozenset(),
    },
}

OUTCOMES: Dict[type, Dict[enum.Enum, Outcome]] = {
    Appointment: {
        AppointmentStatus.PENDING: Outcome.OPEN,
        AppointmentStatus.APPROVED: Outcome.FULFILLED,
        AppointmentStatus.REJECTED: Outcome.VOIDED,
        AppointmentStatus.CANCELLED: Outcome.VOIDED,
        AppointmentStatus.REFUNDED: Outcome.VOIDED,
    },
    DedicationRequest: {
        DedicationRequestStatus.PENDING: Outcome.OPEN,
        DedicationRequestStatus.APPROVED: Outcome.OPEN,  # paid on delivery, not on approval
        DedicationRequestStatus.COMPLETED: Outcome.FULFILLED,
        DedicationRequestStatus.REJECTED: Outcome.VOIDED,
        DedicationRequestStatus.CANCELLED: Outcome.VOIDED,
        DedicationRequestStatus.REFUNDED: Outcome.VOIDED,
    },
    LiveShow: {
        LiveShowStatus.SCHEDULED: Outcome.FULFILLED,  # hosting fee is settled at creation
        LiveShowStatus.COMPLETED: Outcome.FULFILLED,
        LiveShowStatus.CANCELLED: Outcome.OPEN,  # hosting fee is not returned on cancel
        LiveShowStatus.REFUNDED: Outcome.VOIDED,
    },
    LiveShowAttendance: {
        AttendanceStatus.PENDING: Outcome.OPEN,
        AttendanceStatus.COMPLETED: Outcome.FULFILLED,
        AttendanceStatus.CANCELLED: Outcome.VOIDED,
        AttendanceStatus.REFUNDED: Outcome.VOIDED,
    },
}

ALLOWED_TRANSACTION_STATUSES: Dict[Outcome, FrozenSet[TransactionStatus]] = {
    Outcome.OPEN: frozenset(TransactionStatus),
    Outcome.FULFILLED: frozenset({TransactionStatus.COMPLETED}),
    Outcome.VOIDED: frozenset({TransactionStatus.CANCELLED, TransactionStatus.REFUNDED}),
}

# Status value -> timestamp column stamped on entry. The status enums are str
# enums, so equal values from different booking types share one entry.
TIMESTAMP_FIELDS: Dict[str, str] = {
    "APPROVED": "approved_at",
    "REJECTED": "rejected_at",
    "CANCELLED": "cancelled_at",
    "COMPLETED": "completed_at",
    "REFUNDED": "refunded_at",
}

# Where an admin refund of the linked transaction moves each booking type
REFUND_TARGETS: Dict[type, enum.Enum] = {
    Appointment: AppointmentStatus.REFUNDED,
    DedicationRequest: DedicationRequestStatus.REFUNDED,
    LiveShow: LiveShowStatus.REFUNDED,
    LiveShowAttendance: AttendanceStatus.REFUNDED,
}


def can_transition(booking: Booking, target: enum.Enum) -> bool:
    return target in TRANSITIONS[type(booking)][booking.status]


def require_transition(booking: Booking, target: enum.Enum) -> None:
    if not can_transition(booking, target):
        raise InvalidBookingTransitionError(
            type(booking).__name__, booking.id, booking.status.value, target.value
        )


def check_coupling(booking: Booking, target: enum.Enum, transaction: Optional[Transaction]) -> None:
    """Raise BookingStateConflictError if `target` disagrees with the transaction status."""
    if transaction is None:
        return
    allowed = ALLOWED_TRANSACTION_STATUSES[OUTCOMES[type(booking)][target]]
    if transaction.status not in allowed:
        raise BookingStateConflictError(
            type(booking).__name__, booking.id, target.value, transaction.status.value
        )


def transition(booking: Booking, target: enum.Enum, transaction: Optional[Transaction] = None) -> None:
    """
    Move `booking` to `target` after checking its state machine and coupling.

    `transaction` must be the booking's linked transaction in its post-ledger
    state (after complete/cancel has run in the same unit of work).
    """
    require_transition(booking, target)
    check_coupling(booking, target, transaction)

    booking.status = target
    field = TIMESTAMP_FIELDS.get(target.value)
    if field:
        setattr(booking, field, datetime.now(timezone.utc))
