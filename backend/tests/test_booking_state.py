"""
Booking State Machine Tests.

Pure checks on transient rows; no database needed.
"""

import pytest

from backend.app.core.exceptions import InvalidBookingTransitionError, BookingStateConflictError
from backend.app.domain.bookings import booking_state
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


def _tx(status: TransactionStatus) -> Transaction:
    return Transaction(id=1, status=status)


def test_approve_requires_completed_transaction():
    appointment = Appointment(id=1, status=AppointmentStatus.PENDING)

    with pytest.raises(BookingStateConflictError):
        booking_state.transition(appointment, AppointmentStatus.APPROVED, _tx(TransactionStatus.PENDING))
    assert appointment.status == AppointmentStatus.PENDING

    booking_state.transition(appointment, AppointmentStatus.APPROVED, _tx(TransactionStatus.COMPLETED))
    assert appointment.status == AppointmentStatus.APPROVED
    assert appointment.approved_at is not None


def test_cancel_requires_voided_transaction():
    appointment = Appointment(id=1, status=AppointmentStatus.APPROVED)

    with pytest.raises(BookingStateConflictError):
        booking_state.transition(appointment, AppointmentStatus.CANCELLED, _tx(TransactionStatus.COMPLETED))

    booking_state.transition(appointment, AppointmentStatus.CANCELLED, _tx(TransactionStatus.REFUNDED))
    assert appointment.status == AppointmentStatus.CANCELLED
    assert appointment.cancelled_at is not None


def test_terminal_states_reject_every_move():
    appointment = Appointment(id=7, status=AppointmentStatus.REJECTED)

    with pytest.raises(InvalidBookingTransitionError) as exc_info:
        booking_state.require_transition(appointment, AppointmentStatus.APPROVED)

    assert exc_info.value.details["current"] == "REJECTED"
    assert exc_info.value.details["target"] == "APPROVED"


def test_free_bookings_only_follow_the_state_machine():
    request = DedicationRequest(id=1, status=DedicationRequestStatus.APPROVED)
    booking_state.transition(request, DedicationRequestStatus.COMPLETED, None)
    assert request.status == DedicationRequestStatus.COMPLETED
    assert request.completed_at is not None


def test_dedication_approval_keeps_escrow_open():
    request = DedicationRequest(id=1, status=DedicationRequestStatus.PENDING)
    booking_state.transition(request, DedicationRequestStatus.APPROVED, _tx(TransactionStatus.PENDING))
    assert request.status == DedicationRequestStatus.APPROVED

    with pytest.raises(InvalidBookingTransitionError):
        booking_state.require_transition(request, DedicationRequestStatus.CANCELLED)


def test_cancelled_show_keeps_completed_hosting_fee():
    show = LiveShow(id=1, status=LiveShowStatus.SCHEDULED)
    booking_state.transition(show, LiveShowStatus.CANCELLED, _tx(TransactionStatus.COMPLETED))
    assert show.status == LiveShowStatus.CANCELLED
    assert show.cancelled_at is not None


def test_cancelled_attendance_can_rejoin():
    attendance = LiveShowAttendance(id=1, status=AttendanceStatus.CANCELLED)
    assert booking_state.can_transition(attendance, AttendanceStatus.PENDING)
    assert not booking_state.can_transition(attendance, AttendanceStatus.COMPLETED)


@pytest.mark.parametrize("status, target, allowed", [
    (AppointmentStatus.PENDING, AppointmentStatus.PENDING, True),
    (AppointmentStatus.APPROVED, AppointmentStatus.PENDING, True),
    (AppointmentStatus.APPROVED, AppointmentStatus.REJECTED, False),
    (AppointmentStatus.CANCELLED, AppointmentStatus.PENDING, False),
    (AppointmentStatus.APPROVED, AppointmentStatus.REFUNDED, True),
    (AppointmentStatus.PENDING, AppointmentStatus.REFUNDED, False),
    (AppointmentStatus.REFUNDED, AppointmentStatus.PENDING, False),
])
def test_appointment_transitions(status, target, allowed):
    assert booking_state.can_transition(Appointment(id=1, status=status), target) is allowed


def test_same_named_statuses_keep_their_own_outcome():
    # APPROVED settles an appointment but not a dedication
    request = DedicationRequest(id=1, status=DedicationRequestStatus.PENDING)
    booking_state.transition(request, DedicationRequestStatus.APPROVED, _tx(TransactionStatus.PENDING))

    appointment = Appointment(id=1, status=AppointmentStatus.PENDING)
    with pytest.raises(BookingStateConflictError):
        booking_state.transition(appointment, AppointmentStatus.APPROVED, _tx(TransactionStatus.PENDING))

    # CANCELLED voids an attendance but not a show's hosting fee
    attendance = LiveShowAttendance(id=1, status=AttendanceStatus.PENDING)
    with pytest.raises(BookingStateConflictError):
        booking_state.transition(attendance, AttendanceStatus.CANCELLED, _tx(TransactionStatus.COMPLETED))


@pytest.mark.parametrize("booking", [
    Appointment(id=1, status=AppointmentStatus.APPROVED),
    DedicationRequest(id=1, status=DedicationRequestStatus.COMPLETED),
    LiveShow(id=1, status=LiveShowStatus.SCHEDULED),
    LiveShow(id=2, status=LiveShowStatus.CANCELLED),
    LiveShowAttendance(id=1, status=AttendanceStatus.COMPLETED),
])
def test_refund_target_follows_a_refunded_transaction(booking):
    target = booking_state.REFUND_TARGETS[type(booking)]

    with pytest.raises(BookingStateConflictError):
        booking_state.transition(booking, target, _tx(TransactionStatus.COMPLETED))

    booking_state.transition(booking, target, _tx(TransactionStatus.REFUNDED))
    assert booking.status.value == "REFUNDED"
    assert booking.refunded_at is not None


def test_refunded_bookings_are_terminal():
    request = DedicationRequest(id=1, status=DedicationRequestStatus.REFUNDED)
    show = LiveShow(id=1, status=LiveShowStatus.REFUNDED)

    assert not booking_state.can_transition(request, DedicationRequestStatus.COMPLETED)
    assert not booking_state.can_transition(show, LiveShowStatus.COMPLETED)
    assert not booking_state.can_transition(show, LiveShowStatus.SCHEDULED)
