"""
Booking status enumerations.

REFUNDED is reached only through an admin refund of the booking's
completed transaction.
"""

import enum


class AppointmentStatus(str, enum.Enum):
    """Appointment status enumeration."""
    PENDING = "PENDING"  # Requested by fan, waiting for the star
    APPROVED = "APPROVED"  # Accepted by star or admin, time slot reserved
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class DedicationRequestStatus(str, enum.Enum):
    """Dedication request status enumeration."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"  # Accepted, video not yet delivered
    COMPLETED = "COMPLETED"  # Video delivered
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class LiveShowStatus(str, enum.Enum):
    """Live show status enumeration."""
    SCHEDULED = "SCHEDULED"  # Active and open for attendance
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"  # Hosting fee returned; closed like a cancelled show


class AttendanceStatus(str, enum.Enum):
    """Live show attendance status enumeration."""
    PENDING = "PENDING"  # Joined, fee held in escrow
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class TimeSlotStatus(str, enum.Enum):
    """A star's bookable time slot."""
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"  # Reserved by an approved appointment
