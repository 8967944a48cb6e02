"""
Default human-readable descriptions for ledger transactions.
"""

from typing import Optional

from backend.app.models.transaction_enums import TransactionType

TRANSACTION_DESCRIPTIONS = {
    TransactionType.APPOINTMENT_PAYMENT: "Appointment booked",
    TransactionType.DEDICATION_REQUEST_PAYMENT: "Dedication request submitted",
    TransactionType.LIVE_SHOW_ATTENDANCE_PAYMENT: "Live show booked",
    TransactionType.LIVE_SHOW_HOSTING_PAYMENT: "Live show hosting scheduled",
    TransactionType.BECOME_STAR_PAYMENT: "Become Star application submitted",
}

# Types paid to a star; their description names the star
STAR_RELATED_TYPES = {
    TransactionType.APPOINTMENT_PAYMENT,
    TransactionType.DEDICATION_REQUEST_PAYMENT,
    TransactionType.LIVE_SHOW_ATTENDANCE_PAYMENT,
}


def describe_transaction(type: TransactionType, star_name: Optional[str] = None) -> str:
    """
    Build the default description for a transaction.

    >>> describe_transaction(TransactionType.APPOINTMENT_PAYMENT, "Ada")
    'Appointment booked with Ada'
    """
    base = TRANSACTION_DESCRIPTIONS[type]
    if not star_name or not star_name.strip():
        return base
    if type in STAR_RELATED_TYPES:
        return f"{base} with {star_name.strip()}"
    return base
