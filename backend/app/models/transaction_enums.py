"""
Ledger enumerations.
"""

import enum


class TransactionType(str, enum.Enum):
    """What a transaction pays for."""
    APPOINTMENT_PAYMENT = "APPOINTMENT_PAYMENT"
    DEDICATION_REQUEST_PAYMENT = "DEDICATION_REQUEST_PAYMENT"
    LIVE_SHOW_ATTENDANCE_PAYMENT = "LIVE_SHOW_ATTENDANCE_PAYMENT"
    LIVE_SHOW_HOSTING_PAYMENT = "LIVE_SHOW_HOSTING_PAYMENT"
    BECOME_STAR_PAYMENT = "BECOME_STAR_PAYMENT"


class PaymentMode(str, enum.Enum):
    """Payment mode enumeration."""
    COIN = "COIN"  # Settled inside the wallet ledger
    EXTERNAL = "EXTERNAL"  # Collected off-ledger (card, gateway)


class TransactionStatus(str, enum.Enum):
    """
    Transaction status enumeration.

    Legal moves: PENDING -> COMPLETED, PENDING -> CANCELLED, COMPLETED -> REFUNDED.
    """
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class LedgerEntryType(str, enum.Enum):
    """Ledger entry type enumeration."""
    DEBIT = "DEBIT"  # Coins leaving the wallet
    CREDIT = "CREDIT"  # Coins entering the wallet
