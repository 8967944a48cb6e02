"""
Domain errors and the handlers that render them.

Ledger, booking and identifier failures each carry a stable error code and
HTTP status. Every failure leaves the API as {"success": false, "error_code", "message", "details"}.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict, Optional

logger = logging.getLogger("starbooking.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class ConflictError(AppException):
    """Raised when a unique resource already exists."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class AccountStateError(AppException):
    """Raised when an account action does not apply to the account's current state."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_ACCOUNT_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


# Ledger errors

class AmountInvalidError(AppException):
    """Raised when a transaction amount is not strictly positive."""

    def __init__(self, amount: Any):
        super().__init__(
            message="Amount must be greater than 0",
            error_code="ERR_LEDGER_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"amount": amount}
        )


class PayerNotFoundError(AppException):
    def __init__(self, payer_id: Any):
        super().__init__(
            message="Payer not found",
            error_code="ERR_LEDGER_002",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"payer_id": payer_id}
        )


class ReceiverNotFoundError(AppException):
    def __init__(self, receiver_id: Any):
        super().__init__(
            message="Receiver not found",
            error_code="ERR_LEDGER_003",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"receiver_id": receiver_id}
        )


class InsufficientBalanceError(AppException):
    """Raised when a wallet cannot cover a debit."""

    def __init__(self, user_id: Any, required: int, available: int):
        super().__init__(
            message="Insufficient coin balance",
            error_code="ERR_LEDGER_004",
            status_code=status.HTTP_409_CONFLICT,
            details={"user_id": user_id, "required": required, "available": available}
        )


class TransactionNotFoundError(AppException):
    def __init__(self, transaction_id: Any):
        super().__init__(
            message="Transaction not found",
            error_code="ERR_LEDGER_005",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"transaction_id": transaction_id}
        )


class InvalidStateTransitionError(AppException):
    """Raised when a transaction is not in the status an operation requires."""

    def __init__(self, transaction_id: Any, current: str, expected: str):
        super().__init__(
            message=f"Transaction is not in {expected.lower()} status",
            error_code="ERR_LEDGER_006",
            status_code=status.HTTP_409_CONFLICT,
            details={"transaction_id": transaction_id, "current": current, "expected": expected}
        )


class PlatformAccountMissingError(AppException):
    """Raised when no user can receive platform fees."""

    def __init__(self):
        super().__init__(
            message="Admin account not configured",
            error_code="ERR_LEDGER_007",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


# Booking errors

class InvalidBookingTransitionError(AppException):
    """Raised when a booking cannot move from its current status to the requested one."""

    def __init__(self, booking: str, booking_id: Any, current: str, target: str):
        super().__init__(
            message=f"{booking} cannot move from {current} to {target}",
            error_code="ERR_BOOKING_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"booking": booking, "id": booking_id, "current": current, "target": target}
        )


class BookingStateConflictError(AppException):
    """Raised when a booking status write disagrees with its transaction status."""

    def __init__(self, booking: str, booking_id: Any, target: str, transaction_status: str):
        super().__init__(
            message=f"{booking} cannot become {target} while its transaction is {transaction_status}",
            error_code="ERR_BOOKING_002",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "booking": booking,
                "id": booking_id,
                "target": target,
                "transaction_status": transaction_status
            }
        )


class CapacityReachedError(AppException):
    def __init__(self, live_show_id: Any):
        super().__init__(
            message="Live show is at capacity",
            error_code="ERR_BOOKING_003",
            status_code=status.HTTP_409_CONFLICT,
            details={"live_show_id": live_show_id}
        )


class DuplicateBookingError(AppException):
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_BOOKING_004",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class BookingRuleError(AppException):
    """Raised when a request breaks a business rule (bad role, open commitments)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_BOOKING_005",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class SlotUnavailableError(AppException):
    """Raised when a time slot is already reserved by another appointment."""

    def __init__(self, time_slot_id: Any):
        super().__init__(
            message="Time slot is not available",
            error_code="ERR_BOOKING_006",
            status_code=status.HTTP_409_CONFLICT,
            details={"time_slot_id": time_slot_id}
        )


class IdentifierSpaceExhaustedError(AppException):
    """Raised when no unused identifier was found within the attempt limit."""

    def __init__(self, kind: str, attempts: int):
        super().__init__(
            message=f"Could not generate a unique {kind}",
            error_code="ERR_ID_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"kind": kind, "attempts": attempts}
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def error_envelope(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error_code": error_code,
            "message": message,
            "details": jsonable_encoder(details or {}),
        },
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Domain errors carry their own code and status; 5xx ones are logged as errors."""
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "Request failed: %s",
        exc.message,
        extra={"path": request.url.path, "error_code": exc.error_code, "status_code": exc.status_code}
    )
    return error_envelope(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_envelope(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": exc.errors()},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, never leak it to the client."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "exception_type": type(exc).__name__}
    )
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ERR_INTERNAL_SERVER",
        "An internal server error occurred",
    )
