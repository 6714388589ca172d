"""
Custom exceptions for the exchange web application.

Provides a hierarchy of exceptions for clean error handling in routes,
and the mapping from domain errors onto it.
"""

from typing import Any, Dict, Optional

from cryptoflow.orders.order_store import InvalidStatusTransitionError, OrderNotFoundError
from cryptoflow.orders.service import OrderValidationError
from cryptoflow.pricing.order_pricer import AmountOutOfRangeError, InsufficientAmountError
from cryptoflow.storage.currency_catalog import CurrencyNotFoundError


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AppException):
    """Raised when input validation fails."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class InsufficientAmount(ValidationError):
    """Fees consume the whole submitted amount."""

    error_code = "INSUFFICIENT_AMOUNT"


class NotFoundError(AppException):
    """Raised when a requested resource does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class CurrencyNotFound(NotFoundError):
    error_code = "CURRENCY_NOT_FOUND"

    def __init__(self, currency_id: str):
        super().__init__(f"Unknown currency: {currency_id}", details={"currency": currency_id})


class OrderNotFound(NotFoundError):
    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", details={"order_id": order_id})


class ConflictError(AppException):
    """Raised when a request conflicts with the current resource state."""

    status_code = 409
    error_code = "CONFLICT"


class InvalidTransition(ConflictError):
    error_code = "INVALID_STATUS_TRANSITION"


def to_app_exception(exc: Exception) -> Optional[AppException]:
    """
    Map a domain exception onto the HTTP exception hierarchy.

    Returns:
        AppException, or None if the exception is not a known domain error.
    """
    if isinstance(exc, AppException):
        return exc
    if isinstance(exc, CurrencyNotFoundError):
        return CurrencyNotFound(exc.currency_id)
    if isinstance(exc, OrderNotFoundError):
        return OrderNotFound(exc.order_id)
    if isinstance(exc, InvalidStatusTransitionError):
        return InvalidTransition(
            str(exc),
            details={"current": exc.current.value, "requested": exc.target.value},
        )
    if isinstance(exc, InsufficientAmountError):
        return InsufficientAmount(
            str(exc),
            details={"fromAmount": str(exc.from_amount), "totalFees": str(exc.total_fees)},
        )
    if isinstance(exc, AmountOutOfRangeError):
        return ValidationError(str(exc), details={"fromAmount": str(exc.from_amount)})
    if isinstance(exc, OrderValidationError):
        return ValidationError(str(exc))
    return None
