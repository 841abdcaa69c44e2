"""
Error Hierarchy

Every rejection the API can produce is an ``OrderSystemError`` subclass that
carries its HTTP status and a client-safe message. Services raise these; the
exception handler in ``app.main`` renders them as ``{"error": ..., "details": ...}``.

Messages never contain catalog prices, stack traces or column names.
"""

from typing import Optional


class OrderSystemError(Exception):
    """Base class for errors that map to a structured API response."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[list[str]] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Body of the JSON error response."""
        body: dict = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


# =============================================================================
# REQUEST SHAPE
# =============================================================================

class MalformedRequestError(OrderSystemError):
    status_code = 400
    message = "Invalid request body"


class ValidationFailedError(OrderSystemError):
    status_code = 400
    message = "Invalid input data"


# =============================================================================
# ORDER INTAKE
# =============================================================================

class RateLimitedError(OrderSystemError):
    status_code = 429
    message = "Too many orders. Please try again later."


class ItemUnavailableError(OrderSystemError):
    """Item is unknown to the catalog or currently switched off."""

    status_code = 400

    def __init__(self, item_name: str, known: bool = False):
        self.item_name = item_name
        if known:
            message = f'"{item_name}" is currently unavailable'
        else:
            message = f'Item "{item_name}" is not available'
        super().__init__(message)


class PriceMismatchError(OrderSystemError):
    status_code = 400
    message = "Price verification failed. Please refresh and try again."


class TotalsMismatchError(OrderSystemError):
    status_code = 400
    message = "Order total verification failed. Please refresh and try again."


class TableNotFoundError(OrderSystemError):
    status_code = 400
    message = "Invalid table number"


class TableInactiveError(OrderSystemError):
    status_code = 400
    message = "This table is not currently active"


class CatalogUnavailableError(OrderSystemError):
    status_code = 500
    message = "Failed to verify order items"


class CustomerPersistError(OrderSystemError):
    status_code = 500
    message = "Failed to create customer record"


class OrderPersistError(OrderSystemError):
    status_code = 500
    message = "Failed to create order"


class ItemsPersistError(OrderSystemError):
    status_code = 500
    message = "Failed to create order items"


# =============================================================================
# KITCHEN NOTIFICATION
# =============================================================================

class NotificationConfigError(OrderSystemError):
    status_code = 500
    message = "Missing notification configuration"


class UpstreamNotifyError(OrderSystemError):
    status_code = 502
    message = "Failed to notify kitchen"


# =============================================================================
# ORDER WORKFLOW
# =============================================================================

class OrderNotFoundError(OrderSystemError):
    status_code = 404
    message = "Order not found"


class InvalidStatusTransitionError(OrderSystemError):
    status_code = 409
    message = "Order status cannot be changed that way"


class PaymentConflictError(OrderSystemError):
    status_code = 409
    message = "Payment cannot be recorded for this order"
