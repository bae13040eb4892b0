"""Exceptions raised by the payment core.

Every error carries a human readable ``message`` and the HTTP status the API
layer answers with. Only the message is ever shown to callers.
"""

from typing import Optional


class PaymentError(Exception):
    """Base class for all payment core errors."""

    status_code: int = 500
    default_message: str = "Internal payment error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class DuplicateReference(PaymentError):
    """A payment with the same business reference already exists."""
    status_code = 400
    default_message = "Reference code already exists"


class GenerationExhausted(PaymentError):
    """No free content token was found within the attempt budget."""
    status_code = 500
    default_message = "Failed to generate unique content after multiple attempts"


class NoMatchingPayment(PaymentError):
    """A webhook did not match any pending payment."""
    status_code = 404
    default_message = "Payment not found or already processed"


class AmbiguousMatch(PaymentError):
    """A webhook matched more than one pending payment under the strict policy."""
    status_code = 409
    default_message = "Webhook matches multiple pending payments"

    def __init__(self, payment_ids=None, message: Optional[str] = None):
        self.payment_ids = list(payment_ids or [])
        super().__init__(message)


class InvalidRequest(PaymentError):
    """A request passed schema validation but breaks a business rule."""
    status_code = 400
    default_message = "Invalid request"


class PersistenceError(PaymentError):
    """The storage layer failed or rejected a write."""
    status_code = 500
    default_message = "Database error"


class UpstreamError(PaymentError):
    """The SePay API returned a non-success response."""
    status_code = 502
    default_message = "Failed to fetch transaction details"


class ConfigurationError(PaymentError):
    """A required setting is missing."""
    status_code = 500
    default_message = "Server configuration error"
