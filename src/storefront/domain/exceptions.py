"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer (and any HTTP glue) can catch them uniformly and map them
to user-facing responses.
"""


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Missing or malformed input. Nothing was written."""


class EntityNotFoundError(DomainException):
    """A requested product, order, payment or cart line does not exist."""


class ConflictError(DomainException):
    """The request contradicts the current state of the stores."""


class InvalidTransitionError(ConflictError):
    """The order status graph does not allow the requested move."""


class DuplicatePaymentError(ConflictError):
    """The order is already Paid (or further along)."""


class FulfillmentConflictError(ConflictError):
    """Stock ran out between the order-time check and the payment-time decrement."""


class SignatureError(DomainException):
    """A webhook signature did not match the shared secret."""


class PaymentProviderError(DomainException):
    """The external payment provider failed or returned something unusable."""


class PartialFailureError(DomainException):
    """A cross-store write failed and was fully undone."""


class UnrecoverablePartialState(DomainException):
    """Compensation itself failed; the stores disagree until reconciled."""

    def __init__(self, message: str, product_id: str) -> None:
        super().__init__(message)
        self.product_id = product_id


class ConfigurationError(DomainException):
    """Settings are missing or invalid."""
