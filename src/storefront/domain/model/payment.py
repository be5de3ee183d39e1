"""Payment: the local record of a provider-side payment attempt."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from storefront.domain.model.value_objects import Money


class PaymentStatus(Enum):
    CREATED = "Created"
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass
class Payment:
    """Links an order to the provider's order/session reference.

    ``provider_order_ref`` is how asynchronous provider events find their
    way back to an order; ``provider_payment_ref`` is filled in once the
    provider reports a captured payment.
    """

    id: int | None
    order_id: int
    provider: str
    provider_order_ref: str
    amount: Money
    status: PaymentStatus = PaymentStatus.CREATED
    provider_payment_ref: str | None = None
