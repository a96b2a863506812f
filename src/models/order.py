"""Order model type definitions for database operations."""

from enum import Enum
from typing import TypedDict


class OrderStatus(str, Enum):
    """Order lifecycle states. Transitions only created -> paid."""

    CREATED = "created"
    PAID = "paid"


class Order(TypedDict, total=False):
    """Order table row representation.

    Represents a payment intent created before the payer completes
    checkout. Keyed by the gateway-assigned order id.
    """

    order_id: str
    amount_minor_units: int
    currency: str
    plan_id: str
    tenant_user_id: str
    tenant_email: str
    phone: str | None
    shop_id: str | None
    application_tag: str
    status: str
    payment_id: str | None
    created_at: str
    updated_at: str


class OrderUpdate(TypedDict, total=False):
    """Fields that may change on an order after creation."""

    status: str
    payment_id: str
    updated_at: str
