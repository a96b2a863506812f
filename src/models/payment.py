"""Payment record and webhook event type definitions."""

from enum import Enum
from typing import Any, TypedDict


class PaymentStatus(str, Enum):
    """Which channel first confirmed a payment."""

    VERIFIED = "verified"
    WEBHOOK_CONFIRMED = "webhook_confirmed"


class PaymentRecord(TypedDict, total=False):
    """Payment record table row representation.

    One row per gateway payment id. Rows are only ever created with an
    atomic insert and never overwritten.
    """

    payment_id: str
    order_id: str
    signature: str | None
    plan_id: str
    tenant_email: str
    tenant_user_id: str
    amount_minor_units: int
    currency: str
    application_tag: str
    phone: str | None
    shop_id: str | None
    status: str
    verified_at: str


class WebhookEvent(TypedDict, total=False):
    """Audit log row for one received gateway callback.

    Rows are appended for every owned callback and never deduplicated.
    """

    event: str
    order_id: str
    payment_id: str
    status: str | None
    amount_minor_units: int | None
    currency: str | None
    application_tag: str
    received_at: str
    full_payload: dict[str, Any]
