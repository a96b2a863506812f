"""Tenant account and subscription type definitions."""

from enum import Enum
from typing import Any, TypedDict


class SubscriptionStatus(str, Enum):
    """Stored or derived subscription state."""

    ACTIVE = "active"
    EXPIRED = "expired"


class Subscription(TypedDict, total=False):
    """Subscription embedded in the tenant document.

    end_date is None for non-expiring plans. payment_id names the payment
    that activated it, if any, and paid_at when that payment was first
    confirmed.
    """

    plan_id: str
    plan_name: str
    status: str
    start_date: str
    end_date: str | None
    features: dict[str, Any]
    last_updated: str
    application_tag: str
    payment_id: str | None
    paid_at: str | None


class Tenant(TypedDict, total=False):
    """Tenant table row representation."""

    tenant_user_id: str
    email: str
    phone: str
    role: str | None
    restaurant_info: dict[str, Any]
    application_tag: str
    subscription: Subscription | None
    created_at: str
    last_updated: str
