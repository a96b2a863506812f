"""Database model type definitions."""

from src.models.order import Order, OrderStatus, OrderUpdate
from src.models.payment import PaymentRecord, PaymentStatus, WebhookEvent
from src.models.plan import PLAN_CATALOG, BillingCycle, Plan, get_plan
from src.models.tenant import Subscription, SubscriptionStatus, Tenant

__all__ = [
    "Order",
    "OrderStatus",
    "OrderUpdate",
    "PaymentRecord",
    "PaymentStatus",
    "WebhookEvent",
    "PLAN_CATALOG",
    "BillingCycle",
    "Plan",
    "get_plan",
    "Subscription",
    "SubscriptionStatus",
    "Tenant",
]
