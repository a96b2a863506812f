"""Subscription and billing Pydantic schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from src.models.plan import FREE_PLAN_ID


class SubscriptionView(BaseModel):
    """Subscription as stored on the tenant."""

    model_config = ConfigDict(from_attributes=True)

    plan_id: str
    plan_name: str
    status: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    features: dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime | None = None


class SubscriptionStatusView(SubscriptionView):
    """Subscription with read-time derived fields."""

    days_remaining: int | None = Field(default=None, description="Whole days left, None for non-expiring plans")
    is_active: bool
    is_paid: bool


class CurrentPlanResponse(BaseModel):
    """Schema for GET /subscriptions/{tenant_user_id}/plan."""

    success: bool = True
    data: SubscriptionView


class SubscriptionStatusResponse(BaseModel):
    """Schema for GET /subscriptions/{tenant_user_id}."""

    success: bool = True
    subscription: SubscriptionStatusView


class CreateTenantRequest(BaseModel):
    """Schema for creating a billing tenant with a default subscription."""

    model_config = ConfigDict(populate_by_name=True)

    tenant_user_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("tenant_user_id", "tenantUserId", "userId"),
    )
    email: str | None = None
    phone: str | None = None
    role: Literal["owner", "admin", "staff", "manager", "customer"] | None = None
    plan_id: str = Field(default=FREE_PLAN_ID, validation_alias=AliasChoices("plan_id", "planId"))
    restaurant_info: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("restaurant_info", "restaurantInfo"),
    )


class TenantView(BaseModel):
    """Tenant billing account."""

    tenant_user_id: str
    email: str | None = None
    phone: str | None = None
    role: str | None = None
    application_tag: str | None = None
    subscription: SubscriptionView | None = None
    created_at: datetime | None = None


class CreateTenantResponse(BaseModel):
    """Schema for tenant creation."""

    success: bool = True
    created: bool
    message: str
    data: TenantView


class BillingRequest(BaseModel):
    """Schema for POST /subscriptions/billing."""

    email: str = Field(min_length=3)


class BillingSummary(BaseModel):
    """Billing view derived from the tenant subscription."""

    current_plan: str
    plan_name: str
    status: str
    next_billing_date: datetime | None = None
    last_payment_date: datetime | None = None
    features: dict[str, Any]
    last_updated: datetime | None = None


class BillingResponse(BaseModel):
    """Schema for billing summary responses."""

    success: bool = True
    billing: BillingSummary


class PlanCatalogItem(BaseModel):
    """Public description of a plan tier."""

    plan_id: str
    name: str
    billing_cycle: str
    features: dict[str, Any]


class PlanCatalogResponse(BaseModel):
    """Schema for the plan catalog."""

    items: list[PlanCatalogItem]
