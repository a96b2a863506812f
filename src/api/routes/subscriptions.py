"""Subscription API routes: tenant entitlements and the plan catalog."""

from fastapi import APIRouter, status

from src.api.deps import Subscriptions
from src.models.plan import PLAN_CATALOG
from src.schemas.subscription import (
    BillingRequest,
    BillingResponse,
    BillingSummary,
    CreateTenantRequest,
    CreateTenantResponse,
    CurrentPlanResponse,
    PlanCatalogItem,
    PlanCatalogResponse,
    SubscriptionStatusResponse,
    SubscriptionStatusView,
    SubscriptionView,
    TenantView,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get(
    "/plans/catalog",
    response_model=PlanCatalogResponse,
    summary="List plans",
    description="Returns every plan tier with its billing cycle and feature entitlements.",
)
async def list_plans() -> PlanCatalogResponse:
    """List the plan catalog.

    Returns:
        PlanCatalogResponse: All plan tiers.
    """
    items = [
        PlanCatalogItem(
            plan_id=plan.plan_id,
            name=plan.name,
            billing_cycle=plan.billing_cycle.value,
            features=plan.feature_map(),
        )
        for plan in PLAN_CATALOG.values()
    ]
    return PlanCatalogResponse(items=items)


@router.post(
    "/tenants",
    response_model=CreateTenantResponse,
    summary="Create billing tenant",
    description="Creates a tenant billing account with a default subscription. Existing tenants are returned as-is.",
    responses={
        403: {"description": "Role may not hold a billing account"},
    },
)
async def create_tenant(data: CreateTenantRequest, service: Subscriptions) -> CreateTenantResponse:
    """Create a billing tenant.

    Args:
        data: Tenant details.
        service: Subscription service.

    Returns:
        CreateTenantResponse: The tenant and whether it was created.
    """
    tenant, created = await service.create_tenant(
        tenant_user_id=data.tenant_user_id,
        email=data.email,
        phone=data.phone,
        role=data.role,
        plan_id=data.plan_id,
        restaurant_info=data.restaurant_info,
    )
    message = "Billing account created successfully" if created else "User already exists"
    return CreateTenantResponse(
        created=created,
        message=message,
        data=TenantView.model_validate(tenant),
    )


@router.post(
    "/billing",
    response_model=BillingResponse,
    summary="Billing summary",
    description="Returns the billing summary for the tenant registered with an email.",
    responses={404: {"description": "No tenant with this email"}},
)
async def billing_summary(data: BillingRequest, service: Subscriptions) -> BillingResponse:
    """Get billing information by email."""
    billing = await service.get_billing_summary(data.email)
    return BillingResponse(billing=BillingSummary(**billing))


@router.get(
    "/{tenant_user_id}/plan",
    response_model=CurrentPlanResponse,
    summary="Current plan",
    description="Returns the stored subscription, or the default free plan if none was bought.",
    responses={404: {"description": "Tenant not found"}},
)
async def current_plan(tenant_user_id: str, service: Subscriptions) -> CurrentPlanResponse:
    """Get a tenant's current plan."""
    subscription = await service.get_current_plan(tenant_user_id)
    return CurrentPlanResponse(data=SubscriptionView.model_validate(subscription))


@router.get(
    "/{tenant_user_id}",
    response_model=SubscriptionStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Subscription status",
    description="Returns the subscription with expiry evaluated at read time.",
    responses={404: {"description": "Tenant not found"}},
)
async def subscription_status(tenant_user_id: str, service: Subscriptions) -> SubscriptionStatusResponse:
    """Get a tenant's subscription status.

    A paid subscription past its end date is reported as expired with zero
    days remaining even though the stored document still says active.

    Args:
        tenant_user_id: Tenant account user id.
        service: Subscription service.

    Returns:
        SubscriptionStatusResponse: Subscription with days_remaining and flags.
    """
    view = await service.get_subscription_status(tenant_user_id)
    return SubscriptionStatusResponse(subscription=SubscriptionStatusView.model_validate(view))
