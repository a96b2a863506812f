"""Subscription manager: derives tenant entitlements from confirmed payments."""

import calendar
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable

from src.api.middleware.error_handler import AuthorizationError, NotFoundError
from src.core.config import Settings, get_settings
from src.core.document_store import DocumentStore, get_document_store
from src.models.plan import FREE_PLAN_ID, PLAN_CATALOG, Plan, get_plan, is_known_plan
from src.models.tenant import Subscription, SubscriptionStatus, Tenant

logger = logging.getLogger(__name__)

TENANTS_TABLE = "tenants"

# Roles allowed to hold a billing account
BILLING_ROLES = frozenset({"owner", "admin"})

SECONDS_PER_DAY = 86400


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_end_date(plan: Plan, start_date: datetime) -> datetime | None:
    """Derive the end of the paid window from the plan's billing cycle."""
    months = plan.billing_cycle.months
    if months is None:
        return None
    return add_months(start_date, months)


def parse_datetime(value: Any) -> datetime | None:
    """Parse a stored timestamp into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_subscription(
    plan_id: str,
    now: datetime,
    application_tag: str,
    payment_id: str | None = None,
    paid_at: str | None = None,
) -> Subscription:
    """Build a fresh active subscription starting now."""
    plan = get_plan(plan_id)
    end_date = compute_end_date(plan, now)
    subscription: Subscription = {
        "plan_id": plan_id,
        "plan_name": plan.name,
        "status": SubscriptionStatus.ACTIVE.value,
        "start_date": now.isoformat(),
        "end_date": end_date.isoformat() if end_date else None,
        "features": plan.feature_map(),
        "last_updated": now.isoformat(),
        "application_tag": application_tag,
    }
    if payment_id:
        subscription["payment_id"] = payment_id
    if paid_at:
        subscription["paid_at"] = paid_at
    return subscription


def is_superseded(current: Subscription, payment_id: str, paid_at: str | None) -> bool:
    """Whether the stored subscription came from another payment confirmed no earlier."""
    if not current.get("payment_id") or current.get("payment_id") == payment_id:
        return False
    current_paid_at = parse_datetime(current.get("paid_at"))
    replayed_paid_at = parse_datetime(paid_at)
    if current_paid_at is None or replayed_paid_at is None:
        return False
    return current_paid_at >= replayed_paid_at


def default_subscription(now: datetime, application_tag: str) -> Subscription:
    """Subscription reported for tenants that never bought a plan."""
    return build_subscription(FREE_PLAN_ID, now, application_tag)


def evaluate_subscription(subscription: Subscription, now: datetime) -> dict[str, Any]:
    """Derive read-time state for a stored subscription.

    Expiry is evaluated lazily here rather than by a background job: an
    active subscription whose end date has passed is reported as expired
    with zero days remaining. The stored document is not modified.

    Returns:
        dict: The subscription plus days_remaining, is_active and is_paid.
    """
    view: dict[str, Any] = dict(subscription)
    plan = get_plan(view.get("plan_id") or FREE_PLAN_ID)
    end_date = parse_datetime(view.get("end_date"))

    days_remaining = None
    if end_date is not None and plan.is_paid:
        diff_days = math.ceil((end_date - now).total_seconds() / SECONDS_PER_DAY)
        days_remaining = max(0, diff_days)
        if diff_days <= 0 and view.get("status") == SubscriptionStatus.ACTIVE.value:
            view["status"] = SubscriptionStatus.EXPIRED.value

    view["days_remaining"] = days_remaining
    view["is_active"] = view.get("status") == SubscriptionStatus.ACTIVE.value
    view["is_paid"] = plan.is_paid
    return view


class SubscriptionService:
    """Service owning the subscription embedded in each tenant document."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the subscription manager.

        Args:
            store: Document store. Defaults to the shared store.
            settings: Application settings.
            clock: Source of the current time.
        """
        self.store = store or get_document_store()
        self.settings = settings or get_settings()
        self.clock = clock

    async def get_tenant(self, tenant_user_id: str) -> Tenant | None:
        """Get a tenant by user id."""
        return self.store.get(TENANTS_TABLE, "tenant_user_id", tenant_user_id)

    async def find_tenant_by_email(self, email: str) -> Tenant | None:
        """Get the first tenant registered with an email."""
        return self.store.find_one(TENANTS_TABLE, {"email": email})

    async def _resolve_or_create_tenant(self, tenant_user_id: str, tenant_email: str | None) -> Tenant:
        """Find the tenant by id, then by email, creating a minimal one last.

        Payments can arrive before the tenant account was provisioned, so a
        missing tenant is created rather than treated as an error.
        """
        tenant = await self.get_tenant(tenant_user_id)
        if tenant:
            return tenant

        if tenant_email:
            tenant = await self.find_tenant_by_email(tenant_email)
            if tenant:
                logger.info(
                    "Tenant %s not found by id, matched %s by email",
                    tenant_user_id,
                    tenant["tenant_user_id"],
                )
                return tenant

        now = self.clock().isoformat()
        minimal: Tenant = {
            "tenant_user_id": tenant_user_id,
            "email": tenant_email or "",
            "application_tag": self.settings.application_tag,
            "created_at": now,
            "last_updated": now,
        }
        if self.store.create_if_absent(TENANTS_TABLE, dict(minimal)):
            logger.info("Created minimal tenant document for %s", tenant_user_id)
            return minimal

        # Another request created it between our read and insert
        return await self.get_tenant(tenant_user_id) or minimal

    async def reconcile(
        self,
        tenant_user_id: str,
        tenant_email: str | None,
        plan_id: str,
        payment_id: str | None = None,
        paid_at: str | None = None,
        replay: bool = False,
    ) -> Subscription:
        """Activate a plan for a tenant.

        The subscription is replaced wholesale and the window always starts
        now. When the stored subscription was already activated by the same
        payment it is returned unchanged, so redelivered confirmations do not
        shift the window. A replayed payment is also skipped once a payment
        confirmed at or after it has been applied.

        Args:
            tenant_user_id: Tenant account user id.
            tenant_email: Tenant email used as a lookup fallback.
            plan_id: Plan to activate.
            payment_id: Payment that paid for the plan, if any.
            paid_at: When the payment was first confirmed.
            replay: True if the payment was already recorded before this call.

        Returns:
            Subscription: The tenant's subscription after reconciliation.

        Raises:
            ValueError: If tenant_user_id is empty.
        """
        if not tenant_user_id:
            raise ValueError("tenant_user_id is required for subscription update")

        tenant = await self._resolve_or_create_tenant(tenant_user_id, tenant_email)
        current = tenant.get("subscription") or {}
        if payment_id and current.get("payment_id") == payment_id and current.get("plan_id") == plan_id:
            logger.info("Subscription for %s already reflects payment %s", tenant["tenant_user_id"], payment_id)
            return current

        if replay and payment_id and is_superseded(current, payment_id, paid_at):
            logger.info(
                "Skipping replayed payment %s for %s, superseded by payment %s",
                payment_id,
                tenant["tenant_user_id"],
                current["payment_id"],
            )
            return current

        if not is_known_plan(plan_id):
            logger.warning("Unknown plan %s for %s, applying default plan details", plan_id, tenant["tenant_user_id"])

        now = self.clock()
        subscription = build_subscription(plan_id, now, self.settings.application_tag, payment_id, paid_at)
        self.store.merge_update(
            TENANTS_TABLE,
            "tenant_user_id",
            tenant["tenant_user_id"],
            {"subscription": subscription, "last_updated": now.isoformat()},
        )
        logger.info(
            "Subscription for %s set to %s until %s",
            tenant["tenant_user_id"],
            plan_id,
            subscription["end_date"] or "never",
        )
        return subscription

    async def get_current_plan(self, tenant_user_id: str) -> Subscription:
        """Return the stored subscription or the default free one.

        Raises:
            NotFoundError: If the tenant does not exist.
        """
        tenant = await self.get_tenant(tenant_user_id)
        if not tenant:
            raise NotFoundError("User not found")
        return tenant.get("subscription") or default_subscription(self.clock(), self.settings.application_tag)

    async def get_subscription_status(self, tenant_user_id: str) -> dict[str, Any]:
        """Return the subscription with lazily derived expiry fields.

        Raises:
            NotFoundError: If the tenant does not exist.
        """
        subscription = await self.get_current_plan(tenant_user_id)
        return evaluate_subscription(subscription, self.clock())

    async def create_tenant(
        self,
        tenant_user_id: str,
        email: str | None = None,
        phone: str | None = None,
        role: str | None = None,
        plan_id: str = FREE_PLAN_ID,
        restaurant_info: dict[str, Any] | None = None,
    ) -> tuple[Tenant, bool]:
        """Create a billing tenant with a default subscription.

        Existing tenants are returned unchanged.

        Returns:
            tuple: (tenant, created)

        Raises:
            AuthorizationError: If the role may not hold a billing account.
        """
        if role not in BILLING_ROLES:
            raise AuthorizationError("Only owners and admins can access billing")

        existing = await self.get_tenant(tenant_user_id)
        if existing:
            logger.info("Tenant %s already exists", tenant_user_id)
            return existing, False

        now = self.clock()
        tenant: Tenant = {
            "tenant_user_id": tenant_user_id,
            "email": email or "",
            "phone": phone or "",
            "role": role,
            "restaurant_info": restaurant_info or {},
            "application_tag": self.settings.application_tag,
            "subscription": build_subscription(plan_id, now, self.settings.application_tag),
            "created_at": now.isoformat(),
            "last_updated": now.isoformat(),
        }
        if not self.store.create_if_absent(TENANTS_TABLE, dict(tenant)):
            return await self.get_tenant(tenant_user_id) or tenant, False

        logger.info("Billing tenant %s created on plan %s", tenant_user_id, plan_id)
        return tenant, True

    async def get_billing_summary(self, email: str) -> dict[str, Any]:
        """Summarize billing state for the tenant registered with an email.

        Raises:
            NotFoundError: If no tenant uses this email.
        """
        tenant = await self.find_tenant_by_email(email)
        if not tenant:
            raise NotFoundError("User not found")

        subscription = tenant.get("subscription") or {}
        return {
            "current_plan": subscription.get("plan_id") or FREE_PLAN_ID,
            "plan_name": subscription.get("plan_name") or PLAN_CATALOG[FREE_PLAN_ID].name,
            "status": subscription.get("status") or SubscriptionStatus.ACTIVE.value,
            "next_billing_date": subscription.get("end_date"),
            "last_payment_date": subscription.get("start_date"),
            "features": subscription.get("features") or PLAN_CATALOG[FREE_PLAN_ID].feature_map(),
            "last_updated": subscription.get("last_updated") or self.clock().isoformat(),
        }
