"""Static plan catalog: billing cycles and entitlement feature maps."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

UNLIMITED = "unlimited"

FREE_PLAN_ID = "free"
DEFAULT_PLAN_ID = "starter"


class BillingCycle(str, Enum):
    """Length of one paid period."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    NON_EXPIRING = "non_expiring"

    @property
    def months(self) -> int | None:
        """Number of calendar months in the cycle, None if it never expires."""
        return _CYCLE_MONTHS[self]


_CYCLE_MONTHS: dict[BillingCycle, int | None] = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.YEARLY: 12,
    BillingCycle.NON_EXPIRING: None,
}


@dataclass(frozen=True)
class Plan:
    """A purchasable plan tier."""

    plan_id: str
    name: str
    billing_cycle: BillingCycle
    features: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.plan_id != FREE_PLAN_ID

    def feature_map(self) -> dict[str, Any]:
        """Return a mutable copy of the entitlement map for persisting."""
        return dict(self.features)


FREE_FEATURES = MappingProxyType({
    "max_products": 100,
    "max_transactions": 500,
    "inventory_tracking": True,
    "multi_store": False,
    "advanced_reports": False,
    "priority_support": False,
    "backup_enabled": False,
    "staff_accounts": 1,
})

STARTER_FEATURES = MappingProxyType({
    "max_products": 50,
    "max_locations": 1,
    "max_transactions": UNLIMITED,
    "inventory_tracking": True,
    "multi_store": False,
    "advanced_reports": False,
    "priority_support": False,
    "backup_enabled": False,
    "staff_accounts": 1,
    "table_management": 20,
})

BASIC_FEATURES = MappingProxyType({
    "max_products": 1000,
    "max_transactions": 5000,
    "inventory_tracking": True,
    "multi_store": False,
    "advanced_reports": False,
    "priority_support": False,
    "backup_enabled": True,
    "staff_accounts": 3,
})

PRO_FEATURES = MappingProxyType({
    "max_products": 10000,
    "max_transactions": UNLIMITED,
    "inventory_tracking": True,
    "multi_store": True,
    "advanced_reports": True,
    "priority_support": True,
    "backup_enabled": True,
    "staff_accounts": 10,
})

PROFESSIONAL_FEATURES = MappingProxyType({
    "max_products": UNLIMITED,
    "max_locations": 3,
    "max_transactions": UNLIMITED,
    "inventory_tracking": True,
    "multi_store": True,
    "advanced_reports": True,
    "priority_support": True,
    "backup_enabled": True,
    "staff_accounts": 10,
    "custom_branding": True,
})

ENTERPRISE_FEATURES = MappingProxyType({
    "max_products": UNLIMITED,
    "max_locations": UNLIMITED,
    "max_transactions": UNLIMITED,
    "inventory_tracking": True,
    "multi_store": True,
    "advanced_reports": True,
    "priority_support": True,
    "backup_enabled": True,
    "staff_accounts": UNLIMITED,
    "api_access": True,
    "custom_integrations": True,
})


PLAN_CATALOG: Mapping[str, Plan] = MappingProxyType({
    plan.plan_id: plan
    for plan in (
        Plan(FREE_PLAN_ID, "Free Plan", BillingCycle.NON_EXPIRING, FREE_FEATURES),
        Plan("starter", "Starter", BillingCycle.MONTHLY, STARTER_FEATURES),
        Plan("basic", "Basic Plan", BillingCycle.MONTHLY, BASIC_FEATURES),
        Plan("pro", "Pro Plan", BillingCycle.MONTHLY, PRO_FEATURES),
        Plan("professional", "Professional", BillingCycle.MONTHLY, PROFESSIONAL_FEATURES),
        Plan("enterprise", "Enterprise", BillingCycle.MONTHLY, ENTERPRISE_FEATURES),
        # Billing-period aliases sold with Pro entitlements
        Plan("monthly", "Monthly Plan", BillingCycle.MONTHLY, PRO_FEATURES),
        Plan("quarterly", "Quarterly Plan", BillingCycle.QUARTERLY, PRO_FEATURES),
        Plan("yearly", "Annual Plan", BillingCycle.YEARLY, PRO_FEATURES),
    )
})


def get_plan(plan_id: str | None) -> Plan:
    """Look up a plan, falling back to the default tier for unknown ids."""
    if plan_id and plan_id in PLAN_CATALOG:
        return PLAN_CATALOG[plan_id]
    return PLAN_CATALOG[DEFAULT_PLAN_ID]


def is_known_plan(plan_id: str | None) -> bool:
    return bool(plan_id) and plan_id in PLAN_CATALOG
