"""Unit tests for the static plan catalog."""

import pytest

from src.models.plan import (
    DEFAULT_PLAN_ID,
    FREE_PLAN_ID,
    PLAN_CATALOG,
    UNLIMITED,
    BillingCycle,
    get_plan,
    is_known_plan,
)


class TestPlanCatalog:
    """Tests for PLAN_CATALOG and lookups."""

    def test_free_plan_never_expires(self) -> None:
        """Test the free tier has no billing cycle length."""
        plan = PLAN_CATALOG[FREE_PLAN_ID]
        assert plan.billing_cycle == BillingCycle.NON_EXPIRING
        assert plan.billing_cycle.months is None
        assert plan.is_paid is False

    @pytest.mark.parametrize(
        ("plan_id", "months"),
        [("monthly", 1), ("quarterly", 3), ("yearly", 12), ("pro", 1), ("starter", 1)],
    )
    def test_billing_cycle_lengths(self, plan_id: str, months: int) -> None:
        """Test each paid plan maps to its cycle length in months."""
        assert PLAN_CATALOG[plan_id].billing_cycle.months == months

    def test_period_aliases_carry_pro_features(self) -> None:
        """Test monthly/quarterly/yearly sell Pro entitlements."""
        pro = PLAN_CATALOG["pro"].feature_map()
        for alias in ("monthly", "quarterly", "yearly"):
            assert PLAN_CATALOG[alias].feature_map() == pro

    def test_enterprise_is_unlimited(self) -> None:
        """Test enterprise has unlimited products, locations and staff."""
        features = PLAN_CATALOG["enterprise"].features
        assert features["max_products"] == UNLIMITED
        assert features["max_locations"] == UNLIMITED
        assert features["staff_accounts"] == UNLIMITED
        assert features["api_access"] is True

    def test_unknown_plan_falls_back_to_default(self) -> None:
        """Test unknown ids resolve to the starter tier."""
        assert get_plan("platinum").plan_id == DEFAULT_PLAN_ID
        assert get_plan(None).plan_id == DEFAULT_PLAN_ID
        assert is_known_plan("platinum") is False
        assert is_known_plan("pro") is True

    def test_feature_map_is_a_copy(self) -> None:
        """Test mutating a persisted feature map cannot change the catalog."""
        features = PLAN_CATALOG["pro"].feature_map()
        features["staff_accounts"] = 999
        assert PLAN_CATALOG["pro"].features["staff_accounts"] == 10

    def test_catalog_is_read_only(self) -> None:
        """Test the catalog cannot be modified at runtime."""
        with pytest.raises(TypeError):
            PLAN_CATALOG["gold"] = PLAN_CATALOG["pro"]  # type: ignore[index]
