from __future__ import annotations

import pytest

from taskmarket.app.entitlements import (
    DEFAULT_PROVIDER_PLAN,
    PlanKey,
    get_plan_definition,
    list_plans,
)
from taskmarket.app.errors import NotFound


def test_catalog_lists_plans_cheapest_first():
    plans = list_plans()

    assert [plan.key for plan in plans] == [PlanKey.FREE, PlanKey.PRO, PlanKey.PREMIUM]
    assert [plan.price_monthly for plan in plans] == sorted(plan.price_monthly for plan in plans)


def test_free_plan_caps_offers_and_disables_messaging():
    plan = get_plan_definition(PlanKey.FREE)

    assert plan.weekly_offer_cap == 3
    assert plan.messaging_enabled is False
    assert DEFAULT_PROVIDER_PLAN == PlanKey.FREE


def test_paid_plans_are_unlimited():
    pro = get_plan_definition(PlanKey.PRO)
    premium = get_plan_definition(PlanKey.PREMIUM)

    assert pro.weekly_offer_cap is None
    assert pro.bundle.unlimited_offers
    assert pro.messaging_enabled is False
    assert premium.weekly_offer_cap is None
    assert premium.messaging_enabled is True


def test_lookup_accepts_raw_plan_ids():
    assert get_plan_definition("PREMIUM").key == PlanKey.PREMIUM


def test_unknown_plan_raises_not_found():
    with pytest.raises(NotFound) as exc:
        get_plan_definition("ENTERPRISE")

    assert exc.value.code == "not_found"
    assert exc.value.payload["plan"] == "ENTERPRISE"


def test_feature_flags_flatten_bundle():
    flags = get_plan_definition(PlanKey.FREE).bundle.to_flags()

    assert flags == {"offers.weekly_cap": 3, "messaging.enabled": False}
