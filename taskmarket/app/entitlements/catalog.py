"""Static catalog definitions for subscription plans."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..errors import NotFound
from .models import FeatureBundle, PlanKey


@dataclass(frozen=True)
class PlanDefinition:
    """Describes a subscription plan and its capability grants."""

    key: PlanKey
    display_name: str
    price_monthly: int
    currency: str
    bundle: FeatureBundle
    features: Tuple[str, ...] = ()

    @property
    def weekly_offer_cap(self) -> Optional[int]:
        return self.bundle.weekly_offer_cap

    @property
    def messaging_enabled(self) -> bool:
        return self.bundle.messaging_enabled


FREE_BUNDLE = FeatureBundle(weekly_offer_cap=3, messaging_enabled=False)

PRO_BUNDLE = FeatureBundle(weekly_offer_cap=None, messaging_enabled=False)

PREMIUM_BUNDLE = FeatureBundle(weekly_offer_cap=None, messaging_enabled=True)

# Insertion order is the display order, cheapest first.
PLAN_CATALOG: Dict[PlanKey, PlanDefinition] = {
    PlanKey.FREE: PlanDefinition(
        key=PlanKey.FREE,
        display_name="Free",
        price_monthly=0,
        currency="RUB",
        bundle=FREE_BUNDLE,
        features=("3 offers per week", "Basic profile", "Work item search"),
    ),
    PlanKey.PRO: PlanDefinition(
        key=PlanKey.PRO,
        display_name="Pro",
        price_monthly=990,
        currency="RUB",
        bundle=PRO_BUNDLE,
        features=("Unlimited offers", "Priority in search", "Verified badge"),
    ),
    PlanKey.PREMIUM: PlanDefinition(
        key=PlanKey.PREMIUM,
        display_name="Premium",
        price_monthly=1990,
        currency="RUB",
        bundle=PREMIUM_BUNDLE,
        features=("Everything in Pro", "Chat with requesters", "Priority support"),
    ),
}

DEFAULT_PROVIDER_PLAN = PlanKey.FREE


def get_plan_definition(plan_key: PlanKey) -> PlanDefinition:
    """Return a plan definition, raising if unsupported."""

    try:
        return PLAN_CATALOG[PlanKey(plan_key)]
    except (KeyError, ValueError) as exc:
        raise NotFound(f"Unknown plan key: {plan_key}", detail={"plan": str(plan_key)}) from exc


def list_plans() -> Tuple[PlanDefinition, ...]:
    return tuple(PLAN_CATALOG.values())
