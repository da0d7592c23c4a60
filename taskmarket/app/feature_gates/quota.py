"""Weekly offer quota evaluation utilities for feature gating."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..entitlements import SubscriptionRecord, WeeklyUsage, effective_plan
from ..entitlements.resolver import can_submit_offer, remaining_offers
from ..errors import QuotaExceeded


@dataclass(frozen=True)
class OfferQuotaEvaluation:
    """Represents the outcome of a weekly offer quota check."""

    plan: Optional[str]
    weekly_cap: Optional[int]
    used: int
    remaining: Optional[int]
    week_start: Optional[date]
    allowed: bool

    def to_dict(self) -> dict[str, object]:
        """Serialize the evaluation for logging or telemetry."""

        return {
            "plan": self.plan,
            "weekly_cap": self.weekly_cap,
            "used": self.used,
            "remaining": self.remaining,
            "week_start": self.week_start.isoformat() if self.week_start else None,
            "allowed": self.allowed,
        }


def evaluate_offer_quota(
    subscription: Optional[SubscriptionRecord],
    usage: Optional[WeeklyUsage],
    *,
    now: Optional[datetime] = None,
) -> OfferQuotaEvaluation:
    """Determine whether an offer submission is permitted under the plan cap."""

    plan = effective_plan(subscription, now)
    return OfferQuotaEvaluation(
        plan=plan.key.value if plan else None,
        weekly_cap=plan.weekly_offer_cap if plan else None,
        used=usage.count if usage else 0,
        remaining=remaining_offers(subscription, usage, now=now),
        week_start=usage.week_start if usage else None,
        allowed=can_submit_offer(subscription, usage, now=now),
    )


def assert_offer_quota(
    subscription: Optional[SubscriptionRecord],
    usage: Optional[WeeklyUsage],
    *,
    now: Optional[datetime] = None,
) -> OfferQuotaEvaluation:
    """Raise when another offer this week would exceed the plan cap."""

    evaluation = evaluate_offer_quota(subscription, usage, now=now)
    if not evaluation.allowed:
        raise QuotaExceeded(
            "Weekly offer limit reached. Upgrade your plan to send more offers.",
            detail={
                "plan": evaluation.plan,
                "weekly_cap": evaluation.weekly_cap,
                "used": evaluation.used,
                "upgrade_path": "/api/subscription",
            },
        )
    return evaluation
