"""Pure quota and capability resolution from a subscription and usage record.

Nothing here mutates state or caches results: every gate is evaluated at the
moment of the action, so a plan change made mid-session applies to the very
next call.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from .catalog import DEFAULT_PROVIDER_PLAN, PlanDefinition, get_plan_definition
from .models import SubscriptionRecord, WeeklyUsage


def effective_plan(
    subscription: Optional[SubscriptionRecord],
    now: Optional[datetime] = None,
) -> Optional[PlanDefinition]:
    """Return the plan granted by ``subscription``.

    ``None`` means the actor holds no subscription at all (requesters). A
    subscription that lapsed or was cancelled falls back to the free tier.
    """

    if subscription is None:
        return None
    if now is not None:
        active = subscription.is_active_at(now)
    else:
        active = subscription.is_active
    if not active:
        return get_plan_definition(DEFAULT_PROVIDER_PLAN)
    return get_plan_definition(subscription.plan_key)


def _used(usage: Optional[WeeklyUsage]) -> int:
    return usage.count if usage is not None else 0


def can_submit_offer(
    subscription: Optional[SubscriptionRecord],
    usage: Optional[WeeklyUsage],
    *,
    now: Optional[datetime] = None,
) -> bool:
    plan = effective_plan(subscription, now)
    if plan is None or plan.weekly_offer_cap is None:
        return True
    return _used(usage) < plan.weekly_offer_cap


def remaining_offers(
    subscription: Optional[SubscriptionRecord],
    usage: Optional[WeeklyUsage],
    *,
    now: Optional[datetime] = None,
) -> Optional[int]:
    """Return offers left this week, or ``None`` when unlimited."""

    plan = effective_plan(subscription, now)
    if plan is None or plan.weekly_offer_cap is None:
        return None
    return max(0, plan.weekly_offer_cap - _used(usage))


def has_messaging_capability(
    subscription: Optional[SubscriptionRecord],
    *,
    now: Optional[datetime] = None,
) -> bool:
    plan = effective_plan(subscription, now)
    if plan is None:
        return False
    return plan.messaging_enabled
