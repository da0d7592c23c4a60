"""Entitlements domain models and services."""

from .catalog import (
    DEFAULT_PROVIDER_PLAN,
    PLAN_CATALOG,
    PlanDefinition,
    get_plan_definition,
    list_plans,
)
from .models import (
    Actor,
    ActorRole,
    EntitlementPayload,
    FeatureBundle,
    PlanKey,
    SubscriptionRecord,
    SubscriptionStatus,
    WeeklyUsage,
)
from .resolver import (
    can_submit_offer,
    effective_plan,
    has_messaging_capability,
    remaining_offers,
)
from .service import EntitlementService
from .session import EntitlementSession, SessionManager, start_of_iso_week

__all__ = [
    "DEFAULT_PROVIDER_PLAN",
    "PLAN_CATALOG",
    "PlanDefinition",
    "get_plan_definition",
    "list_plans",
    "Actor",
    "ActorRole",
    "EntitlementPayload",
    "FeatureBundle",
    "PlanKey",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "WeeklyUsage",
    "can_submit_offer",
    "effective_plan",
    "has_messaging_capability",
    "remaining_offers",
    "EntitlementService",
    "EntitlementSession",
    "SessionManager",
    "start_of_iso_week",
]
