"""API schemas for entitlement, plan, and subscription endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..entitlements import EntitlementPayload, PlanDefinition, PlanKey, SubscriptionRecord, SubscriptionStatus


class EntitlementResponse(BaseModel):
    actor_id: str = Field(alias="actorId")
    plan_id: Optional[PlanKey] = Field(alias="planId", default=None)
    remaining_offers: Optional[int] = Field(alias="remainingOffers", default=None)
    has_messaging: bool = Field(alias="hasMessaging")
    feature_flags: Dict[str, Union[int, bool, None]] = Field(alias="featureFlags", default_factory=dict)
    week_start: Optional[date] = Field(alias="weekStart", default=None)
    generated_at: datetime = Field(alias="generatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_payload(cls, payload: EntitlementPayload) -> "EntitlementResponse":
        return cls(
            actor_id=payload.actor_id,
            plan_id=payload.plan,
            remaining_offers=payload.remaining_offers,
            has_messaging=payload.has_messaging,
            feature_flags=dict(payload.feature_flags),
            week_start=payload.week_start,
            generated_at=payload.generated_at,
        )


class PlanOut(BaseModel):
    id: PlanKey
    display_name: str = Field(alias="displayName")
    price_monthly: int = Field(alias="priceMonthly")
    currency: str
    weekly_offer_cap: Optional[int] = Field(alias="weeklyOfferCap", default=None)
    messaging_enabled: bool = Field(alias="messagingEnabled")
    features: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_definition(cls, plan: PlanDefinition) -> "PlanOut":
        return cls(
            id=plan.key,
            display_name=plan.display_name,
            price_monthly=plan.price_monthly,
            currency=plan.currency,
            weekly_offer_cap=plan.weekly_offer_cap,
            messaging_enabled=plan.messaging_enabled,
            features=list(plan.features),
        )


class PlanList(BaseModel):
    plans: List[PlanOut]


class SubscriptionOut(BaseModel):
    id: str
    actor_id: str = Field(alias="actorId")
    plan_id: PlanKey = Field(alias="planId")
    status: SubscriptionStatus
    starts_at: datetime = Field(alias="startsAt")
    ends_at: Optional[datetime] = Field(alias="endsAt", default=None)
    plan: Optional[PlanOut] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(
        cls,
        subscription: SubscriptionRecord,
        plan: Optional[PlanDefinition] = None,
    ) -> "SubscriptionOut":
        return cls(
            id=subscription.id,
            actor_id=subscription.actor_id,
            plan_id=subscription.plan_key,
            status=subscription.status,
            starts_at=subscription.starts_at,
            ends_at=subscription.ends_at,
            plan=PlanOut.from_definition(plan) if plan else None,
        )


class SubscriptionChangeRequest(BaseModel):
    plan_id: PlanKey = Field(alias="planId")

    model_config = ConfigDict(populate_by_name=True)
