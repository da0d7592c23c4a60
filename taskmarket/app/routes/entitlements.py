"""API routes exposing entitlements, the plan catalog, and subscriptions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..entitlements import list_plans as list_catalog_plans
from ..schemas.entitlements import (
    EntitlementResponse,
    PlanList,
    PlanOut,
    SubscriptionChangeRequest,
    SubscriptionOut,
)
from ..services import marketplace as marketplace_service
from .dependencies import domain_errors, get_current_actor

router = APIRouter(prefix="/api", tags=["entitlements"])


@router.get("/entitlements/me", response_model=EntitlementResponse)
def get_my_entitlements(*, current_actor=Depends(get_current_actor)) -> EntitlementResponse:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        payload = market.entitlements.get_entitlement(current_actor.id)
    return EntitlementResponse.from_payload(payload)


@router.get("/plans", response_model=PlanList)
def list_plans() -> PlanList:
    return PlanList(plans=[PlanOut.from_definition(plan) for plan in list_catalog_plans()])


@router.get("/subscription", response_model=SubscriptionOut)
def get_subscription(*, current_actor=Depends(get_current_actor)) -> SubscriptionOut:
    market = marketplace_service.get_marketplace()
    subscription = market.sessions.get_subscription(current_actor.id)
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No subscription for this actor")
    with domain_errors():
        plan = market.entitlements.describe_plan(current_actor.id)
    return SubscriptionOut.from_record(subscription, plan)


@router.put("/subscription", response_model=SubscriptionOut)
def change_subscription(
    payload: SubscriptionChangeRequest,
    *,
    current_actor=Depends(get_current_actor),
) -> SubscriptionOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        subscription = market.sessions.change_plan(current_actor.id, payload.plan_id)
        market.persist()
        plan = market.entitlements.describe_plan(current_actor.id)
    return SubscriptionOut.from_record(subscription, plan)
