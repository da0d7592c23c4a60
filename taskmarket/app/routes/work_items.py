"""API routes for posting and browsing work items."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..engagements import BudgetType, Category, WorkItemFilter, WorkItemStatus
from ..schemas.offers import OfferList, OfferOut
from ..schemas.work_items import WorkItemCreateRequest, WorkItemList, WorkItemOut, WorkItemStatusUpdate
from ..services import marketplace as marketplace_service
from .dependencies import domain_errors, get_current_actor

router = APIRouter(prefix="/api/work-items", tags=["work-items"])


@router.get("", response_model=WorkItemList)
def list_work_items(
    *,
    status: Optional[WorkItemStatus] = Query(default=None),
    mine: bool = Query(default=False),
    category: Optional[Category] = Query(default=None),
    budget_type: Optional[BudgetType] = Query(default=None, alias="budgetType"),
    q: Optional[str] = Query(default=None, max_length=100),
    current_actor=Depends(get_current_actor),
) -> WorkItemList:
    market = marketplace_service.get_marketplace()
    if status is None and not mine:
        status = WorkItemStatus.PUBLISHED
    criteria = WorkItemFilter(
        status=status,
        owner_id=current_actor.id if mine else None,
        category=category,
        budget_type=budget_type,
        query=q,
    )
    items = market.store.list_work_items(criteria)
    return WorkItemList(items=[WorkItemOut.from_domain(item) for item in items])


@router.post("", response_model=WorkItemOut, status_code=201)
def create_work_item(
    payload: WorkItemCreateRequest,
    *,
    current_actor=Depends(get_current_actor),
) -> WorkItemOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        item = market.store.create_work_item(current_actor.id, payload.to_draft_data())
        market.persist()
    return WorkItemOut.from_domain(item)


@router.get("/{work_item_id}", response_model=WorkItemOut)
def get_work_item(
    work_item_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> WorkItemOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        item = market.store.get_work_item(work_item_id)
    return WorkItemOut.from_domain(item)


@router.patch("/{work_item_id}/status", response_model=WorkItemOut)
def update_work_item_status(
    work_item_id: str,
    payload: WorkItemStatusUpdate,
    *,
    current_actor=Depends(get_current_actor),
) -> WorkItemOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        item = market.store.set_work_item_status(work_item_id, payload.status, current_actor.id)
        market.persist()
    return WorkItemOut.from_domain(item)


@router.get("/{work_item_id}/offers", response_model=OfferList)
def list_work_item_offers(
    work_item_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> OfferList:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        item = market.store.get_work_item(work_item_id)
        offers = market.store.list_offers_for_work_item(item.id)
    if not (current_actor.is_admin or current_actor.id == item.owner_id):
        offers = [offer for offer in offers if offer.provider_id == current_actor.id]
    return OfferList(offers=[OfferOut.from_domain(offer) for offer in offers])
