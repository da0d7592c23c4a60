"""API routes for provider offers and requester decisions."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas.bindings import BindingOut
from ..schemas.offers import OfferCreateRequest, OfferList, OfferOut, OfferSubmitResponse
from ..services import marketplace as marketplace_service
from .dependencies import domain_errors, get_current_actor

router = APIRouter(prefix="/api/offers", tags=["offers"])


@router.post("", response_model=OfferSubmitResponse, status_code=201)
def submit_offer(
    payload: OfferCreateRequest,
    *,
    current_actor=Depends(get_current_actor),
) -> OfferSubmitResponse:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        offer = market.store.submit_offer(payload.work_item_id, current_actor.id, payload.to_terms_data())
        market.persist()
        entitlement = market.entitlements.get_entitlement(current_actor.id)
    return OfferSubmitResponse.from_domain(offer, entitlement)


@router.get("/mine", response_model=OfferList)
def list_my_offers(*, current_actor=Depends(get_current_actor)) -> OfferList:
    market = marketplace_service.get_marketplace()
    offers = market.store.list_offers_for_provider(current_actor.id)
    return OfferList(offers=[OfferOut.from_domain(offer) for offer in offers])


@router.get("/{offer_id}", response_model=OfferOut)
def get_offer(
    offer_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> OfferOut:
    """Return an offer; the owning requester opening it marks it viewed."""

    market = marketplace_service.get_marketplace()
    with domain_errors():
        offer = market.store.get_offer(offer_id)
        if offer.provider_id == current_actor.id:
            return OfferOut.from_domain(offer)
        viewed = market.store.view_offer(offer.id, current_actor.id)
        if viewed is not offer:
            market.persist()
    return OfferOut.from_domain(viewed)


@router.post("/{offer_id}/accept", response_model=BindingOut, status_code=201)
def accept_offer(
    offer_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> BindingOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        binding = market.store.accept_offer(offer_id, current_actor.id)
        market.persist()
    return BindingOut.from_domain(binding)


@router.post("/{offer_id}/reject", response_model=OfferOut)
def reject_offer(
    offer_id: str,
    *,
    current_actor=Depends(get_current_actor),
) -> OfferOut:
    market = marketplace_service.get_marketplace()
    with domain_errors():
        offer = market.store.reject_offer(offer_id, current_actor.id)
        market.persist()
    return OfferOut.from_domain(offer)
