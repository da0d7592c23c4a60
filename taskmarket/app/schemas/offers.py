"""API schemas for offer endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..engagements import Offer, OfferStatus
from ..entitlements import EntitlementPayload


class OfferCreateRequest(BaseModel):
    work_item_id: str = Field(alias="workItemId")
    price_text: str = Field(alias="priceText")
    eta_text: str = Field(alias="etaText")
    message: str
    portfolio_links: List[str] = Field(alias="portfolioLinks", default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def to_terms_data(self) -> dict:
        return {
            "price_text": self.price_text,
            "eta_text": self.eta_text,
            "message": self.message,
            "portfolio_links": tuple(self.portfolio_links),
        }


class OfferOut(BaseModel):
    id: str
    work_item_id: str = Field(alias="workItemId")
    provider_id: str = Field(alias="providerId")
    price_text: str = Field(alias="priceText")
    eta_text: str = Field(alias="etaText")
    message: str
    portfolio_links: List[str] = Field(alias="portfolioLinks")
    status: OfferStatus
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, offer: Offer) -> "OfferOut":
        return cls(
            id=offer.id,
            work_item_id=offer.work_item_id,
            provider_id=offer.provider_id,
            price_text=offer.terms.price_text,
            eta_text=offer.terms.eta_text,
            message=offer.terms.message,
            portfolio_links=list(offer.terms.portfolio_links),
            status=offer.status,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
        )


class OfferList(BaseModel):
    offers: List[OfferOut]


class OfferSubmitResponse(BaseModel):
    offer: OfferOut
    remaining_offers: Optional[int] = Field(alias="remainingOffers", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_domain(cls, offer: Offer, entitlement: EntitlementPayload) -> "OfferSubmitResponse":
        return cls(offer=OfferOut.from_domain(offer), remaining_offers=entitlement.remaining_offers)
