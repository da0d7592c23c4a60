"""Feature gating utilities coordinating entitlement enforcement."""
from .enforcement import require_messaging
from .quota import OfferQuotaEvaluation, assert_offer_quota, evaluate_offer_quota

__all__ = [
    "OfferQuotaEvaluation",
    "assert_offer_quota",
    "evaluate_offer_quota",
    "require_messaging",
]
