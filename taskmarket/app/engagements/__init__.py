"""Work items, offers, bindings, and the store that owns their lifecycle."""

from .models import (
    Binding,
    BindingStatus,
    BudgetType,
    Category,
    ChannelMessage,
    Offer,
    OfferStatus,
    OfferTerms,
    StoreSnapshot,
    WorkItem,
    WorkItemDraft,
    WorkItemFilter,
    WorkItemStatus,
)
from .state_machine import (
    BINDING_TRANSITIONS,
    OFFER_TRANSITIONS,
    WORK_ITEM_TRANSITIONS,
    ensure_transition,
    is_terminal,
)
from .store import STORE_KEY, EngagementStore

__all__ = [
    "Binding",
    "BindingStatus",
    "BudgetType",
    "Category",
    "ChannelMessage",
    "Offer",
    "OfferStatus",
    "OfferTerms",
    "StoreSnapshot",
    "WorkItem",
    "WorkItemDraft",
    "WorkItemFilter",
    "WorkItemStatus",
    "BINDING_TRANSITIONS",
    "OFFER_TRANSITIONS",
    "WORK_ITEM_TRANSITIONS",
    "ensure_transition",
    "is_terminal",
    "STORE_KEY",
    "EngagementStore",
]
