"""Allowed lifecycle transitions for work items, offers, and bindings."""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Mapping, TypeVar

from ..errors import InvalidTransition
from .models import BindingStatus, OfferStatus, WorkItemStatus

StatusT = TypeVar("StatusT", bound=Enum)

WORK_ITEM_TRANSITIONS: Dict[WorkItemStatus, FrozenSet[WorkItemStatus]] = {
    WorkItemStatus.DRAFT: frozenset({WorkItemStatus.PUBLISHED, WorkItemStatus.CLOSED}),
    WorkItemStatus.PUBLISHED: frozenset({WorkItemStatus.PAUSED, WorkItemStatus.CLOSED}),
    WorkItemStatus.PAUSED: frozenset({WorkItemStatus.PUBLISHED, WorkItemStatus.CLOSED}),
    WorkItemStatus.CLOSED: frozenset(),
}

OFFER_TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    OfferStatus.SENT: frozenset({OfferStatus.VIEWED, OfferStatus.ACCEPTED, OfferStatus.REJECTED}),
    OfferStatus.VIEWED: frozenset({OfferStatus.ACCEPTED, OfferStatus.REJECTED}),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.REJECTED: frozenset(),
}

BINDING_TRANSITIONS: Dict[BindingStatus, FrozenSet[BindingStatus]] = {
    BindingStatus.IN_PROGRESS: frozenset({BindingStatus.COMPLETED, BindingStatus.CANCELLED}),
    BindingStatus.COMPLETED: frozenset(),
    BindingStatus.CANCELLED: frozenset(),
}


def is_terminal(table: Mapping[StatusT, FrozenSet[StatusT]], status: StatusT) -> bool:
    return not table[status]


def ensure_transition(
    table: Mapping[StatusT, FrozenSet[StatusT]],
    current: StatusT,
    target: StatusT,
    *,
    entity: str,
    entity_id: str,
) -> None:
    """Raise :class:`InvalidTransition` unless ``current -> target`` is allowed."""

    if target in table[current]:
        return
    raise InvalidTransition(
        f"Cannot move {entity} from {current.value} to {target.value}",
        detail={
            "entity": entity,
            "id": entity_id,
            "from": current.value,
            "to": target.value,
        },
    )
