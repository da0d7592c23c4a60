"""Authoritative collection of work items, offers, bindings, and messages."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from threading import Lock, RLock
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from ..entitlements import Actor, ActorRole, SessionManager
from ..errors import DuplicateOffer, Forbidden, InvalidState, NotFound, QuotaExceeded
from ..feature_gates import assert_offer_quota
from ..persistence import KeyValueStore
from .models import (
    Binding,
    BindingStatus,
    ChannelMessage,
    Offer,
    OfferStatus,
    OfferTerms,
    StoreSnapshot,
    WorkItem,
    WorkItemDraft,
    WorkItemFilter,
    WorkItemStatus,
    coerce_model,
)
from .state_machine import (
    BINDING_TRANSITIONS,
    OFFER_TRANSITIONS,
    WORK_ITEM_TRANSITIONS,
    ensure_transition,
    is_terminal,
)

logger = logging.getLogger("marketplace")

STORE_KEY = "engagement_store"


class EngagementStore:
    """Owns the engagement lifecycle and the invariants that span entities.

    Every mutation runs inside one re-entrant lock, which makes the store a
    single logical writer. Quota-consuming operations additionally take the
    provider's usage lock from :class:`SessionManager`; the lock order is
    always store first, actor second. Readers receive immutable models copied
    out under the same lock, so counters and collections always agree.
    """

    def __init__(
        self,
        sessions: SessionManager,
        *,
        id_factory: Optional[Callable[[str], str]] = None,
    ) -> None:
        self._sessions = sessions
        self._id_factory = id_factory or (lambda prefix: f"{prefix}-{uuid4().hex[:12]}")
        self._lock = RLock()
        self._save_lock = Lock()
        self._work_items: Dict[str, WorkItem] = {}
        self._offers: Dict[str, Offer] = {}
        self._offer_index: Dict[Tuple[str, str], str] = {}
        self._bindings: Dict[str, Binding] = {}
        self._messages: Dict[str, List[ChannelMessage]] = {}

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def now(self) -> datetime:
        return self._sessions.now()

    @contextmanager
    def transaction(self) -> Iterator["EngagementStore"]:
        with self._lock:
            yield self

    # -- work items -------------------------------------------------------

    def list_work_items(self, filter: Optional[WorkItemFilter] = None) -> List[WorkItem]:
        criteria = filter or WorkItemFilter()
        with self._lock:
            items = [item for item in self._work_items.values() if criteria.matches(item)]
        return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)

    def get_work_item(self, work_item_id: str) -> WorkItem:
        with self._lock:
            return self._require_work_item(work_item_id)

    def create_work_item(
        self,
        owner_id: str,
        draft: Union[WorkItemDraft, Mapping[str, Any]],
    ) -> WorkItem:
        draft = coerce_model(WorkItemDraft, draft)
        with self._lock:
            owner = self._sessions.get_actor(owner_id)
            if owner.role != ActorRole.REQUESTER:
                raise Forbidden(
                    "Only requesters can post work items",
                    detail={"actor_id": owner_id, "role": owner.role.value},
                )
            now = self.now()
            item = WorkItem(
                id=self._id_factory("work"),
                owner_id=owner.id,
                title=draft.title,
                description=draft.description,
                category=draft.category,
                skills=draft.skills,
                budget_type=draft.budget_type,
                budget_value=draft.budget_value,
                deadline=draft.deadline,
                status=WorkItemStatus.PUBLISHED if draft.publish else WorkItemStatus.DRAFT,
                application_count=0,
                created_at=now,
                updated_at=now,
            )
            self._work_items[item.id] = item
        logger.info("Work item %s created by %s status=%s", item.id, owner.id, item.status.value)
        return item

    def set_work_item_status(
        self,
        work_item_id: str,
        new_status: WorkItemStatus,
        actor_id: str,
    ) -> WorkItem:
        new_status = WorkItemStatus(new_status)
        with self._lock:
            item = self._require_work_item(work_item_id)
            self._require_owner(item, actor_id)
            ensure_transition(
                WORK_ITEM_TRANSITIONS,
                item.status,
                new_status,
                entity="work_item",
                entity_id=item.id,
            )
            updated = item.model_copy(update={"status": new_status, "updated_at": self.now()})
            self._work_items[item.id] = updated
        logger.info(
            "Work item %s status %s -> %s by %s",
            item.id,
            item.status.value,
            new_status.value,
            actor_id,
        )
        return updated

    # -- offers -----------------------------------------------------------

    def submit_offer(
        self,
        work_item_id: str,
        provider_id: str,
        terms: Union[OfferTerms, Mapping[str, Any]],
    ) -> Offer:
        """Create a SENT offer, consuming one unit of the provider's weekly quota.

        Checks run in a fixed order: quota, duplicate pair, work item status,
        then the writes (offer, work item counter, usage counter). A repeat
        submission for the same pair is reported as a duplicate whatever state
        the work item has moved on to. Any failure leaves every collection
        untouched.
        """

        terms = coerce_model(OfferTerms, terms)
        with self._lock:
            item = self._require_work_item(work_item_id)
            provider = self._sessions.get_actor(provider_id)
            if provider.role != ActorRole.PROVIDER:
                raise Forbidden(
                    "Only providers can submit offers",
                    detail={"actor_id": provider_id, "role": provider.role.value},
                )

            with self._sessions.actor_lock(provider.id):
                now = self.now()
                usage = self._sessions.resolve_current_week_usage(provider.id, now)
                subscription = self._sessions.get_subscription(provider.id)
                try:
                    assert_offer_quota(subscription, usage, now=now)
                except QuotaExceeded:
                    logger.warning(
                        "Offer quota exhausted for provider %s (used=%s week=%s)",
                        provider.id,
                        usage.count,
                        usage.week_start.isoformat(),
                    )
                    raise

                if (item.id, provider.id) in self._offer_index:
                    raise DuplicateOffer(
                        "You have already sent an offer for this work item",
                        detail={
                            "work_item_id": item.id,
                            "offer_id": self._offer_index[(item.id, provider.id)],
                        },
                    )
                if item.status != WorkItemStatus.PUBLISHED:
                    raise InvalidState(
                        "Work item is not accepting offers",
                        detail={"work_item_id": item.id, "status": item.status.value},
                    )

                offer = Offer(
                    id=self._id_factory("offer"),
                    work_item_id=item.id,
                    provider_id=provider.id,
                    terms=terms,
                    status=OfferStatus.SENT,
                    created_at=now,
                    updated_at=now,
                )
                self._offers[offer.id] = offer
                self._offer_index[(item.id, provider.id)] = offer.id
                self._work_items[item.id] = item.model_copy(
                    update={"application_count": item.application_count + 1, "updated_at": now}
                )
                usage = self._sessions.record_offer_submission(provider.id, now)

        logger.info(
            "Offer %s submitted by %s for work item %s (weekly usage=%s)",
            offer.id,
            provider.id,
            item.id,
            usage.count,
        )
        return offer

    def get_offer(self, offer_id: str) -> Offer:
        with self._lock:
            return self._require_offer(offer_id)

    def view_offer(self, offer_id: str, actor_id: str) -> Offer:
        """Mark a SENT offer as VIEWED when the owning requester opens it."""

        with self._lock:
            offer = self._require_offer(offer_id)
            item = self._require_work_item(offer.work_item_id)
            self._require_owner(item, actor_id)
            if offer.status != OfferStatus.SENT:
                return offer
            viewed = offer.model_copy(update={"status": OfferStatus.VIEWED, "updated_at": self.now()})
            self._offers[offer.id] = viewed
        return viewed

    def accept_offer(self, offer_id: str, actor_id: str) -> Binding:
        """Accept an offer, creating its binding and pausing the work item.

        The offer transition, binding creation, and work item pause are
        applied together or not at all.
        """

        with self._lock:
            offer = self._require_offer(offer_id)
            item = self._require_work_item(offer.work_item_id)
            self._require_owner(item, actor_id)
            ensure_transition(
                OFFER_TRANSITIONS,
                offer.status,
                OfferStatus.ACCEPTED,
                entity="offer",
                entity_id=offer.id,
            )
            accepted_sibling = next(
                (
                    other
                    for other in self._offers.values()
                    if other.work_item_id == item.id and other.status == OfferStatus.ACCEPTED
                ),
                None,
            )
            if accepted_sibling is not None:
                raise InvalidState(
                    "Another offer has already been accepted for this work item",
                    detail={"work_item_id": item.id, "accepted_offer_id": accepted_sibling.id},
                )
            if item.status not in (WorkItemStatus.PUBLISHED, WorkItemStatus.PAUSED):
                raise InvalidState(
                    "Offers can only be accepted on live work items",
                    detail={"work_item_id": item.id, "status": item.status.value},
                )
            open_binding = self._open_binding_for_offer(offer.id)
            if open_binding is not None:
                raise InvalidState(
                    "Offer already has an active binding",
                    detail={"offer_id": offer.id, "binding_id": open_binding.id},
                )

            now = self.now()
            binding = Binding(
                id=self._id_factory("binding"),
                work_item_id=item.id,
                requester_id=item.owner_id,
                provider_id=offer.provider_id,
                offer_id=offer.id,
                status=BindingStatus.IN_PROGRESS,
                created_at=now,
            )
            accepted = offer.model_copy(update={"status": OfferStatus.ACCEPTED, "updated_at": now})
            paused = item.model_copy(update={"status": WorkItemStatus.PAUSED, "updated_at": now})

            self._offers[accepted.id] = accepted
            self._bindings[binding.id] = binding
            self._work_items[paused.id] = paused

        logger.info(
            "Offer %s accepted by %s; binding %s created, work item %s paused",
            offer.id,
            actor_id,
            binding.id,
            item.id,
        )
        return binding

    def reject_offer(self, offer_id: str, actor_id: str) -> Offer:
        with self._lock:
            offer = self._require_offer(offer_id)
            item = self._require_work_item(offer.work_item_id)
            self._require_owner(item, actor_id)
            ensure_transition(
                OFFER_TRANSITIONS,
                offer.status,
                OfferStatus.REJECTED,
                entity="offer",
                entity_id=offer.id,
            )
            rejected = offer.model_copy(update={"status": OfferStatus.REJECTED, "updated_at": self.now()})
            self._offers[offer.id] = rejected
        logger.info("Offer %s rejected by %s", offer.id, actor_id)
        return rejected

    def list_offers_for_work_item(self, work_item_id: str) -> List[Offer]:
        with self._lock:
            self._require_work_item(work_item_id)
            offers = [offer for offer in self._offers.values() if offer.work_item_id == work_item_id]
        return sorted(offers, key=lambda offer: (offer.created_at, offer.id))

    def list_offers_for_provider(self, provider_id: str) -> List[Offer]:
        with self._lock:
            offers = [offer for offer in self._offers.values() if offer.provider_id == provider_id]
        return sorted(offers, key=lambda offer: (offer.created_at, offer.id), reverse=True)

    def has_offered(self, work_item_id: str, provider_id: str) -> bool:
        with self._lock:
            return (work_item_id, provider_id) in self._offer_index

    # -- bindings ---------------------------------------------------------

    def get_binding(self, binding_id: str) -> Binding:
        with self._lock:
            return self._require_binding(binding_id)

    def list_bindings_for_actor(self, actor_id: str) -> List[Binding]:
        with self._lock:
            bindings = [binding for binding in self._bindings.values() if binding.involves(actor_id)]
        return sorted(bindings, key=lambda binding: (binding.created_at, binding.id), reverse=True)

    def set_binding_status(
        self,
        binding_id: str,
        new_status: BindingStatus,
        actor_id: Optional[str] = None,
    ) -> Binding:
        new_status = BindingStatus(new_status)
        with self._lock:
            binding = self._require_binding(binding_id)
            if actor_id is not None:
                actor = self._sessions.get_actor(actor_id)
                if not actor.is_admin and not binding.involves(actor.id):
                    raise Forbidden(
                        "Only binding participants can change its status",
                        detail={"binding_id": binding.id, "actor_id": actor.id},
                    )
            ensure_transition(
                BINDING_TRANSITIONS,
                binding.status,
                new_status,
                entity="binding",
                entity_id=binding.id,
            )
            update: Dict[str, Any] = {"status": new_status}
            if new_status == BindingStatus.COMPLETED:
                update["completed_at"] = self.now()
            updated = binding.model_copy(update=update)
            self._bindings[binding.id] = updated
        logger.info(
            "Binding %s status %s -> %s by %s",
            binding.id,
            binding.status.value,
            new_status.value,
            actor_id or "host",
        )
        return updated

    # -- channel messages -------------------------------------------------

    def append_message(self, binding_id: str, sender_id: str, body: str) -> ChannelMessage:
        """Append a message with a timestamp strictly after the previous one.

        Callers are responsible for capability and participation checks.
        """

        with self._lock:
            binding = self._require_binding(binding_id)
            if binding.status != BindingStatus.IN_PROGRESS:
                raise InvalidState(
                    "Messages can only be sent while the binding is in progress",
                    detail={"binding_id": binding.id, "status": binding.status.value},
                )
            thread = self._messages.setdefault(binding.id, [])
            timestamp = self.now()
            if thread and timestamp <= thread[-1].created_at:
                timestamp = thread[-1].created_at + timedelta(microseconds=1)
            message = ChannelMessage(
                id=self._id_factory("msg"),
                binding_id=binding.id,
                sender_id=sender_id,
                body=body,
                created_at=timestamp,
            )
            thread.append(message)
        return message

    def messages_for(self, binding_id: str) -> List[ChannelMessage]:
        with self._lock:
            self._require_binding(binding_id)
            return list(self._messages.get(binding_id, ()))

    # -- snapshots & persistence -----------------------------------------

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                work_items=tuple(self._work_items.values()),
                offers=tuple(self._offers.values()),
                bindings=tuple(self._bindings.values()),
                messages=tuple(message for thread in self._messages.values() for message in thread),
            )

    def save(self, storage: KeyValueStore) -> None:
        """Write the store document and pending session records in one batch.

        Saves are serialized: each one snapshots under the store lock and
        finishes its write before the next save takes its snapshot, so a
        stale document can never land after a newer one.
        """

        with self._save_lock:
            with self._lock:
                snapshot = self.snapshot()
                records = self._sessions.drain_pending()
            records[STORE_KEY] = {
                "work_items": [item.model_dump(mode="json") for item in snapshot.work_items],
                "offers": [offer.model_dump(mode="json") for offer in snapshot.offers],
                "bindings": [binding.model_dump(mode="json") for binding in snapshot.bindings],
                "messages": [message.model_dump(mode="json") for message in snapshot.messages],
            }
            try:
                storage.set_many(records)
            except Exception:
                del records[STORE_KEY]
                self._sessions.requeue(records)
                raise
        logger.debug(
            "Saved engagement store: %s work items, %s offers, %s bindings, %s messages, %s session records",
            len(snapshot.work_items),
            len(snapshot.offers),
            len(snapshot.bindings),
            len(snapshot.messages),
            len(records) - 1,
        )

    def load(self, storage: KeyValueStore) -> None:
        raw = storage.get(STORE_KEY) or {}
        work_items = [WorkItem.model_validate(row) for row in raw.get("work_items", [])]
        offers = [Offer.model_validate(row) for row in raw.get("offers", [])]
        bindings = [Binding.model_validate(row) for row in raw.get("bindings", [])]
        messages = [ChannelMessage.model_validate(row) for row in raw.get("messages", [])]

        with self._lock:
            self._work_items = {item.id: item for item in work_items}
            self._offers = {offer.id: offer for offer in offers}
            self._offer_index = {(offer.work_item_id, offer.provider_id): offer.id for offer in offers}
            self._bindings = {binding.id: binding for binding in bindings}
            self._messages = {}
            for message in sorted(messages, key=lambda message: (message.created_at, message.id)):
                self._messages.setdefault(message.binding_id, []).append(message)
        logger.info(
            "Loaded engagement store: %s work items, %s offers, %s bindings",
            len(work_items),
            len(offers),
            len(bindings),
        )

    # -- helpers ----------------------------------------------------------

    def _require_work_item(self, work_item_id: str) -> WorkItem:
        item = self._work_items.get(work_item_id)
        if item is None:
            raise NotFound("Work item not found", detail={"work_item_id": work_item_id})
        return item

    def _require_offer(self, offer_id: str) -> Offer:
        offer = self._offers.get(offer_id)
        if offer is None:
            raise NotFound("Offer not found", detail={"offer_id": offer_id})
        return offer

    def _require_binding(self, binding_id: str) -> Binding:
        binding = self._bindings.get(binding_id)
        if binding is None:
            raise NotFound("Binding not found", detail={"binding_id": binding_id})
        return binding

    def _require_owner(self, item: WorkItem, actor_id: str) -> Actor:
        actor = self._sessions.get_actor(actor_id)
        if actor.is_admin or actor.id == item.owner_id:
            return actor
        logger.warning("Actor %s is not the owner of work item %s", actor.id, item.id)
        raise Forbidden(
            "Only the work item owner can do this",
            detail={"work_item_id": item.id, "actor_id": actor.id},
        )

    def _open_binding_for_offer(self, offer_id: str) -> Optional[Binding]:
        for binding in self._bindings.values():
            if binding.offer_id == offer_id and not is_terminal(BINDING_TRANSITIONS, binding.status):
                return binding
        return None
