"""Actor identity, subscription, and weekly usage bookkeeping."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from threading import Lock, RLock
from typing import Callable, Dict, Iterator, List, Mapping, Optional
from uuid import uuid4

from ..errors import Forbidden, NotFound, ValidationError
from ..persistence import JSONValue, KeyValueStore
from .catalog import DEFAULT_PROVIDER_PLAN, PlanDefinition, get_plan_definition
from .models import (
    Actor,
    ActorRole,
    PlanKey,
    SubscriptionRecord,
    SubscriptionStatus,
    WeeklyUsage,
)

logger = logging.getLogger(__name__)

ACTOR_KEY = "actor:{}"
SUBSCRIPTION_KEY = "subscription:{}"
USAGE_KEY = "weekly_usage:{}"


def start_of_iso_week(now: datetime) -> date:
    """Return the Monday of the ISO week containing ``now``."""

    day = now.date()
    return day - timedelta(days=day.weekday())


def _current_time(clock: Optional[Callable[[], datetime]]) -> datetime:
    if clock is None:
        return datetime.now(timezone.utc)
    value = clock()
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class EntitlementSession:
    """Point-in-time view of an actor and the state that gates its actions."""

    actor: Actor
    subscription: Optional[SubscriptionRecord]
    usage: Optional[WeeklyUsage]
    as_of: datetime


class SessionManager:
    """Holds actors with their subscriptions and weekly usage counters.

    State lives in memory and is read back from ``storage`` by :meth:`load`.
    Every change is queued as a pending record; the engagement store drains
    the queue and writes it in the same batch as its own document, so no
    storage round-trip happens while a caller holds a lock.

    Usage read-modify-write cycles run under a per-actor lock so two
    near-simultaneous submissions, even across a week boundary, can never both
    start from a freshly reset counter and lose an increment.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        renewal_days: int = 30,
        id_factory: Optional[Callable[[str], str]] = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._renewal = timedelta(days=max(renewal_days, 1))
        self._id_factory = id_factory or (lambda prefix: f"{prefix}-{uuid4().hex[:12]}")
        self._actor_locks: Dict[str, RLock] = {}
        self._locks_guard = Lock()
        self._state_lock = RLock()
        self._actors: Dict[str, Actor] = {}
        self._subscriptions: Dict[str, SubscriptionRecord] = {}
        self._usage: Dict[str, WeeklyUsage] = {}
        self._pending: Dict[str, JSONValue] = {}

    def now(self) -> datetime:
        return _current_time(self._clock)

    @contextmanager
    def actor_lock(self, actor_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._actor_locks.setdefault(actor_id, RLock())
        with lock:
            yield

    # -- durable state ----------------------------------------------------

    def load(self) -> None:
        """Replace in-memory state with the records held in storage."""

        actors = [Actor.model_validate(raw) for raw in self._read_prefix(ACTOR_KEY)]
        subscriptions = [SubscriptionRecord.model_validate(raw) for raw in self._read_prefix(SUBSCRIPTION_KEY)]
        usage = [WeeklyUsage.model_validate(raw) for raw in self._read_prefix(USAGE_KEY)]
        with self._state_lock:
            self._actors = {actor.id: actor for actor in actors}
            self._subscriptions = {record.actor_id: record for record in subscriptions}
            self._usage = {counter.actor_id: counter for counter in usage}
            self._pending = {}
        logger.info("Loaded %s actors and %s subscriptions", len(actors), len(subscriptions))

    def drain_pending(self) -> Dict[str, JSONValue]:
        """Return and clear the records changed since the last drain."""

        with self._state_lock:
            pending, self._pending = self._pending, {}
        return pending

    def requeue(self, records: Mapping[str, JSONValue]) -> None:
        """Put back records whose write failed, unless a newer value is queued."""

        with self._state_lock:
            for key, value in records.items():
                self._pending.setdefault(key, value)

    def _read_prefix(self, template: str) -> List[JSONValue]:
        rows = []
        for key in self._storage.keys(template.format("")):
            raw = self._storage.get(key)
            if raw is not None:
                rows.append(raw)
        return rows

    def _put_actor(self, actor: Actor) -> None:
        with self._state_lock:
            self._actors[actor.id] = actor
            self._pending[ACTOR_KEY.format(actor.id)] = actor.model_dump(mode="json")

    def _put_subscription(self, subscription: SubscriptionRecord) -> None:
        with self._state_lock:
            self._subscriptions[subscription.actor_id] = subscription
            self._pending[SUBSCRIPTION_KEY.format(subscription.actor_id)] = subscription.model_dump(mode="json")

    def _put_usage(self, usage: WeeklyUsage) -> None:
        with self._state_lock:
            self._usage[usage.actor_id] = usage
            self._pending[USAGE_KEY.format(usage.actor_id)] = usage.model_dump(mode="json")

    # -- actors -----------------------------------------------------------

    def register_actor(self, actor: Actor, *, plan_key: Optional[PlanKey] = None) -> EntitlementSession:
        with self.actor_lock(actor.id):
            if self.find_actor(actor.id) is not None:
                raise ValidationError(
                    "Actor is already registered", detail={"actor_id": actor.id}
                )

            subscription: Optional[SubscriptionRecord] = None
            if actor.role == ActorRole.PROVIDER:
                plan = get_plan_definition(plan_key or DEFAULT_PROVIDER_PLAN)
                subscription = self._new_subscription(actor.id, plan, self._id_factory("sub"))
            elif actor.role in (ActorRole.REQUESTER, ActorRole.ADMIN):
                if plan_key is not None:
                    raise ValidationError(
                        "Only providers hold subscriptions",
                        detail={"role": actor.role.value},
                    )
            else:  # pragma: no cover - exhaustive over ActorRole
                raise ValueError(f"Unhandled actor role: {actor.role}")

            self._put_actor(actor)
            if subscription is not None:
                self._put_subscription(subscription)
            logger.info(
                "Registered actor %s role=%s plan=%s",
                actor.id,
                actor.role.value,
                subscription.plan_key.value if subscription else None,
            )
            return EntitlementSession(actor=actor, subscription=subscription, usage=None, as_of=self.now())

    def find_actor(self, actor_id: str) -> Optional[Actor]:
        with self._state_lock:
            return self._actors.get(actor_id)

    def get_actor(self, actor_id: str) -> Actor:
        actor = self.find_actor(actor_id)
        if actor is None:
            raise NotFound("Actor not found", detail={"actor_id": actor_id})
        return actor

    def list_actors(self) -> List[Actor]:
        with self._state_lock:
            return sorted(self._actors.values(), key=lambda actor: actor.id)

    # -- subscriptions ----------------------------------------------------

    def get_subscription(self, actor_id: str) -> Optional[SubscriptionRecord]:
        with self._state_lock:
            return self._subscriptions.get(actor_id)

    def change_plan(self, actor_id: str, plan_key: PlanKey) -> SubscriptionRecord:
        """Switch a provider onto ``plan_key`` starting now.

        The usage counter is left untouched; the new cap applies to it
        immediately.
        """

        plan = get_plan_definition(plan_key)
        with self.actor_lock(actor_id):
            actor = self.get_actor(actor_id)
            if not actor.is_provider:
                raise Forbidden(
                    "Only providers can change subscription plans",
                    detail={"actor_id": actor_id, "role": actor.role.value},
                )
            current = self.get_subscription(actor_id)
            subscription = self._new_subscription(
                actor_id, plan, current.id if current else self._id_factory("sub")
            )
            self._put_subscription(subscription)
        logger.info(
            "Plan changed for actor %s: %s -> %s",
            actor_id,
            current.plan_key.value if current else None,
            plan.key.value,
        )
        return subscription

    def _new_subscription(self, actor_id: str, plan: PlanDefinition, subscription_id: str) -> SubscriptionRecord:
        # Paid plans run for one renewal window; the free plan never lapses.
        now = self.now()
        return SubscriptionRecord(
            id=subscription_id,
            actor_id=actor_id,
            plan_key=plan.key,
            status=SubscriptionStatus.ACTIVE,
            starts_at=now,
            ends_at=now + self._renewal if plan.price_monthly else None,
        )

    # -- weekly usage -----------------------------------------------------

    def get_stored_usage(self, actor_id: str) -> Optional[WeeklyUsage]:
        """Return the recorded counter as-is, without any rollover."""

        with self._state_lock:
            return self._usage.get(actor_id)

    def resolve_current_week_usage(self, actor_id: str, now: Optional[datetime] = None) -> WeeklyUsage:
        now = now or self.now()
        week_start = start_of_iso_week(now)
        with self.actor_lock(actor_id):
            stored = self.get_stored_usage(actor_id)
            if stored is not None and stored.week_start == week_start:
                return stored
            fresh = WeeklyUsage(actor_id=actor_id, week_start=week_start, count=0)
            self._put_usage(fresh)
        if stored is not None:
            logger.info(
                "Weekly usage reset for actor %s (%s -> %s, discarded count=%s)",
                actor_id,
                stored.week_start.isoformat(),
                week_start.isoformat(),
                stored.count,
            )
        return fresh

    def record_offer_submission(self, actor_id: str, now: Optional[datetime] = None) -> WeeklyUsage:
        with self.actor_lock(actor_id):
            usage = self.resolve_current_week_usage(actor_id, now).incremented()
            self._put_usage(usage)
        logger.debug("Weekly usage for actor %s is now %s", actor_id, usage.count)
        return usage

    # -- snapshots --------------------------------------------------------

    def load_session(self, actor_id: str, now: Optional[datetime] = None) -> EntitlementSession:
        now = now or self.now()
        with self.actor_lock(actor_id):
            actor = self.get_actor(actor_id)
            subscription = self.get_subscription(actor_id)
            usage: Optional[WeeklyUsage] = None
            if actor.role == ActorRole.PROVIDER:
                usage = self.resolve_current_week_usage(actor_id, now)
            elif actor.role not in (ActorRole.REQUESTER, ActorRole.ADMIN):  # pragma: no cover
                raise ValueError(f"Unhandled actor role: {actor.role}")
        return EntitlementSession(actor=actor, subscription=subscription, usage=usage, as_of=now)
