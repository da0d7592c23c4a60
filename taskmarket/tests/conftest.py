from __future__ import annotations

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from taskmarket.app.engagements import EngagementStore
from taskmarket.app.entitlements import Actor, ActorRole, EntitlementService, PlanKey, SessionManager
from taskmarket.app.persistence import InMemoryKeyValueStore

# Wednesday of ISO week 2024-W02.
START = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def sequential_ids():
    counter = count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def storage() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def sessions(storage, clock) -> SessionManager:
    return SessionManager(storage, clock=clock, id_factory=sequential_ids())


@pytest.fixture
def store(sessions) -> EngagementStore:
    return EngagementStore(sessions, id_factory=sequential_ids())


@pytest.fixture
def entitlements(sessions) -> EntitlementService:
    return EntitlementService(sessions)


@pytest.fixture
def requester(sessions) -> Actor:
    actor = Actor(id="req-1", display_name="Rita Requester", role=ActorRole.REQUESTER)
    sessions.register_actor(actor)
    return actor


@pytest.fixture
def provider(sessions) -> Actor:
    actor = Actor(id="prov-1", display_name="Pavel Provider", role=ActorRole.PROVIDER)
    sessions.register_actor(actor)
    return actor


@pytest.fixture
def premium_provider(sessions) -> Actor:
    actor = Actor(id="prov-premium", display_name="Polina Premium", role=ActorRole.PROVIDER)
    sessions.register_actor(actor, plan_key=PlanKey.PREMIUM)
    return actor


@pytest.fixture
def admin(sessions) -> Actor:
    actor = Actor(id="admin-1", display_name="Ada Admin", role=ActorRole.ADMIN)
    sessions.register_actor(actor)
    return actor


def _draft_data(**overrides):
    data = {
        "title": "Build a landing page",
        "description": "Single page site with a contact form.",
        "category": "Web Development",
        "skills": ("HTML", "CSS"),
        "budget_type": "FIXED",
        "budget_value": "15000",
    }
    data.update(overrides)
    return data


def _terms_data(**overrides):
    data = {
        "price_text": "12000 RUB",
        "eta_text": "5 days",
        "message": "I have built dozens of landing pages and can start working on this tomorrow.",
    }
    data.update(overrides)
    return data


@pytest.fixture
def draft_data():
    return _draft_data


@pytest.fixture
def terms_data():
    return _terms_data
