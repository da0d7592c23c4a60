from __future__ import annotations

from threading import Event, Thread

import pytest

from taskmarket.app.engagements import STORE_KEY
from taskmarket.app.entitlements import Actor, ActorRole
from taskmarket.app.persistence import InMemoryKeyValueStore
from taskmarket.app.services.marketplace import build_marketplace
from taskmarket.config import MarketConfig


class RecordingStorage(InMemoryKeyValueStore):
    def __init__(self) -> None:
        self.calls = []
        self.fail_next = False
        super().__init__()

    def get(self, key):
        self.calls.append(("get", key))
        return super().get(key)

    def set(self, key, value):
        self.calls.append(("set", key))
        super().set(key, value)

    def set_many(self, entries):
        self.calls.append(("set_many", set(entries)))
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("storage offline")
        super().set_many(entries)

    def keys(self, prefix=""):
        self.calls.append(("keys", prefix))
        return super().keys(prefix)


class GatedStorage(InMemoryKeyValueStore):
    """Blocks inside the first batch write until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = Event()
        self.release = Event()
        self._gated = True

    def set_many(self, entries):
        if self._gated:
            self._gated = False
            self.entered.set()
            self.release.wait(timeout=5)
        super().set_many(entries)


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


def test_submit_offer_does_no_storage_io(store, storage, requester, provider, draft_data, terms_data):
    item = store.create_work_item(requester.id, draft_data())
    storage.calls.clear()

    store.submit_offer(item.id, provider.id, terms_data())

    assert storage.calls == []


def test_save_writes_store_and_session_records_in_one_batch(
    store, storage, requester, provider, draft_data, terms_data
):
    item = store.create_work_item(requester.id, draft_data())
    store.submit_offer(item.id, provider.id, terms_data())
    storage.calls.clear()

    store.save(storage)

    assert storage.calls == [
        (
            "set_many",
            {
                STORE_KEY,
                f"actor:{requester.id}",
                f"actor:{provider.id}",
                f"subscription:{provider.id}",
                f"weekly_usage:{provider.id}",
            },
        )
    ]
    assert storage.get(f"weekly_usage:{provider.id}")["count"] == 1
    assert len(storage.get(STORE_KEY)["offers"]) == 1

    storage.calls.clear()
    store.save(storage)
    assert storage.calls == [("set_many", {STORE_KEY})]


def test_failed_save_keeps_session_records_pending(store, storage, requester, provider, draft_data, terms_data):
    item = store.create_work_item(requester.id, draft_data())
    store.submit_offer(item.id, provider.id, terms_data())
    storage.fail_next = True

    with pytest.raises(RuntimeError):
        store.save(storage)
    assert storage.get(f"weekly_usage:{provider.id}") is None
    assert storage.get(STORE_KEY) is None

    store.save(storage)

    assert storage.get(f"weekly_usage:{provider.id}")["count"] == 1
    assert len(storage.get(STORE_KEY)["offers"]) == 1


def test_concurrent_saves_keep_the_latest_document(store, requester, draft_data):
    durable = GatedStorage()
    store.create_work_item(requester.id, draft_data())
    first_save = Thread(target=store.save, args=(durable,))
    first_save.start()
    assert durable.entered.wait(timeout=5)

    store.create_work_item(requester.id, draft_data(title="Second landing page"))
    second_save = Thread(target=store.save, args=(durable,))
    second_save.start()
    durable.release.set()
    first_save.join(timeout=5)
    second_save.join(timeout=5)

    assert len(durable.get(STORE_KEY)["work_items"]) == 2


def test_marketplace_restores_actors_and_usage(storage, clock, draft_data, terms_data):
    market = build_marketplace(MarketConfig(), storage=storage, clock=clock)
    requester = Actor(id="req-1", display_name="Rita", role=ActorRole.REQUESTER)
    provider = Actor(id="prov-1", display_name="Pavel", role=ActorRole.PROVIDER)
    market.sessions.register_actor(requester)
    market.sessions.register_actor(provider)
    item = market.store.create_work_item(requester.id, draft_data())
    market.store.submit_offer(item.id, provider.id, terms_data())
    market.persist()

    restored = build_marketplace(MarketConfig(), storage=storage, clock=clock)

    assert restored.sessions.get_actor(provider.id) == provider
    assert restored.sessions.get_subscription(provider.id) == market.sessions.get_subscription(provider.id)
    assert restored.sessions.get_stored_usage(provider.id).count == 1
    assert restored.store.has_offered(item.id, provider.id)
