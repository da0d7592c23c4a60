"""Application wiring for the marketplace core."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from ...config import MarketConfig, load_config
from ..engagements import EngagementStore
from ..entitlements import EntitlementService, SessionManager
from ..persistence import InMemoryKeyValueStore, KeyValueStore, PostgresKeyValueStore

logger = logging.getLogger("marketplace")


@dataclass
class Marketplace:
    """Bundle of the collaborating services a host process needs."""

    config: MarketConfig
    storage: KeyValueStore
    sessions: SessionManager
    store: EngagementStore
    entitlements: EntitlementService

    def persist(self) -> None:
        """Flush the engagement store and changed session records to storage."""

        try:
            self.store.save(self.storage)
        except Exception:
            logger.exception("Failed to persist engagement store")
            raise


def build_storage(config: MarketConfig) -> KeyValueStore:
    if config.storage_backend == "postgres":
        storage = PostgresKeyValueStore()
        storage.ensure_schema()
        return storage
    return InMemoryKeyValueStore()


def build_marketplace(
    config: Optional[MarketConfig] = None,
    *,
    storage: Optional[KeyValueStore] = None,
    clock=None,
) -> Marketplace:
    config = config or load_config()
    storage = storage if storage is not None else build_storage(config)
    sessions = SessionManager(storage, clock=clock, renewal_days=config.plan_renewal_days)
    sessions.load()
    store = EngagementStore(sessions)
    store.load(storage)
    logger.info("Marketplace ready (storage=%s)", config.storage_backend)
    return Marketplace(
        config=config,
        storage=storage,
        sessions=sessions,
        store=store,
        entitlements=EntitlementService(sessions),
    )


@lru_cache(maxsize=1)
def get_marketplace() -> Marketplace:
    return build_marketplace()


__all__ = ["Marketplace", "build_marketplace", "build_storage", "get_marketplace"]
