"""Durable key-value persistence used by sessions and the engagement store."""

from .store import InMemoryKeyValueStore, JSONValue, KeyValueStore
from .postgres import PostgresKeyValueStore, managed_connection

__all__ = [
    "InMemoryKeyValueStore",
    "JSONValue",
    "KeyValueStore",
    "PostgresKeyValueStore",
    "managed_connection",
]
