"""PostgreSQL backed key-value store."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Mapping, Optional

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .store import JSONValue

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

UPSERT_SQL = """
INSERT INTO kv_store (key, value)
VALUES (%s, %s)
ON CONFLICT (key) DO UPDATE SET
    value = EXCLUDED.value,
    updated_at = NOW()
"""


@contextmanager
def managed_connection(
    conn: Optional[PgConnection] = None,
    *,
    conn_factory: Optional[Callable[[], PgConnection]] = None,
):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    if conn_factory is None:
        from ...app_context import get_conn

        conn_factory = get_conn

    connection = conn_factory()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


class PostgresKeyValueStore:
    """Concrete key-value store persisting JSON documents in PostgreSQL."""

    def __init__(
        self,
        *,
        conn: Optional[PgConnection] = None,
        conn_factory: Optional[Callable[[], PgConnection]] = None,
    ) -> None:
        self._conn = conn
        self._conn_factory = conn_factory

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._conn, conn_factory=self._conn_factory) as (connection, managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
                if managed:
                    connection.commit()
            except Exception:
                if managed:
                    connection.rollback()
                raise
            finally:
                cursor.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cursor:
            cursor.execute(CREATE_TABLE_SQL)

    def get(self, key: str) -> Optional[JSONValue]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT value
                FROM kv_store
                WHERE key = %s
                LIMIT 1
                """,
                (key,),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return row["value"]

    def set(self, key: str, value: JSONValue) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                UPSERT_SQL,
                (key, psycopg2.extras.Json(value)),
            )
        logger.debug("Persisted key %s", key)

    def set_many(self, entries: Mapping[str, JSONValue]) -> None:
        """Upsert every entry inside one transaction."""

        if not entries:
            return
        with self._cursor() as cursor:
            for key, value in entries.items():
                cursor.execute(UPSERT_SQL, (key, psycopg2.extras.Json(value)))
        logger.debug("Persisted %s keys", len(entries))

    def keys(self, prefix: str = "") -> Iterable[str]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT key
                FROM kv_store
                WHERE key LIKE %s
                ORDER BY key ASC
                """,
                (f"{prefix}%",),
            )
            rows: List[dict] = cursor.fetchall()
        return [row["key"] for row in rows]
