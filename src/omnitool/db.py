"""PostgreSQL key-value backend over an owned async connection pool."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

import psycopg
import psycopg.rows
import psycopg_pool
from psycopg.types.json import Jsonb

logger = logging.getLogger(__name__)

SCHEMA = """CREATE TABLE IF NOT EXISTS kv_store (
    key   TEXT PRIMARY KEY,
    value JSONB NOT NULL
)"""


class PostgresStore:
    """``KeyValueStore`` backed by a single ``kv_store`` table.

    The pool belongs to the instance: call ``open()`` before use and
    ``close()`` when done, or use it as an async context manager.
    """

    def __init__(self, conninfo: str, min_size: int = 1, max_size: int = 4) -> None:
        self.conninfo = conninfo
        self._pool = psycopg_pool.AsyncConnectionPool(
            conninfo=conninfo,
            min_size=min_size,
            max_size=max_size,
            kwargs={"row_factory": psycopg.rows.dict_row},
            open=False,
        )
        self._opened = False

    async def open(self) -> None:
        if self._opened:
            return
        await self._pool.open()
        self._opened = True
        async with self._conn() as conn:
            await conn.execute(SCHEMA)
        logger.info("Postgres store ready at %s", self.conninfo.split("@")[-1])

    async def close(self) -> None:
        if self._opened:
            await self._pool.close()
            self._opened = False

    async def __aenter__(self) -> PostgresStore:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @contextlib.asynccontextmanager
    async def _conn(self) -> AsyncIterator[psycopg.AsyncConnection[dict[str, Any]]]:
        """Borrow a connection from the pool."""
        if not self._opened:
            raise RuntimeError("Database pool not initialized. Call open() first.")
        async with self._pool.connection() as conn:
            yield conn

    async def get(self, key: str, default: Any = None) -> Any:
        async with self._conn() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = await cur.fetchone()
        return row["value"] if row else default

    async def set(self, key: str, value: Any) -> None:
        async with self._conn() as conn:
            await conn.execute(
                """INSERT INTO kv_store (key, value) VALUES (%s, %s)
                   ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value""",
                (key, Jsonb(value)),
            )

    async def remove(self, key: str) -> None:
        async with self._conn() as conn:
            await conn.execute("DELETE FROM kv_store WHERE key = %s", (key,))
