# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""PostgreSQL adapter: psycopg3 over an async connection pool.

Each operation borrows a pooled connection (acquire/release) and commits
or rolls back on it. Values go to psycopg as a ``{"ParamN": value}`` dict,
mappings wrapped in Jsonb.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from psycopg.conninfo import conninfo_to_dict
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from .base import DbAdapter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from psycopg import AsyncConnection, AsyncCursor

logger = logging.getLogger(__name__)


class PostgresAdapter(DbAdapter):
    """psycopg3 adapter with an AsyncConnectionPool.

    The pool is opened by connect() (or on the first acquire()) and waits
    for its first connection, bounded by ``connect_timeout``. With
    ``auto_reconnect`` every connection is checked before being handed out,
    so connections dropped by the server are replaced transparently.
    """

    dialect = "postgresql"
    json_type = "JSONB"
    placeholder = "%(name)s"

    def __init__(
        self,
        conninfo: str,
        pool_size: int = 2,
        connect_timeout: float = 5.0,
        auto_reconnect: bool = True,
    ):
        self.conninfo = conninfo
        self.pool_size = max(pool_size, 1)
        self.connect_timeout = connect_timeout
        self.auto_reconnect = auto_reconnect
        self._pool: AsyncConnectionPool | None = None

    @property
    def database_name(self) -> str | None:
        return conninfo_to_dict(self.conninfo).get("dbname")

    def convert_placeholders(self, query: str) -> str:
        # Literal % must be doubled once psycopg sees named placeholders
        return super().convert_placeholders(query.replace("%", "%%"))

    async def _ensure_pool(self) -> None:
        if self._pool is not None:
            return

        pool = AsyncConnectionPool(
            self.conninfo,
            min_size=1,
            max_size=self.pool_size,
            open=False,
            check=AsyncConnectionPool.check_connection if self.auto_reconnect else None,
        )
        try:
            await asyncio.wait_for(
                pool.open(wait=True, timeout=self.connect_timeout),
                timeout=self.connect_timeout + 1,
            )
        except asyncio.TimeoutError:
            await pool.close()
            raise TimeoutError(
                f"PostgreSQL connection timed out after {self.connect_timeout}s. "
                "Check credentials and server availability."
            ) from None
        except Exception as e:
            await pool.close()
            raise ConnectionError(f"PostgreSQL connection failed: {e}") from e

        self._pool = pool
        logger.debug("Opened pool on %s (max_size=%d)", self.database_name, self.pool_size)

    async def connect(self) -> None:
        await self._ensure_pool()

    async def acquire(self) -> AsyncConnection:
        await self._ensure_pool()
        return await self._pool.getconn()

    async def release(self, conn: AsyncConnection) -> None:
        if self._pool:
            await self._pool.putconn(conn)

    async def shutdown(self) -> None:
        """Close the pool and every connection in it."""
        if self._pool:
            pool, self._pool = self._pool, None
            await pool.close()

    async def commit(self, conn: AsyncConnection) -> None:
        await conn.commit()

    async def rollback(self, conn: AsyncConnection) -> None:
        await conn.rollback()

    @asynccontextmanager
    async def _run(
        self, conn: AsyncConnection, query: str, params: dict[str, Any] | None, rows: bool
    ) -> AsyncIterator[AsyncCursor]:
        cursor = conn.cursor(row_factory=dict_row) if rows else conn.cursor()
        async with cursor as cur:
            await cur.execute(self.convert_placeholders(query), params or {})
            yield cur

    async def execute(
        self, conn: AsyncConnection, query: str, params: dict[str, Any] | None = None
    ) -> int:
        async with self._run(conn, query, params, rows=False) as cur:
            return cur.rowcount

    async def fetch_one(
        self, conn: AsyncConnection, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        async with self._run(conn, query, params, rows=True) as cur:
            return await cur.fetchone()

    async def fetch_all(
        self, conn: AsyncConnection, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        async with self._run(conn, query, params, rows=True) as cur:
            return await cur.fetchall()

    async def table_exists(
        self, conn: AsyncConnection, table: str, schema: str | None = None
    ) -> bool:
        """Resolve the (quoted) table name with to_regclass."""
        name = self._sql_name(table)
        if schema:
            name = f"{self._sql_name(schema)}.{name}"
        row = await self.fetch_one(
            conn, "SELECT to_regclass(@Param1::text) IS NOT NULL AS found", {"Param1": name}
        )
        return bool(row and row["found"])

    def adapt_value(self, value: Any) -> Any:
        """Bind tuples as arrays; psycopg adapts everything else."""
        if isinstance(value, tuple):
            return list(value)
        return value

    def json_value(self, value: Any) -> Jsonb:
        return Jsonb(value)

    def json_extract(self, column: str, key: str) -> str:
        return f"{column}->>'{key}'"

    def json_merge(
        self, column: str, patch_param: str, keys: Sequence[str], next_index: int
    ) -> tuple[str, list[Any]]:
        """jsonb || jsonb replaces top-level keys of the left operand."""
        return f"{column}||{patch_param}", []


__all__ = ["PostgresAdapter"]
