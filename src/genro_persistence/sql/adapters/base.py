# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter class for async database backends."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

# Positional markers emitted by the statement builders: @Param1, @Param2, ...
PARAM_MARKER = re.compile(r"@Param(\d+)")


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    Provides a unified interface for SQLite and PostgreSQL with:
    - Connection management (connect, acquire, release, shutdown)
    - Transaction control (commit, rollback on connection)
    - Query execution (execute, fetch_one, fetch_all)
    - Dialect hooks used by the statement builders (paging, JSON merge,
      table existence, value binding)

    Connection model:
    - connect(): Verifies the database is reachable (opens the pool)
    - acquire(): Returns a connection (from pool or new file handle)
    - release(conn): Returns connection to pool or closes it
    - shutdown(): Closes connection pool

    Statements reach the adapter with positional ``@ParamN`` markers and a
    ``{"ParamN": value}`` dict; each subclass rewrites the markers into its
    driver's placeholder style (``:ParamN`` for SQLite, ``%(ParamN)s`` for
    PostgreSQL).
    """

    dialect: str = ""
    json_type: str = "JSON"
    placeholder: str = ":name"  # Override in subclass

    @property
    @abstractmethod
    def database_name(self) -> str | None:
        """Name of the database the adapter points to."""
        ...

    async def connect(self) -> None:
        """Verify the database is reachable."""
        conn = await self.acquire()
        await self.release(conn)

    @abstractmethod
    async def acquire(self) -> Any:
        """Acquire a connection.

        For pooled adapters: gets connection from pool.
        For file-based adapters: opens new connection.
        """
        ...

    @abstractmethod
    async def release(self, conn: Any) -> None:
        """Release a connection back to the pool, or close it."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connection pool (no-op for file-based adapters)."""
        ...

    # -------------------------------------------------------------------------
    # Connection-bound operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def execute(
        self, conn: Any, query: str, params: dict[str, Any] | None = None
    ) -> int:
        """Execute query on connection, return affected row count."""
        ...

    @abstractmethod
    async def fetch_one(
        self, conn: Any, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Execute query on connection, return single row as dict or None."""
        ...

    @abstractmethod
    async def fetch_all(
        self, conn: Any, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query on connection, return all rows as list of dicts."""
        ...

    @abstractmethod
    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        ...

    @abstractmethod
    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        ...

    @abstractmethod
    async def table_exists(self, conn: Any, table: str, schema: str | None = None) -> bool:
        """Check the catalog for an existing table."""
        ...

    # -------------------------------------------------------------------------
    # Value binding
    # -------------------------------------------------------------------------

    def adapt_value(self, value: Any) -> Any:
        """Convert a scalar to something the driver can bind."""
        return value

    @abstractmethod
    def json_value(self, value: Any) -> Any:
        """Wrap a JSON-safe mapping so the driver binds it as a JSON parameter."""
        ...

    # -------------------------------------------------------------------------
    # SQL Helpers
    # -------------------------------------------------------------------------

    def paging_clause(self, skip: int | None, take: int) -> str:
        """Return the OFFSET/LIMIT tail of a paged SELECT."""
        clause = f" OFFSET {skip}" if skip is not None else ""
        return clause + f" LIMIT {take}"

    @abstractmethod
    def json_merge(
        self, column: str, patch_param: str, keys: Sequence[str], next_index: int
    ) -> tuple[str, list[Any]]:
        """Return a shallow JSON merge expression of ``column`` with ``patch_param``.

        Top-level keys of the patch replace the stored ones, other keys are
        kept. Extra positional values the expression needs are returned
        alongside it and must be bound starting at ``@Param{next_index}``.
        """
        ...

    @abstractmethod
    def json_extract(self, column: str, key: str) -> str:
        """Return an expression reading top-level ``key`` of a JSON column as text."""
        ...

    def convert_placeholders(self, query: str) -> str:
        """Convert @ParamN markers to the driver placeholder style."""
        return PARAM_MARKER.sub(lambda m: self._placeholder(f"Param{m.group(1)}"), query)

    def _sql_name(self, name: str) -> str:
        """Return quoted SQL identifier for column/table name."""
        return f'"{name}"'

    def _placeholder(self, name: str) -> str:
        """Return placeholder for named parameter."""
        return self.placeholder.replace("name", name)
