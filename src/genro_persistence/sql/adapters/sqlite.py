# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite with per-request connections."""

from __future__ import annotations

import itertools
import json
import sqlite3
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

import aiosqlite

from .base import DbAdapter

if TYPE_CHECKING:
    from collections.abc import Sequence

MEMORY_DATABASE = ":memory:"

# Declared column types read back as datetimes (first word, case-insensitive)
TIMESTAMP_TYPES = ("TIMESTAMP", "TIMESTAMPTZ", "DATETIME")

_memory_names = itertools.count(1)


def _parse_datetime(value: str) -> datetime | str:
    """Parse ISO datetime string to datetime object."""
    if "T" not in value and " " not in value:
        # Just a date, return as-is
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value


def _convert_timestamp(value: bytes) -> datetime | str:
    return _parse_datetime(value.decode())


for _type_name in TIMESTAMP_TYPES:
    sqlite3.register_converter(_type_name, _convert_timestamp)


class SqliteAdapter(DbAdapter):
    """SQLite async adapter with per-request connections.

    Uses :ParamN placeholders natively. Each acquire() opens a new connection,
    release() closes it. This ensures request isolation.

    An in-memory database lives only as long as one of its connections, so
    ``:memory:`` is opened as a named shared-cache database and a keeper
    connection holds it until shutdown().

    Type normalization keeps behavior close to PostgreSQL:
    - datetime parameters are stored as ISO strings
    - ISO strings come back as datetime objects in columns declared
      TIMESTAMP, TIMESTAMPTZ or DATETIME, and in columns named like
      timestamps (``*_at``, ``*_date``, ``*_time``, ``*_utc``, ``created``...)
      when no declared type is known (expressions, RETURNING)
    - lists and mappings are stored as JSON text
    """

    dialect = "sqlite"
    json_type = "JSON"
    placeholder = ":name"

    # Column name patterns for timestamp columns
    _TIMESTAMP_SUFFIXES = ("_at", "_date", "_time", "_utc")
    _TIMESTAMP_NAMES = frozenset({"created", "updated", "timestamp", "expires"})

    def __init__(self, db_path: str):
        self.db_path = db_path or MEMORY_DATABASE
        self._memory_uri: str | None = None
        self._keeper: aiosqlite.Connection | None = None
        if self.db_path == MEMORY_DATABASE:
            self._memory_uri = (
                f"file:genro_memory_{next(_memory_names)}?mode=memory&cache=shared"
            )

    @property
    def database_name(self) -> str:
        return self.db_path

    def _normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        """Convert ISO strings in timestamp-named columns to datetime objects."""
        for key, value in row.items():
            if isinstance(value, str) and (
                key.endswith(self._TIMESTAMP_SUFFIXES) or key in self._TIMESTAMP_NAMES
            ):
                row[key] = _parse_datetime(value)
        return row

    async def _open(self) -> aiosqlite.Connection:
        if self._memory_uri is None:
            return await aiosqlite.connect(self.db_path, detect_types=sqlite3.PARSE_DECLTYPES)
        return await aiosqlite.connect(
            self._memory_uri, uri=True, detect_types=sqlite3.PARSE_DECLTYPES
        )

    async def acquire(self) -> aiosqlite.Connection:
        """Open new connection for request."""
        if self._memory_uri is not None and self._keeper is None:
            self._keeper = await self._open()
        return await self._open()

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Close connection."""
        await conn.close()

    async def shutdown(self) -> None:
        """Drop an in-memory database; no-op for files (no pool to close)."""
        if self._keeper is not None:
            keeper, self._keeper = self._keeper, None
            await keeper.close()

    async def commit(self, conn: aiosqlite.Connection) -> None:
        """Commit transaction on connection."""
        await conn.commit()

    async def rollback(self, conn: aiosqlite.Connection) -> None:
        """Rollback transaction on connection."""
        await conn.rollback()

    async def execute(
        self, conn: aiosqlite.Connection, query: str, params: dict[str, Any] | None = None
    ) -> int:
        """Execute query, return affected row count."""
        cursor = await conn.execute(self.convert_placeholders(query), params or {})
        return cursor.rowcount

    async def fetch_one(
        self, conn: aiosqlite.Connection, query: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        """Execute query, return single row as dict or None."""
        async with conn.execute(self.convert_placeholders(query), params or {}) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None
            cols = [c[0] for c in cursor.description]
            return self._normalize_row(dict(zip(cols, row, strict=True)))

    async def fetch_all(
        self, conn: aiosqlite.Connection, query: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Execute query, return all rows as list of dicts."""
        async with conn.execute(self.convert_placeholders(query), params or {}) as cursor:
            rows = await cursor.fetchall()
            cols = [c[0] for c in cursor.description]
            return [self._normalize_row(dict(zip(cols, row, strict=True))) for row in rows]

    async def table_exists(
        self, conn: aiosqlite.Connection, table: str, schema: str | None = None
    ) -> bool:
        """Look the table up in sqlite_master (of the attached schema, if any)."""
        master = f"{self._sql_name(schema)}.sqlite_master" if schema else "sqlite_master"
        row = await self.fetch_one(
            conn,
            f"SELECT COUNT(*) AS count FROM {master} WHERE type='table' AND name=@Param1",
            {"Param1": table},
        )
        return bool(row and row["count"])

    def adapt_value(self, value: Any) -> Any:
        """Store datetimes as ISO strings and sequences as JSON text."""
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, (list, tuple)):
            return json.dumps(value)
        return value

    def json_value(self, value: Any) -> str:
        """JSON parameters are bound as text."""
        return json.dumps(value)

    def json_extract(self, column: str, key: str) -> str:
        return f"json_extract({column}, '$.{key}')"

    def paging_clause(self, skip: int | None, take: int) -> str:
        """SQLite only accepts OFFSET after LIMIT."""
        clause = f" LIMIT {take}"
        return clause + f" OFFSET {skip}" if skip is not None else clause

    def json_merge(
        self, column: str, patch_param: str, keys: Sequence[str], next_index: int
    ) -> tuple[str, list[Any]]:
        """Drop the patched top-level keys, then json_patch the document.

        Removing the keys first makes nested objects replace the stored ones
        instead of being merged recursively. A null value in the patch deletes
        the key (json_patch semantics), where PostgreSQL stores a JSON null.
        """
        if not keys:
            return f"json_patch({column}, {patch_param})", []
        paths = [f"@Param{next_index + i}" for i in range(len(keys))]
        values = ['$."' + key.replace('"', '\\"') + '"' for key in keys]
        return f"json_patch(json_remove({column}, {', '.join(paths)}), {patch_param})", values
