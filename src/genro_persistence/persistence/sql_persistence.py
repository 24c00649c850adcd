# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Generic SQL persistence: filtered paging, creation and deletion of records.

SqlPersistence maps records of type T to the rows of one table. It owns
the statement generation and the conversion of values in both directions:

- Records are turned into ``{column: value}`` dicts by a codec
  (ModelCodec for pydantic models, MapCodec for dicts).
- Mappings and records bound as parameters are sent as JSON.
- Rows read back lose their NULL columns, get their JSON columns decoded
  and their datetimes normalized to UTC.

Lifecycle: Closed → Opening → Open → Closing → Closed. open() connects
(or checks a borrowed connection) and creates the table when it is
missing, using the TableSchema given at construction or built by the
define_schema() hook.

Usage:
    class DummyPersistence(SqlPersistence[Dummy]):
        model = Dummy

        def define_schema(self, builder):
            builder.statement(
                f'CREATE TABLE IF NOT EXISTS {self.quoted_table} '
                '("id" TEXT PRIMARY KEY, "key" TEXT, "content" TEXT)'
            )

    persistence = DummyPersistence(table="dummies")
    persistence.configure(config)
    await persistence.open()
    page = await persistence.get_page_by_filter(
        RawSql('"key"=@Param1', ["Key 1"]), PagingParams(take=10, total=True)
    )
"""

from __future__ import annotations

import json
import logging
import random
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic_core import to_jsonable_python

from ..config import PersistenceConfig
from ..connect import SqlConnection
from ..errors import CONNECT_FAILED, CONNECTION_NOT_OPENED, NO_TABLE, ConfigError, ConnectError
from ..sql.statements import (
    bind_params,
    compose_count,
    compose_select,
    ensure_raw,
    generate_columns,
    generate_parameters,
    generate_values,
    quote_table,
)
from .codec import MapCodec, ModelCodec
from .data import DataPage, PagingParams
from .schema import SchemaBuilder, TableSchema

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..sql.adapters import DbAdapter
    from ..sql.statements import RawSql
    from .codec import RecordCodec

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceState(Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class SqlPersistence(Generic[T]):
    """Persistence of records of type T in one SQL table.

    Class Attributes (override in subclass):
        table_name: Default table name.
        schema_name: Default schema (PostgreSQL schema or attached SQLite db).
        model: pydantic model class; selects ModelCodec when no codec is given.
        json_columns: Columns decoded from JSON text on read.

    Attributes:
        codec: RecordCodec converting records to rows and back.
        max_page_size: Cap (and default) of the take of paged queries.
        state: Current PersistenceState.
    """

    table_name: str | None = None
    schema_name: str | None = None
    model: type | None = None
    json_columns: tuple[str, ...] = ()

    def __init__(
        self,
        table: str | None = None,
        schema: str | None = None,
        connection: SqlConnection | None = None,
        codec: RecordCodec[T] | None = None,
        table_schema: TableSchema | None = None,
    ):
        """Create a persistence.

        Args:
            table: Table name (defaults to the class table_name).
            schema: Schema name (defaults to the class schema_name).
            connection: Borrowed connection. It must be opened by its owner
                and is never closed here. Without it, open() creates and
                owns a connection from the configuration.
            codec: Record codec (defaults to ModelCodec(model) or MapCodec()).
            table_schema: DDL run when the table is missing. Without it,
                define_schema() is called once at open().
        """
        self.table_name = table or self.table_name
        self.schema_name = schema or self.schema_name
        if codec is None:
            codec = ModelCodec(self.model) if self.model is not None else MapCodec()
        self.codec: RecordCodec[T] = codec
        self.config = PersistenceConfig()
        self.max_page_size = self.config.options.max_page_size
        self.state = PersistenceState.CLOSED
        self._connection = connection
        self._owns_connection = False
        self._table_schema = table_schema

    def configure(self, config: PersistenceConfig) -> None:
        """Apply table, schema and paging settings; keep connection settings for open()."""
        self.config = config
        self.table_name = config.table or self.table_name
        self.schema_name = config.schema or self.schema_name
        self.max_page_size = config.options.max_page_size

    def set_connection(self, connection: SqlConnection) -> None:
        """Use a borrowed connection (takes effect at the next open())."""
        self._connection = connection
        self._owns_connection = False

    @property
    def quoted_table(self) -> str:
        if not self.table_name:
            raise ConfigError(NO_TABLE, "Table name is not set")
        return quote_table(self.table_name, self.schema_name)

    @property
    def connection(self) -> SqlConnection:
        if self._connection is None:
            raise ConnectError(CONNECTION_NOT_OPENED, "Connection is not set")
        return self._connection

    @property
    def adapter(self) -> DbAdapter:
        return self.connection.adapter

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def is_open(self) -> bool:
        return self.state is PersistenceState.OPEN

    async def open(self) -> None:
        """Connect and create the table if missing. No-op if already open.

        Raises:
            ConnectError: CONNECTION_NOT_OPENED if a borrowed connection is
                closed, CONNECT_FAILED if the database cannot be reached.
            ConfigError: If connection settings are incomplete.
            Exception: Any error of a schema statement, unchanged.
        """
        if self.state is PersistenceState.OPEN:
            return

        self.state = PersistenceState.OPENING
        try:
            if self._connection is None:
                self._connection = SqlConnection.from_config(self.config)
                self._owns_connection = True

            if self._owns_connection:
                await self._connection.open()
            elif not self._connection.is_open():
                raise ConnectError(CONNECTION_NOT_OPENED, "Connection is not opened")

            await self._auto_create_objects()
        except Exception:
            if self._owns_connection:
                await self._connection.close()
            self.state = PersistenceState.CLOSED
            raise

        self.state = PersistenceState.OPEN
        logger.debug(
            "Opened persistence %s on %s", self.table_name, self._connection.database_name
        )

    async def close(self) -> None:
        """Close the persistence (and its connection when owned). No-op if closed."""
        if self.state is PersistenceState.CLOSED:
            return

        self.state = PersistenceState.CLOSING
        try:
            if self._owns_connection and self._connection is not None:
                await self._connection.close()
        finally:
            self.state = PersistenceState.CLOSED

    async def clear(self) -> None:
        """Delete every row of the table.

        Raises:
            ConnectError: CONNECT_FAILED if the table is not set or the
                statement fails.
        """
        self._check_open()
        if not self.table_name:
            raise ConnectError(CONNECT_FAILED, "Table name is not set")
        try:
            await self._execute(f"DELETE FROM {self.quoted_table}")
        except Exception as e:
            raise ConnectError(
                CONNECT_FAILED, f"Failed to clear table {self.table_name}", cause=e
            ) from e

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def define_schema(self, builder: SchemaBuilder) -> None:
        """Override to declare the DDL creating the table. Called once, at first open()."""
        pass

    @property
    def table_schema(self) -> TableSchema:
        """Schema statements, built from define_schema() on first access."""
        if self._table_schema is None:
            builder = SchemaBuilder(self.quoted_table, self.adapter.json_type)
            self.define_schema(builder)
            self._table_schema = builder.build()
        return self._table_schema

    async def _auto_create_objects(self) -> None:
        """Run the schema statements if the table does not exist yet."""
        schema = self.table_schema
        if not schema:
            return

        async with self.connection.connection() as conn:
            if await self.adapter.table_exists(conn, self.table_name, self.schema_name):
                return

        logger.debug("Table %s does not exist. Creating database objects...", self.table_name)
        for statement in schema:
            try:
                await self._execute(statement)
            except Exception:
                logger.error("Failed to autocreate database object: %s", statement)
                raise

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def convert_to_public(self, row: dict[str, Any] | None) -> T | None:
        """Row dict → record (None stays None)."""
        if row is None:
            return None
        return self.codec.from_row(row)

    def convert_from_public(self, item: T) -> dict[str, Any]:
        """Record → row dict."""
        return self.codec.to_row(item)

    def _normalize_row(self, row: dict[str, Any]) -> dict[str, Any]:
        """Drop NULLs, decode JSON columns, move datetimes to UTC."""
        result: dict[str, Any] = {}
        for key, value in row.items():
            if value is None:
                continue
            if isinstance(value, (str, bytes)) and key in self.json_columns:
                value = json.loads(value)
            elif isinstance(value, datetime):
                value = to_utc(value)
            result[key] = value
        return result

    def _bind_value(self, value: Any) -> Any:
        """Mappings and whole records are bound as JSON, the rest as scalars."""
        if value is None:
            return None
        if isinstance(value, dict) or self.codec.is_record(value):
            return self.adapter.json_value(to_jsonable_python(value))
        return self.adapter.adapt_value(value)

    def _bind(self, values: Sequence[Any], start: int = 1) -> dict[str, Any]:
        return bind_params([self._bind_value(v) for v in values], start)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _check_open(self) -> None:
        if self.state is not PersistenceState.OPEN:
            raise ConnectError(
                CONNECTION_NOT_OPENED, f"Persistence {self.table_name} is not opened"
            )

    async def _execute(self, query: str, values: Sequence[Any] = ()) -> int:
        async with self.connection.connection() as conn:
            return await self.adapter.execute(conn, query, self._bind(values))

    async def _fetch_one(self, query: str, values: Sequence[Any] = ()) -> dict[str, Any] | None:
        async with self.connection.connection() as conn:
            row = await self.adapter.fetch_one(conn, query, self._bind(values))
        return self._normalize_row(row) if row is not None else None

    async def _fetch_all(self, query: str, values: Sequence[Any] = ()) -> list[dict[str, Any]]:
        async with self.connection.connection() as conn:
            rows = await self.adapter.fetch_all(conn, query, self._bind(values))
        return [self._normalize_row(row) for row in rows]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_page_by_filter(
        self,
        filter: RawSql | None = None,
        paging: PagingParams | None = None,
        sort: RawSql | None = None,
        select: str | None = None,
    ) -> DataPage[T]:
        """Return one page of matching records.

        Args:
            filter: WHERE predicate.
            paging: Skip/take/total (defaults to the first max_page_size rows).
            sort: ORDER BY list.
            select: Column list (defaults to ``*``).
        """
        self._check_open()
        filter = ensure_raw(filter, "filter")
        sort = ensure_raw(sort, "sort")
        paging = paging or PagingParams()

        query, values = compose_select(self.quoted_table, select, filter, sort)
        query += self.adapter.paging_clause(
            paging.get_skip(), paging.get_take(self.max_page_size)
        )
        rows = await self._fetch_all(query, values)
        items = [self.convert_to_public(row) for row in rows]
        logger.debug("Retrieved %d from %s", len(items), self.table_name)

        total = await self.get_count_by_filter(filter) if paging.total else None
        return DataPage(items=items, total=total)

    async def get_list_by_filter(
        self,
        filter: RawSql | None = None,
        sort: RawSql | None = None,
        select: str | None = None,
    ) -> list[T]:
        """Return every matching record."""
        self._check_open()
        query, values = compose_select(
            self.quoted_table, select, ensure_raw(filter, "filter"), ensure_raw(sort, "sort")
        )
        rows = await self._fetch_all(query, values)
        logger.debug("Retrieved %d from %s", len(rows), self.table_name)
        return [self.convert_to_public(row) for row in rows]

    async def get_count_by_filter(self, filter: RawSql | None = None) -> int:
        """Count matching rows."""
        self._check_open()
        query, values = compose_count(self.quoted_table, ensure_raw(filter, "filter"))
        row = await self._fetch_one(query, values)
        count = int(row["count"]) if row else 0
        logger.debug("Counted %d items in %s", count, self.table_name)
        return count

    async def get_one_random(self, filter: RawSql | None = None) -> T | None:
        """Return a random matching record, or None if nothing matches."""
        self._check_open()
        filter = ensure_raw(filter, "filter")
        count = await self.get_count_by_filter(filter)
        if count == 0:
            return None

        pos = random.randint(0, count - 1)
        query, values = compose_select(self.quoted_table, None, filter)
        query += self.adapter.paging_clause(pos, 1)
        row = await self._fetch_one(query, values)
        item = self.convert_to_public(row)
        logger.debug("Retrieved random item from %s", self.table_name)
        return item

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, item: T | None) -> T | None:
        """Insert a record and return it as stored."""
        self._check_open()
        if item is None:
            return None

        row = self.convert_from_public(item)
        query = (
            f"INSERT INTO {self.quoted_table} ({generate_columns(row)})"
            f" VALUES ({generate_parameters(row)}) RETURNING *"
        )
        result = self.convert_to_public(await self._fetch_one(query, generate_values(row)))
        logger.debug("Created in %s item %s", self.table_name, row.get(self.codec.id_field))
        return result

    async def delete_by_filter(self, filter: RawSql | None = None) -> int:
        """Delete matching rows (all rows without a filter); return how many."""
        self._check_open()
        filter = ensure_raw(filter, "filter")
        query = f"DELETE FROM {self.quoted_table}"
        values: list[Any] = []
        if filter:
            query += f" WHERE {filter.text}"
            values = list(filter.params)
        count = await self._execute(query, values)
        logger.debug("Deleted %d items from %s", count, self.table_name)
        return count


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["PersistenceState", "SqlPersistence"]
