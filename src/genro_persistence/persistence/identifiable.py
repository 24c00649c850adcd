# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Id-keyed persistence: get, upsert, update and delete records by id."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from genro_toolbox import get_uuid

from ..sql.statements import (
    generate_columns,
    generate_parameters,
    generate_set_parameters,
    generate_values,
    quote_identifier,
)
from .sql_persistence import SqlPersistence

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class IdentifiableSqlPersistence(SqlPersistence[T], Generic[T, K]):
    """Persistence of records identified by an ``id`` column.

    Missing ids are generated on create() and set() unless
    ``auto_generate_id`` is False. Not-found is never an error: getters
    and deletes return None or an empty list.

    Class Attributes (override in subclass):
        auto_generate_id: Assign new_id() to records without id.
    """

    auto_generate_id: bool = True

    def __init__(self, *args: Any, auto_generate_id: bool | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        if auto_generate_id is not None:
            self.auto_generate_id = auto_generate_id

    @property
    def id_name(self) -> str:
        """Name of the id column."""
        return self.codec.id_field

    @property
    def id_column(self) -> str:
        return quote_identifier(self.id_name)

    def new_id(self) -> Any:
        """Generate an id for a new record. Override for non-string keys."""
        return get_uuid()

    def _ensure_id(self, item: T) -> T:
        if self.auto_generate_id and self.codec.get_id(item) is None:
            item = self.codec.set_id(item, self.new_id())
        return item

    def _in_clause(self, ids: Sequence[K]) -> str:
        return f"{self.id_column} IN ({generate_parameters(ids)})"

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_list_by_ids(self, ids: Sequence[K]) -> list[T]:
        """Return the records whose id is in ``ids`` (in no particular order)."""
        self._check_open()
        if not ids:
            return []
        rows = await self._fetch_all(
            f"SELECT * FROM {self.quoted_table} WHERE {self._in_clause(ids)}", list(ids)
        )
        logger.debug("Retrieved %d from %s", len(rows), self.table_name)
        return [self.convert_to_public(row) for row in rows]

    async def get_one_by_id(self, id: K | None) -> T | None:
        """Return the record with ``id``, or None."""
        self._check_open()
        if id is None:
            return None
        row = await self._fetch_one(
            f"SELECT * FROM {self.quoted_table} WHERE {self.id_column}=@Param1", [id]
        )
        if row is None:
            logger.debug("Nothing found from %s with id = %s", self.table_name, id)
            return None
        logger.debug("Retrieved from %s with id = %s", self.table_name, id)
        return self.convert_to_public(row)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(self, item: T | None) -> T | None:
        """Insert a record, assigning an id first when it has none."""
        if item is None:
            return None
        return await super().create(self._ensure_id(item))

    async def set(self, item: T | None) -> T | None:
        """Insert the record, or replace every column of the stored one (upsert)."""
        self._check_open()
        if item is None:
            return None
        item = self._ensure_id(item)
        if self.codec.get_id(item) is None:
            return None

        row = self.convert_from_public(item)
        query = (
            f"INSERT INTO {self.quoted_table} ({generate_columns(row)})"
            f" VALUES ({generate_parameters(row)})"
            f" ON CONFLICT ({self.id_column}) DO UPDATE SET {generate_set_parameters(row)}"
            " RETURNING *"
        )
        result = self.convert_to_public(await self._fetch_one(query, generate_values(row)))
        logger.debug("Set in %s with id = %s", self.table_name, self.codec.get_id(item))
        return result

    async def update(self, item: T | None) -> T | None:
        """Replace every column of the stored record; None if it does not exist."""
        self._check_open()
        if item is None:
            return None
        id = self.codec.get_id(item)
        if id is None:
            return None

        row = self.convert_from_public(item)
        row.pop(self.id_name, None)
        if not row:
            return await self.get_one_by_id(id)
        return await self._update_columns(id, row, "Updated")

    async def update_partially(self, id: K | None, data: Mapping[str, Any] | None) -> T | None:
        """Set only the columns present in ``data``; None if the record does not exist."""
        self._check_open()
        if id is None or data is None:
            return None
        row = dict(data)
        row.pop(self.id_name, None)
        if not row:
            return await self.get_one_by_id(id)
        return await self._update_columns(id, row, "Updated partially")

    async def _update_columns(self, id: K, row: dict[str, Any], action: str) -> T | None:
        values = generate_values(row)
        query = (
            f"UPDATE {self.quoted_table} SET {generate_set_parameters(row)}"
            f" WHERE {self.id_column}=@Param{len(values) + 1} RETURNING *"
        )
        result = self.convert_to_public(await self._fetch_one(query, [*values, id]))
        logger.debug("%s in %s with id = %s", action, self.table_name, id)
        return result

    async def delete_by_id(self, id: K | None) -> T | None:
        """Delete the record with ``id`` and return it, or None."""
        self._check_open()
        if id is None:
            return None
        row = await self._fetch_one(
            f"DELETE FROM {self.quoted_table} WHERE {self.id_column}=@Param1 RETURNING *", [id]
        )
        logger.debug("Deleted from %s with id = %s", self.table_name, id)
        return self.convert_to_public(row)

    async def delete_by_ids(self, ids: Sequence[K]) -> int:
        """Delete the records whose id is in ``ids``; return how many."""
        self._check_open()
        if not ids:
            return 0
        count = await self._execute(
            f"DELETE FROM {self.quoted_table} WHERE {self._in_clause(ids)}", list(ids)
        )
        logger.debug("Deleted %d items from %s", count, self.table_name)
        return count


__all__ = ["IdentifiableSqlPersistence"]
