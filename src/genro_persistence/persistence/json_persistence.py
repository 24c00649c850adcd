# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""JSON document persistence: each record is stored whole in a ``data`` column.

The table has two columns, ``id`` and ``data``. Partial updates are a
shallow merge done by the database: top-level keys of the patch replace
the stored ones, every other key is kept, nested objects are replaced
wholesale.

Usage:
    class Dummy2Persistence(IdentifiableJsonSqlPersistence[Dummy2, int]):
        model = Dummy2
        id_type = "NUMERIC"
        auto_generate_id = False

        def define_schema(self, builder):
            super().define_schema(builder)
            builder.index("dummies2_key", [f"({self.data_field('key')})"], unique=True)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic_core import to_jsonable_python

from .identifiable import IdentifiableSqlPersistence

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import SchemaBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")

DATA_COLUMN = '"data"'


class IdentifiableJsonSqlPersistence(IdentifiableSqlPersistence[T, K], Generic[T, K]):
    """Id-keyed persistence storing records as JSON documents.

    Class Attributes (override in subclass):
        id_type: SQL type of the id column.
        data_type: SQL type of the data column (default: JSONB on
            PostgreSQL, JSON on SQLite).
    """

    json_columns = ("data",)
    id_type: str = "TEXT"
    data_type: str | None = None

    @property
    def id_name(self) -> str:
        return "id"

    def define_schema(self, builder: SchemaBuilder) -> None:
        builder.json_table(self.id_type, self.data_type)

    def data_field(self, key: str) -> str:
        """SQL expression reading a top-level document key as text, for filters and indexes."""
        return self.adapter.json_extract(DATA_COLUMN, key)

    def convert_from_public(self, item: T) -> dict[str, Any]:
        return {
            "id": self.codec.get_id(item),
            "data": to_jsonable_python(self.codec.to_row(item)),
        }

    def convert_to_public(self, row: dict[str, Any] | None) -> T | None:
        if row is None or row.get("data") is None:
            return None
        return self.codec.from_row(row["data"])

    async def update_partially(self, id: K | None, data: Mapping[str, Any] | None) -> T | None:
        """Merge ``data`` into the stored document; None if the record does not exist."""
        self._check_open()
        if id is None or data is None:
            return None

        patch = to_jsonable_python(dict(data))
        merge, extra = self.adapter.json_merge(DATA_COLUMN, "@Param2", list(patch), 3)
        query = (
            f"UPDATE {self.quoted_table} SET {DATA_COLUMN}={merge}"
            f" WHERE {self.id_column}=@Param1 RETURNING *"
        )
        result = self.convert_to_public(await self._fetch_one(query, [id, patch, *extra]))
        logger.debug("Updated partially in %s with id = %s", self.table_name, id)
        return result


__all__ = ["IdentifiableJsonSqlPersistence"]
