# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Table schema definition: the DDL run once when a table is missing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..sql.statements import quote_identifier

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping


@dataclass(frozen=True)
class TableSchema:
    """Immutable, ordered list of DDL statements."""

    statements: tuple[str, ...] = ()

    def __iter__(self) -> Iterator[str]:
        return iter(self.statements)

    def __len__(self) -> int:
        return len(self.statements)


class SchemaBuilder:
    """Collect DDL statements for one table and freeze them into a TableSchema.

    Usage:
        builder = SchemaBuilder('"dummies"')
        builder.statement('CREATE TABLE IF NOT EXISTS "dummies" ("id" TEXT PRIMARY KEY, ...)')
        builder.index("dummies_key", {"key": True}, unique=True)
        schema = builder.build()
    """

    def __init__(self, table: str, json_type: str = "JSONB"):
        self.table = table
        self.json_type = json_type
        self._statements: list[str] = []

    def statement(self, sql: str) -> SchemaBuilder:
        """Append a raw DDL statement."""
        self._statements.append(sql)
        return self

    def index(
        self,
        name: str,
        keys: Mapping[str, bool] | Iterable[str],
        unique: bool = False,
        index_type: str | None = None,
    ) -> SchemaBuilder:
        """Append ``CREATE [UNIQUE] INDEX IF NOT EXISTS``.

        Args:
            name: Index name.
            keys: Column names (or parenthesized expressions), either as a
                list or as a ``{column: ascending}`` mapping.
            unique: Create a unique index.
            index_type: Access method for ``USING`` (PostgreSQL only).
        """
        if not isinstance(keys, dict):
            keys = {key: True for key in keys}
        fields = ",".join(
            quote_identifier(key) + ("" if ascending else " DESC")
            for key, ascending in keys.items()
        )
        sql = "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
        sql += f" IF NOT EXISTS {quote_identifier(name)} ON {self.table}"
        if index_type:
            sql += f" USING {index_type}"
        return self.statement(f"{sql} ({fields})")

    def json_table(self, id_type: str = "TEXT", data_type: str | None = None) -> SchemaBuilder:
        """Append the two-column ``(id, data)`` table of a JSON document store."""
        return self.statement(
            f'CREATE TABLE IF NOT EXISTS {self.table} '
            f'("id" {id_type} PRIMARY KEY, "data" {data_type or self.json_type})'
        )

    def build(self) -> TableSchema:
        return TableSchema(tuple(self._statements))


__all__ = ["SchemaBuilder", "TableSchema"]
