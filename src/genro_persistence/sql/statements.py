# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQL text builders shared by every persistence.

Statements use positional markers ``@Param1, @Param2, ...`` numbered in
the iteration order of the record map they were generated from. The
matching values travel in a ``{"Param1": v1, ...}`` dict built by
``bind_params``; adapters rewrite the markers into their driver style.

Identifiers are double quoted unless they already start with a quote or a
parenthesis, so expressions such as ``(data->>'key')`` pass through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .adapters.base import PARAM_MARKER

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


@dataclass(frozen=True)
class RawSql:
    """Caller-composed SQL fragment (WHERE predicate or ORDER BY list).

    The text is inserted verbatim: composing it safely is the caller's job.
    Values can be kept out of the text by using ``@Param1..n`` markers in
    the fragment and passing them in ``params``; they are renumbered when
    the fragment is embedded in a statement.

    Example:
        RawSql('"key"=@Param1', ["Key 1"])
        RawSql('"create_time_utc" DESC')
    """

    text: str
    params: tuple[Any, ...] = ()

    def __init__(self, text: str, params: Sequence[Any] = ()):
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "params", tuple(params))

    def __bool__(self) -> bool:
        return bool(self.text)

    def __str__(self) -> str:
        return self.text

    def renumber(self, offset: int) -> RawSql:
        """Shift every @ParamN marker by ``offset``."""
        if not offset or not self.params:
            return self
        text = PARAM_MARKER.sub(lambda m: f"@Param{int(m.group(1)) + offset}", self.text)
        return RawSql(text, self.params)


def ensure_raw(fragment: RawSql | None, what: str = "fragment") -> RawSql | None:
    """Reject plain strings where a raw SQL fragment is expected."""
    if fragment is None or isinstance(fragment, RawSql):
        return fragment or None
    raise TypeError(
        f"{what} must be a RawSql instance, not {type(fragment).__name__}; "
        f"wrap it with RawSql(...) after checking it is safe to embed"
    )


def quote_identifier(value: str | None) -> str | None:
    """Double-quote an identifier unless it is already quoted or an expression."""
    if not value:
        return value
    if value[0] in ('"', "("):
        return value
    return f'"{value}"'


def quote_table(table: str, schema: str | None = None) -> str:
    """Quote a table name, qualified by its schema when one is set."""
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)


def generate_columns(columns: Iterable[str]) -> str:
    """Comma-joined quoted column list."""
    return ",".join(quote_identifier(c) for c in columns)


def generate_parameters(columns: Iterable[Any], start: int = 1) -> str:
    """``@Param1,@Param2,...`` with one marker per column."""
    return ",".join(f"@Param{index}" for index, _ in enumerate(columns, start))


def generate_set_parameters(columns: Iterable[str], start: int = 1) -> str:
    """``"col"=@ParamN`` pairs for UPDATE and upsert SET clauses."""
    return ",".join(
        f"{quote_identifier(c)}=@Param{index}" for index, c in enumerate(columns, start)
    )


def generate_values(row: dict[str, Any]) -> list[Any]:
    """Values of a record map in column order."""
    return list(row.values())


def bind_params(values: Sequence[Any], start: int = 1) -> dict[str, Any]:
    """Build the ``{"ParamN": value}`` dict for positional markers."""
    return {f"Param{index}": value for index, value in enumerate(values, start)}


def compose_select(
    table: str,
    select: str | None = None,
    filter: RawSql | None = None,
    sort: RawSql | None = None,
) -> tuple[str, list[Any]]:
    """``SELECT <select> FROM <table> [WHERE f] [ORDER BY s]`` and its values."""
    query = f"SELECT {select or '*'} FROM {table}"
    values: list[Any] = []
    if filter:
        query += f" WHERE {filter.text}"
        values.extend(filter.params)
    if sort:
        sort = sort.renumber(len(values))
        query += f" ORDER BY {sort.text}"
        values.extend(sort.params)
    return query, values


def compose_count(table: str, filter: RawSql | None = None) -> tuple[str, list[Any]]:
    """``SELECT COUNT(*) AS count FROM <table> [WHERE f]`` and its values."""
    query = f"SELECT COUNT(*) AS count FROM {table}"
    if filter:
        return f"{query} WHERE {filter.text}", list(filter.params)
    return query, []


__all__ = [
    "RawSql",
    "bind_params",
    "compose_count",
    "compose_select",
    "ensure_raw",
    "generate_columns",
    "generate_parameters",
    "generate_set_parameters",
    "generate_values",
    "quote_identifier",
    "quote_table",
]
