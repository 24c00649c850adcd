# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQL layer: database adapters and statement builders.

Components:
    DbAdapter, SqliteAdapter, PostgresAdapter: Async database adapters.
    get_adapter: Factory selecting the adapter from a connection string.
    RawSql: Caller-composed WHERE / ORDER BY fragment.
    quote_identifier, generate_*: Pure statement builders.
"""

from .adapters import (
    DbAdapter,
    PostgresAdapter,
    SqliteAdapter,
    get_adapter,
    parse_connection_string,
)
from .statements import (
    RawSql,
    bind_params,
    generate_columns,
    generate_parameters,
    generate_set_parameters,
    generate_values,
    quote_identifier,
    quote_table,
)

__all__ = [
    "DbAdapter",
    "PostgresAdapter",
    "RawSql",
    "SqliteAdapter",
    "bind_params",
    "generate_columns",
    "generate_parameters",
    "generate_set_parameters",
    "generate_values",
    "get_adapter",
    "parse_connection_string",
    "quote_identifier",
    "quote_table",
]
