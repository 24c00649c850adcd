# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Genro Persistence - generic async relational persistence.

Gives any record type CRUD, paging, filtering and JSON document storage
over SQLite or PostgreSQL without writing per-entity SQL.

Example:
    ::

        from genro_persistence import (
            IdentifiableSqlPersistence, PersistenceConfig, RawSql,
        )

        class DummyPersistence(IdentifiableSqlPersistence[Dummy, str]):
            model = Dummy

            def define_schema(self, builder):
                builder.statement(
                    f'CREATE TABLE IF NOT EXISTS {self.quoted_table} '
                    '("id" TEXT PRIMARY KEY, "key" TEXT, "content" TEXT)'
                )

        persistence = DummyPersistence(table="dummies")
        persistence.configure(PersistenceConfig.from_dict({
            "connection.uri": "postgresql://localhost:5432/test",
            "credential.username": "postgres",
            "credential.password": "postgres",
        }))
        await persistence.open()
        dummy = await persistence.create(Dummy(key="Key 1", content="Content 1"))
        await persistence.close()
"""

from .config import (
    ConnectionParams,
    CredentialParams,
    PersistenceConfig,
    PersistenceOptions,
    config_from_env,
)
from .connect import ConnectionResolver, SqlConnection
from .errors import ConfigError, ConnectError, PersistenceError
from .persistence import (
    DataPage,
    IdentifiableJsonSqlPersistence,
    IdentifiableSqlPersistence,
    MapCodec,
    ModelCodec,
    PagingParams,
    PersistenceState,
    SchemaBuilder,
    SqlPersistence,
    TableSchema,
)
from .sql import RawSql

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "ConnectError",
    "ConnectionParams",
    "ConnectionResolver",
    "CredentialParams",
    "DataPage",
    "IdentifiableJsonSqlPersistence",
    "IdentifiableSqlPersistence",
    "MapCodec",
    "ModelCodec",
    "PagingParams",
    "PersistenceConfig",
    "PersistenceError",
    "PersistenceOptions",
    "PersistenceState",
    "RawSql",
    "SchemaBuilder",
    "SqlConnection",
    "SqlPersistence",
    "TableSchema",
    "config_from_env",
]
