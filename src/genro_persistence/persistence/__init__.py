# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Persistence classes and their data types.

Components:
    SqlPersistence: Filtered/paged reads, create and delete on one table.
    IdentifiableSqlPersistence: Adds id-keyed get, upsert, update and delete.
    IdentifiableJsonSqlPersistence: Stores each record as a JSON document.
    PagingParams, DataPage: Paging request and result.
    ModelCodec, MapCodec: Record ↔ row conversion.
    SchemaBuilder, TableSchema: DDL run when the table is missing.
"""

from .codec import MapCodec, ModelCodec, RecordCodec
from .data import DataPage, PagingParams
from .identifiable import IdentifiableSqlPersistence
from .json_persistence import IdentifiableJsonSqlPersistence
from .schema import SchemaBuilder, TableSchema
from .sql_persistence import PersistenceState, SqlPersistence

__all__ = [
    "DataPage",
    "IdentifiableJsonSqlPersistence",
    "IdentifiableSqlPersistence",
    "MapCodec",
    "ModelCodec",
    "PagingParams",
    "PersistenceState",
    "RecordCodec",
    "SchemaBuilder",
    "SqlPersistence",
    "TableSchema",
]
