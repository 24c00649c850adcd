# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration dataclasses for genro-persistence.

PersistenceConfig groups everything a persistence needs to open its own
connection: the target table, one or more connection candidates, an
optional credential and the tuning options.

Usage:
    config = PersistenceConfig.from_dict({
        "table": "dummies",
        "connection.host": "localhost",
        "connection.port": 5432,
        "connection.database": "test",
        "credential.username": "postgres",
        "credential.password": "postgres",
        "options.max_page_size": 50,
    })
    persistence.configure(config)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass
class ConnectionParams:
    """One candidate database endpoint.

    Either ``uri`` or the ``host``/``port``/``database`` triple must be set.
    ``discovery_key`` names endpoints registered in an external discovery
    service (see ConnectionResolver).
    """

    uri: str | None = None
    host: str | None = None
    port: int = 0
    database: str | None = None
    discovery_key: str | None = None


@dataclass
class CredentialParams:
    """Optional username/password, or a key into a credential store."""

    username: str | None = None
    password: str | None = None
    store_key: str | None = None


@dataclass
class PersistenceOptions:
    """Connection and paging options."""

    max_pool_size: int = 2
    """Maximum number of pooled connections (PostgreSQL)."""

    keep_alive: bool = True
    """Enable TCP keepalives on server connections."""

    connect_timeout: float = 5.0
    """Seconds to wait for the database before failing open()."""

    auto_reconnect: bool = True
    """Let the pool replace broken connections instead of failing."""

    max_page_size: int = 100
    """Upper bound (and default) for the take of a paged query."""

    debug: bool = False
    """Log every statement at DEBUG level."""


@dataclass
class PersistenceConfig:
    """Full configuration of a persistence instance."""

    table: str | None = None
    schema: str | None = None
    connections: list[ConnectionParams] = field(default_factory=list)
    credential: CredentialParams | None = None
    options: PersistenceOptions = field(default_factory=PersistenceOptions)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PersistenceConfig:
        """Build config from nested or dotted key/value settings.

        Accepted keys: ``table`` (or legacy ``collection``), ``schema``,
        ``connection.*`` / ``connections`` (list), ``credential.*`` and
        ``options.*``. Unknown keys are ignored.
        """
        groups = _group_dotted(data)

        connections = [_build(ConnectionParams, c) for c in groups.get("connections") or []]
        if groups.get("connection"):
            connections.append(_build(ConnectionParams, groups["connection"]))

        credential = None
        if groups.get("credential"):
            credential = _build(CredentialParams, groups["credential"])

        return cls(
            table=groups.get("table") or groups.get("collection"),
            schema=groups.get("schema"),
            connections=connections,
            credential=credential,
            options=_build(PersistenceOptions, groups.get("options") or {}),
        )


def config_from_env(prefix: str = "GENRO_PERSISTENCE_") -> PersistenceConfig:
    """Build PersistenceConfig from environment variables.

    Environment variables (default prefix GENRO_PERSISTENCE_):
        *_URI: Connection URI (e.g. postgresql://host/db or sqlite:/path)
        *_HOST, *_PORT, *_DATABASE: Connection fields when no URI is given
        *_USERNAME, *_PASSWORD: Credential
        *_TABLE, *_SCHEMA: Target table
        *_MAX_POOL_SIZE: Pool size (default: 2)
        *_CONNECT_TIMEOUT: Seconds (default: 5)
        *_MAX_PAGE_SIZE: Page size cap (default: 100)
        *_DEBUG: Statement logging (default: false)

    Returns:
        PersistenceConfig populated from environment.
    """
    env = os.environ

    def get(name: str, default: str | None = None) -> str | None:
        return env.get(prefix + name, default)

    connections = []
    if get("URI") or get("HOST"):
        connections.append(
            ConnectionParams(
                uri=get("URI"),
                host=get("HOST"),
                port=int(get("PORT", "0") or 0),
                database=get("DATABASE"),
            )
        )

    credential = None
    if get("USERNAME") or get("PASSWORD"):
        credential = CredentialParams(username=get("USERNAME"), password=get("PASSWORD"))

    return PersistenceConfig(
        table=get("TABLE"),
        schema=get("SCHEMA"),
        connections=connections,
        credential=credential,
        options=PersistenceOptions(
            max_pool_size=int(get("MAX_POOL_SIZE", "2")),
            connect_timeout=float(get("CONNECT_TIMEOUT", "5")),
            max_page_size=int(get("MAX_PAGE_SIZE", "100")),
            debug=(get("DEBUG", "") or "").lower() in ("1", "true", "yes"),
        ),
    )


def _group_dotted(data: Mapping[str, Any]) -> dict[str, Any]:
    """Fold ``group.key`` entries into nested dicts."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if "." in key:
            group, sub = key.split(".", 1)
            result.setdefault(group, {})[sub] = value
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key].update(value)
        else:
            result[key] = dict(value) if isinstance(value, dict) else value
    return result


def _build(cls: type, values: Mapping[str, Any]) -> Any:
    """Instantiate a config dataclass, coercing values to the field defaults' types."""
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in values or values[f.name] is None:
            continue
        value = values[f.name]
        if isinstance(f.default, bool):
            value = value if isinstance(value, bool) else str(value).lower() in ("1", "true", "yes")
        elif isinstance(f.default, int):
            value = int(value)
        elif isinstance(f.default, float):
            value = float(value)
        kwargs[f.name] = value
    return cls(**kwargs)


__all__ = [
    "ConnectionParams",
    "CredentialParams",
    "PersistenceConfig",
    "PersistenceOptions",
    "config_from_env",
]
