# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Connection resolution: candidate endpoints + credential → connection string.

The resolver validates every candidate, optionally expands discovery keys
and credential-store keys through injected services, and composes the
result into a single semicolon separated string::

    postgresql://db1:5432/app;Username=app;Password=secret
    Host=db1,db2;Port=5432,5432;Database=app;Username=app;Password=secret

No network I/O happens here: connectivity is verified by SqlConnection.open().
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ..config import ConnectionParams, CredentialParams
from ..errors import NO_CONNECTION, NO_DATABASE, NO_HOST, NO_PORT, ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..config import PersistenceConfig

logger = logging.getLogger(__name__)


class Discovery(Protocol):
    """Service returning the endpoints registered under a discovery key."""

    async def resolve_all(self, key: str) -> list[ConnectionParams]: ...


class CredentialStore(Protocol):
    """Service returning the credential stored under a key."""

    async def lookup(self, key: str) -> CredentialParams | None: ...


class ConnectionResolver:
    """Merge candidate endpoints and an optional credential into a connection string.

    Attributes:
        connections: Candidate endpoints, in priority order.
        credential: Optional username/password (or store key).
        discovery: Optional service expanding ``discovery_key`` entries.
        credential_store: Optional service expanding ``store_key``.
    """

    def __init__(
        self,
        connections: Iterable[ConnectionParams] | None = None,
        credential: CredentialParams | None = None,
        discovery: Discovery | None = None,
        credential_store: CredentialStore | None = None,
    ):
        self.connections: list[ConnectionParams] = list(connections or [])
        self.credential = credential
        self.discovery = discovery
        self.credential_store = credential_store

    @classmethod
    def from_config(cls, config: PersistenceConfig, **services) -> ConnectionResolver:
        return cls(config.connections, config.credential, **services)

    def add_connection(self, connection: ConnectionParams) -> None:
        self.connections.append(connection)

    async def resolve(self) -> str:
        """Return the composed connection string.

        Raises:
            ConfigError: NO_CONNECTION when there is no candidate, NO_HOST /
                NO_PORT / NO_DATABASE when a candidate is incomplete.
        """
        connections = await self._expand_connections()
        credential = await self._expand_credential()
        if not connections:
            raise ConfigError(NO_CONNECTION, "Connection is not configured")
        for connection in connections:
            self.validate(connection)
        return self.compose(connections, credential)

    @staticmethod
    def validate(connection: ConnectionParams) -> None:
        """Check a candidate carries a URI or a full host/port/database triple."""
        if connection.uri:
            return
        if not connection.host:
            raise ConfigError(NO_HOST, "Connection host is not set")
        if not connection.port:
            raise ConfigError(NO_PORT, "Connection port is not set")
        if not connection.database:
            raise ConfigError(NO_DATABASE, "Connection database is not set")

    @staticmethod
    def compose(
        connections: list[ConnectionParams], credential: CredentialParams | None = None
    ) -> str:
        """Compose validated candidates and credential into one string.

        The first candidate with a URI wins. Otherwise hosts and ports of all
        candidates are listed comma separated (multi-host connection) and the
        database of the first candidate is used.
        """
        uri = next((c.uri for c in connections if c.uri), None)
        if uri:
            connection_part = uri.rstrip(";")
        else:
            pairs = [
                ("Host", ",".join(c.host for c in connections if c.host)),
                ("Port", ",".join(str(c.port) for c in connections if c.port)),
                ("Database", next((c.database for c in connections if c.database), None)),
            ]
            connection_part = ";".join(f"{k}={v}" for k, v in pairs if v)

        credential_part = ""
        if credential is not None:
            pairs = [("Username", credential.username), ("Password", credential.password)]
            credential_part = ";".join(f"{k}={v}" for k, v in pairs if v)

        return ";".join(part for part in (connection_part, credential_part) if part)

    async def _expand_connections(self) -> list[ConnectionParams]:
        """Replace discovery-key candidates with the endpoints they resolve to."""
        result: list[ConnectionParams] = []
        for connection in self.connections:
            if connection.discovery_key and self.discovery is not None:
                found = await self.discovery.resolve_all(connection.discovery_key)
                logger.debug(
                    "Discovery key %s resolved to %d endpoints",
                    connection.discovery_key,
                    len(found),
                )
                result.extend(found)
            else:
                result.append(connection)
        return result

    async def _expand_credential(self) -> CredentialParams | None:
        credential = self.credential
        if credential and credential.store_key and self.credential_store is not None:
            stored = await self.credential_store.lookup(credential.store_key)
            if stored is not None:
                return stored
        return credential


__all__ = ["ConnectionResolver", "CredentialStore", "Discovery"]
