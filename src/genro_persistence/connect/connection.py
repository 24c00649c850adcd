# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Connection manager: owns the adapter (and its pool) of one database."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from ..config import PersistenceOptions
from ..errors import CONNECT_FAILED, CONNECTION_NOT_OPENED, ConnectError
from ..sql.adapters import DbAdapter, get_adapter
from .resolver import ConnectionResolver

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ..config import PersistenceConfig

logger = logging.getLogger(__name__)


class SqlConnection:
    """Database connection with open/close lifecycle.

    The connection string is either given directly or produced by a
    ConnectionResolver when the connection is opened. Statements do not
    use a shared handle: each caller borrows a driver connection through
    ``connection()``, which commits on success and rolls back on error.

    Usage:
        connection = SqlConnection(connection_string="sqlite:/data/app.db")
        await connection.open()

        async with connection.connection() as conn:
            row = await connection.adapter.fetch_one(conn, "SELECT 1 AS one")
        # COMMIT on success, ROLLBACK on exception

        await connection.close()
    """

    def __init__(
        self,
        connection_string: str | None = None,
        resolver: ConnectionResolver | None = None,
        options: PersistenceOptions | None = None,
    ):
        self.connection_string = connection_string
        self.resolver = resolver or ConnectionResolver()
        self.options = options or PersistenceOptions()
        self._adapter: DbAdapter | None = None

    @classmethod
    def from_config(cls, config: PersistenceConfig, **services: Any) -> SqlConnection:
        """Create a connection resolving the endpoints listed in ``config``."""
        return cls(
            resolver=ConnectionResolver.from_config(config, **services),
            options=config.options,
        )

    @property
    def adapter(self) -> DbAdapter:
        """Adapter of the open connection.

        Raises:
            ConnectError: CONNECTION_NOT_OPENED if open() was not called.
        """
        if self._adapter is None:
            raise ConnectError(CONNECTION_NOT_OPENED, "Connection is not opened")
        return self._adapter

    @property
    def database_name(self) -> str | None:
        return self._adapter.database_name if self._adapter is not None else None

    def is_open(self) -> bool:
        return self._adapter is not None

    async def open(self) -> None:
        """Resolve the connection string and connect to the database.

        No-op if already open.

        Raises:
            ConfigError: If the connection parameters are incomplete.
            ConnectError: CONNECT_FAILED if the database cannot be reached.
        """
        if self.is_open():
            return

        connection_string = self.connection_string or await self.resolver.resolve()
        adapter = get_adapter(connection_string, self.options)

        if self.options.debug:
            logging.getLogger("genro_persistence").setLevel(logging.DEBUG)
            logging.getLogger("psycopg").setLevel(logging.DEBUG)

        try:
            await adapter.connect()
        except Exception as e:
            await adapter.shutdown()
            raise ConnectError(
                CONNECT_FAILED,
                f"Connection to {adapter.database_name} failed: {e}",
                cause=e,
            ) from e

        self._adapter = adapter
        logger.debug("Connected to %s database %s", adapter.dialect, adapter.database_name)

    async def close(self) -> None:
        """Close the pool. No-op if already closed."""
        if self._adapter is None:
            return
        adapter, self._adapter = self._adapter, None
        await adapter.shutdown()
        logger.debug("Disconnected from %s database %s", adapter.dialect, adapter.database_name)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Any]:
        """Borrow a driver connection for one operation.

        Acquires a connection from the adapter and handles commit/rollback
        on exit.

        Raises:
            ConnectError: CONNECTION_NOT_OPENED if open() was not called.
        """
        adapter = self.adapter
        conn = await adapter.acquire()
        try:
            yield conn
            await adapter.commit(conn)
        except Exception:
            await adapter.rollback(conn)
            raise
        finally:
            await adapter.release(conn)


__all__ = ["SqlConnection"]
