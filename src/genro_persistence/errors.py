# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for genro-persistence.

Two families are raised by the package itself:

- ConfigError: incomplete or invalid connection configuration. Raised
  synchronously while resolving connection parameters, never retried.
- ConnectError: the database could not be reached, the connection was
  used before being opened, or a table-wide operation failed. The
  driver exception is chained as ``__cause__``.

Failures of ordinary SQL statements are driver exceptions and are left
untouched. A missing record is never an error: getters return None.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for errors raised by genro-persistence.

    Attributes:
        code: Machine readable error code (e.g. "NO_HOST").
        message: Human readable description.
    """

    def __init__(self, code: str, message: str, cause: BaseException | None = None):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")
        if cause is not None:
            self.__cause__ = cause


class ConfigError(PersistenceError, ValueError):
    """Connection or persistence configuration is incomplete."""


class ConnectError(PersistenceError, ConnectionError):
    """Database connection is missing, closed or failed."""


NO_CONNECTION = "NO_CONNECTION"
NO_HOST = "NO_HOST"
NO_PORT = "NO_PORT"
NO_DATABASE = "NO_DATABASE"
NO_TABLE = "NO_TABLE"
UNSUPPORTED_DATABASE = "UNSUPPORTED_DATABASE"
CONNECTION_NOT_OPENED = "CONNECTION_NOT_OPENED"
CONNECT_FAILED = "CONNECT_FAILED"


__all__ = [
    "CONNECTION_NOT_OPENED",
    "CONNECT_FAILED",
    "ConfigError",
    "ConnectError",
    "NO_CONNECTION",
    "NO_DATABASE",
    "NO_HOST",
    "NO_PORT",
    "NO_TABLE",
    "PersistenceError",
    "UNSUPPORTED_DATABASE",
]
