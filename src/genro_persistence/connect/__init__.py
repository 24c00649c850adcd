# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Connection resolution and management.

Components:
    ConnectionResolver: Validates endpoints/credential and composes the connection string.
    SqlConnection: Opens the database through an adapter and lends driver connections.
    Discovery, CredentialStore: Protocols of the optional lookup services.
"""

from .connection import SqlConnection
from .resolver import ConnectionResolver, CredentialStore, Discovery

__all__ = ["ConnectionResolver", "CredentialStore", "Discovery", "SqlConnection"]
