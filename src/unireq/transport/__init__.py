"""src/unireq/transport/__init__.py

Transport layer module for Unireq.

This module provides the bundled transport engine: TCP/TLS connections,
connection pooling, and the blocking and non-blocking clients built on them.
"""

from .connection import AsyncConnection, Connection
from .connection_pool import AsyncConnectionPool, ConnectionPool

__all__ = ["Connection", "ConnectionPool", "AsyncConnection", "AsyncConnectionPool"]
