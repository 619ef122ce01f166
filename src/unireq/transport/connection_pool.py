"""src/unireq/transport/connection_pool.py

Connection pooling module.

This module provides connection pool management for efficient reuse of
TCP/TLS connections across multiple HTTP requests.
"""

import asyncio
import logging
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple, Union

from unireq.transport.connection import AsyncConnection, Connection, RouteKey
from unireq.utils.timing import Timeout

__all__ = ["ConnectionPool", "AsyncConnectionPool"]

logger = logging.getLogger(__name__)


class ConnectionPool:
    """
    Pool of reusable open connections.

    Maintains a cache of open connections keyed by (host, port, ssl)
    to enable connection reuse across multiple requests.

    This implementation is thread-safe and supports multiple connections
    per host. ``max_size`` bounds the connections checked out plus idle per
    route; callers beyond that block until a slot is released.
    """

    __slots__ = ("_pool", "_lock", "_semaphores", "max_size", "max_idle_time")

    def __init__(self, max_size: int = 10, max_idle_time: float = 30.0) -> None:
        """
        Initialize connection pool.

        Args:
            max_size: Maximum number of connections per route.
            max_idle_time: Max time (seconds) a connection can be idle.
        """
        # Key -> deque of (connection, timestamp) tuples (LIFO stack for reuse)
        self._pool: Dict[RouteKey, Deque[Tuple[Connection, float]]] = {}
        self._semaphores: Dict[RouteKey, threading.Semaphore] = {}
        self._lock = threading.Lock()
        self.max_size = max_size
        self.max_idle_time = max_idle_time

    def get_connection(
        self,
        host: str,
        port: int,
        use_ssl: bool,
        timeout: Union[float, Timeout, None] = None,
    ) -> Connection:
        """
        Get an existing connection or create a new one.
        Blocks if max_size is reached until a connection is available.
        """
        key = (host, port, use_ssl)

        with self._lock:
            if key not in self._semaphores:
                self._semaphores[key] = threading.Semaphore(self.max_size)
            semaphore = self._semaphores[key]

        semaphore.acquire()

        try:
            with self._lock:
                connections = self._pool.get(key)
                while connections:
                    conn, last_used = connections.pop()  # Pop from right (LIFO)

                    # Check if connection is still fresh and usable
                    if time.time() - last_used < self.max_idle_time and conn.is_usable():
                        logger.debug("Reusing pooled connection to %s:%d", host, port)
                        return conn

                    # Close expired or dead connection
                    conn.close()

            conn = Connection(host, port, use_ssl, timeout=timeout)
            conn.open()
            logger.debug("Opened connection to %s:%d", host, port)
            return conn

        except Exception:
            # If anything fails (creation), release the slot
            semaphore.release()
            raise

    def put_connection(self, conn: Connection) -> None:
        """
        Return a connection to the pool with timestamp.
        """
        key = conn.key

        # If connection is bad or closed, we effectively discard it
        if not conn.sock or not conn.is_usable():
            self.discard_connection(conn)
            return

        with self._lock:
            queue = self._pool.setdefault(key, deque())

            # If full, drop oldest
            if len(queue) >= self.max_size:
                oldest_conn, _ = queue.popleft()
                oldest_conn.close()

            queue.append((conn, time.time()))

        self._release_slot(key)

    def discard_connection(self, conn: Connection) -> None:
        """Discard a connection and release its slot."""
        conn.close()
        self._release_slot(conn.key)

    def _release_slot(self, key: RouteKey) -> None:
        semaphore = self._semaphores.get(key)
        if semaphore is not None:
            semaphore.release()

    def close_idle(self, max_idle_time: Optional[float] = None) -> int:
        """
        Close idle connections older than ``max_idle_time`` on every route.

        Args:
            max_idle_time: Age limit in seconds (defaults to the pool's own).

        Returns:
            Number of connections closed.
        """
        limit = self.max_idle_time if max_idle_time is None else max_idle_time
        now = time.time()
        closed = 0
        with self._lock:
            for key, connections in self._pool.items():
                kept: Deque[Tuple[Connection, float]] = deque()
                for conn, last_used in connections:
                    if now - last_used < limit and conn.is_usable():
                        kept.append((conn, last_used))
                    else:
                        conn.close()
                        closed += 1
                self._pool[key] = kept
        return closed

    def idle_count(self) -> int:
        """Number of idle connections currently pooled."""
        with self._lock:
            return sum(len(connections) for connections in self._pool.values())

    def close_all(self) -> None:
        """
        Close all idle connections in the pool.
        """
        with self._lock:
            for connections in self._pool.values():
                for conn, _ in connections:
                    conn.close()

            self._pool.clear()


class AsyncConnectionPool:
    """
    Pool of reusable asynchronous connections.

    Not thread-safe: every call must come from the event loop that owns it.
    """

    __slots__ = ("_pool", "_semaphores", "max_size", "max_idle_time")

    def __init__(self, max_size: int = 10, max_idle_time: float = 30.0):
        # Key -> List of (connection, timestamp) tuples
        self._pool: Dict[RouteKey, List[Tuple[AsyncConnection, float]]] = {}
        self._semaphores: Dict[RouteKey, asyncio.Semaphore] = {}
        self.max_size = max_size
        self.max_idle_time = max_idle_time

    async def get_connection(
        self,
        host: str,
        port: int,
        use_ssl: bool,
        timeout: Union[float, Timeout, None] = None,
    ) -> AsyncConnection:
        """
        Returns an existing connection or creates a new one.
        """
        key = (host, port, use_ssl)

        if key not in self._semaphores:
            self._semaphores[key] = asyncio.Semaphore(self.max_size)
        semaphore = self._semaphores[key]

        await semaphore.acquire()

        try:
            connections = self._pool.get(key)
            while connections:
                conn, last_used = connections.pop()

                # Check if connection is still fresh and usable
                if time.time() - last_used < self.max_idle_time and conn.is_usable():
                    logger.debug("Reusing pooled connection to %s:%d", host, port)
                    return conn

                # Close expired or dead connection
                await conn.close()

            conn = AsyncConnection(host, port, use_ssl, timeout=timeout)
            await conn.open()
            logger.debug("Opened async connection to %s:%d", host, port)
            return conn

        except BaseException:
            # Cancellation included: the slot must not leak
            semaphore.release()
            raise

    async def put_connection(self, conn: AsyncConnection) -> None:
        """
        Returns a connection to the pool for reuse with timestamp.
        """
        key = conn.key

        if not conn.is_usable():
            await self.discard_connection(conn)
            return

        connections = self._pool.setdefault(key, [])
        if len(connections) >= self.max_size:
            oldest_conn, _ = connections.pop(0)
            await oldest_conn.close()

        connections.append((conn, time.time()))
        self._release_slot(key)

    async def discard_connection(self, conn: AsyncConnection) -> None:
        """Discard async connection and release slot."""
        await conn.close()
        self._release_slot(conn.key)

    def _release_slot(self, key: RouteKey) -> None:
        semaphore = self._semaphores.get(key)
        if semaphore is not None:
            semaphore.release()

    async def close_idle(self, max_idle_time: Optional[float] = None) -> int:
        """
        Close idle connections older than ``max_idle_time`` on every route.

        Returns:
            Number of connections closed.
        """
        limit = self.max_idle_time if max_idle_time is None else max_idle_time
        now = time.time()
        closed = 0
        for key, connections in list(self._pool.items()):
            kept: List[Tuple[AsyncConnection, float]] = []
            for conn, last_used in connections:
                if now - last_used < limit and conn.is_usable():
                    kept.append((conn, last_used))
                else:
                    await conn.close()
                    closed += 1
            self._pool[key] = kept
        return closed

    def idle_count(self) -> int:
        """Number of idle connections currently pooled."""
        return sum(len(connections) for connections in self._pool.values())

    async def close_all(self) -> None:
        """
        Closes all idle connections in the pool.
        """
        for connections in self._pool.values():
            for conn, _ in connections:
                await conn.close()
        self._pool.clear()
