"""src/unireq/transport/connection.py

TCP and TLS connection management module.

This module provides low-level connection handling with support for
TLS encryption and proper error mapping for network operations.
"""

import asyncio
import contextlib
import select
import socket
import ssl
from typing import IO, Any, Optional, Tuple, Union

# pylint: disable=redefined-builtin
from unireq.exceptions import ConnectTimeout, NetworkError, TlsError
from unireq.utils.timing import Timeout

__all__ = ["Connection", "AsyncConnection", "RouteKey"]

RouteKey = Tuple[str, int, bool]


class Connection:
    """
    Manages TCP and TLS connection creation and lifecycle.

    Attributes:
        host: The target hostname or IP address.
        port: The target port number.
        use_ssl: Whether to use TLS encryption.
        timeout: Connection timeout configuration.
        sock: The underlying socket object.
        rfile: Buffered reader over ``sock``.
    """

    __slots__ = ("host", "port", "use_ssl", "timeout", "sock", "rfile")

    def __init__(
        self,
        host: str,
        port: int,
        use_ssl: bool = False,
        timeout: Union[float, Timeout, None] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.use_ssl = use_ssl
        self.timeout = Timeout.coerce(timeout)
        self.sock: Optional[socket.socket] = None
        self.rfile: Optional[IO[bytes]] = None

    @property
    def key(self) -> RouteKey:
        """Pool key for this connection."""
        return (self.host, self.port, self.use_ssl)

    def open(self) -> socket.socket:
        """
        Open TCP connection with optional TLS encryption.
        """
        try:
            raw_sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout.connect_timeout
            )
            if self.use_ssl:
                context = ssl.create_default_context()
                try:
                    self.sock = context.wrap_socket(raw_sock, server_hostname=self.host)

                except socket.timeout as e:
                    raw_sock.close()
                    raise ConnectTimeout(f"Timeout during TLS handshake: {e}") from e

            else:
                self.sock = raw_sock

            # After connection is established, switch timeout to 'read_timeout'
            self.sock.settimeout(self.timeout.read_timeout)
            self.rfile = self.sock.makefile("rb")
            return self.sock

        except socket.timeout as e:
            raise ConnectTimeout(
                f"Timeout connecting to {self.host}:{self.port}"
            ) from e

        except ssl.SSLError as e:
            raise TlsError(f"TLS Verification Error: {e}") from e

        except OSError as e:
            raise NetworkError(
                f"Connection error to {self.host}:{self.port} - {e}"
            ) from e

    def sendall(self, data: bytes) -> None:
        """Write all of ``data`` to the socket."""
        if not self.sock:
            raise NetworkError("Connection is not open")
        self.sock.sendall(data)

    def close(self) -> None:
        """
        Close the connection if it is open.
        """
        if self.rfile is not None:
            with contextlib.suppress(OSError):
                self.rfile.close()
            self.rfile = None
        if self.sock:
            with contextlib.suppress(OSError):
                self.sock.close()
            self.sock = None

    def __enter__(self) -> "Connection":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        self.close()

    def is_usable(self) -> bool:
        """
        Check if the connection appears usable (not closed by peer).
        """
        if not self.sock:
            return False

        try:
            readable, _, _ = select.select([self.sock], [], [], 0)
            # An idle pooled connection must have nothing to read: either the
            # peer closed it or it holds stale data.
            return not readable

        except (OSError, ValueError):
            return False


class AsyncConnection:
    """
    Manages asynchronous TCP and TLS connection creation and lifecycle.
    """

    __slots__ = ("host", "port", "use_ssl", "timeout", "reader", "writer")

    def __init__(
        self,
        host: str,
        port: int,
        use_ssl: bool = False,
        timeout: Union[float, Timeout, None] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.use_ssl = use_ssl
        self.timeout = Timeout.coerce(timeout)
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def key(self) -> RouteKey:
        """Pool key for this connection."""
        return (self.host, self.port, self.use_ssl)

    async def open(self) -> None:
        """Async open."""
        ssl_context = ssl.create_default_context() if self.use_ssl else None
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, ssl=ssl_context),
                timeout=self.timeout.connect_timeout,
            )

        except asyncio.TimeoutError as e:
            raise ConnectTimeout(
                f"Connection to {self.host}:{self.port} timed out"
            ) from e

        except ssl.SSLError as e:
            raise TlsError(f"TLS connection failed: {e}") from e

        except OSError as e:
            raise NetworkError(
                f"Failed to connect to {self.host}:{self.port}: {e}"
            ) from e

    def is_usable(self) -> bool:
        """Check if connection is usable."""
        if not self.writer or not self.reader:
            return False

        return not self.writer.is_closing() and not self.reader.at_eof()

    async def close(self) -> None:
        """Async close."""
        if self.writer:
            self.writer.close()
            with contextlib.suppress(Exception):
                await self.writer.wait_closed()

            self.reader = None
            self.writer = None
