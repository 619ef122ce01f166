"""src/unireq/http/chunked.py

Message body framing (chunked, fixed-length, read-until-close) for Unireq.

The sync helpers work on a buffered binary stream (``socket.makefile("rb")``),
the async ones on an ``asyncio.StreamReader``.
"""

import asyncio
import socket
from typing import IO, Generator, Iterator

__all__ = [
    "read_exact",
    "iter_read_chunked",
    "read_chunked",
    "read_until_close",
    "iter_write_chunked",
    "async_read_exact",
    "async_read_chunked",
    "async_read_until_close",
    "file_to_iterator",
]

MAX_CHUNK_LINE = 1024


def read_exact(stream: IO[bytes], n: int) -> bytes:
    """Read exactly n bytes from the stream."""
    data = b""
    while len(data) < n:
        chunk = stream.read(n - len(data))
        if not chunk:
            raise EOFError("Socket closed prematurely")

        data += chunk
    return data


def _chunk_size(line: bytes) -> int:
    try:
        size_hex = line.split(b";")[0].strip()
        return int(size_hex, 16)

    except ValueError as exc:
        raise ValueError(f"Invalid chunk size: {line!r}") from exc


def iter_read_chunked(stream: IO[bytes]) -> Generator[bytes, None, None]:
    """Iterate over chunked transfer-encoded response."""
    while True:
        line = stream.readline(MAX_CHUNK_LINE)
        if not line.endswith(b"\n"):
            raise EOFError("Socket closed during chunk header")

        size = _chunk_size(line)
        if size == 0:
            # Skip trailers up to the terminating blank line
            while True:
                trailer = stream.readline(MAX_CHUNK_LINE)
                if not trailer or trailer in (b"\r\n", b"\n"):
                    break
            break

        yield read_exact(stream, size)

        # Consume chunk trailer CRLF
        read_exact(stream, 2)


def read_chunked(stream: IO[bytes]) -> bytes:
    """Read full chunked body into memory."""
    return b"".join(iter_read_chunked(stream))


def read_until_close(stream: IO[bytes], chunk_size: int = 8192) -> bytes:
    """Read until the peer closes the connection."""
    parts = []
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        parts.append(chunk)
    return b"".join(parts)


def iter_write_chunked(sock: socket.socket, chunks: Iterator[bytes]) -> None:
    """
    Write an iterable of bytes chunks using HTTP chunked transfer encoding.

    Each chunk is sent as ``{hex_size}\\r\\n{data}\\r\\n``.
    A final ``0\\r\\n\\r\\n`` terminator is sent after all chunks.

    Args:
        sock: Socket to write to.
        chunks: Iterator yielding bytes chunks.
    """
    for chunk in chunks:
        if not chunk:
            continue
        size_line = f"{len(chunk):x}\r\n".encode("ascii")
        sock.sendall(size_line + chunk + b"\r\n")
    # Terminating chunk
    sock.sendall(b"0\r\n\r\n")


async def async_read_exact(reader: asyncio.StreamReader, n: int) -> bytes:
    """Read exactly n bytes from the reader."""
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as exc:
        raise EOFError("Socket closed prematurely") from exc


async def async_read_chunked(reader: asyncio.StreamReader) -> bytes:
    """Read a full chunked body from an async reader."""
    parts = []
    while True:
        line = await reader.readline()
        if not line.endswith(b"\n"):
            raise EOFError("Socket closed during chunk header")

        size = _chunk_size(line)
        if size == 0:
            while True:
                trailer = await reader.readline()
                if not trailer or trailer in (b"\r\n", b"\n"):
                    break
            break

        parts.append(await async_read_exact(reader, size))
        await async_read_exact(reader, 2)

    return b"".join(parts)


async def async_read_until_close(reader: asyncio.StreamReader) -> bytes:
    """Read until EOF."""
    return await reader.read()


def file_to_iterator(fileobj: IO[bytes], chunk_size: int = 8192) -> Iterator[bytes]:
    """
    Convert a file-like object into a bytes iterator.

    Args:
        fileobj: File-like object opened in binary mode.
        chunk_size: Number of bytes per chunk.

    Yields:
        Chunks of bytes read from the file.
    """
    while True:
        chunk = fileobj.read(chunk_size)
        if not chunk:
            break
        yield chunk
