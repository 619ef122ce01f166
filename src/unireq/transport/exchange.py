"""src/unireq/transport/exchange.py

One HTTP/1.1 request/response exchange over an open connection.
"""

import asyncio
import socket
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from unireq.client.prepared import PreparedRequest
from unireq.exceptions import NetworkError, ProtocolError, ReadTimeout
from unireq.http.body import Body
from unireq.http.chunked import (
    async_read_chunked,
    async_read_exact,
    async_read_until_close,
    iter_write_chunked,
    read_chunked,
    read_exact,
    read_until_close,
)
from unireq.http.headers import Headers
from unireq.http.http11 import (
    HttpParser,
    ResponseHead,
    decode_content,
    response_has_body,
    serialize_request_head,
)
from unireq.http.url import URL
from unireq.transport.connection import AsyncConnection, Connection

__all__ = ["RawResponse", "send_request", "async_send_request"]

MAX_HEAD_LINE = 65536


@dataclass
class RawResponse:
    """
    Response as read off the wire.

    ``body`` has its content coding (gzip, deflate) already removed.
    """

    status: int
    reason: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    http_version: str = "HTTP/1.1"
    keep_alive: bool = False

    def header_view(self) -> Headers:
        """Case-insensitive view over ``headers``."""
        return Headers(self.headers)


def _framing_headers(
    prepared: PreparedRequest, url: URL
) -> Tuple[List[Tuple[str, str]], Optional[Body], bool]:
    """
    Complete the header list with Host and body framing.

    Returns:
        (headers, entity, chunked)
    """
    headers = list(prepared.headers)
    entity = prepared.entity
    chunked = False

    if not prepared.has_header("Host"):
        headers.insert(0, ("Host", url.host_header))

    if entity is not None:
        if entity.content_type and not prepared.has_header("Content-Type"):
            headers.append(("Content-Type", entity.content_type))
        length = entity.content_length
        if not prepared.has_header("Content-Length"):
            if length is not None:
                headers.append(("Content-Length", str(length)))
            else:
                headers.append(("Transfer-Encoding", "chunked"))
                chunked = True
    elif prepared.method in ("POST", "PUT", "PATCH"):
        headers.append(("Content-Length", "0"))

    return headers, entity, chunked


def _body_framing(method: str, head: ResponseHead) -> Tuple[str, int]:
    """
    Decide how the response body is delimited.

    Returns:
        ("none" | "chunked" | "length" | "close", content length)
    """
    _, status, _, header_pairs = head
    headers = Headers(header_pairs)

    if not response_has_body(method, status):
        return "none", 0
    if "chunked" in str(headers.get("Transfer-Encoding", "")).lower():
        return "chunked", 0
    content_length = headers.get("Content-Length")
    if content_length is not None:
        try:
            length = int(content_length.split(",")[0].strip())
        except ValueError as exc:
            raise ProtocolError(f"Invalid Content-Length: {content_length!r}") from exc
        if length < 0:
            raise ProtocolError(f"Invalid Content-Length: {content_length!r}")
        return "length", length
    return "close", 0


def _keep_alive(head: ResponseHead, framing: str) -> bool:
    version, _, _, header_pairs = head
    if framing == "close":
        return False
    connection = str(Headers(header_pairs).get("Connection", "")).lower()
    if version == "HTTP/1.0":
        return "keep-alive" in connection
    return "close" not in connection


def _finish(method: str, head: ResponseHead, framing: str, body: bytes) -> RawResponse:
    version, status, reason, header_pairs = head
    encoding = Headers(header_pairs).get("Content-Encoding")
    return RawResponse(
        status=status,
        reason=reason,
        headers=header_pairs,
        body=decode_content(body, encoding) if method != "HEAD" else body,
        http_version=version,
        keep_alive=_keep_alive(head, framing),
    )


def _read_head(conn: Connection, parser: HttpParser) -> ResponseHead:
    rfile = conn.rfile
    if rfile is None:
        raise NetworkError("Connection is not open")

    while True:
        lines = []
        size = 0
        while True:
            line = rfile.readline(MAX_HEAD_LINE)
            if not line:
                if not lines:
                    raise NetworkError("Server closed connection without response")
                raise ProtocolError("Connection closed while reading headers")
            if line in (b"\r\n", b"\n"):
                if not lines:
                    continue
                break
            size += len(line)
            if size > parser.max_header_size:
                raise ProtocolError(
                    f"Headers exceed maximum size of {parser.max_header_size} bytes"
                )
            lines.append(line.rstrip(b"\r\n"))

        head = parser.parse_head(b"\r\n".join(lines) + b"\r\n\r\n")
        # Skip interim responses (100 Continue and friends)
        if 100 <= head[1] < 200 and head[1] != 101:
            continue
        return head


def send_request(
    conn: Connection, prepared: PreparedRequest, parser: Optional[HttpParser] = None
) -> RawResponse:
    """
    Write ``prepared`` on an open connection and read the full response.

    The entity, if any, is streamed: chunked when its length is unknown.

    Raises:
        NetworkError, ReadTimeout, ProtocolError: On transport failures.
    """
    parser = parser or HttpParser()
    url = URL(prepared.url)
    headers, entity, chunked = _framing_headers(prepared, url)

    try:
        conn.sendall(serialize_request_head(prepared.method, url.target, headers))
        if entity is not None:
            if chunked:
                if conn.sock is None:
                    raise NetworkError("Connection is not open")
                iter_write_chunked(conn.sock, entity.iter_chunks())
            else:
                for chunk in entity.iter_chunks():
                    conn.sendall(chunk)

        head = _read_head(conn, parser)
        framing, length = _body_framing(prepared.method, head)
        rfile = conn.rfile
        if rfile is None:
            raise NetworkError("Connection is not open")

        if framing == "chunked":
            body = read_chunked(rfile)
        elif framing == "length":
            body = read_exact(rfile, length)
        elif framing == "close":
            body = read_until_close(rfile)
        else:
            body = b""

    except socket.timeout as exc:
        raise ReadTimeout(f"Read timed out: {exc}") from exc
    except EOFError as exc:
        raise ProtocolError(f"Incomplete response body: {exc}") from exc
    except OSError as exc:
        raise NetworkError(f"Network error during exchange: {exc}") from exc

    return _finish(prepared.method, head, framing, body)


async def _async_read_head(
    reader: asyncio.StreamReader, parser: HttpParser
) -> ResponseHead:
    while True:
        try:
            data = await reader.readuntil(b"\r\n\r\n")
        except asyncio.IncompleteReadError as exc:
            if not exc.partial:
                raise NetworkError("Server closed connection without response") from exc
            raise ProtocolError("Connection closed while reading headers") from exc
        except asyncio.LimitOverrunError as exc:
            raise ProtocolError("Response headers too large") from exc

        head = parser.parse_head(data.lstrip(b"\r\n"))
        if 100 <= head[1] < 200 and head[1] != 101:
            continue
        return head


async def async_send_request(
    conn: AsyncConnection,
    prepared: PreparedRequest,
    parser: Optional[HttpParser] = None,
) -> RawResponse:
    """
    Async counterpart of ``send_request``.

    The entity must already be fully materialized; it is written in one go.
    """
    parser = parser or HttpParser()
    url = URL(prepared.url)
    headers, entity, chunked = _framing_headers(prepared, url)
    if chunked:
        raise ValueError("Async requests need a materialized body")

    reader, writer = conn.reader, conn.writer
    if reader is None or writer is None:
        raise NetworkError("Connection is not open")

    read_timeout = conn.timeout.read_timeout

    try:
        payload = serialize_request_head(prepared.method, url.target, headers)
        if entity is not None:
            payload += b"".join(entity.iter_chunks())
        writer.write(payload)
        await writer.drain()

        head = await asyncio.wait_for(
            _async_read_head(reader, parser), timeout=read_timeout
        )
        framing, length = _body_framing(prepared.method, head)

        if framing == "chunked":
            body = await asyncio.wait_for(async_read_chunked(reader), read_timeout)
        elif framing == "length":
            body = await asyncio.wait_for(async_read_exact(reader, length), read_timeout)
        elif framing == "close":
            body = await asyncio.wait_for(async_read_until_close(reader), read_timeout)
        else:
            body = b""

    except asyncio.TimeoutError as exc:
        raise ReadTimeout("Read timed out") from exc
    except EOFError as exc:
        raise ProtocolError(f"Incomplete response body: {exc}") from exc
    except OSError as exc:
        raise NetworkError(f"Network error during exchange: {exc}") from exc

    return _finish(prepared.method, head, framing, body)
