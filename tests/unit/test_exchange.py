"""tests/unit/test_exchange.py

Unit tests for unireq.transport.exchange module.

Test Coverage:
    - Request framing (Host, Content-Type, Content-Length, chunked upload)
    - Response body framing (Content-Length, chunked, until close, none)
    - Keep-alive decisions
    - Error mapping to engine exceptions

Testing Strategy:
    - Connections are doubles backed by in-memory streams
"""

import asyncio
import gzip
import io
import socket
from unittest import mock

import pytest

from unireq.client.prepared import PreparedEntityRequest, PreparedRequest
from unireq.exceptions import NetworkError, ProtocolError, ReadTimeout
from unireq.http.body import BufferedBody, BytesBody, StreamBody
from unireq.transport.connection import AsyncConnection, Connection
from unireq.transport.exchange import RawResponse, async_send_request, send_request
from unireq.utils.timing import Timeout

# ============================================================================
# FIXTURES
# ============================================================================


class SentData:
    """Collects everything written to a connection double."""

    def __init__(self) -> None:
        self.data = b""

    def __call__(self, chunk: bytes) -> None:
        self.data += chunk


def make_conn(response: bytes) -> mock.Mock:
    conn = mock.Mock(spec=Connection)
    conn.rfile = io.BytesIO(response)
    sent = SentData()
    conn.sendall.side_effect = sent
    conn.sock = mock.Mock()
    conn.sock.sendall.side_effect = sent
    conn.sent = sent
    return conn


def make_async_conn(response: bytes) -> mock.Mock:
    reader = asyncio.StreamReader()
    reader.feed_data(response)
    reader.feed_eof()
    writer = mock.Mock()
    writer.drain = mock.AsyncMock()
    conn = mock.Mock(spec=AsyncConnection)
    conn.reader = reader
    conn.writer = writer
    conn.timeout = Timeout(read=5.0)
    return conn


def get(url: str = "http://example.com/path?q=1") -> PreparedRequest:
    prepared = PreparedRequest("GET", url)
    prepared.add_header("Accept", "*/*")
    return prepared


# ============================================================================
# TEST CLASS: request framing
# ============================================================================


class TestRequestFraming:
    """Tests for what goes on the wire."""

    def test_get_head(self):
        """Test request line, Host first, then the prepared headers."""
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")
        send_request(conn, get())

        assert conn.sent.data == (
            b"GET /path?q=1 HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Accept: */*\r\n"
            b"\r\n"
        )

    def test_host_with_port(self):
        """Test non-default ports appear in Host."""
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")
        send_request(conn, get("http://example.com:8080/"))

        assert b"Host: example.com:8080\r\n" in conn.sent.data

    def test_fixed_length_body(self):
        """Test known-length entities get Content-Length and Content-Type."""
        prepared = PreparedEntityRequest("POST", "http://h/x")
        prepared.set_entity(BytesBody(b"abc", "text/plain"))
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")

        send_request(conn, prepared)

        assert b"Content-Type: text/plain\r\n" in conn.sent.data
        assert b"Content-Length: 3\r\n" in conn.sent.data
        assert conn.sent.data.endswith(b"\r\n\r\nabc")

    def test_unknown_length_body_is_chunked(self):
        """Test streamed entities are sent with chunked encoding."""
        prepared = PreparedEntityRequest("PUT", "http://h/x")
        prepared.set_entity(StreamBody(iter([b"ab", b"cde"])))
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")

        send_request(conn, prepared)

        assert b"Transfer-Encoding: chunked\r\n" in conn.sent.data
        assert conn.sent.data.endswith(b"2\r\nab\r\n3\r\ncde\r\n0\r\n\r\n")

    def test_empty_post_has_zero_length(self):
        """Test body-less POST announces Content-Length: 0."""
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")
        send_request(conn, PreparedEntityRequest("POST", "http://h/x"))

        assert b"Content-Length: 0\r\n" in conn.sent.data

    def test_caller_content_type_kept(self):
        """Test a Content-Type header on the request is not duplicated."""
        prepared = PreparedEntityRequest("POST", "http://h/x")
        prepared.add_header("Content-Type", "application/json")
        prepared.set_entity(BytesBody(b"{}"))
        conn = make_conn(b"HTTP/1.1 204 No Content\r\n\r\n")

        send_request(conn, prepared)

        assert conn.sent.data.count(b"Content-Type") == 1


# ============================================================================
# TEST CLASS: response framing
# ============================================================================


class TestResponseFraming:
    """Tests for reading responses."""

    def test_content_length(self):
        """Test bodies are read up to Content-Length."""
        conn = make_conn(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhelloEXTRA")
        response = send_request(conn, get())

        assert isinstance(response, RawResponse)
        assert response.status == 200
        assert response.reason == "OK"
        assert response.body == b"hello"
        assert response.keep_alive

    def test_chunked(self):
        """Test chunked bodies are reassembled."""
        conn = make_conn(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"3\r\nabc\r\n2\r\nde\r\n0\r\n\r\n"
        )
        assert send_request(conn, get()).body == b"abcde"

    def test_read_until_close(self):
        """Test unframed bodies are read to EOF and not kept alive."""
        conn = make_conn(b"HTTP/1.0 200 OK\r\n\r\nall of it")
        response = send_request(conn, get())

        assert response.body == b"all of it"
        assert response.http_version == "HTTP/1.0"
        assert not response.keep_alive

    def test_connection_close(self):
        """Test Connection: close disables reuse."""
        conn = make_conn(
            b"HTTP/1.1 200 OK\r\nConnection: close\r\nContent-Length: 0\r\n\r\n"
        )
        assert not send_request(conn, get()).keep_alive

    def test_http10_keep_alive(self):
        """Test HTTP/1.0 needs an explicit keep-alive."""
        conn = make_conn(
            b"HTTP/1.0 200 OK\r\nConnection: keep-alive\r\nContent-Length: 0\r\n\r\n"
        )
        assert send_request(conn, get()).keep_alive

    def test_head_ignores_content_length(self):
        """Test HEAD responses never read a body."""
        conn = make_conn(b"HTTP/1.1 200 OK\r\nContent-Length: 100\r\n\r\n")
        response = send_request(conn, PreparedRequest("HEAD", "http://h/"))

        assert response.body == b""
        assert response.keep_alive

    def test_interim_response_skipped(self):
        """Test 100 Continue is skipped."""
        conn = make_conn(
            b"HTTP/1.1 100 Continue\r\n\r\n"
            b"HTTP/1.1 201 Created\r\nContent-Length: 2\r\n\r\nok"
        )
        response = send_request(conn, get())

        assert response.status == 201
        assert response.body == b"ok"

    def test_gzip_decoded(self):
        """Test gzip content coding is removed."""
        payload = gzip.compress(b"compressed")
        conn = make_conn(
            b"HTTP/1.1 200 OK\r\nContent-Encoding: gzip\r\n"
            + f"Content-Length: {len(payload)}\r\n\r\n".encode()
            + payload
        )
        assert send_request(conn, get()).body == b"compressed"

    def test_duplicate_headers_kept(self):
        """Test response headers keep duplicates in order."""
        conn = make_conn(
            b"HTTP/1.1 200 OK\r\nSet-Cookie: a=1\r\nSet-Cookie: b=2\r\n"
            b"Content-Length: 0\r\n\r\n"
        )
        response = send_request(conn, get())

        assert response.header_view().get_all("set-cookie") == ["a=1", "b=2"]


# ============================================================================
# TEST CLASS: errors
# ============================================================================


class TestErrors:
    """Tests for error mapping."""

    def test_empty_response(self):
        """Test a silent close maps to NetworkError."""
        with pytest.raises(NetworkError, match="without response"):
            send_request(make_conn(b""), get())

    def test_truncated_head(self):
        """Test a close inside the head maps to ProtocolError."""
        with pytest.raises(ProtocolError):
            send_request(make_conn(b"HTTP/1.1 200 OK\r\nContent-"), get())

    def test_truncated_body(self):
        """Test a short body maps to ProtocolError."""
        conn = make_conn(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc")
        with pytest.raises(ProtocolError, match="Incomplete"):
            send_request(conn, get())

    def test_invalid_content_length(self):
        """Test a non-numeric Content-Length is rejected."""
        conn = make_conn(b"HTTP/1.1 200 OK\r\nContent-Length: ten\r\n\r\n")
        with pytest.raises(ProtocolError, match="Content-Length"):
            send_request(conn, get())

    def test_read_timeout(self):
        """Test socket timeouts map to ReadTimeout."""
        conn = make_conn(b"")
        conn.rfile = mock.Mock()
        conn.rfile.readline.side_effect = socket.timeout("timed out")

        with pytest.raises(ReadTimeout):
            send_request(conn, get())

    def test_os_error(self):
        """Test other socket errors map to NetworkError."""
        conn = make_conn(b"")
        conn.sendall.side_effect = ConnectionResetError("reset")

        with pytest.raises(NetworkError, match="reset"):
            send_request(conn, get())


# ============================================================================
# TEST CLASS: async exchange
# ============================================================================


class TestAsyncSendRequest:
    """Tests for async_send_request()."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        """Test the request is written in one go and the response read."""
        prepared = PreparedEntityRequest("POST", "http://h/x")
        prepared.set_entity(BufferedBody(b"abc"))
        conn = make_async_conn(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok")

        response = await async_send_request(conn, prepared)

        written = conn.writer.write.call_args[0][0]
        assert written.startswith(b"POST /x HTTP/1.1\r\nHost: h\r\n")
        assert b"Content-Length: 3\r\n" in written
        assert written.endswith(b"\r\n\r\nabc")
        assert response.body == b"ok"
        assert response.keep_alive

    @pytest.mark.asyncio
    async def test_chunked_response(self):
        """Test chunked responses on the async path."""
        conn = make_async_conn(
            b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n"
            b"4\r\nwiki\r\n0\r\n\r\n"
        )
        assert (await async_send_request(conn, get())).body == b"wiki"

    @pytest.mark.asyncio
    async def test_until_close(self):
        """Test unframed responses on the async path."""
        conn = make_async_conn(b"HTTP/1.1 200 OK\r\n\r\nrest")
        response = await async_send_request(conn, get())

        assert response.body == b"rest"
        assert not response.keep_alive

    @pytest.mark.asyncio
    async def test_streamed_entity_rejected(self):
        """Test async requests need a materialized body."""
        prepared = PreparedEntityRequest("POST", "http://h/x")
        prepared.set_entity(StreamBody(iter([b"a"])))

        with pytest.raises(ValueError, match="materialized"):
            await async_send_request(make_async_conn(b""), prepared)

    @pytest.mark.asyncio
    async def test_empty_response(self):
        """Test a silent close maps to NetworkError."""
        with pytest.raises(NetworkError):
            await async_send_request(make_async_conn(b""), get())

    @pytest.mark.asyncio
    async def test_truncated_body(self):
        """Test a short body maps to ProtocolError."""
        conn = make_async_conn(b"HTTP/1.1 200 OK\r\nContent-Length: 9\r\n\r\nab")
        with pytest.raises(ProtocolError):
            await async_send_request(conn, get())

    @pytest.mark.asyncio
    async def test_read_timeout(self):
        """Test a stalled server maps to ReadTimeout."""
        reader = asyncio.StreamReader()
        conn = make_async_conn(b"")
        conn.reader = reader
        conn.timeout = Timeout(read=0.05)

        with pytest.raises(ReadTimeout):
            await async_send_request(conn, get())
