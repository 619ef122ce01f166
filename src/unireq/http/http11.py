"""src/unireq/http/http11.py

HTTP/1.1 request serialization and response head parsing.
"""

# pylint: disable=line-too-long

import zlib
from typing import Iterable, List, Optional, Tuple

from unireq.exceptions import InvalidResponseError, ProtocolError

__all__ = [
    "HttpParser",
    "ResponseHead",
    "serialize_request_head",
    "response_has_body",
    "decode_content",
]

ResponseHead = Tuple[str, int, str, List[Tuple[str, str]]]


def _check_header(name: str, value: str) -> None:
    # Validate against HTTP header injection attacks
    if "\r" in name or "\n" in name or "\r" in value or "\n" in value:
        raise ValueError(f"Invalid character in header {name}: {value!r}")
    if "\x00" in name or "\x00" in value:
        raise ValueError(f"Null byte in header {name}: {value!r}")


def serialize_request_head(
    method: str,
    target: str,
    headers: Iterable[Tuple[str, str]],
) -> bytes:
    """
    Build the request line and header block, ending with ``\\r\\n\\r\\n``.

    Headers are written in the given order, duplicates included.

    Raises:
        ValueError: If a header name or value would break the framing.
    """
    lines = [f"{method} {target} HTTP/1.1\r\n"]
    for name, value in headers:
        _check_header(name, value)
        lines.append(f"{name}: {value}\r\n")
    lines.append("\r\n")
    return "".join(lines).encode("latin-1")


def response_has_body(method: str, status: int) -> bool:
    """HEAD responses and 1xx/204/304 never carry a body."""
    if method == "HEAD":
        return False
    return not (100 <= status < 200 or status in (204, 304))


def decode_content(body: bytes, content_encoding: Optional[str]) -> bytes:
    """
    Undo ``gzip``/``deflate`` content coding.

    Unknown codings are returned untouched.
    """
    if not body or not content_encoding:
        return body

    for coding in reversed([c.strip().lower() for c in content_encoding.split(",")]):
        try:
            if coding in ("gzip", "x-gzip"):
                body = zlib.decompress(body, 16 + zlib.MAX_WBITS)
            elif coding == "deflate":
                try:
                    body = zlib.decompress(body)
                except zlib.error:
                    # Raw deflate stream without zlib header
                    body = zlib.decompress(body, -zlib.MAX_WBITS)
        except zlib.error as exc:
            raise ProtocolError(f"Could not decode {coding} body: {exc}") from exc

    return body


class HttpParser:
    """
    HTTP/1.1 response head parser.

    Handles:
    - Status Line parsing.
    - Header parsing with duplicate handling.
    - Defensive sizing.
    """

    __slots__ = ("max_header_size", "max_field_count")

    def __init__(self, max_header_size: int = 65536, max_field_count: int = 100):
        self.max_header_size = max_header_size
        self.max_field_count = max_field_count

    def parse_head(self, data: bytes) -> ResponseHead:
        """
        Parse a raw response head (status line and headers).

        Returns:
            Tuple of (http_version, status_code, reason, header pairs)

        Raises:
            ProtocolError: If headers are too large or malformed.
            InvalidResponseError: If status line is invalid.
        """
        if len(data) > self.max_header_size:
            raise ProtocolError(
                f"Headers exceed maximum size of {self.max_header_size} bytes"
            )

        try:
            header_text = data.decode("iso-8859-1")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Header decoding failed: {e}") from e

        lines = header_text.rstrip("\r\n").split("\r\n")
        if not lines or not lines[0]:
            raise InvalidResponseError("Empty response")

        # Parse Status Line
        status_line = lines[0]
        try:
            # HTTP/1.1 200 OK
            version, code, *reason = status_line.split(" ", 2)
            status_code = int(code)
        except ValueError as exc:
            raise InvalidResponseError(f"Invalid status line: {status_line}") from exc

        if not version.startswith("HTTP/"):
            raise InvalidResponseError(f"Invalid status line: {status_line}")

        headers = self._parse_headers(lines[1:])
        return version, status_code, reason[0] if reason else "", headers

    def _parse_headers(self, lines: List[str]) -> List[Tuple[str, str]]:
        """
        Parse header lines into ordered pairs, keeping duplicates.
        """
        headers: List[Tuple[str, str]] = []

        for line in lines:
            if not line:
                continue

            if ":" not in line:
                # Tolerate garbage lines rather than failing the response
                continue

            key, value = line.split(":", 1)
            headers.append((key.strip(), value.strip()))

            if len(headers) > self.max_field_count:
                raise ProtocolError(
                    f"Response has more than {self.max_field_count} header fields"
                )

        return headers
