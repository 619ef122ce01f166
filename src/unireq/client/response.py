"""src/unireq/client/response.py

HTTP Response handling module.

``HttpResponse`` wraps what the engine read off the wire and decodes the
body into the type the caller asked for.
"""

import json as std_json
from typing import Any, Generic, Optional, Type, TypeVar

from unireq.exceptions import InvalidResponseError
from unireq.http.headers import Headers
from unireq.transport.exchange import RawResponse
from unireq.utils.serialization import JsonObjectMapper, ObjectMapper

__all__ = ["HttpResponse", "JsonNode", "charset_of"]

T = TypeVar("T")

DEFAULT_CHARSET = "utf-8"
_JSON_TYPES = (dict, list)


class JsonNode:
    """Response type marker: decode the body as whatever JSON value it holds."""


def charset_of(content_type: Optional[str], default: str = DEFAULT_CHARSET) -> str:
    """Extract the ``charset`` parameter of a Content-Type value."""
    if content_type and "charset=" in content_type.lower():
        lowered = content_type.lower()
        start = lowered.index("charset=") + len("charset=")
        return content_type[start:].split(";")[0].strip().strip('"') or default
    return default


class HttpResponse(Generic[T]):
    """
    Represents a completed HTTP response.

    Attributes:
        status: HTTP status code as integer.
        status_text: Reason phrase from the status line.
        headers: Case-insensitive response headers.
        raw_body: Body bytes with content coding removed.
        body: ``raw_body`` decoded into ``response_type``.
        http_version: Protocol version the server answered with.
    """

    __slots__ = (
        "status",
        "status_text",
        "headers",
        "raw_body",
        "body",
        "http_version",
    )

    def __init__(
        self,
        raw: RawResponse,
        response_type: Type[Any] = bytes,
        mapper: Optional[ObjectMapper] = None,
    ) -> None:
        """
        Decode ``raw`` into ``response_type``.

        Args:
            raw: Response read by the engine.
            response_type: ``bytes``, ``str``, ``dict``/``list``/``JsonNode`` (JSON) or any
                type the mapper can build.
            mapper: Used for types other than the built-in ones.

        Raises:
            InvalidResponseError: If the body cannot be decoded.
        """
        self.status: int = raw.status
        self.status_text: str = raw.reason
        self.headers: Headers = raw.header_view()
        self.raw_body: bytes = raw.body
        self.http_version: str = raw.http_version
        self.body: Optional[T] = self._decode(
            response_type, mapper or JsonObjectMapper()
        )

    @property
    def ok(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status < 300

    def text(self, encoding: Optional[str] = None) -> str:
        """
        Return decoded text.
        """
        encoding = encoding or charset_of(self.headers.get("Content-Type"))
        try:
            return self.raw_body.decode(encoding)
        except (LookupError, UnicodeDecodeError) as exc:
            raise InvalidResponseError(
                f"Failed to decode response body as {encoding}"
            ) from exc

    def _decode(self, response_type: Type[Any], mapper: ObjectMapper) -> Any:
        if response_type is bytes:
            return self.raw_body
        if response_type is str:
            return self.text()
        if not self.raw_body:
            return None

        text = self.text()
        if response_type in _JSON_TYPES or response_type is JsonNode:
            try:
                return std_json.loads(text)
            except ValueError as exc:
                raise InvalidResponseError("Failed to decode JSON response") from exc

        type_name = getattr(response_type, "__name__", repr(response_type))
        try:
            return mapper.read_value(text, response_type)
        except (TypeError, ValueError) as exc:
            raise InvalidResponseError(
                f"Failed to map response body to {type_name}"
            ) from exc

    def __repr__(self) -> str:
        return f"<HttpResponse [{self.status}]>"
