"""src/unireq/client/request.py

Abstract HTTP request description.

A ``Request`` says what to send: method, URL template, route and query
parameters, headers and an optional body. It holds no transport state and
is turned into a concrete request by ``unireq.client.builder``.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from unireq.client.auth import build_basic_auth_header, build_bearer_auth_header
from unireq.http.body import Body, FormBody, as_body
from unireq.http.headers import HeaderMap, HeaderSource

__all__ = ["HttpMethod", "Request"]


class HttpMethod(str, Enum):
    """HTTP methods supported by the builder."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"

    @property
    def allows_body(self) -> bool:
        """GET and HEAD requests never carry a body."""
        return self not in (HttpMethod.GET, HttpMethod.HEAD)


class Request:
    """
    HTTP request description with a fluent interface.

    Attributes:
        method: The HTTP method.
        url: URL template, may contain ``{name}`` route placeholders.
        headers: Ordered header multimap.
        route_params: Values substituted into the URL template.
        query_params: Ordered query string pairs.
    """

    __slots__ = ("method", "url", "headers", "route_params", "query_params", "_body")

    def __init__(
        self,
        method: Union[HttpMethod, str],
        url: str,
        headers: Optional[HeaderSource] = None,
        body: Any = None,
    ) -> None:
        self.method = HttpMethod(method.upper() if isinstance(method, str) else method)
        self.url = url
        self.headers = HeaderMap(headers)
        self.route_params: Dict[str, str] = {}
        self.query_params: List[Tuple[str, Any]] = []
        self._body: Optional[Body] = as_body(body)

    @property
    def body(self) -> Optional[Body]:
        """The body entity, or None."""
        return self._body

    def header(self, name: str, value: Any) -> "Request":
        """Add a header value, keeping existing values for the same name."""
        self.headers.add(name, str(value))
        return self

    def add_headers(self, headers: Mapping[str, Any]) -> "Request":
        """Add several headers at once."""
        for name, value in headers.items():
            self.header(name, value)
        return self

    def route_param(self, name: str, value: Any) -> "Request":
        """
        Set a value for a ``{name}`` placeholder in the URL.

        Raises:
            ValueError: If the URL has no such placeholder.
        """
        if "{" + name + "}" not in self.url:
            raise ValueError(f"Can't find route parameter name '{name}'")
        self.route_params[name] = str(value)
        return self

    def query_string(self, name: str, value: Any) -> "Request":
        """Append a query parameter. Lists produce repeated parameters."""
        self.query_params.append((name, value))
        return self

    def with_body(self, body: Any) -> "Request":
        """
        Set the body.

        Accepts a ``Body`` or a plain value (see ``unireq.http.body.as_body``).
        """
        self._body = as_body(body)
        return self

    def fields(self, fields: Mapping[str, Any]) -> "Request":
        """Send ``fields`` as a urlencoded form."""
        self._body = FormBody(fields)
        return self

    def basic_auth(self, username: str, password: str) -> "Request":
        """Set an ``Authorization: Basic`` header."""
        self.headers.set("Authorization", build_basic_auth_header(username, password))
        return self

    def bearer_token(self, token: str) -> "Request":
        """Set an ``Authorization: Bearer`` header."""
        self.headers.set("Authorization", build_bearer_auth_header(token))
        return self

    def __repr__(self) -> str:
        return f"<Request [{self.method.value} {self.url}]>"
