"""src/unireq/client/builder.py

Turns a ``Request`` into a ``PreparedRequest``.
"""

import io
from enum import Enum
from functools import partial
from typing import Callable, Dict, Optional, cast

from unireq.client.prepared import PreparedEntityRequest, PreparedRequest
from unireq.client.request import HttpMethod, Request
from unireq.config import Options
from unireq.exceptions import PreparationError
from unireq.http.body import Body, BufferedBody
from unireq.http.url import UriFormatter
from unireq.version import __version__

__all__ = ["ExecutionMode", "RequestBuilder", "USER_AGENT"]

CONTENT_TYPE = "Content-Type"
ACCEPT_ENCODING = "Accept-Encoding"
USER_AGENT_HEADER = "User-Agent"
USER_AGENT = f"unireq/{__version__}"

_REQUEST_FACTORIES: Dict[HttpMethod, Callable[[str], PreparedRequest]] = {
    HttpMethod.GET: partial(PreparedRequest, "GET"),
    HttpMethod.POST: partial(PreparedEntityRequest, "POST"),
    HttpMethod.PUT: partial(PreparedEntityRequest, "PUT"),
    HttpMethod.DELETE: partial(PreparedEntityRequest, "DELETE"),
    HttpMethod.PATCH: partial(PreparedEntityRequest, "PATCH"),
    HttpMethod.OPTIONS: partial(PreparedRequest, "OPTIONS"),
    HttpMethod.HEAD: partial(PreparedRequest, "HEAD"),
}


class ExecutionMode(Enum):
    """How a prepared request will be dispatched."""

    SYNC = "sync"
    ASYNC = "async"


class RequestBuilder:
    """
    Builds transport-ready requests.

    The only shared state read is ``options.default_headers``; the incoming
    ``Request`` is left untouched.
    """

    __slots__ = ("options", "formatter")

    def __init__(
        self,
        options: Options,
        formatter: Optional[Callable[[Request], str]] = None,
    ) -> None:
        self.options = options
        self.formatter = formatter or UriFormatter(options.base_url)

    def prepare(self, request: Request, mode: ExecutionMode) -> PreparedRequest:
        """
        Build the prepared request for one dispatch.

        Args:
            request: The request description.
            mode: Sync requests stream their body; async requests get a
                fully materialized copy.

        Returns:
            A new prepared request.

        Raises:
            PreparationError: If the body could not be serialized (async only).
            ValueError: If the method has no request factory.
        """
        headers = request.headers.copy()
        for name, value in self.options.default_headers.items():
            if name not in headers:
                headers.add(name, value)
        if USER_AGENT_HEADER not in headers:
            headers.add(USER_AGENT_HEADER, USER_AGENT)
        if ACCEPT_ENCODING not in headers:
            headers.add(ACCEPT_ENCODING, "gzip")

        url = self.formatter(request)

        factory = _REQUEST_FACTORIES.get(request.method)
        if factory is None:
            raise ValueError(f"Unsupported HTTP method: {request.method!r}")
        prepared = factory(url)

        for name, value in headers.pairs():
            prepared.add_header(name, value)

        body = request.body
        if request.method.allows_body and body is not None:
            target = cast(PreparedEntityRequest, prepared)
            if mode is ExecutionMode.ASYNC:
                if not target.has_header(CONTENT_TYPE) and body.content_type:
                    target.set_header(CONTENT_TYPE, body.content_type)
                target.set_entity(_materialize(body))
            else:
                target.set_entity(body)

        return prepared


def _materialize(body: Body) -> BufferedBody:
    """Serialize an entity into memory."""
    output = io.BytesIO()
    try:
        body.write_to(output)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise PreparationError(cause=exc) from exc
    return BufferedBody(output.getvalue())
