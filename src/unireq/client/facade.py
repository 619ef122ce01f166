"""src/unireq/client/facade.py

Unified facade for the Unireq HTTP client.

``Unireq`` is the composition root: it owns the options, creates the shared
blocking and async clients on first use, and tears them down in
``shutdown()``. Requests are built fluently and executed with one of the
``as_*`` methods, sync or async.

A process-wide default instance backs the module-level helpers
(``unireq.get`` and friends) and is shut down at interpreter exit.
"""

import atexit
import logging
import threading
from typing import Any, Dict, Optional, Type, TypeVar, Union

from unireq.client.executor import HttpExecutor, ResultTarget
from unireq.client.future import ResultFuture
from unireq.client.request import HttpMethod, Request
from unireq.client.response import HttpResponse, JsonNode
from unireq.config import Options
from unireq.transport.clients import AsyncHttpClient, BlockingHttpClient
from unireq.transport.monitor import Startable

__all__ = [
    "Unireq",
    "BoundRequest",
    "default_client",
    "get",
    "post",
    "put",
    "delete",
    "patch",
    "head",
    "options",
    "set_default_header",
    "clear_default_headers",
    "shutdown",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundRequest(Request):
    """
    A ``Request`` tied to the ``Unireq`` instance that will execute it.

    Every fluent mutator of ``Request`` is available; finish the chain with
    one of the ``as_*`` methods.
    """

    __slots__ = ("_client",)

    def __init__(
        self, client: "Unireq", method: Union[HttpMethod, str], url: str
    ) -> None:
        super().__init__(method, url)
        self._client = client

    # -- Sync ----------------------------------------------------------------

    def as_bytes(self) -> HttpResponse[bytes]:
        """Execute and keep the body as bytes."""
        return self._client.executor.request(self, bytes)

    def as_string(self) -> HttpResponse[str]:
        """Execute and decode the body as text."""
        return self._client.executor.request(self, str)

    def as_json(self) -> HttpResponse[Any]:
        """Execute and parse the body as JSON."""
        return self._client.executor.request(self, JsonNode)

    def as_object(self, response_type: Type[T]) -> HttpResponse[T]:
        """Execute and map the body to ``response_type`` with the object mapper."""
        return self._client.executor.request(self, response_type)

    # -- Async ---------------------------------------------------------------

    def as_bytes_async(self, callback: ResultTarget = None) -> ResultFuture[Any]:
        """Dispatch without blocking; the body stays bytes."""
        return self._client.executor.request_async(self, bytes, callback)

    def as_string_async(self, callback: ResultTarget = None) -> ResultFuture[Any]:
        """Dispatch without blocking; the body is decoded as text."""
        return self._client.executor.request_async(self, str, callback)

    def as_json_async(self, callback: ResultTarget = None) -> ResultFuture[Any]:
        """Dispatch without blocking; the body is parsed as JSON."""
        return self._client.executor.request_async(self, JsonNode, callback)

    def as_object_async(
        self, response_type: Type[Any], callback: ResultTarget = None
    ) -> ResultFuture[Any]:
        """Dispatch without blocking; the body is mapped to ``response_type``."""
        return self._client.executor.request_async(self, response_type, callback)


class Unireq:
    """
    Unified HTTP client facade.

    Attributes:
        config: Client-wide options, shared with the request builder.
        executor: Runs requests against the shared clients.
    """

    __slots__ = ("config", "executor", "_lock", "_blocking", "_async", "_monitor")

    def __init__(
        self,
        config: Optional[Options] = None,
        *,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Initialize a Unireq facade.

        Args:
            config: Options to use; read from ``UNIREQ_*`` env vars if omitted.
            base_url: Base URL prefix for relative URLs.
            headers: Default headers for all requests.
        """
        self.config = config or Options.from_env()
        if base_url is not None:
            self.config.base_url = base_url
        for name, value in (headers or {}).items():
            self.config.set_default_header(name, value)

        self._lock = threading.RLock()
        self._blocking: Optional[BlockingHttpClient] = None
        self._async: Optional[AsyncHttpClient] = None
        self._monitor: Optional[Startable] = None
        self.executor = HttpExecutor(
            self.config,
            blocking_client=self._blocking_client,
            async_client=self._async_client,
            monitor=self._async_monitor,
        )

    # -- Shared clients ------------------------------------------------------

    def _blocking_client(self) -> BlockingHttpClient:
        with self._lock:
            if self._blocking is None:
                self._blocking = BlockingHttpClient(
                    max_per_route=self.config.max_per_route,
                    max_idle_time=self.config.max_idle_time,
                    timeout=self.config.timeout(),
                )
            return self._blocking

    def _async_client(self) -> AsyncHttpClient:
        with self._lock:
            if self._async is None:
                self._async = AsyncHttpClient(
                    max_per_route=self.config.max_per_route,
                    max_idle_time=self.config.max_idle_time,
                    timeout=self.config.timeout(),
                )
            return self._async

    def _async_monitor(self, client: AsyncHttpClient) -> Startable:
        with self._lock:
            if self._monitor is None:
                self._monitor = self.config.async_monitor(client)
            return self._monitor

    # -- HTTP Methods --------------------------------------------------------

    def request(self, method: Union[HttpMethod, str], url: str) -> BoundRequest:
        """Start a request with any method."""
        return BoundRequest(self, method, url)

    def get(self, url: str) -> BoundRequest:
        """Start a GET request."""
        return self.request(HttpMethod.GET, url)

    def post(self, url: str) -> BoundRequest:
        """Start a POST request."""
        return self.request(HttpMethod.POST, url)

    def put(self, url: str) -> BoundRequest:
        """Start a PUT request."""
        return self.request(HttpMethod.PUT, url)

    def delete(self, url: str) -> BoundRequest:
        """Start a DELETE request."""
        return self.request(HttpMethod.DELETE, url)

    def patch(self, url: str) -> BoundRequest:
        """Start a PATCH request."""
        return self.request(HttpMethod.PATCH, url)

    def head(self, url: str) -> BoundRequest:
        """Start a HEAD request."""
        return self.request(HttpMethod.HEAD, url)

    def options(self, url: str) -> BoundRequest:
        """Start an OPTIONS request."""
        return self.request(HttpMethod.OPTIONS, url)

    # -- Defaults ------------------------------------------------------------

    def set_default_header(self, name: str, value: str) -> "Unireq":
        """
        Add a header to every request that does not set it.

        Returns:
            Self for chaining.
        """
        self.config.set_default_header(name, value)
        return self

    def clear_default_headers(self) -> "Unireq":
        """
        Remove all default headers.

        Returns:
            Self for chaining.
        """
        self.config.clear_default_headers()
        return self

    # -- Lifecycle -----------------------------------------------------------

    def shutdown(self) -> None:
        """
        Stop the idle monitor and close both shared clients.

        Pending async dispatches end with ``CanceledError``. The facade stays
        usable: the next request creates fresh clients.
        """
        with self._lock:
            monitor, async_client, blocking = self._monitor, self._async, self._blocking
            self._monitor = self._async = self._blocking = None

        stop = getattr(monitor, "shutdown", None)
        if callable(stop):
            stop()
        if async_client is not None:
            async_client.close()
        if blocking is not None:
            blocking.close()
        logger.debug("Unireq shut down")

    def __enter__(self) -> "Unireq":
        return self

    def __exit__(
        self,
        exc_type: object,
        exc_val: object,
        exc_tb: object,
    ) -> None:
        self.shutdown()


_default: Optional[Unireq] = None
_default_lock = threading.Lock()


def default_client() -> Unireq:
    """The process-wide ``Unireq`` used by the module-level helpers."""
    global _default  # pylint: disable=global-statement
    with _default_lock:
        if _default is None:
            _default = Unireq()
        return _default


def get(url: str) -> BoundRequest:
    """Start a GET request on the default client."""
    return default_client().get(url)


def post(url: str) -> BoundRequest:
    """Start a POST request on the default client."""
    return default_client().post(url)


def put(url: str) -> BoundRequest:
    """Start a PUT request on the default client."""
    return default_client().put(url)


def delete(url: str) -> BoundRequest:
    """Start a DELETE request on the default client."""
    return default_client().delete(url)


def patch(url: str) -> BoundRequest:
    """Start a PATCH request on the default client."""
    return default_client().patch(url)


def head(url: str) -> BoundRequest:
    """Start a HEAD request on the default client."""
    return default_client().head(url)


def options(url: str) -> BoundRequest:
    """Start an OPTIONS request on the default client."""
    return default_client().options(url)


def set_default_header(name: str, value: str) -> None:
    """Add a default header on the default client."""
    default_client().set_default_header(name, value)


def clear_default_headers() -> None:
    """Remove all default headers from the default client."""
    default_client().clear_default_headers()


def shutdown() -> None:
    """Release the default client's connections and threads."""
    with _default_lock:
        client = _default
    if client is not None:
        client.shutdown()


atexit.register(shutdown)
