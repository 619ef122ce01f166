"""src/unireq/client/executor.py

Dispatches prepared requests through the shared clients.

``HttpExecutor.request`` runs a round trip on the calling thread.
``HttpExecutor.request_async`` returns a ``ResultFuture`` at once and
resolves it from the async client's worker thread.
"""

import logging
import threading
from typing import Any, Callable, Optional, Type, Union

from unireq.client.builder import ExecutionMode, RequestBuilder
from unireq.client.future import Callback, CallbackFuture, ResultFuture
from unireq.client.request import Request
from unireq.client.response import HttpResponse
from unireq.config import Options
from unireq.exceptions import (
    CanceledError,
    HttpClientError,
    PreparationError,
    TransportError,
)
from unireq.transport.clients import AsyncHttpClient, BlockingHttpClient
from unireq.transport.exchange import RawResponse
from unireq.transport.monitor import Startable

__all__ = ["HttpExecutor"]

logger = logging.getLogger(__name__)

ResultTarget = Union[ResultFuture[Any], Callback[Any], None]


class HttpExecutor:
    """
    Sync and async execution over lazily provided shared clients.

    Clients are obtained through zero-argument providers so the owner can
    create them on first use. The monitor provider receives the async client
    it must watch. The async client and its idle monitor are started exactly
    once, however many threads dispatch concurrently.

    Attributes:
        options: Client-wide defaults (object mapper, default headers).
        builder: Turns requests into prepared requests.
    """

    __slots__ = (
        "options",
        "builder",
        "_blocking_client",
        "_async_client",
        "_monitor",
        "_start_lock",
    )

    def __init__(
        self,
        options: Options,
        *,
        blocking_client: Callable[[], BlockingHttpClient],
        async_client: Callable[[], AsyncHttpClient],
        monitor: Callable[[AsyncHttpClient], Optional[Startable]],
        builder: Optional[RequestBuilder] = None,
    ) -> None:
        self.options = options
        self.builder = builder or RequestBuilder(options)
        self._blocking_client = blocking_client
        self._async_client = async_client
        self._monitor = monitor
        self._start_lock = threading.Lock()

    def request(
        self, request: Request, response_type: Type[Any] = bytes
    ) -> HttpResponse[Any]:
        """
        Execute ``request`` and wait for the response.

        Args:
            request: The request description.
            response_type: Type the body is decoded into.

        Returns:
            The decoded response.

        Raises:
            TransportError: On any engine or decoding failure.
            HttpClientError: Domain errors pass through unchanged.
        """
        prepared = self.builder.prepare(request, ExecutionMode.SYNC)
        try:
            raw = self._blocking_client().execute(prepared)
            return HttpResponse(raw, response_type, self.options.object_mapper)
        except HttpClientError:
            raise
        except Exception as exc:
            raise TransportError(cause=exc) from exc
        finally:
            prepared.release_connection()

    def request_async(
        self,
        request: Request,
        response_type: Type[Any] = bytes,
        result: ResultTarget = None,
    ) -> ResultFuture[Any]:
        """
        Dispatch ``request`` without blocking.

        Args:
            request: The request description.
            response_type: Type the body is decoded into.
            result: Handle to resolve, or a callback to drive. A fresh
                ``ResultFuture`` is used when omitted.

        Returns:
            The handle; it is always returned. Preparation, start and submit
            failures are reported through it instead of being raised.
        """
        future = self._as_future(result)

        try:
            prepared = self.builder.prepare(request, ExecutionMode.ASYNC)
        except PreparationError as exc:
            future.fail(exc)
            return future

        mapper = self.options.object_mapper

        def on_complete(raw: RawResponse) -> None:
            try:
                response = HttpResponse(raw, response_type, mapper)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                future.fail(TransportError(cause=exc))
                return
            future.complete(response)

        def on_failure(exc: BaseException) -> None:
            future.fail(TransportError(cause=exc))

        def on_cancel() -> None:
            future.fail(CanceledError("canceled"))

        try:
            client = self._running_async_client()
            submission = client.submit(prepared, on_complete, on_failure, on_cancel)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            future.fail(TransportError(cause=exc))
            return future
        future.attach_submission(submission)
        return future

    @staticmethod
    def _as_future(result: ResultTarget) -> ResultFuture[Any]:
        if result is None:
            return ResultFuture()
        if isinstance(result, ResultFuture):
            return result
        return CallbackFuture.wrap(result)

    def _running_async_client(self) -> AsyncHttpClient:
        client = self._async_client()
        if client.is_running():
            return client
        with self._start_lock:
            if not client.is_running():
                client.start()
                monitor = self._monitor(client)
                if monitor is not None:
                    monitor.start()
                logger.debug("Started async client and idle monitor")
        return client
