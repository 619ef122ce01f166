"""src/unireq/transport/clients.py

Blocking and non-blocking HTTP clients.

Both clients own a connection pool and are safe to share between threads.
``BlockingHttpClient`` runs an exchange on the calling thread.
``AsyncHttpClient`` runs exchanges on an asyncio loop in its own worker
thread and reports each outcome through exactly one of three hooks.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Optional, Union

from unireq.client.prepared import PreparedRequest
from unireq.http.url import URL
from unireq.transport.connection import AsyncConnection, Connection
from unireq.transport.connection_pool import AsyncConnectionPool, ConnectionPool
from unireq.transport.exchange import RawResponse, async_send_request, send_request
from unireq.utils.timing import Timeout

__all__ = ["BlockingHttpClient", "AsyncHttpClient", "Submission"]

logger = logging.getLogger(__name__)

CompleteHook = Callable[[RawResponse], None]
FailureHook = Callable[[BaseException], None]
CancelHook = Callable[[], None]


class _Lease:
    """A pooled connection checked out for one request."""

    __slots__ = ("pool", "conn", "reusable")

    def __init__(self, pool: ConnectionPool, conn: Connection) -> None:
        self.pool = pool
        self.conn = conn
        self.reusable = False

    def release(self) -> None:
        if self.reusable:
            self.pool.put_connection(self.conn)
        else:
            self.pool.discard_connection(self.conn)


class BlockingHttpClient:
    """
    Thread-safe blocking client.

    ``execute`` binds the connection it used to the prepared request; the
    caller must call ``prepared.release_connection()`` when done, on success
    and on failure alike.

    Attributes:
        pool: Connection pool shared by all callers.
        timeout: Connect/read timeouts for new connections.
    """

    __slots__ = ("pool", "timeout")

    def __init__(
        self,
        *,
        max_per_route: int = 10,
        max_idle_time: float = 30.0,
        timeout: Union[float, Timeout, None] = None,
    ) -> None:
        self.pool = ConnectionPool(max_size=max_per_route, max_idle_time=max_idle_time)
        self.timeout = Timeout.coerce(timeout)

    def execute(self, prepared: PreparedRequest) -> RawResponse:
        """
        Send ``prepared`` and read the whole response.

        Raises:
            EngineError: On network, timeout or protocol failures.
            ValueError: On an unusable URL.
        """
        url = URL(prepared.url)
        conn = self.pool.get_connection(
            url.host, url.port, url.use_ssl, timeout=self.timeout
        )
        lease = _Lease(self.pool, conn)
        prepared.bind_connection(lease.release)

        logger.debug("%s %s", prepared.method, prepared.url)
        response = send_request(conn, prepared)
        lease.reusable = response.keep_alive
        return response

    def close_idle(self, max_idle_time: Optional[float] = None) -> int:
        """Close idle pooled connections; returns how many were closed."""
        return self.pool.close_idle(max_idle_time)

    def close(self) -> None:
        """Close all pooled connections."""
        self.pool.close_all()


class Submission:
    """
    Handle on one in-flight async exchange.

    ``cancel()`` may be called from any thread; the exchange then ends
    through the cancel hook.
    """

    __slots__ = ("_loop", "_task")

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._task: Optional["asyncio.Task[RawResponse]"] = None

    def _attach(self, task: "asyncio.Task[RawResponse]") -> None:
        self._task = task

    def cancel(self) -> None:
        """Request cancellation of the exchange."""
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._cancel_in_loop)

    def _cancel_in_loop(self) -> None:
        if self._task is not None:
            self._task.cancel()

    def done(self) -> bool:
        """Whether the exchange has finished."""
        return self._task is not None and self._task.done()


class AsyncHttpClient:
    """
    Non-blocking client driven by an event loop on a worker thread.

    ``start()`` must be called before ``submit()``; it is idempotent.
    Hooks run on the worker thread, never on the submitting thread.

    Attributes:
        pool: Async connection pool, only touched from the worker loop.
        timeout: Connect/read timeouts for new connections.
    """

    __slots__ = ("pool", "timeout", "_loop", "_thread", "_lock", "_running")

    def __init__(
        self,
        *,
        max_per_route: int = 10,
        max_idle_time: float = 30.0,
        timeout: Union[float, Timeout, None] = None,
    ) -> None:
        self.pool = AsyncConnectionPool(
            max_size=max_per_route, max_idle_time=max_idle_time
        )
        self.timeout = Timeout.coerce(timeout)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._running = False

    def start(self) -> None:
        """Start the worker loop. Does nothing if already running."""
        with self._lock:
            if self._running:
                return
            loop = asyncio.new_event_loop()
            # Pool primitives bind to the loop that first uses them
            self.pool = AsyncConnectionPool(
                max_size=self.pool.max_size, max_idle_time=self.pool.max_idle_time
            )
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name="unireq-async-client",
                daemon=True,
            )
            self._loop = loop
            self._thread = thread
            self._running = True
            thread.start()
        logger.debug("Async HTTP client started")

    def is_running(self) -> bool:
        """Whether ``start()`` has been called and ``close()`` has not."""
        return self._running

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def submit(
        self,
        prepared: PreparedRequest,
        on_complete: CompleteHook,
        on_failure: FailureHook,
        on_cancel: CancelHook,
    ) -> Submission:
        """
        Schedule an exchange and return immediately.

        Exactly one of the hooks fires, once, on the worker thread.

        Raises:
            RuntimeError: If the client is not running.
        """
        loop = self._loop
        if not self._running or loop is None:
            raise RuntimeError("AsyncHttpClient is not running; call start() first")

        submission = Submission(loop)
        loop.call_soon_threadsafe(
            self._spawn, loop, prepared, submission, on_complete, on_failure, on_cancel
        )
        return submission

    def _spawn(
        self,
        loop: asyncio.AbstractEventLoop,
        prepared: PreparedRequest,
        submission: Submission,
        on_complete: CompleteHook,
        on_failure: FailureHook,
        on_cancel: CancelHook,
    ) -> None:
        task = loop.create_task(self._exchange(prepared))
        submission._attach(task)  # pylint: disable=protected-access

        def settle(done: "asyncio.Task[RawResponse]") -> None:
            try:
                if done.cancelled():
                    on_cancel()
                    return
                exc = done.exception()
                if exc is not None:
                    on_failure(exc)
                else:
                    on_complete(done.result())
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Async completion hook raised")

        task.add_done_callback(settle)

    async def _exchange(self, prepared: PreparedRequest) -> RawResponse:
        url = URL(prepared.url)
        conn: AsyncConnection = await self.pool.get_connection(
            url.host, url.port, url.use_ssl, timeout=self.timeout
        )
        logger.debug("%s %s (async)", prepared.method, prepared.url)
        try:
            response = await async_send_request(conn, prepared)
        except BaseException:
            await asyncio.shield(self.pool.discard_connection(conn))
            raise

        if response.keep_alive:
            await self.pool.put_connection(conn)
        else:
            await self.pool.discard_connection(conn)
        return response

    def _call(self, coro: Any, timeout: Optional[float] = None) -> Any:
        loop = self._loop
        if not self._running or loop is None:
            coro.close()
            return None
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout)

    def close_idle(self, max_idle_time: Optional[float] = None) -> int:
        """Close idle pooled connections; returns how many were closed."""
        return self._call(self.pool.close_idle(max_idle_time), timeout=30) or 0

    async def _drain(self) -> None:
        # In-flight exchanges end through their cancel hook
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        await self.pool.close_all()

    def close(self, timeout: Optional[float] = 10.0) -> None:
        """Close pooled connections and stop the worker loop."""
        with self._lock:
            if not self._running:
                return
            loop, thread = self._loop, self._thread
            try:
                self._call(self._drain(), timeout=timeout)
            finally:
                self._running = False
                if loop is not None:
                    loop.call_soon_threadsafe(loop.stop)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug("Async HTTP client stopped")
