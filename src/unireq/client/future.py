"""src/unireq/client/future.py

Single-assignment result handles for async dispatches.

``ResultFuture`` is a ``concurrent.futures.Future`` whose outcome is set
through ``complete``/``fail``. Only the first call takes effect; later ones
are logged and ignored. ``CallbackFuture.wrap`` adapts a callback object to
the same handle, so callers can use either style.
"""

import logging
import threading
from concurrent.futures import Future
from typing import (
    Any,
    Callable,
    Generic,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from unireq.exceptions import CanceledError

__all__ = ["ResultFuture", "Callback", "CallbackFuture", "FunctionCallback"]

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)


class ResultFuture(Future, Generic[T]):  # type: ignore[type-arg]
    """
    Future resolved at most once.

    ``cancel()`` also asks the engine to abort the attached submission.
    """

    def __init__(self) -> None:
        super().__init__()
        self._settle_lock = threading.RLock()
        self._submission: Any = None

    def attach_submission(self, submission: Any) -> None:
        """Remember the engine-side handle so ``cancel()`` can reach it."""
        self._submission = submission

    def complete(self, value: T) -> bool:
        """
        Resolve with ``value``.

        Returns:
            True if this call settled the future, False if it was already settled.
        """
        with self._settle_lock:
            if self.done():
                self._ignored("complete")
                return False
            self.set_result(value)
        return True

    def fail(self, exc: BaseException) -> bool:
        """
        Resolve with ``exc``.

        Returns:
            True if this call settled the future, False if it was already settled.
        """
        with self._settle_lock:
            if self.done():
                self._ignored("fail", exc)
                return False
            self.set_exception(exc)
        return True

    def cancel(self) -> bool:
        submission = self._submission
        if submission is not None:
            submission.cancel()
        with self._settle_lock:
            return super().cancel()

    def _ignored(self, action: str, exc: Optional[BaseException] = None) -> None:
        if self.cancelled():
            logger.debug("Ignoring %s on a cancelled future", action)
            return
        logger.warning(
            "Ignoring %s on an already settled future%s",
            action,
            f" ({type(exc).__name__}: {exc})" if exc is not None else "",
        )


@runtime_checkable
class Callback(Protocol[T_contra]):
    """
    Two-callback completion interface.

    Implementations may also define ``cancelled()``; it is called instead of
    ``failed`` when the dispatch was cancelled.
    """

    def completed(self, response: T_contra) -> None:
        """Called with the response on success."""

    def failed(self, exc: BaseException) -> None:
        """Called with the error on failure."""


class FunctionCallback(Generic[T]):
    """``Callback`` built from two plain functions."""

    __slots__ = ("on_success", "on_failure")

    def __init__(
        self,
        on_success: Callable[[T], None],
        on_failure: Callable[[BaseException], None],
    ) -> None:
        self.on_success = on_success
        self.on_failure = on_failure

    def completed(self, response: T) -> None:
        self.on_success(response)

    def failed(self, exc: BaseException) -> None:
        self.on_failure(exc)


class CallbackFuture:
    """Adapts a ``Callback`` to a ``ResultFuture``."""

    @staticmethod
    def wrap(callback: Callback[Any]) -> ResultFuture[Any]:
        """
        Return a future that drives ``callback`` when it settles.

        The callback runs on the thread that settles the future.
        """
        future: ResultFuture[Any] = ResultFuture()

        def deliver(done: "Future[Any]") -> None:
            try:
                if done.cancelled():
                    _deliver_cancel(callback, CanceledError())
                    return
                exc = done.exception()
                if exc is None:
                    callback.completed(done.result())
                elif isinstance(exc, CanceledError):
                    _deliver_cancel(callback, exc)
                else:
                    callback.failed(exc)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.warning("Callback %r raised", callback, exc_info=True)

        future.add_done_callback(deliver)
        return future


def _deliver_cancel(callback: Callback[Any], exc: CanceledError) -> None:
    cancelled = getattr(callback, "cancelled", None)
    if callable(cancelled):
        cancelled()
    else:
        callback.failed(exc)
