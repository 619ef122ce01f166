"""src/unireq/transport/monitor.py

Background reaper for idle pooled connections.
"""

import logging
import threading
from typing import Any, Optional, Protocol

__all__ = ["Startable", "IdleConnectionMonitor"]

logger = logging.getLogger(__name__)


class Startable(Protocol):
    """Anything with a one-shot ``start()``."""

    def start(self) -> None:
        """Start the component."""


class IdleConnectionMonitor:
    """
    Periodically asks a client to close connections idle for too long.

    The sweep runs on its own daemon thread, independent of request traffic.
    ``start()`` is idempotent and ``shutdown()`` stops the thread.

    Attributes:
        client: Object exposing ``close_idle(max_idle_time) -> int``.
        interval: Seconds between sweeps.
        max_idle_time: Idle age after which a connection is closed.
    """

    __slots__ = ("client", "interval", "max_idle_time", "_stop", "_thread", "_lock")

    def __init__(
        self, client: Any, *, interval: float = 5.0, max_idle_time: float = 30.0
    ) -> None:
        self.client = client
        self.interval = interval
        self.max_idle_time = max_idle_time
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start sweeping. Does nothing if already running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(
                target=self._run, name="unireq-idle-monitor", daemon=True
            )
            self._thread.start()
        logger.debug("Idle connection monitor started (every %.1fs)", self.interval)

    def is_alive(self) -> bool:
        """Whether the sweep thread is running."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def sweep(self) -> int:
        """Run one sweep now; returns the number of connections closed."""
        closed = self.client.close_idle(self.max_idle_time)
        if closed:
            logger.debug("Closed %d idle connection(s)", closed)
        return closed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.sweep()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.exception("Idle connection sweep failed")

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the sweep thread and wait for it to exit."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None
