import _thread
import threading
from contextlib import contextmanager
from typing import Callable, List, Optional, Tuple

import pytest

from unireq.config import Options
from unireq.transport.exchange import RawResponse


@pytest.fixture
def timeout_context():
    """Fixture providing a timeout context manager."""

    @contextmanager
    def _timeout_context(seconds):
        def timeout_handler():
            _thread.interrupt_main()

        timer = threading.Timer(seconds, timeout_handler)
        timer.start()
        try:
            yield
        except KeyboardInterrupt:
            pytest.fail(f"Test timed out after {seconds} seconds")
        finally:
            timer.cancel()

    return _timeout_context


@pytest.fixture
def options() -> Options:
    """Options with no default headers and a fixed base URL."""
    return Options(base_url="http://api.test")


@pytest.fixture
def make_raw() -> Callable[..., RawResponse]:
    """Factory for engine-level responses."""

    def _make_raw(
        status: int = 200,
        body: bytes = b"",
        headers: Optional[List[Tuple[str, str]]] = None,
        reason: str = "OK",
    ) -> RawResponse:
        return RawResponse(
            status=status,
            reason=reason,
            headers=headers or [],
            body=body,
            keep_alive=True,
        )

    return _make_raw
