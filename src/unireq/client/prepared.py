"""src/unireq/client/prepared.py

Transport-ready request objects.

A prepared request is built fresh for every dispatch and is never reused.
The engine binds the connection it used to the request; the caller hands it
back with ``release_connection()``.
"""

from typing import Callable, List, Optional, Tuple

from unireq.http.body import Body

__all__ = ["PreparedRequest", "PreparedEntityRequest"]


class PreparedRequest:
    """
    Concrete request without a body (GET, HEAD, OPTIONS).

    Attributes:
        method: HTTP method string.
        url: Final, absolute URL.
        headers: Ordered ``(name, value)`` pairs, duplicates kept.
        entity: Body to send. Always None for this class.
    """

    __slots__ = ("method", "url", "headers", "entity", "_release")

    def __init__(self, method: str, url: str) -> None:
        self.method = method
        self.url = url
        self.headers: List[Tuple[str, str]] = []
        self.entity: Optional[Body] = None
        self._release: Optional[Callable[[], None]] = None

    def add_header(self, name: str, value: str) -> None:
        """Append a header, keeping earlier values."""
        self.headers.append((name, value))

    def set_header(self, name: str, value: str) -> None:
        """Replace all values of ``name`` with one value."""
        self.remove_headers(name)
        self.headers.append((name, value))

    def remove_headers(self, name: str) -> None:
        """Drop every value of ``name``."""
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]

    def get_headers(self, name: str) -> List[str]:
        """All values of ``name`` in order."""
        lowered = name.lower()
        return [v for k, v in self.headers if k.lower() == lowered]

    def has_header(self, name: str) -> bool:
        """Case-insensitive presence check."""
        return bool(self.get_headers(name))

    def bind_connection(self, release: Callable[[], None]) -> None:
        """Called by the engine with the action that returns its connection."""
        self._release = release

    def release_connection(self) -> None:
        """
        Release the connection bound to this request.

        Safe to call any number of times; only the first call has an effect.
        """
        release, self._release = self._release, None
        if release is not None:
            release()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} [{self.method} {self.url}]>"


class PreparedEntityRequest(PreparedRequest):
    """Concrete request that can carry a body (POST, PUT, PATCH, DELETE)."""

    __slots__ = ()

    def set_entity(self, entity: Body) -> None:
        """Attach the body to send."""
        self.entity = entity
