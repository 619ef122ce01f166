"""src/unireq/exceptions.py

Unireq exceptions hierarchy.

``HttpClientError`` and its subclasses are what callers of a dispatch see.
``EngineError`` and its subclasses are raised inside the bundled transport
engine and reach callers only as the ``cause`` of a ``TransportError``.
"""

# pylint: disable=redefined-builtin

from typing import Optional


class UnireqError(Exception):
    """Base exception for all Unireq errors."""


class HttpClientError(UnireqError):
    """
    Error surfaced to the caller of a dispatch.

    Attributes:
        cause: The underlying exception, if any.
    """

    def __init__(
        self, message: str = "", cause: Optional[BaseException] = None
    ) -> None:
        if not message and cause is not None:
            message = f"{type(cause).__name__}: {cause}"
        super().__init__(message)
        self.cause = cause


class PreparationError(HttpClientError):
    """Request body could not be serialized while preparing an async dispatch."""


class TransportError(HttpClientError):
    """Network, protocol or decoding failure reported for a dispatch."""


class CanceledError(HttpClientError):
    """
    The async engine reported that a dispatch was cancelled.

    Deliberately not a ``TransportError`` so callers can tell the two apart.
    """

    def __init__(self, message: str = "canceled") -> None:
        super().__init__(message)


class EngineError(UnireqError):
    """Base exception for errors raised by the bundled transport engine."""


class NetworkError(EngineError):
    """
    Base exception for network-related errors.
    Wraps socket errors and other connection issues.
    """


class TlsError(NetworkError):
    """TLS/SSL handshake or verification errors."""


class TimeoutError(EngineError):
    """
    Base exception for timeouts.
    """

    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message)


class ConnectTimeout(TimeoutError):
    """Timeout during connection establishment."""


class ReadTimeout(TimeoutError):
    """Timeout during data reception."""


class ProtocolError(EngineError):
    """
    Errors related to HTTP protocol (parsing, violations).
    """


class InvalidResponseError(ProtocolError):
    """Server sent a response that could not be understood."""
