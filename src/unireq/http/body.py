"""src/unireq/http/body.py

Request body entities for Unireq.

An entity knows its content type and how to produce its bytes. The blocking
engine streams an entity straight onto the socket. The async engine only
accepts a ``BufferedBody``, so entities are materialized before an async
dispatch.
"""

import collections.abc
import io
import mimetypes
import os
import urllib.parse
from typing import (
    IO,
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from unireq.http.chunked import file_to_iterator
from unireq.utils.serialization import to_json

__all__ = [
    "Body",
    "BytesBody",
    "TextBody",
    "JsonBody",
    "FormBody",
    "MultipartBody",
    "StreamBody",
    "BufferedBody",
    "as_body",
]

FileSpec = Union[
    bytes,
    IO[bytes],
    Tuple[str, Union[bytes, IO[bytes]]],
    Tuple[str, Union[bytes, IO[bytes]], str],
]


class Body:
    """
    Base class for request entities.

    Attributes:
        content_type: Value for the ``Content-Type`` header, or None.
    """

    __slots__ = ("content_type",)

    def __init__(self, content_type: Optional[str] = None) -> None:
        self.content_type = content_type

    @property
    def content_length(self) -> Optional[int]:
        """Length in bytes when known up front, else None (sent chunked)."""
        return None

    @property
    def repeatable(self) -> bool:
        """Whether the entity can produce its bytes more than once."""
        return True

    def iter_chunks(self) -> Iterator[bytes]:
        """Yield the entity's bytes."""
        raise NotImplementedError

    def write_to(self, stream: IO[bytes]) -> None:
        """Serialize the entity onto a binary stream."""
        for chunk in self.iter_chunks():
            stream.write(chunk)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(content_type={self.content_type!r})"


class BytesBody(Body):
    """Raw bytes entity."""

    __slots__ = ("data",)

    def __init__(
        self, data: bytes, content_type: Optional[str] = "application/octet-stream"
    ) -> None:
        super().__init__(content_type)
        self.data = bytes(data)

    @property
    def content_length(self) -> Optional[int]:
        return len(self.data)

    def iter_chunks(self) -> Iterator[bytes]:
        if self.data:
            yield self.data


class BufferedBody(BytesBody):
    """
    Fully materialized entity.

    Carries no content type of its own: when it stands in for another entity
    the content type lives on the request headers.
    """

    __slots__ = ()

    def __init__(self, data: bytes, content_type: Optional[str] = None) -> None:
        super().__init__(data, content_type)


class TextBody(BytesBody):
    """String entity, encoded once at construction."""

    __slots__ = ("encoding",)

    def __init__(
        self,
        text: str,
        content_type: Optional[str] = None,
        encoding: str = "utf-8",
    ) -> None:
        if content_type is None:
            content_type = f"text/plain; charset={encoding.upper()}"
        super().__init__(text.encode(encoding), content_type)
        self.encoding = encoding


class JsonBody(BytesBody):
    """JSON document entity."""

    __slots__ = ()

    def __init__(
        self, value: Any, content_type: Optional[str] = "application/json"
    ) -> None:
        super().__init__(to_json(value).encode("utf-8"), content_type)


class FormBody(BytesBody):
    """``application/x-www-form-urlencoded`` entity."""

    __slots__ = ()

    def __init__(
        self,
        fields: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        encoding: str = "utf-8",
    ) -> None:
        encoded = urllib.parse.urlencode(
            _field_pairs(fields), doseq=True, encoding=encoding
        )
        super().__init__(
            encoded.encode("ascii"),
            "application/x-www-form-urlencoded; charset=" + encoding.upper(),
        )


class MultipartBody(Body):
    """
    ``multipart/form-data`` entity built from plain fields and files.

    Files are given as raw bytes, a binary file object, or a tuple
    ``(filename, data)`` / ``(filename, data, content_type)``.
    """

    __slots__ = ("boundary", "_parts")

    def __init__(
        self,
        fields: Optional[Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]] = None,
        files: Optional[Mapping[str, FileSpec]] = None,
        boundary: Optional[str] = None,
    ) -> None:
        self.boundary = boundary or os.urandom(16).hex()
        super().__init__(f"multipart/form-data; boundary={self.boundary}")
        self._parts: List[Tuple[bytes, Union[bytes, IO[bytes]]]] = []

        for name, value in _field_pairs(fields or {}):
            header = f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
            self._parts.append((header.encode("utf-8"), str(value).encode("utf-8")))

        for name, spec in (files or {}).items():
            filename, data, file_type = _file_spec(name, spec)
            header = (
                f'Content-Disposition: form-data; name="{name}"; '
                f'filename="{filename}"\r\n'
                f"Content-Type: {file_type}\r\n\r\n"
            )
            self._parts.append((header.encode("utf-8"), data))

    @property
    def repeatable(self) -> bool:
        return all(isinstance(data, bytes) for _, data in self._parts)

    def iter_chunks(self) -> Iterator[bytes]:
        delimiter = f"--{self.boundary}\r\n".encode("ascii")
        for header, data in self._parts:
            yield delimiter + header
            if isinstance(data, bytes):
                yield data
            else:
                yield from file_to_iterator(data)
            yield b"\r\n"
        yield f"--{self.boundary}--\r\n".encode("ascii")


class StreamBody(Body):
    """
    One-shot entity backed by an iterator of bytes or a binary file object.

    Producing the bytes a second time raises ``ValueError``.
    """

    __slots__ = ("_source", "_length", "_consumed")

    def __init__(
        self,
        source: Union[Iterator[bytes], IO[bytes]],
        content_type: Optional[str] = "application/octet-stream",
        length: Optional[int] = None,
    ) -> None:
        super().__init__(content_type)
        self._source = source
        self._length = length
        self._consumed = False

    @property
    def content_length(self) -> Optional[int]:
        return self._length

    @property
    def repeatable(self) -> bool:
        return False

    def iter_chunks(self) -> Iterator[bytes]:
        if self._consumed:
            raise ValueError("Stream body has already been consumed")
        self._consumed = True
        if hasattr(self._source, "read"):
            return file_to_iterator(self._source)  # type: ignore[arg-type]
        return iter(self._source)  # type: ignore[arg-type]


def as_body(value: Any) -> Optional[Body]:
    """
    Coerce a plain value into an entity.

    ``str`` becomes ``TextBody``, ``bytes`` becomes ``BytesBody``, file objects
    and iterators become ``StreamBody``, anything else is sent as JSON.
    """
    if value is None or isinstance(value, Body):
        return value
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if isinstance(value, io.IOBase) or hasattr(value, "read"):
        return StreamBody(value)
    if isinstance(value, collections.abc.Iterator):
        return StreamBody(value)
    return JsonBody(value)


def _field_pairs(
    fields: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
) -> List[Tuple[str, Any]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def _file_spec(
    name: str, spec: FileSpec
) -> Tuple[str, Union[bytes, IO[bytes]], str]:
    if isinstance(spec, tuple):
        filename = spec[0]
        data = spec[1]
        file_type = spec[2] if len(spec) > 2 else None  # type: ignore[misc]
    else:
        data = spec
        filename = os.path.basename(getattr(spec, "name", "") or name)
        file_type = None

    if file_type is None:
        file_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return filename, data, file_type
