"""src/unireq/http/headers.py

HTTP header containers for Unireq.

``HeaderMap`` is the mutable, ordered multimap used while building a
request. ``Headers`` is the read-only, case-insensitive view handed out
with responses.
"""

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
    cast,
)

__all__ = ["HeaderMap", "Headers", "HeaderSource"]

HeaderSource = Union[Mapping[str, Union[str, List[str]]], Iterable[Tuple[str, str]]]


def _iter_source(source: HeaderSource) -> Iterator[Tuple[str, str]]:
    """Flatten a mapping or a sequence of pairs into (name, value) pairs."""
    if isinstance(source, Mapping):
        for name, value in source.items():
            if isinstance(value, list):
                for item in value:
                    yield name, item
            else:
                yield name, value
    else:
        yield from source


class HeaderMap:
    """
    Ordered multimap of request headers.

    Names keep the casing they were first added with; lookups ignore case.
    Each name maps to an ordered list of values and names iterate in
    insertion order.
    """

    __slots__ = ("_entries",)

    def __init__(self, headers: Optional[HeaderSource] = None) -> None:
        # lower-cased name -> (stored name, values)
        self._entries: Dict[str, Tuple[str, List[str]]] = {}
        if headers:
            for name, value in _iter_source(headers):
                self.add(name, value)

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any existing values for the name."""
        key = name.lower()
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = (name, [str(value)])
        else:
            entry[1].append(str(value))

    def set(self, name: str, value: str) -> None:
        """Replace every value of ``name`` with a single one."""
        key = name.lower()
        entry = self._entries.get(key)
        stored = entry[0] if entry else name
        self._entries[key] = (stored, [str(value)])

    def remove(self, name: str) -> None:
        """Drop a header entirely. Missing names are ignored."""
        self._entries.pop(name.lower(), None)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of ``name``, or ``default``."""
        entry = self._entries.get(name.lower())
        if not entry or not entry[1]:
            return default
        return entry[1][0]

    def get_all(self, name: str) -> List[str]:
        """Return all values of ``name`` (empty list if absent)."""
        entry = self._entries.get(name.lower())
        return list(entry[1]) if entry else []

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        """Iterate ``(name, values)`` in insertion order."""
        for name, values in self._entries.values():
            yield name, list(values)

    def pairs(self) -> Iterator[Tuple[str, str]]:
        """Iterate every ``(name, value)`` pair, preserving multiplicity."""
        for name, values in self._entries.values():
            for value in values:
                yield name, value

    def copy(self) -> "HeaderMap":
        """Return an independent copy."""
        clone = HeaderMap()
        for key, (name, values) in self._entries.items():
            clone._entries[key] = (name, list(values))
        return clone

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderMap):
            return NotImplemented
        return list(self.pairs()) == list(other.pairs())

    def __repr__(self) -> str:
        return f"HeaderMap({dict(self.items())!r})"


class Headers(Mapping[str, str]):
    """
    Case-insensitive dictionary for HTTP headers with support for multiple values.

    Behaves like a dictionary where values are strings. duplicate headers are
    joined by commas (except Set-Cookie).
    Access raw lists via get_all().
    """

    __slots__ = ("_headers",)

    def __init__(self, headers: Optional[HeaderSource] = None):
        self._headers: Dict[str, List[str]] = {}
        if headers:
            for name, value in _iter_source(headers):
                self._headers.setdefault(name.lower(), []).append(value)

    def __getitem__(self, key: str) -> str:
        """Get header value (comma-joined if multiple, except Set-Cookie)."""
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return cast(str, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get header value.

        Args:
            key: Header name (case-insensitive).
            default: Default value if header not found.

        Returns:
            Comma-joined string for multiple values (except Set-Cookie
            which returns first), or default if not found.
        """
        values = self._headers.get(key.lower())
        if not values:
            return default

        if key.lower() == "set-cookie":
            return values[0]

        return ", ".join(values)

    def get_all(self, key: str) -> List[str]:
        """
        Get all values of a header.

        Args:
            key: Header name (case-insensitive).

        Returns:
            List of all values for the header, empty list if not found.
        """
        return list(self._headers.get(key.lower(), []))
