"""utils/serialization.py

Serialization utilities for Unireq (JSON bodies, typed response mapping).
"""

import json
from dataclasses import asdict, is_dataclass
from typing import Any, Type, TypeVar

T = TypeVar("T")

__all__ = ["to_json", "from_json", "ObjectMapper", "JsonObjectMapper"]


def to_json(data: Any) -> str:
    """Serializes data to a JSON string."""
    return json.dumps(data)


def from_json(text: str) -> Any:
    """Parses a JSON document."""
    return json.loads(text)


class ObjectMapper:
    """
    Converts between response text and user types.

    Subclass and override both methods to plug in a different serializer.
    """

    def read_value(self, text: str, value_type: Type[T]) -> T:
        """Build an instance of ``value_type`` from response text."""
        raise NotImplementedError

    def write_value(self, value: Any) -> str:
        """Serialize ``value`` for a request body."""
        raise NotImplementedError


class JsonObjectMapper(ObjectMapper):
    """
    JSON-backed mapper.

    A JSON object is passed to ``value_type`` as keyword arguments, which
    covers dataclasses and plain classes with a matching ``__init__``.
    Anything else is passed positionally.
    """

    def read_value(self, text: str, value_type: Type[T]) -> T:
        data = from_json(text)
        if isinstance(data, dict):
            return value_type(**data)
        return value_type(data)  # type: ignore[call-arg]

    def write_value(self, value: Any) -> str:
        if is_dataclass(value) and not isinstance(value, type):
            return to_json(asdict(value))
        return to_json(value)
