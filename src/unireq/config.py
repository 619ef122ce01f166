"""src/unireq/config.py

Process-wide options for Unireq.

One ``Options`` instance is owned by each ``Unireq`` facade. The request
builder reads ``default_headers`` and the executor asks for the async
idle-connection monitor; everything else configures the bundled engine.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Optional

from unireq.transport.monitor import IdleConnectionMonitor, Startable
from unireq.utils.serialization import JsonObjectMapper, ObjectMapper
from unireq.utils.timing import Timeout

__all__ = ["Options", "ENV_PREFIX"]

ENV_PREFIX = "UNIREQ_"

MonitorFactory = Callable[[Any, "Options"], Startable]


def _default_monitor(client: Any, options: "Options") -> Startable:
    return IdleConnectionMonitor(
        client,
        interval=options.idle_sweep_interval,
        max_idle_time=options.max_idle_time,
    )


@dataclass
class Options:
    """
    Client-wide defaults.

    Attributes:
        default_headers: Headers added to every request that does not set them.
        base_url: Prefix for relative request URLs.
        connect_timeout: Seconds to wait for a connection (None: no limit).
        socket_timeout: Seconds to wait for data on a socket (None: no limit).
        max_per_route: Connections kept per (host, port, scheme).
        max_idle_time: Seconds a pooled connection may sit idle.
        idle_sweep_interval: Seconds between idle-connection sweeps.
        object_mapper: Converts response text to user types.
        monitor_factory: Builds the idle-connection monitor for an async client.
    """

    default_headers: Dict[str, str] = field(default_factory=dict)
    base_url: Optional[str] = None
    connect_timeout: Optional[float] = 10.0
    socket_timeout: Optional[float] = 60.0
    max_per_route: int = 20
    max_idle_time: float = 30.0
    idle_sweep_interval: float = 5.0
    object_mapper: ObjectMapper = field(default_factory=JsonObjectMapper)
    monitor_factory: MonitorFactory = _default_monitor

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls, **overrides: Any) -> "Options":
        """
        Build options from ``UNIREQ_*`` environment variables.

        Keyword arguments take precedence over the environment.
        """
        values: Dict[str, Any] = {}
        env_map = {
            "connect_timeout": float,
            "socket_timeout": float,
            "max_per_route": int,
            "max_idle_time": float,
            "idle_sweep_interval": float,
        }
        for name, convert in env_map.items():
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is None or raw == "":
                continue
            try:
                values[name] = convert(raw)
            except ValueError as exc:
                raise ValueError(
                    f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}"
                ) from exc

        base_url = os.getenv(ENV_PREFIX + "BASE_URL")
        if base_url:
            values["base_url"] = base_url

        values.update(overrides)
        return cls(**values)

    def validate(self) -> None:
        """
        Fail fast on impossible settings.

        Raises:
            ValueError: On the first invalid field.
        """
        for name in ("connect_timeout", "socket_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive or None, got {value}")
        if self.max_per_route < 1:
            raise ValueError(f"max_per_route must be >= 1, got {self.max_per_route}")
        if self.max_idle_time <= 0:
            raise ValueError(f"max_idle_time must be positive, got {self.max_idle_time}")
        if self.idle_sweep_interval <= 0:
            raise ValueError(
                f"idle_sweep_interval must be positive, got {self.idle_sweep_interval}"
            )

    def timeout(self) -> Timeout:
        """Timeouts for the bundled engine."""
        return Timeout(connect=self.connect_timeout, read=self.socket_timeout)

    def async_monitor(self, client: Any) -> Startable:
        """Build the idle-connection monitor paired with ``client``."""
        return self.monitor_factory(client, self)

    def set_default_header(self, name: str, value: str) -> None:
        """Add or replace a default header."""
        for existing in list(self.default_headers):
            if existing.lower() == name.lower():
                del self.default_headers[existing]
        self.default_headers[name] = value

    def clear_default_headers(self) -> None:
        """Remove all default headers."""
        self.default_headers.clear()

    def reset(self) -> None:
        """Restore every field to its default."""
        defaults = Options()
        for item in fields(self):
            setattr(self, item.name, getattr(defaults, item.name))
