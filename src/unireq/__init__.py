"""src/unireq/__init__.py

Unireq - HTTP client with one request model and two ways to run it.

A request is described once and then executed either on the calling thread
or through a future/callback, both backed by shared, lazily started
connection pools.

Key Features:
    - Zero external dependencies
    - Blocking and future/callback dispatch over shared connection pools
    - Route parameters, query strings and default headers
    - Typed response bodies (bytes, text, JSON, mapped objects)
    - Idle connection reaping on a background thread
    - Full type hints (PEP 561)
    - Memory optimized with __slots__

Example:
    Sync usage::

        import unireq

        response = unireq.get("https://api.example.com/users/{id}") \\
            .route_param("id", 42) \\
            .as_json()
        print(response.status, response.body)

    Async usage::

        future = unireq.post("https://api.example.com/items") \\
            .header("Content-Type", "application/json") \\
            .with_body({"name": "widget"}) \\
            .as_json_async()
        print(future.result().body)

    Dedicated client::

        from unireq import Options, Unireq

        with Unireq(Options(base_url="https://api.example.com")) as client:
            print(client.get("/health").as_string().body)
"""

import logging

from unireq.client.executor import HttpExecutor
from unireq.client.facade import (
    BoundRequest,
    Unireq,
    clear_default_headers,
    default_client,
    delete,
    get,
    head,
    options,
    patch,
    post,
    put,
    set_default_header,
    shutdown,
)
from unireq.client.future import (
    Callback,
    CallbackFuture,
    FunctionCallback,
    ResultFuture,
)
from unireq.client.request import HttpMethod, Request
from unireq.client.response import HttpResponse, JsonNode
from unireq.config import Options
from unireq.exceptions import (
    CanceledError,
    HttpClientError,
    PreparationError,
    TransportError,
    UnireqError,
)
from unireq.version import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "HttpMethod",
    "Request",
    "HttpResponse",
    "JsonNode",
    "HttpExecutor",
    "ResultFuture",
    "Callback",
    "CallbackFuture",
    "FunctionCallback",
    "Options",
    "Unireq",
    "BoundRequest",
    "default_client",
    "get",
    "post",
    "put",
    "delete",
    "patch",
    "head",
    "options",
    "set_default_header",
    "clear_default_headers",
    "shutdown",
    "UnireqError",
    "HttpClientError",
    "PreparationError",
    "TransportError",
    "CanceledError",
    "__version__",
]
