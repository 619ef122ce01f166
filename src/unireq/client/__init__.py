"""src/unireq/client/__init__.py"""

from .auth import build_basic_auth_header, build_bearer_auth_header
from .builder import ExecutionMode, RequestBuilder
from .executor import HttpExecutor
from .facade import BoundRequest, Unireq
from .future import Callback, CallbackFuture, FunctionCallback, ResultFuture
from .prepared import PreparedEntityRequest, PreparedRequest
from .request import HttpMethod, Request
from .response import HttpResponse, JsonNode

__all__ = [
    "HttpMethod",
    "Request",
    "PreparedRequest",
    "PreparedEntityRequest",
    "ExecutionMode",
    "RequestBuilder",
    "HttpExecutor",
    "HttpResponse",
    "JsonNode",
    "ResultFuture",
    "Callback",
    "CallbackFuture",
    "FunctionCallback",
    "Unireq",
    "BoundRequest",
    "build_basic_auth_header",
    "build_bearer_auth_header",
]
