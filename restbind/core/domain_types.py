"""Domain Types — rich types that replace bare primitives across the binder.

Invariants:
    - HttpMethod lists every method an action may declare — nothing else binds
    - Middleware is a FastAPI dependency callable (sync or async)
    - CustomExecutor receives (context, request, responder) and returns a Response

Design Decisions:
    - str Enum for methods: compares equal to the raw string, logs without encoders
    - Callable aliases over Protocols: FastAPI inspects middleware signatures itself
"""

from enum import Enum
from typing import Any, Callable


class HttpMethod(str, Enum):
    """Methods an action may be bound to."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: "str | HttpMethod") -> "HttpMethod | None":
        """Case-insensitive lookup; None for unsupported methods."""
        if isinstance(value, HttpMethod):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


Middleware = Callable[..., Any]
CustomExecutor = Callable[[Any, Any, Any], Any]
