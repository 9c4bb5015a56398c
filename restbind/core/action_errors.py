"""Action Errors — the closed set of failure kinds an action can raise.

Invariants:
    - Every failure value maps to exactly one ErrorKind (kind_of never raises)
    - CodedError carries a code from ErrorCode or an arbitrary string;
      unknown strings still classify as STRING_CODE (and fall to 500)
    - ActionError always carries an ActionErrorPayload (never None)

Design Decisions:
    - Explicit kind tag over shape sniffing: the raising code picks the kind,
      classifiers dispatch on it with a dict (no constructor-name checks)
    - Plain str is accepted as STRING_CODE so responder.error("FORBIDDEN")
      works without wrapping
    - pydantic.ValidationError is treated as VALIDATION: actions validating with
      a params model need no translation layer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError


class ErrorKind(str, Enum):
    """Closed set of failure kinds the classifiers dispatch on."""
    STRING_CODE = "string_code"
    STRUCTURED_ACTION = "structured_action"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorCode(str, Enum):
    """Well-known string codes of the string-code dialect."""
    UNAUTHORIZED = "UNAUTHORIZED"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    API_ENDPOINT_NOT_FOUND = "API_ENDPOINT_NOT_FOUND"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class CodedError(Exception):
    """Failure identified only by a string code ("UNAUTHORIZED", ...)."""

    kind = ErrorKind.STRING_CODE

    def __init__(self, code: ErrorCode | str):
        self.code = code.value if isinstance(code, ErrorCode) else str(code)
        super().__init__(self.code)


@dataclass
class ErrorOptions:
    """Presentation hints attached to a structured action error."""
    code: int | str | None = None
    http_code: int | None = None
    message: str | None = None
    details: Any = None


@dataclass
class ActionErrorPayload:
    """Everything the structured dialect needs to build an envelope."""
    error_options: ErrorOptions = field(default_factory=ErrorOptions)
    details: Any = None
    hash: str | None = None
    context: Any = None


class ActionError(Exception):
    """Business failure raised by an action with a structured payload.

    Example:
        raise ActionError(
            ErrorOptions(http_code=422, message="Invalid"),
            details={"field": "email"},
            hash="USER_EMAIL_INVALID",
            context=self.context,
        )
    """

    kind = ErrorKind.STRUCTURED_ACTION

    def __init__(
        self,
        error_options: ErrorOptions | dict | None = None,
        *,
        details: Any = None,
        hash: str | None = None,
        context: Any = None,
    ):
        if isinstance(error_options, dict):
            error_options = ErrorOptions(**error_options)
        self.payload = ActionErrorPayload(
            error_options=error_options or ErrorOptions(),
            details=details,
            hash=hash,
            context=context,
        )
        super().__init__(
            self.payload.error_options.message or hash or "",
        )


class ParamsValidationError(Exception):
    """Request parameters failed validation; errors is a list of field problems."""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: list[dict], message: str = "Invalid parameters."):
        super().__init__(message)
        self.errors = errors


def kind_of(error: object) -> ErrorKind:
    """Tag a failure value with its ErrorKind."""
    if isinstance(error, str):
        return ErrorKind.STRING_CODE
    if isinstance(error, ValidationError):
        return ErrorKind.VALIDATION
    kind = getattr(type(error), "kind", None)
    if isinstance(kind, ErrorKind):
        return kind
    return ErrorKind.UNKNOWN


def validation_errors(error: object) -> list[dict]:
    """Field-level problems of a VALIDATION-kind error, JSON-safe."""
    if isinstance(error, ValidationError):
        return [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in error.errors()
        ]
    return list(getattr(error, "errors", None) or [])
