"""Error Hierarchy — typed, categorized exceptions for binder failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Definition and registry errors are raised at construction/bind time only,
      never while serving a request
    - to_response() produces the REST envelope used by the host error handlers

Design Decisions:
    - Single hierarchy with RestBindError base: host handlers catch all (uniform error shape)
    - Errors raised BY actions live in core/action_errors.py — those are classified
      and rendered, these are fatal to the operation that raised them
"""

from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    DEFINITION = "definition"
    REGISTRY = "registry"
    CONTRACT = "contract"


class RestBindError(Exception):
    """Base exception for all binder errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
            }
        }


# ─── Definition Errors (bind time) ──────────────────────────────

class DefinitionError(RestBindError):
    """Controller/action metadata is malformed or missing."""
    def __init__(self, message: str, target: str | None = None):
        super().__init__(
            message, "DEFINITION_ERROR", ErrorCategory.DEFINITION,
            ErrorSeverity.CRITICAL,
        )
        self.target = target


# ─── Registry Errors (construction time) ────────────────────────

class RegistryConflictError(RestBindError):
    """An identifier is already registered."""
    def __init__(self, entry_id: str):
        super().__init__(
            f'identifier "{entry_id}" already exists',
            "REGISTRY_CONFLICT", ErrorCategory.REGISTRY,
            ErrorSeverity.CRITICAL,
        )
        self.entry_id = entry_id


class RegistryLookupError(RestBindError):
    """No instance is registered under an identifier."""
    def __init__(self, entry_id: str):
        super().__init__(
            f'identifier "{entry_id}" not found',
            "REGISTRY_NOT_FOUND", ErrorCategory.REGISTRY,
            ErrorSeverity.ERROR, 404,
        )
        self.entry_id = entry_id


# ─── Contract Errors (request time) ─────────────────────────────

class ResponderSettledError(RestBindError):
    """A request was settled twice (success after error, or vice versa)."""
    def __init__(self, first: str, second: str):
        super().__init__(
            f"response already settled by {first}(); refusing {second}()",
            "RESPONDER_SETTLED", ErrorCategory.CONTRACT,
            ErrorSeverity.CRITICAL,
        )
        self.first = first
        self.second = second
