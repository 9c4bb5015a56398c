"""Errors Parser — the string-code dialect (RestRouter default).

Invariants:
    - Known string codes map to a fixed (code, http_code, message) triple
    - Validation failures map to 4000/400 with field-level errors
    - Everything else — unknown strings, structured action errors, arbitrary
      exceptions — maps to the generic 500 envelope
    - Wire body is {"error": {code, message, errors?}} — no details/hash leak

Design Decisions:
    - Explicit kind -> handler dict over isinstance chains: every branch visible
      in one place, adding a kind requires editing this table
    - API_ENDPOIND_NOT_FOUND accepted alongside API_ENDPOINT_NOT_FOUND: older
      clients raise the misspelled code
"""

from restbind.core.action_errors import ErrorKind, kind_of, validation_errors
from restbind.schemas.envelope import INTERNAL_SERVER_ERROR, ErrorEnvelope
from restbind.services.error_classifier import BaseErrorClassifier, ErrorMeta

_NOT_FOUND = ErrorEnvelope(code=404, http_code=404, message="Invalid endpoint of API.")

STRING_CODES: dict[str, ErrorEnvelope] = {
    "UNAUTHORIZED": ErrorEnvelope(code=401, http_code=401, message="Unauthorized."),
    "PAYMENT_REQUIRED": ErrorEnvelope(code=402, http_code=402, message="Payment Required."),
    "FORBIDDEN": ErrorEnvelope(code=403, http_code=403, message="Forbidden."),
    "API_ENDPOINT_NOT_FOUND": _NOT_FOUND,
    "API_ENDPOIND_NOT_FOUND": _NOT_FOUND,
    "INTERNAL_SERVER_ERROR": INTERNAL_SERVER_ERROR,
}


class ErrorsParser(BaseErrorClassifier):
    """Closed string-code enumeration → HTTP status."""

    render_fields = ("code", "message", "errors")

    def __init__(self):
        self._handlers = {
            ErrorKind.STRING_CODE: self._from_string_code,
            ErrorKind.VALIDATION: self._from_validation,
            ErrorKind.STRUCTURED_ACTION: self._internal,
            ErrorKind.UNKNOWN: self._internal,
        }

    def classify(self, error: object, meta: ErrorMeta) -> ErrorEnvelope:
        self.log_failure(error, meta)
        return self._handlers[kind_of(error)](error)

    def _from_string_code(self, error: object) -> ErrorEnvelope:
        code = error if isinstance(error, str) else getattr(error, "code", "")
        return STRING_CODES.get(code, INTERNAL_SERVER_ERROR)

    def _from_validation(self, error: object) -> ErrorEnvelope:
        return ErrorEnvelope(
            code=4000, http_code=400, message="Invalid parameters.",
            errors=validation_errors(error),
        )

    def _internal(self, error: object) -> ErrorEnvelope:
        return INTERNAL_SERVER_ERROR


errors_parser = ErrorsParser()
