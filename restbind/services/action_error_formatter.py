"""Action Error Formatter — the structured-error dialect (Rest default).

Invariants:
    - ActionError payloads drive the envelope: error_options.message overrides
      the fallback message, payload.details beats error_options.details,
      code/http_code copied from error_options when present
    - http_code defaults to default_http_code (200 unless configured) — business
      failures are "handled", not transport errors
    - A hash with a localizer in context becomes the message via gettext(hash);
      a hash with no message becomes the message itself
    - Wire body is {"error": {hash?, code?, message, details?}}

Design Decisions:
    - Hash heuristic (>=10 chars of [A-Z_0-9] containing '_') applies only to
      errors without a structured payload — best effort, never authoritative
    - Validation failures get 4000/400 here too so both dialects agree on them
"""

import re
from typing import Any

from restbind.core.action_errors import (
    ActionError, ErrorKind, kind_of, validation_errors,
)
from restbind.schemas.envelope import ErrorEnvelope
from restbind.services.error_classifier import BaseErrorClassifier, ErrorMeta

FALLBACK_MESSAGE = "INTERNAL_SERVER_ERROR"
_HASH_LIKE = re.compile(r"[A-Z_\d]{10}")


def looks_like_hash(message: str) -> bool:
    return bool(_HASH_LIKE.search(message)) and "_" in message


def fallback_message(error: object) -> str:
    if isinstance(error, str):
        return error or FALLBACK_MESSAGE
    if isinstance(error, BaseException):
        return str(error) or FALLBACK_MESSAGE
    return FALLBACK_MESSAGE


def localize(hash_: str, context: Any) -> str | None:
    """Message for hash from the context's localizer, if it has one."""
    i18n = getattr(context, "i18n", None)
    gettext = getattr(i18n, "gettext", None)
    if not callable(gettext):
        return None
    return gettext(hash_)


class ActionErrorFormatter(BaseErrorClassifier):
    """Builds envelopes from ActionError payloads (and best-effort otherwise)."""

    render_fields = ("hash", "code", "message", "details")

    def __init__(self, default_http_code: int = 200):
        self.default_http_code = default_http_code

    def classify(self, error: object, meta: ErrorMeta) -> ErrorEnvelope:
        self.log_failure(error, meta)
        kind = kind_of(error)
        if kind is ErrorKind.STRUCTURED_ACTION and isinstance(error, ActionError):
            return self._from_action_error(error, meta)
        if kind is ErrorKind.VALIDATION:
            return ErrorEnvelope(
                code=4000, http_code=400, message="Invalid parameters.",
                details=validation_errors(error),
            )
        return self._from_message(error, meta)

    def _from_action_error(self, error: ActionError, meta: ErrorMeta) -> ErrorEnvelope:
        payload = error.payload
        options = payload.error_options
        message = options.message or fallback_message(error)
        details = payload.details if payload.details is not None else options.details
        http_code = options.http_code or self.default_http_code
        return self._finish(
            code=options.code, http_code=http_code, message=message,
            details=details, hash_=payload.hash,
            context=payload.context or meta.context,
        )

    def _from_message(self, error: object, meta: ErrorMeta) -> ErrorEnvelope:
        message = fallback_message(error)
        hash_ = message if looks_like_hash(message) else None
        return self._finish(
            code=None, http_code=self.default_http_code, message=message,
            details=None, hash_=hash_, context=meta.context,
        )

    def _finish(
        self, *, code, http_code, message, details, hash_, context,
    ) -> ErrorEnvelope:
        if hash_:
            message = localize(hash_, context) or message or hash_
        return ErrorEnvelope(
            code=code, http_code=http_code, message=message,
            details=details, hash=hash_,
        )
