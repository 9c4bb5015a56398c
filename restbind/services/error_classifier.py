"""Error Classifier — contract and safety net shared by every error dialect.

Invariants:
    - safe_classify() and safe_render() never raise; a failing classifier
      degrades to the generic 500 envelope and is logged
    - Strings and exceptions are logged server-side before classification
      (stack traces go to logs, never to clients)
    - Resolution order for a request: action > controller > binder default

Design Decisions:
    - Protocol over ABC: integrators plug in any object with classify/render,
      or a bare callable returning an envelope (or an envelope-shaped dict)
    - ErrorMeta as dataclass: request + context travel together without
      coupling classifiers to FastAPI
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

from restbind.infrastructure.observability import log_fields
from restbind.schemas.envelope import INTERNAL_SERVER_ERROR, ErrorEnvelope

logger = logging.getLogger(__name__)


@dataclass
class ErrorMeta:
    """What a classifier may know about the failing request."""
    request: Any = None
    context: Any = None
    options: Mapping[str, Any] = field(default_factory=dict)

    @property
    def logger(self) -> logging.Logger:
        ctx_logger = getattr(self.context, "logger", None)
        if isinstance(ctx_logger, logging.Logger):
            return ctx_logger
        return logger


@runtime_checkable
class ErrorClassifier(Protocol):
    """Maps a failure value to an envelope and an envelope to a wire body."""
    def classify(self, error: object, meta: ErrorMeta) -> ErrorEnvelope: ...
    def render(self, envelope: ErrorEnvelope) -> dict: ...


# A classifier object, or a bare callable returning an envelope (or dict)
ClassifierLike = ErrorClassifier | Callable[[object, ErrorMeta], Any]


class BaseErrorClassifier:
    """Shared logging and rendering; subclasses implement classify()."""

    render_fields: tuple[str, ...] = ("code", "message", "errors")

    def classify(self, error: object, meta: ErrorMeta) -> ErrorEnvelope:
        raise NotImplementedError

    def render(self, envelope: ErrorEnvelope) -> dict:
        return envelope.to_response(*self.render_fields)

    def log_failure(self, error: object, meta: ErrorMeta) -> None:
        """Log strings and exceptions through the context's 'http' logger."""
        http_logger = meta.logger.getChild("http")
        extra = log_fields(meta.context)
        if isinstance(error, BaseException):
            http_logger.error(
                f"{type(error).__name__}: {error}", exc_info=error, extra=extra,
            )
        elif isinstance(error, str):
            http_logger.error(error, extra=extra)


def safe_classify(
    classifier: ClassifierLike, error: object, meta: ErrorMeta,
) -> ErrorEnvelope:
    """Classify without ever raising."""
    try:
        if hasattr(classifier, "classify"):
            result = classifier.classify(error, meta)
        else:
            result = classifier(error, meta)
        if isinstance(result, ErrorEnvelope):
            return result
        if isinstance(result, Mapping):
            return ErrorEnvelope.model_validate(dict(result))
        raise TypeError(
            f"classifier returned {type(result).__name__}, expected ErrorEnvelope",
        )
    except Exception:
        logger.error(
            f"Error classifier {classifier!r} failed; using generic envelope",
            exc_info=True,
        )
        return INTERNAL_SERVER_ERROR


def safe_render(classifier: ClassifierLike, envelope: ErrorEnvelope) -> dict:
    """Render without ever raising; bare callables get the short wire shape."""
    try:
        if hasattr(classifier, "render"):
            body = classifier.render(envelope)
        else:
            body = envelope.to_response(*BaseErrorClassifier.render_fields)
        if not isinstance(body, Mapping):
            raise TypeError(f"render returned {type(body).__name__}, expected dict")
        return dict(body)
    except Exception:
        logger.error(
            f"Error renderer {classifier!r} failed; using generic envelope",
            exc_info=True,
        )
        return INTERNAL_SERVER_ERROR.to_response(*BaseErrorClassifier.render_fields)


def resolve_classifier(*candidates: ClassifierLike | None) -> ClassifierLike:
    """First classifier that is set (most specific first)."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    raise LookupError("no error classifier configured")
