"""Error Handlers — host-level exception handlers for errors raised outside actions.

Invariants:
    - CodedError / ActionError / ParamsValidationError raised by middleware
      dependencies get the same envelope an action failure would get
    - RequestValidationError → 4000/400 envelope with field-level errors
    - RestBindError → its own structured response
    - Exception (catch-all) → generic 500 envelope, never leaks internal details

Design Decisions:
    - Layered handlers: classified (action kinds), validation (FastAPI), binder
      (RestBindError), catch-all (Exception)
    - Classifier injectable: defaults to the string-code dialect, the shape
      middleware failures had before the binder existed
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from restbind.core.action_errors import ActionError, CodedError, ParamsValidationError
from restbind.core.errors import RestBindError
from restbind.infrastructure.observability import log_fields
from restbind.schemas.envelope import INTERNAL_SERVER_ERROR
from restbind.services.error_classifier import (
    ClassifierLike, ErrorMeta, safe_classify, safe_render,
)
from restbind.services.errors_parser import errors_parser

logger = logging.getLogger(__name__)

CONTEXT_STATE_KEY = "rest_context"


def register_error_handlers(app: FastAPI, classifier: ClassifierLike | None = None) -> None:
    """Register all host-level error handlers on the FastAPI app."""
    classifier = classifier or errors_parser
    _register_classified_error_handler(app, classifier)
    _register_validation_error_handler(app, classifier)
    _register_binder_error_handler(app)
    _register_generic_error_handler(app, classifier)


def _classified_response(
    request: Request, exc: object, classifier: ClassifierLike,
) -> JSONResponse:
    context = getattr(request.state, CONTEXT_STATE_KEY, None)
    meta = ErrorMeta(request=request, context=context)
    envelope = safe_classify(classifier, exc, meta)
    return JSONResponse(
        status_code=envelope.http_code or status.HTTP_200_OK,
        content=jsonable_encoder(safe_render(classifier, envelope)),
    )


def _register_classified_error_handler(app: FastAPI, classifier: ClassifierLike) -> None:
    """Register handler for failure kinds the classifiers understand."""

    async def classified_error_handler(request: Request, exc: Exception):
        return _classified_response(request, exc, classifier)

    for exc_class in (CodedError, ActionError, ParamsValidationError):
        app.add_exception_handler(exc_class, classified_error_handler)


def _register_validation_error_handler(app: FastAPI, classifier: ClassifierLike) -> None:
    """Register FastAPI request validation error handler."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return _classified_response(
            request, ParamsValidationError(_validation_details(exc)), classifier,
        )


def _register_binder_error_handler(app: FastAPI) -> None:
    """Register binder definition/contract error handler."""

    @app.exception_handler(RestBindError)
    async def binder_error_handler(request: Request, exc: RestBindError):
        logger.error(
            f"RestBindError: {exc.message}",
            extra=log_fields(
                getattr(request.state, CONTEXT_STATE_KEY, None),
                error_code=exc.code, path=request.url.path,
            ),
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_generic_error_handler(app: FastAPI, classifier: ClassifierLike) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=safe_render(classifier, INTERNAL_SERVER_ERROR),
        )


def _validation_details(exc: RequestValidationError) -> list[dict]:
    """Field-level errors in the same shape pydantic failures use."""
    return [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
