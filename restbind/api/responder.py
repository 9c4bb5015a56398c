"""Responder — the per-request success/error capability of the terminal executor.

Invariants:
    - Built once per request, settles it exactly once: a second success()/error()
      raises ResponderSettledError instead of sending twice
    - error() never raises for classification problems: safe_classify degrades
      to the generic 500 envelope
    - Error status is envelope.http_code, or 200 when unset

Design Decisions:
    - Explicit capability over patching res.success/res.error onto a shared
      response object: nothing to guard against double installation
    - success() passes Response objects through untouched, everything else is
      JSON via jsonable_encoder (pydantic models, dataclasses, datetimes)
"""

import logging
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.requests import Request
from starlette.responses import Response

from restbind.core.errors import ResponderSettledError
from restbind.infrastructure.observability import log_fields
from restbind.schemas.envelope import ErrorEnvelope
from restbind.services.error_classifier import (
    ClassifierLike, ErrorMeta, safe_classify, safe_render,
)

logger = logging.getLogger(__name__)


class Responder:
    """Settles one request with a success payload or a classified error."""

    def __init__(
        self,
        request: Request,
        context: Any,
        classifier: ClassifierLike,
        options: dict | None = None,
    ):
        self._request = request
        self._context = context
        self._classifier = classifier
        self._options = options or {}
        self._settled_by: str | None = None

    @property
    def settled(self) -> bool:
        return self._settled_by is not None

    def success(self, data: Any = None) -> Response:
        if isinstance(data, Response):
            self._settle("success")
            return data
        response = JSONResponse(jsonable_encoder(data))
        self._settle("success")
        return response

    def error(self, error: object) -> Response:
        self._settle("error")
        envelope = self.classify(error)
        body = safe_render(self._classifier, envelope)
        return JSONResponse(
            jsonable_encoder(body), status_code=envelope.http_code or 200,
        )

    def classify(self, error: object) -> ErrorEnvelope:
        meta = ErrorMeta(
            request=self._request, context=self._context, options=self._options,
        )
        return safe_classify(self._classifier, error, meta)

    def _settle(self, how: str) -> None:
        if self._settled_by is not None:
            logger.error(
                f"Double settlement on {self._request.url.path}: "
                f"{self._settled_by}() then {how}()",
                extra=log_fields(self._context, path=self._request.url.path),
            )
            raise ResponderSettledError(self._settled_by, how)
        self._settled_by = how
