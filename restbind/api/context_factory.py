"""Context Factory — builds the RequestContext and reads action params.

Invariants:
    - build_context() never suspends and never fails on absent user/trace/i18n
    - Parameter map follows the action's ParamPlan: path keys from path params,
      query keys from the query string, missing keys present as None
    - GET actions receive context.params; every other method receives the body

Design Decisions:
    - Upstream middleware hands data over via request.state (user, trace_id,
      i18n): the Starlette-native slot for per-request values
    - user falls back to scope["user"] (AuthenticationMiddleware) and
      trace_id to the configured trace header
    - Malformed JSON bodies raise ParamsValidationError so both dialects
      answer 400 instead of 500
"""

import json
import logging
from typing import Any

from starlette.requests import Request

from restbind.config import get_settings
from restbind.core.action_errors import ParamsValidationError
from restbind.core.context import RequestContext
from restbind.core.domain_types import HttpMethod
from restbind.core.param_planner import ParamPlan, pick_params

logger = logging.getLogger(__name__)

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def _state(request: Request, name: str) -> Any:
    return getattr(request.state, name, None)


def build_context(
    *,
    binder: Any,
    controller: type | None,
    action: type,
    plan: ParamPlan,
    app: Any,
    router: Any,
    request: Request,
    trace_header: str | None = None,
) -> RequestContext:
    """Fresh context for one request."""
    header = trace_header or get_settings().trace_header
    user = _state(request, "user")
    if user is None:
        user = request.scope.get("user")
    trace_id = _state(request, "trace_id") or request.headers.get(header)
    return RequestContext(
        action=action,
        controller=controller,
        binder=binder,
        router=router,
        app=app,
        logger=getattr(app, "logger", None),
        user=user,
        trace_id=trace_id,
        i18n=_state(request, "i18n"),
        params=pick_params(plan, request.path_params, request.query_params),
        transport_name=getattr(binder, "transport_name", "Rest"),
    )


async def read_body(request: Request) -> Any:
    """Parsed request body: JSON, form, or {} when empty."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form()
        return dict(form)
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Malformed JSON body on {request.url.path}: {e}")
        raise ParamsValidationError(
            [{"field": "body", "message": "Malformed JSON body", "type": "json_invalid"}],
        ) from e


async def read_action_params(context: RequestContext, request: Request) -> Any:
    """Params for execute(): derived params for GET, the body otherwise."""
    if request.method.upper() == HttpMethod.GET.value:
        return context.params
    return await read_body(request)
