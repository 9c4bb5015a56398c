"""Context Factory — RequestContext construction and action params.

Tests cover:
    - Params follow the ParamPlan (missing keys → None)
    - user / trace_id / i18n read from request.state, with scope/header fallback
    - GET receives context.params, POST the parsed body
    - Form bodies become dicts, empty bodies {}, malformed JSON → ParamsValidationError
"""

from types import SimpleNamespace

import pytest
from starlette.requests import Request

from restbind.api.context_factory import build_context, read_action_params, read_body
from restbind.core.action_errors import ParamsValidationError
from restbind.core.param_planner import derive


def make_request(
    method="GET", path="/", query=b"", headers=None, body=b"",
    path_params=None, state=None, user=None,
):
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "path_params": path_params or {},
        "state": dict(state or {}),
    }
    if user is not None:
        scope["user"] = user
    sent = False

    async def receive():
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class Widget:
    pass


def context_for(request, uri="/widgets/:id?verbose", binder=None):
    return build_context(
        binder=binder or SimpleNamespace(transport_name="RestRouter"),
        controller=None,
        action=Widget,
        plan=derive(uri),
        app=SimpleNamespace(logger=None),
        router=None,
        request=request,
        trace_header="x-trace-id",
    )


def test_params_follow_the_plan():
    request = make_request(query=b"verbose=true&extra=1", path_params={"id": "42"})
    context = context_for(request)
    assert context.params == {"id": "42", "verbose": "true"}
    assert context.transport_name == "RestRouter"
    assert context.action is Widget


def test_missing_keys_are_none():
    context = context_for(make_request(path_params={"id": "7"}))
    assert context.params == {"id": "7", "verbose": None}


def test_upstream_state_is_read():
    catalog = object()
    request = make_request(
        state={"user": {"id": "u-1"}, "trace_id": "t-state", "i18n": catalog},
        headers={"x-trace-id": "t-header"},
    )
    context = context_for(request, uri="/")
    assert context.user == {"id": "u-1"}
    assert context.trace_id == "t-state"
    assert context.i18n is catalog


def test_fallbacks_for_user_and_trace_id():
    request = make_request(user="scope-user", headers={"X-Trace-Id": "t-header"})
    context = context_for(request, uri="/")
    assert context.user == "scope-user"
    assert context.trace_id == "t-header"
    assert context.i18n is None


def test_absent_upstream_data_is_none():
    context = context_for(make_request(), uri="/")
    assert context.user is None
    assert context.trace_id is None


async def test_get_receives_context_params():
    request = make_request(query=b"verbose=1", path_params={"id": "1"})
    context = context_for(request)
    assert await read_action_params(context, request) == {"id": "1", "verbose": "1"}


async def test_post_receives_json_body():
    request = make_request(
        method="POST", body=b'{"name": "gear"}',
        headers={"content-type": "application/json"}, path_params={"id": "1"},
    )
    context = context_for(request)
    assert await read_action_params(context, request) == {"name": "gear"}


async def test_form_body_becomes_dict():
    request = make_request(
        method="POST", body=b"name=gear&size=2",
        headers={"content-type": "application/x-www-form-urlencoded"},
    )
    assert await read_body(request) == {"name": "gear", "size": "2"}


async def test_empty_body_is_empty_dict():
    assert await read_body(make_request(method="POST")) == {}


async def test_malformed_json_raises_validation_error():
    request = make_request(
        method="POST", body=b"{oops", headers={"content-type": "application/json"},
    )
    with pytest.raises(ParamsValidationError) as exc_info:
        await read_body(request)
    assert exc_info.value.errors[0]["field"] == "body"
