"""Host error handlers — failures raised outside the standard action path.

Tests cover:
    - CodedError from a plain route → string-code envelope
    - RequestValidationError → 4000/400 with field-level errors
    - RestBindError → its own structured response
    - Unhandled exception → generic 500, no internal details
    - Injected classifier replaces the default dialect
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from restbind.api.error_handlers import register_error_handlers
from restbind.core.action_errors import CodedError
from restbind.core.errors import RegistryLookupError
from restbind.services.action_error_formatter import ActionErrorFormatter


def build_app(classifier=None) -> FastAPI:
    app = FastAPI()
    register_error_handlers(app, classifier)

    @app.get("/coded")
    async def coded():
        raise CodedError("UNAUTHORIZED")

    @app.get("/typed/{item_id}")
    async def typed(item_id: int):
        return {"item_id": item_id}

    @app.get("/lookup")
    async def lookup():
        raise RegistryLookupError("missing-app")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    return app


@pytest.fixture
async def handler_client():
    transport = ASGITransport(app=build_app(), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_coded_error(handler_client):
    res = await handler_client.get("/coded")
    assert res.status_code == 401
    assert res.json() == {"error": {"code": 401, "message": "Unauthorized."}}


async def test_request_validation_error(handler_client):
    res = await handler_client.get("/typed/abc")
    assert res.status_code == 400
    body = res.json()["error"]
    assert body["code"] == 4000
    assert body["errors"][0]["field"] == "path.item_id"


async def test_binder_error_response(handler_client):
    res = await handler_client.get("/lookup")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "REGISTRY_NOT_FOUND"


async def test_unhandled_exception_never_leaks(handler_client):
    res = await handler_client.get("/boom")
    assert res.status_code == 500
    assert res.json() == {"error": {"code": 500, "message": "Internal Server Error"}}
    assert "hunter2" not in res.text


async def test_injected_classifier():
    transport = ASGITransport(app=build_app(ActionErrorFormatter()), raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        res = await c.get("/coded")
    assert res.status_code == 200
    assert res.json() == {"error": {"message": "UNAUTHORIZED"}}
