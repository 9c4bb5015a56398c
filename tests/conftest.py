"""Root conftest — shared fixtures for binder tests.

Invariants:
    - Every test gets a fresh Registry and MetadataStore (no cross-test leakage
      through the module-level default store)
    - client talks to the host application in-process over ASGI

Design Decisions:
    - httpx ASGITransport over a live server: no sockets, no ports
    - raise_app_exceptions=False: the catch-all handler's response is what a
      client would see, so tests assert on it instead of the re-raised error
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Keep test logs readable
os.environ.setdefault("RESTBIND_LOG_FORMAT", "text")

from restbind.api.application import RestApplication  # noqa: E402
from restbind.core.metadata import MetadataStore  # noqa: E402
from restbind.core.registry import Registry  # noqa: E402


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def store():
    return MetadataStore()


@pytest.fixture
def host(registry):
    return RestApplication("test-app", registry=registry)


@pytest.fixture
async def client(host):
    transport = ASGITransport(app=host, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
