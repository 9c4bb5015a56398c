"""Host Application — FastAPI wrapper the binders mount their sub-routers on.

Invariants:
    - Application ids are unique per Registry (duplicate id → RegistryConflictError,
      raised before the app is registered anywhere)
    - Rebinding a path warns and drops the previous binding's routes: last bound
      wins, the route table never holds two generations of one path
    - The host never starts or stops a server; it is an ASGI callable

Design Decisions:
    - Composition over subclassing FastAPI: binders only see mount_sub_router,
      register_router_binding, logger, base_uri — the narrow host interface
    - Registry injected, not global: create_application() is the composition root
    - Falls back to logging.getLogger("restbind.<id>") when no logger is given
"""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, FastAPI

from restbind.api.error_handlers import register_error_handlers
from restbind.config import Settings, get_settings
from restbind.core.errors import DefinitionError
from restbind.core.param_planner import router_syntax
from restbind.core.registry import Registry
from restbind.infrastructure.observability import setup_logging
from restbind.services.error_classifier import ClassifierLike


@dataclass
class RouterBinding:
    """One mounted sub-router, as recorded in the host's router table."""
    base_uri: str | None
    router: APIRouter
    controller: type | None
    binder: Any


def normalize_prefix(path: str | None) -> str:
    """FastAPI prefix form: '' for root, else '/x' without trailing slash.

    ':name' segments become '{name}' so mounted paths route like action paths.
    """
    if not path:
        return ""
    path = router_syntax(path.strip())
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/")


class RestApplication:
    """Host application: a FastAPI app plus the binder-facing interface."""

    def __init__(
        self,
        id: str,
        *,
        host: str | None = None,
        port: int | None = None,
        logger: logging.Logger | None = None,
        registry: Registry | None = None,
        settings: Settings | None = None,
        app: FastAPI | None = None,
        error_classifier: ClassifierLike | None = None,
    ):
        if not id:
            raise DefinitionError("RestApplication: option id is required")
        if logger is not None and not isinstance(logger, logging.Logger):
            raise DefinitionError(
                "RestApplication: logger must be a logging.Logger "
                "(child loggers are derived with getChild)",
                target=id,
            )
        self.settings = settings or get_settings()
        self.id = id
        self.host = host or self.settings.host
        self.port = port if port is not None else self.settings.port
        self.logger = logger.getChild(id) if logger else logging.getLogger(f"restbind.{id}")
        self.app = app or FastAPI(title=id)
        if app is None:
            register_error_handlers(self.app, error_classifier)
        self._bindings: dict[str, RouterBinding] = {}
        self._mounted: dict[str, list] = {}
        self.registry = registry
        if registry is not None:
            registry.register(id, self)

    @property
    def base_uri(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def bindings(self) -> dict[str, RouterBinding]:
        return dict(self._bindings)

    def mount_sub_router(self, path: str | None, router: APIRouter) -> None:
        """include_router under path; replaces routes previously mounted there."""
        prefix = normalize_prefix(path)
        stale = {id(route) for route in self._mounted.pop(prefix, [])}
        if stale:
            self.app.router.routes[:] = [
                route for route in self.app.router.routes if id(route) not in stale
            ]
        before = {id(route) for route in self.app.router.routes}
        self.app.include_router(router, prefix=prefix)
        self._mounted[prefix] = [
            route for route in self.app.router.routes if id(route) not in before
        ]
        self.app.openapi_schema = None

    def register_router_binding(self, path: str | None, binding: RouterBinding) -> None:
        """Record a binding; warn when it shadows an earlier one."""
        prefix = normalize_prefix(path)
        if prefix in self._bindings:
            self.logger.warning(
                f"{self.id} already has rest router on {prefix or '/'}. "
                f"Will reset old router.",
            )
        self._bindings[prefix] = binding

    def get_binding(self, path: str | None) -> RouterBinding | None:
        return self._bindings.get(normalize_prefix(path))

    async def __call__(self, scope, receive, send) -> None:
        await self.app(scope, receive, send)


def create_application(
    id: str = "restbind",
    *,
    settings: Settings | None = None,
    registry: Registry | None = None,
    configure_logging: bool = False,
    **kwargs: Any,
) -> RestApplication:
    """Composition root: one registry, one host application.

    configure_logging installs the configured handler on the "restbind"
    logger; hosts that own their logging setup leave it off.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(
            settings.log_level, settings.log_format,
            logger=logging.getLogger("restbind"),
        )
    return RestApplication(
        id,
        settings=settings,
        registry=registry if registry is not None else Registry(),
        **kwargs,
    )
