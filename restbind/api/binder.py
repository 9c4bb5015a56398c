"""Route Binder — compiles controller/action metadata into live FastAPI routes.

Invariants:
    - Validation runs for EVERY controller before ANY route is installed:
      a bad action (no metadata, no string uri, unknown method) raises
      DefinitionError and leaves the host untouched
    - Controllers without metadata or without actions are skipped with a warning
    - Per route dependencies run in order: context construction, then action
      middleware; the endpoint is the terminal executor
    - Router middleware: controller-level OR binder-level, never merged
    - Standard path never lets an exception reach the host: every failure goes
      through responder.error(); custom executors are called unwrapped
    - Sync execute/validate_params/executors run in the threadpool, never on
      the event loop; a slow sync action does not stall other requests
    - Classifier resolution: action > controller > binder default

Design Decisions:
    - One APIRouter per controller mounted under its base path: the sub-router
      is the unit of rebinding (last bound wins, see RestApplication)
    - Middleware are FastAPI dependency callables — the host framework's own
      pre-handler hook, so auth dependencies written for FastAPI work unchanged
    - Context lives on request.state between dependency and endpoint: the
      Starlette slot for per-request values, never shared across requests
    - Rest (many controllers, structured dialect) and RestRouter (one controller,
      string-code dialect) differ only in defaults
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from restbind.api.application import RouterBinding
from restbind.api.context_factory import build_context, read_action_params
from restbind.api.error_handlers import CONTEXT_STATE_KEY
from restbind.api.responder import Responder
from restbind.config import Settings, get_settings
from restbind.core.domain_types import HttpMethod
from restbind.core.errors import DefinitionError
from restbind.core.metadata import (
    ActionMetadata, ControllerMetadata, MetadataStore, default_store,
)
from restbind.core.param_planner import ParamPlan, derive, route_path
from restbind.core.registry import Registry
from restbind.services.action_error_formatter import ActionErrorFormatter
from restbind.services.error_classifier import ClassifierLike, resolve_classifier
from restbind.services.errors_parser import errors_parser

logger = logging.getLogger(__name__)


@dataclass
class RoutePlan:
    """One validated action, ready to install."""
    action: type
    meta: ActionMetadata
    method: HttpMethod
    path: str


@dataclass
class ControllerPlan:
    """One validated controller and its routes."""
    controller: type
    meta: ControllerMetadata
    routes: list[RoutePlan] = field(default_factory=list)


async def _invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Await coroutine functions; run sync callables in the threadpool."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    result = await run_in_threadpool(fn, *args)
    if inspect.isawaitable(result):
        return await result
    return result


class RouteBinder:
    """Binds the actions of one or more controllers onto a host application."""

    transport_name = "Rest"

    def __init__(
        self,
        *,
        id: str | None = None,
        controllers: Any = None,
        middleware: Any = None,
        errors_parser: ClassifierLike | None = None,
        logger: logging.Logger | None = None,
        registry: Registry | None = None,
        metadata: MetadataStore | None = None,
        settings: Settings | None = None,
    ):
        if logger is not None and not isinstance(logger, logging.Logger):
            raise DefinitionError(
                f"{self._label(id)} logger must be a logging.Logger", target=id,
            )
        self.id = id
        self.controllers = controllers
        self.middleware = _as_middleware(middleware)
        self.settings = settings or get_settings()
        self.metadata = metadata or default_store
        self.errors_parser = errors_parser or self.default_errors_parser()
        base_logger = logger or logging.getLogger(__name__)
        self.logger = base_logger.getChild(id) if id else base_logger
        self.bindings: list[RouterBinding] = []
        if registry is not None:
            if id:
                registry.register(id, self)
            else:
                self.logger.warning(
                    f"{self.label} registry given without id; binder not registered",
                )

    def default_errors_parser(self) -> ClassifierLike:
        return errors_parser

    @staticmethod
    def _label(binder_id: str | None) -> str:
        return f'Rest "{binder_id}":' if binder_id else "Rest:"

    @property
    def label(self) -> str:
        return self._label(self.id)

    # ─── Public API ─────────────────────────────────────────────

    def bind(self, app: Any) -> list[RouterBinding]:
        """Validate all controllers, then install their routes on app."""
        return self._bind(app, override_uri=None)

    async def execute(
        self, context: Any, request: Request, responder: Responder,
    ) -> Response:
        """Terminal executor: custom executor, or the standard action path."""
        action_meta = self.metadata.action_metadata(context.action)
        if action_meta is not None and action_meta.executor is not None:
            return await _invoke(action_meta.executor, context, request, responder)
        return await self.execute_standard(context, request, responder)

    async def execute_standard(
        self, context: Any, request: Request, responder: Responder,
    ) -> Response:
        """Read params, construct the action, execute, settle the responder."""
        try:
            params = await read_action_params(context, request)
            action = context.action(context)
            validate = getattr(action, "validate_params", None)
            if callable(validate):
                params = await _invoke(validate, params)
            result = await _invoke(action.execute, params)
            return responder.success(result)
        except Exception as e:
            if responder.settled:
                raise
            return responder.error(e)

    def responder_for(
        self,
        request: Request,
        context: Any,
        controller_meta: ControllerMetadata,
        action_meta: ActionMetadata,
    ) -> Responder:
        classifier = resolve_classifier(
            action_meta.errors_parser,
            controller_meta.errors_parser,
            self.errors_parser,
        )
        return Responder(
            request, context, classifier,
            options={
                "binder": self.id,
                "controller": controller_meta.id,
                "action": action_meta.id,
            },
        )

    # ─── Validate ───────────────────────────────────────────────

    def _plan(self) -> list[ControllerPlan]:
        if not isinstance(self.controllers, (list, tuple)):
            self.logger.warning(f"{self.label} controllers not found")
            return []
        plans = []
        for controller in self.controllers:
            plan = self._plan_controller(controller)
            if plan is not None:
                plans.append(plan)
        return plans

    def _plan_controller(self, controller: Any) -> ControllerPlan | None:
        name = getattr(controller, "__qualname__", None) or type(controller).__name__
        meta = self.metadata.controller_metadata(controller) if controller else None
        if meta is None:
            self.logger.warning(
                f'{self.label} Controller "{name}" metadata not found. '
                f"Use define_controller() to declare rest options. "
                f"Controller ignored for REST.",
                extra={"binder": self.id, "controller": name},
            )
            return None
        if not meta.actions:
            self.logger.warning(
                f'{self.label} Controller "{meta.id}" actions not found',
                extra={"binder": self.id, "controller": meta.id},
            )
            return None
        plan = ControllerPlan(controller=controller, meta=meta)
        for action in meta.actions:
            plan.routes.append(self._plan_action(meta, action))
        return plan

    def _plan_action(self, controller_meta: ControllerMetadata, action: Any) -> RoutePlan:
        name = getattr(action, "__qualname__", repr(action))
        target = f"{controller_meta.id}/{name}"
        meta = self.metadata.action_metadata(action)
        if meta is None:
            raise DefinitionError(
                f'{self.label} action "{target}" has no rest metadata. '
                f"Use define_action() to declare its endpoint.",
                target=target,
            )
        if not isinstance(meta.uri, str):
            raise DefinitionError(
                f'{self.label} invalid endpoint definition for "{target}". '
                f'Option "uri" is required and must be string',
                target=target,
            )
        method = HttpMethod.parse(meta.method)
        if method is None:
            raise DefinitionError(
                f'{self.label} unsupported method "{meta.method}" for "{target}"',
                target=target,
            )
        return RoutePlan(
            action=action, meta=meta, method=method, path=route_path(meta.uri),
        )

    # ─── Build & register ───────────────────────────────────────

    def _bind(self, app: Any, override_uri: str | None) -> list[RouterBinding]:
        plans = self._plan()
        bound = []
        for plan in plans:
            self.logger.info(
                f'{self.label} Controller "{plan.meta.id}" is applying to {app.id}...',
            )
            router = self._build_router(plan.meta)
            base_uri = override_uri or plan.meta.base_uri
            for route in plan.routes:
                self._bind_route(app, router, plan, route, base_uri)
            binding = RouterBinding(
                base_uri=base_uri, router=router,
                controller=plan.controller, binder=self,
            )
            app.mount_sub_router(base_uri, router)
            app.register_router_binding(base_uri, binding)
            bound.append(binding)
        self.bindings.extend(bound)
        return bound

    def _build_router(self, controller_meta: ControllerMetadata) -> APIRouter:
        middleware = controller_meta.middleware or self.middleware
        return APIRouter(dependencies=[Depends(m) for m in middleware])

    def _bind_route(
        self,
        app: Any,
        router: APIRouter,
        plan: ControllerPlan,
        route: RoutePlan,
        base_uri: str | None,
    ) -> None:
        controller, controller_meta = plan.controller, plan.meta
        action, action_meta = route.action, route.meta
        param_plan = _with_prefix_keys(action_meta.params or ParamPlan(), base_uri)
        binder = self

        self.logger.info(
            f" + endpoint {route.method.value} {app.base_uri}{base_uri or ''}"
            f"{action_meta.uri} ({controller_meta.id}/{action_meta.id})",
            extra={
                "binder": self.id, "controller": controller_meta.id,
                "action": action_meta.id, "http_method": route.method.value,
            },
        )

        async def create_context(request: Request) -> None:
            setattr(request.state, CONTEXT_STATE_KEY, build_context(
                binder=binder,
                controller=controller,
                action=action,
                plan=param_plan,
                app=app,
                router=router,
                request=request,
                trace_header=binder.settings.trace_header,
            ))

        async def endpoint(request: Request) -> Response:
            context = getattr(request.state, CONTEXT_STATE_KEY)
            responder = binder.responder_for(
                request, context, controller_meta, action_meta,
            )
            return await binder.execute(context, request, responder)

        dependencies = [Depends(create_context)]
        dependencies.extend(Depends(m) for m in action_meta.middleware)
        router.add_api_route(
            route.path,
            endpoint,
            methods=[route.method.value],
            dependencies=dependencies,
            name=f"{controller_meta.id}.{action_meta.id}",
            response_model=None,
        )


def _with_prefix_keys(plan: ParamPlan, base_uri: str | None) -> ParamPlan:
    """Prepend path keys declared in the mount path ('/users/:uid')."""
    prefix_keys = derive(base_uri).path_keys if base_uri else ()
    if not prefix_keys:
        return plan
    return ParamPlan(
        path_keys=prefix_keys + plan.path_keys, query_keys=plan.query_keys,
    )


def _as_middleware(value: Any) -> tuple:
    if value is None:
        return ()
    if callable(value):
        return (value,)
    return tuple(value)


class Rest(RouteBinder):
    """Binder for many controllers; structured-error dialect by default."""

    def __init__(self, *, controllers: Any = None, **kwargs: Any):
        if controllers is None:
            raise DefinitionError("Rest error: option controllers is required.")
        super().__init__(controllers=controllers, **kwargs)

    def default_errors_parser(self) -> ClassifierLike:
        return ActionErrorFormatter(self.settings.structured_error_http_code)


class RestRouter(RouteBinder):
    """Binder for a single controller; string-code dialect by default."""

    transport_name = "RestRouter"

    def __init__(self, *, controller: Any = None, **kwargs: Any):
        if controller is None:
            raise DefinitionError("RestRouter error: controller is required.")
        metadata = kwargs.get("metadata") or default_store
        meta = metadata.controller_metadata(controller)
        if meta is None:
            raise DefinitionError(
                f"RestRouter error: controller "
                f"{getattr(controller, '__qualname__', controller)!s} "
                f"is not a rest controller (metadata is required).",
            )
        super().__init__(controllers=[controller], **kwargs)
        self.controller = controller

    def bind(self, app: Any, *, uri: str | None = None) -> list[RouterBinding]:
        """Mount under uri, else the controller's base_uri, else no prefix."""
        return self._bind(app, override_uri=uri)

    @property
    def router(self) -> APIRouter | None:
        return self.bindings[-1].router if self.bindings else None
