"""Metadata Store — declarative route metadata for controllers and actions.

Invariants:
    - Metadata lives in a side table keyed by class identity; classes are never mutated
    - Lookup walks the MRO: subclasses and instances see their definer's metadata
    - define_* is last-write-wins (never cumulative); same options → equal metadata
    - ActionMetadata.params is derived once at definition time when uri is a string
    - Defining never raises: malformed shorthand yields uri=None, rejected at bind time

Design Decisions:
    - Frozen dataclasses over attribute bags: metadata is a value, compared by equality
    - WeakKeyDictionary side table: classes defined in tests/factories can be collected
    - Actions kept in their own table so add_actions() appends without redefining
      the controller's routing options
    - Module-level default store for the decorator sugar; binders accept any store
"""

import re
import weakref
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from restbind.core.domain_types import CustomExecutor, HttpMethod, Middleware
from restbind.core.param_planner import ParamPlan, derive

_ACTION_SHORTHAND = re.compile(
    r"^(GET|POST|PUT|PATCH|DELETE|OPTIONS)\s+(\S+)\s*$", re.IGNORECASE,
)


@dataclass(frozen=True)
class ControllerMetadata:
    """Routing options of one controller."""
    id: str
    base_uri: str | None = None
    middleware: tuple[Middleware, ...] = ()
    errors_parser: Any = None
    actions: tuple[type, ...] = ()


@dataclass(frozen=True)
class ActionMetadata:
    """Route of one action. method is kept raw when it is not a known HttpMethod."""
    id: str
    method: HttpMethod | str = HttpMethod.GET
    uri: str | None = None
    middleware: tuple[Middleware, ...] = ()
    executor: CustomExecutor | None = None
    params: ParamPlan | None = None
    errors_parser: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)


# ─── Option sugar ────────────────────────────────────────────────

def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if callable(value):
        return (value,)
    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        return tuple(value)
    return (value,)


def _as_plan(value: Any) -> ParamPlan | None:
    if value is None or isinstance(value, ParamPlan):
        return value
    if isinstance(value, Mapping):
        return ParamPlan(
            path_keys=tuple(value.get("path_keys") or ()),
            query_keys=tuple(value.get("query_keys") or ()),
        )
    return None


def controller_options(options: Any) -> dict[str, Any]:
    """Normalize a controller definition: "BASE_URI" or a mapping."""
    if isinstance(options, str):
        return {"base_uri": options}
    if isinstance(options, Mapping):
        return dict(options)
    return {}


def action_options(options: Any) -> dict[str, Any]:
    """Normalize an action definition: "METHOD /uri" or a mapping.

    Any other string falls through with no uri so the binder can reject it.
    """
    if isinstance(options, str):
        match = _ACTION_SHORTHAND.match(options.strip())
        if match:
            return {"method": match.group(1), "uri": match.group(2)}
        return {"extra": {"shorthand": options}}
    if isinstance(options, Mapping):
        return dict(options)
    return {}


def build_controller_metadata(cls: type, options: Any) -> ControllerMetadata:
    if isinstance(options, ControllerMetadata):
        return options
    opts = controller_options(options)
    return ControllerMetadata(
        id=opts.get("id") or cls.__qualname__,
        base_uri=opts.get("base_uri"),
        middleware=_as_tuple(opts.get("middleware")),
        errors_parser=opts.get("errors_parser"),
        actions=_as_tuple(opts.get("actions")),
    )


def build_action_metadata(cls: type, options: Any) -> ActionMetadata:
    if isinstance(options, ActionMetadata):
        meta = options
    else:
        opts = action_options(options)
        raw_method = opts.get("method") or HttpMethod.GET
        meta = ActionMetadata(
            id=opts.get("id") or cls.__qualname__,
            method=HttpMethod.parse(raw_method) or raw_method,
            uri=opts.get("uri"),
            middleware=_as_tuple(opts.get("middleware")),
            executor=opts.get("executor"),
            params=_as_plan(opts.get("params")),
            errors_parser=opts.get("errors_parser"),
            extra=dict(opts.get("extra") or {}),
        )
    # Explicit plan wins; otherwise derive once and cache on the record
    if meta.params is None and isinstance(meta.uri, str):
        meta = replace(meta, params=derive(meta.uri))
    return meta


# ─── Store ───────────────────────────────────────────────────────

class MetadataStore:
    """Side table of controller/action metadata keyed by class identity."""

    def __init__(self):
        self._controllers: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
        self._actions: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()
        self._controller_actions: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def define_controller(self, cls: type, options: Any = None) -> ControllerMetadata:
        """Attach controller metadata (last write wins)."""
        meta = build_controller_metadata(cls, options)
        # Actions appended through add_actions() survive a redefinition
        # that does not list actions itself
        if meta.actions or "actions" in controller_options(options):
            self._controller_actions[cls] = meta.actions
        self._controllers[cls] = replace(meta, actions=())
        return self.controller_metadata(cls)

    def define_action(self, cls: type, options: Any = None) -> ActionMetadata:
        """Attach action metadata (last write wins)."""
        meta = build_action_metadata(cls, options)
        self._actions[cls] = meta
        return meta

    def add_actions(self, cls: type, *actions: type) -> tuple[type, ...]:
        """Append actions to a controller, defined or not."""
        current = self._controller_actions.get(cls, ())
        self._controller_actions[cls] = current + tuple(actions)
        return self._controller_actions[cls]

    def controller_metadata(self, obj: Any) -> ControllerMetadata | None:
        owner = self._owner(obj, self._controllers)
        if owner is None:
            return None
        return replace(
            self._controllers[owner],
            actions=self._controller_actions.get(owner, ()),
        )

    def action_metadata(self, obj: Any) -> ActionMetadata | None:
        owner = self._owner(obj, self._actions)
        return self._actions[owner] if owner is not None else None

    def is_controller(self, obj: Any) -> bool:
        return self.controller_metadata(obj) is not None

    @staticmethod
    def _owner(obj: Any, table: weakref.WeakKeyDictionary) -> type | None:
        if obj is None:
            return None
        cls = obj if isinstance(obj, type) else type(obj)
        for klass in cls.__mro__:
            if klass in table:
                return klass
        return None


default_store = MetadataStore()


# ─── Decorator sugar ─────────────────────────────────────────────

def controller(options: Any = None, *, store: MetadataStore | None = None, **kwargs):
    """Class decorator: @controller("/widgets", actions=[GetWidget])."""
    def decorate(cls: type) -> type:
        opts = {**controller_options(options), **kwargs}
        (store or default_store).define_controller(cls, opts)
        return cls
    return decorate


def action(options: Any = None, *, store: MetadataStore | None = None, **kwargs):
    """Class decorator: @action("GET /widgets/:id?verbose")."""
    def decorate(cls: type) -> type:
        opts = action_options(options)
        if kwargs:
            opts = {**opts, **kwargs}
        (store or default_store).define_action(cls, opts)
        return cls
    return decorate
