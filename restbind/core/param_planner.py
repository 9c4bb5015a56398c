"""Param Planner — derives the parameter-extraction plan from a URI template.

Invariants:
    - derive() is pure: same uri, same plan
    - Path keys keep left-to-right order, duplicates are NOT collapsed
    - Query keys keep declaration order; a trailing '=' separator is stripped
    - Only the path portion ever reaches the router; query keys are consumed
      by pick_params alone

Design Decisions:
    - Templates use ':name' (the declarative shorthand); route_path() rewrites
      them to Starlette's '{name}' syntax at bind time
    - Missing keys resolve to None instead of being omitted — callers read
      None as "absent"
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping

_PATH_TOKEN = re.compile(r":(\w+)")


@dataclass(frozen=True)
class ParamPlan:
    """Keys an action expects from the path and the query string."""
    path_keys: tuple[str, ...] = ()
    query_keys: tuple[str, ...] = ()


def split_uri(uri: str) -> tuple[str, str]:
    """Split at the first '?' into (path, query)."""
    path, _, query = uri.partition("?")
    return path, query


def derive(uri: str) -> ParamPlan:
    """Derive path and query keys from a uri template.

    >>> derive("/users/:uid/profile?fields&lang")
    ParamPlan(path_keys=('uid',), query_keys=('fields', 'lang'))
    """
    path, query = split_uri(uri)
    path_keys = tuple(_PATH_TOKEN.findall(path))
    query_keys = tuple(
        token.removesuffix("=")
        for token in query.split("&")
        if token.removesuffix("=")
    )
    return ParamPlan(path_keys=path_keys, query_keys=query_keys)


def router_syntax(path: str) -> str:
    """Rewrite ':name' segments to Starlette's '{name}'."""
    return _PATH_TOKEN.sub(r"{\1}", path)


def route_path(uri: str) -> str:
    """Path portion of the template in router syntax, always rooted."""
    path, _ = split_uri(uri)
    path = router_syntax(path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def pick_params(
    plan: ParamPlan,
    path_params: Mapping[str, Any] | None,
    query_params: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Flat key -> value map for one request; path keys win over query keys."""
    params: dict[str, Any] = {}
    query_params = query_params or {}
    path_params = path_params or {}
    for key in plan.query_keys:
        params[key] = query_params.get(key)
    for key in plan.path_keys:
        params[key] = path_params.get(key)
    return params
