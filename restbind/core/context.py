"""Request Context — per-request state handed to an action.

Invariants:
    - One RequestContext per inbound call, never shared, never persisted
    - binder/router/app are non-owning back-references (no lifecycle authority)
    - params holds every planned key; absent keys are None

Design Decisions:
    - Dataclass over dict: typos in field names fail loudly, IDEs complete
    - Framework-free: built by api/context_factory.py, read by actions and
      classifiers without importing FastAPI
"""

import logging
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestContext:
    """Everything an action may read about the request it serves."""
    action: type
    controller: type | None = None
    binder: Any = None
    router: Any = None
    app: Any = None
    logger: logging.Logger | None = None
    user: Any = None
    trace_id: str | None = None
    i18n: Any = None
    params: dict[str, Any] = field(default_factory=dict)
    transport_name: str = "Rest"

    @property
    def action_id(self) -> str:
        meta = getattr(self.binder, "metadata", None)
        action_meta = meta.action_metadata(self.action) if meta else None
        return action_meta.id if action_meta else self.action.__qualname__

    @property
    def controller_id(self) -> str | None:
        if self.controller is None:
            return None
        meta = getattr(self.binder, "metadata", None)
        ctrl_meta = meta.controller_metadata(self.controller) if meta else None
        return ctrl_meta.id if ctrl_meta else self.controller.__qualname__
