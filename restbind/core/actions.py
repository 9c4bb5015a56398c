"""Action Base — optional base class for bound actions.

Invariants:
    - An action instance is built per request with its RequestContext
    - validate_params() returns the params execute() receives
    - execute() may be sync or async; the binder awaits whatever it returns

Design Decisions:
    - Duck-typed contract: the binder only needs Action(context) and execute();
      this base adds pydantic validation through params_model
"""

from typing import Any

from pydantic import BaseModel


class Action:
    """One endpoint's executable unit."""

    params_model: type[BaseModel] | None = None

    def __init__(self, context: Any):
        self.context = context

    def validate_params(self, params: Any) -> Any:
        """Validate against params_model when set. Raises pydantic.ValidationError."""
        if self.params_model is None:
            return params
        return self.params_model.model_validate(params or {})

    async def execute(self, params: Any) -> Any:
        raise NotImplementedError(f"{type(self).__name__}.execute()")
