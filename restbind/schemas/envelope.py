"""Error Envelope — the normalized failure shape every dialect produces.

Invariants:
    - http_code is always set, so a response is always sendable
    - Wire bodies omit None fields (no "errors": null noise for clients)

Design Decisions:
    - One envelope model for both dialects; each classifier's render() picks
      which fields reach the wire
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ErrorEnvelope(BaseModel):
    """Classified failure, before dialect-specific rendering."""

    model_config = ConfigDict(frozen=True)

    code: int | str | None = None
    http_code: int = Field(
        500, ge=100, le=599,
        validation_alias=AliasChoices("http_code", "httpCode"),
    )
    message: str = "Internal Server Error"
    errors: Any = None
    details: Any = None
    hash: str | None = None

    def to_response(self, *fields: str) -> dict:
        """{"error": {...}} with the given fields, None values dropped."""
        body = self.model_dump(include=set(fields), exclude_none=True)
        return {"error": {name: body[name] for name in fields if name in body}}


INTERNAL_SERVER_ERROR = ErrorEnvelope(
    code=500, http_code=500, message="Internal Server Error",
)
