"""Binder Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a working default (the binder runs with no .env)
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - RESTBIND_ prefix: the binder lives inside a host app with its own settings
    - structured_error_http_code defaults to 200: existing clients of the
      structured dialect read business failures off 200 responses
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Binder settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RESTBIND_", env_file=".env", case_sensitive=False,
        extra="ignore",
    )

    # Host application identity (used for base_uri and log messages)
    host: str = "127.0.0.1"
    port: int = Field(3000, ge=0, le=65535)

    # Request envelope
    trace_header: str = "x-trace-id"

    # Structured-error dialect
    structured_error_http_code: int = Field(200, ge=100, le=599)

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format")
    @classmethod
    def check_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("trace_header")
    @classmethod
    def lower_trace_header(cls, v: str) -> str:
        """Starlette header lookup is case-insensitive; keep one canonical form."""
        return v.strip().lower()


@lru_cache
def get_settings() -> Settings:
    return Settings()
