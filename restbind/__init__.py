"""restbind — declarative controller/action binding for FastAPI.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
      (callers import from restbind.api.binder, restbind.core.metadata, ...)
"""
