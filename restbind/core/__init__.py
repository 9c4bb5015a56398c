"""Core Layer — pure binding logic, no IO, no async, no FastAPI.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Metadata, plans and registry entries are plain values

Design Decisions:
    - Functional core separated from the FastAPI shell: metadata and param
      planning are testable without building an application
"""
