"""Wire Schemas — Pydantic models for everything sent to clients."""
