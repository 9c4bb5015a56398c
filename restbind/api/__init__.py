"""API Layer — FastAPI host application, binders, responders.

Invariants:
    - Routes are installed only by RouteBinder (no auto-discovery)
    - All endpoints answer with JSON, failures with an error envelope
"""
