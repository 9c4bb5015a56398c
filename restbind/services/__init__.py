"""Services Layer — error classification policies.

Invariants:
    - Classifiers never raise to their caller (safe_classify wraps them)
    - Every dialect produces an ErrorEnvelope; render() decides the wire shape
"""
