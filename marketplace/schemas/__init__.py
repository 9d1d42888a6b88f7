"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate shape at the system boundary; amount/address rules live in core/validation.py
    - Prices are exposed both in wei (exact) and as ether text (display)

Design Decisions:
    - Separate from core models: schemas are API contracts, models are ledger snapshots (ADR: DDD boundary)
"""
