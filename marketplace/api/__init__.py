"""API Layer — FastAPI routes and error handlers for the presentation layer.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON responses (SSE for the identity stream)

Design Decisions:
    - Thin routes delegate to MarketplaceClient (ADR: ExMA impureim sandwich)
"""
