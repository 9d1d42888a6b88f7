"""Core Layer — pure domain logic, no IO, no network.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Functions are pure and deterministic; async appears only in Protocol signatures

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
