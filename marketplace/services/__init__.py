"""Services Layer — async orchestration of session, cache, and transactions.

Invariants:
    - Services depend on core/ledger_protocols.py, never on concrete infrastructure
    - Only runtime.py knows which infrastructure implementations are wired in

Design Decisions:
    - One file per collaborator for locality (ADR: ExMA no god objects)
"""
