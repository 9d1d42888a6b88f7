"""Infrastructure Layer — ledger and wallet clients plus cross-cutting concerns.

Invariants:
    - Infrastructure implements core/ledger_protocols.py; it holds no cache state
    - All JSON-RPC failures mapped to MarketplaceError subclasses (core/errors.py)

Design Decisions:
    - Thin httpx JSON-RPC wrappers over a full web3 stack (ADR: six procedures, one contract)
"""
