"""Core Layer - pure conversion logic, no IO, no logging, no global state.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from the stateful registry and cache in services/
"""
