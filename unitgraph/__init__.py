"""UnitGraph - schema-driven unit conversion engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Explicit imports only, no star exports: callers import from the layer they need
"""
