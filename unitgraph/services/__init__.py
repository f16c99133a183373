"""Services Layer - the schema registry, the conversion cache, and the converter facade.

Invariants:
    - Services own all mutable state; core/ stays pure
"""
