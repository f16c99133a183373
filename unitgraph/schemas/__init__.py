"""Pydantic Schemas - immutable item records and the schemas that own them.

Invariants:
    - Records validate at the load boundary; nothing downstream re-checks field shapes
    - Domain types from core/ used for the item-kind discriminator

Design Decisions:
    - Item records arrive fully formed from an external loader; no file parsing here
"""
