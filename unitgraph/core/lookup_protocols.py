"""Boundary Protocols - contracts between the pure core and the schema registry.

Invariants:
    - Core NEVER imports from services: dependency arrows point inward only
    - Items are looked up by name on every access, never held as direct references

Design Decisions:
    - Protocol over ABC: structural subtyping, SchemaContext needs no base class
"""

from typing import Protocol

from unitgraph.schemas.items import SchemaItem, SchemaItemKey


class ItemLookup(Protocol):
    """Contract for resolving item references - implemented by SchemaContext."""

    def get_item(self, key: SchemaItemKey) -> SchemaItem | None: ...

    def resolve_reference(self, reference: str, from_schema: str) -> SchemaItem:
        """Resolve 'NAME' or 'PREFIX:NAME' as seen from from_schema.

        Raises UnknownReferenceError when nothing matches.
        """
        ...
