"""Schema Context - registry owning loaded schemas and resolving references by key.

Invariants:
    - Schema names are unique within a context (case-insensitive)
    - Items are found by key on every lookup; nothing caches an item object
    - Unqualified names resolve in the current schema, then in its references, in order
    - Adding, removing or replacing a schema clears the conversion cache

Design Decisions:
    - Copy-on-write schema table: readers never lock, writers swap in a new dict
    - The context owns the ConversionCache so cache lifetime equals context lifetime
"""

import logging
import threading

from unitgraph.core.domain_types import SCHEMA_SEPARATOR
from unitgraph.core.errors import DuplicateSchemaError, UnknownReferenceError
from unitgraph.schemas.items import SchemaItem, SchemaItemKey
from unitgraph.schemas.schema import Schema
from unitgraph.services.conversion_cache import ConversionCache

logger = logging.getLogger(__name__)


class SchemaContext:
    """Long-lived owner of schemas; implements the ItemLookup protocol."""

    def __init__(self, schemas: list[Schema] | None = None):
        self._schemas: dict[str, Schema] = {}
        self._write_lock = threading.Lock()
        self.conversion_cache = ConversionCache()
        for schema in schemas or []:
            self.add_schema(schema)

    # --- registry -------------------------------------------------------------

    @property
    def schemas(self) -> list[Schema]:
        return list(self._schemas.values())

    def add_schema(self, schema: Schema) -> None:
        with self._write_lock:
            name = schema.name.lower()
            if name in self._schemas:
                raise DuplicateSchemaError(schema.name)
            self._schemas = {**self._schemas, name: schema}
            self.conversion_cache.clear()
        logger.info(
            "Schema added", extra={"schema": schema.key.to_string()},
        )

    def remove_schema(self, name: str) -> Schema:
        with self._write_lock:
            lowered = name.lower()
            if lowered not in self._schemas:
                raise UnknownReferenceError(name)
            removed = self._schemas[lowered]
            self._schemas = {k: v for k, v in self._schemas.items() if k != lowered}
            self.conversion_cache.clear()
        logger.info("Schema removed", extra={"schema": removed.key.to_string()})
        return removed

    def replace_schema(self, schema: Schema) -> Schema | None:
        """Load schema, replacing any loaded schema of the same name (reload)."""
        with self._write_lock:
            name = schema.name.lower()
            previous = self._schemas.get(name)
            self._schemas = {**self._schemas, name: schema}
            self.conversion_cache.clear()
        logger.info("Schema replaced", extra={"schema": schema.key.to_string()})
        return previous

    def get_schema(self, name: str) -> Schema | None:
        return self._schemas.get(name.lower())

    # --- lookup ---------------------------------------------------------------

    def get_item(self, key: SchemaItemKey) -> SchemaItem | None:
        schema = self.get_schema(key.schema_name)
        if schema is None:
            return None
        return schema.get_item(key.name)

    def require_item(self, key: SchemaItemKey | str) -> SchemaItem:
        """get_item() that accepts 'Schema:ITEM' and raises instead of returning None."""
        if isinstance(key, str):
            key = SchemaItemKey.parse(key)
        item = self.get_item(key)
        if item is None:
            raise UnknownReferenceError(key.full_name, key.schema_name)
        return item

    def resolve_reference(self, reference: str, from_schema: str) -> SchemaItem:
        prefix, sep, name = reference.rpartition(SCHEMA_SEPARATOR)
        if sep:
            return self._resolve_qualified(prefix, name, reference, from_schema)

        for schema in self._search_path(from_schema):
            item = schema.get_item(name)
            if item is not None:
                return item
        raise UnknownReferenceError(reference, from_schema)

    def _search_path(self, from_schema: str) -> list[Schema]:
        current = self.get_schema(from_schema)
        if current is None:
            raise UnknownReferenceError(from_schema)
        path = [current]
        for ref_name in current.references:
            referenced = self.get_schema(ref_name)
            if referenced is None:
                raise UnknownReferenceError(ref_name, from_schema)
            path.append(referenced)
        return path

    def _resolve_qualified(
        self, prefix: str, name: str, reference: str, from_schema: str,
    ) -> SchemaItem:
        # alias or name of the current schema or one it references
        for schema in self._search_path(from_schema):
            if schema.answers_to(prefix):
                item = schema.get_item(name)
                if item is None:
                    raise UnknownReferenceError(reference, from_schema)
                return item
        schema = self.get_schema(prefix)
        item = schema.get_item(name) if schema is not None else None
        if item is None:
            raise UnknownReferenceError(reference, from_schema)
        return item
