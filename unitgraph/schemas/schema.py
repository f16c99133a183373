"""Schema - an immutable, named collection of schema items.

Invariants:
    - Item names are unique within a schema (case-insensitive)
    - Every item's schema_name equals the owning schema's name
    - references name other schemas by name only; the SchemaContext resolves them

Design Decisions:
    - Items stamped with their schema name on construction (model_copy), so an item
      handed out by the context can always find its own namespace by key
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from unitgraph.core.domain_types import SchemaItemType
from unitgraph.schemas.items import ITEM_NAME_PATTERN, SchemaItem, SchemaKey


def _schema_name_of(key: Any) -> str | None:
    if isinstance(key, SchemaKey):
        return key.name
    if isinstance(key, dict):
        return key.get("name")
    return None


def _stamp(item: Any, schema_name: str) -> Any:
    if isinstance(item, BaseModel):
        return item.model_copy(update={"schema_name": schema_name})
    if isinstance(item, dict):
        return {**item, "schema_name": schema_name}
    return item


class Schema(BaseModel):
    """A loaded schema: key, optional alias, referenced schema names, items."""
    model_config = ConfigDict(frozen=True)

    key: SchemaKey
    alias: str | None = Field(None, pattern=ITEM_NAME_PATTERN)
    references: tuple[str, ...] = ()
    items: tuple[SchemaItem, ...] = ()

    _index: dict[str, Any] = PrivateAttr(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def stamp_items(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        name = _schema_name_of(data.get("key"))
        if name is None or "items" not in data:
            return data
        return {**data, "items": [_stamp(i, name) for i in data["items"]]}

    @model_validator(mode="after")
    def check_unique_names(self) -> "Schema":
        seen: set[str] = set()
        for item in self.items:
            lowered = item.name.lower()
            if lowered in seen:
                raise ValueError(
                    f"Duplicate item '{item.name}' in schema '{self.key.name}'"
                )
            seen.add(lowered)
        return self

    def model_post_init(self, __context: Any) -> None:
        self._index = {item.name.lower(): item for item in self.items}

    @property
    def name(self) -> str:
        return self.key.name

    def get_item(self, name: str) -> SchemaItem | None:
        return self._index.get(name.lower())

    def get_items(self, item_type: SchemaItemType) -> list[SchemaItem]:
        return [i for i in self.items if i.item_type == item_type]

    def answers_to(self, prefix: str) -> bool:
        """True if prefix is this schema's name or alias (case-insensitive)."""
        lowered = prefix.lower()
        return lowered == self.name.lower() or (
            self.alias is not None and lowered == self.alias.lower()
        )
