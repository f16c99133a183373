"""Schema Item Schemas - immutable Pydantic models for keys and the four item kinds.

Invariants:
    - Every item is frozen: created once at load time, never mutated
    - schema_item_type is the discriminator of the SchemaItem union
    - Keys compare case-insensitively; items reference each other by name, never by object
    - Constant has no offset field (extra fields are rejected)

Design Decisions:
    - Literal discriminator over isinstance checks: pydantic routes raw records natively
    - Override variants (without_offset/with_offset) via model_copy: new value, original untouched
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from unitgraph.core.domain_types import SCHEMA_SEPARATOR, SchemaItemType

ITEM_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9_]*$"


# ─── Keys ────────────────────────────────────────────────────────

class SchemaKey(BaseModel):
    """Schema identity: name plus read/write/minor version."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=ITEM_NAME_PATTERN)
    read_version: int = Field(1, ge=0)
    write_version: int = Field(0, ge=0)
    minor_version: int = Field(0, ge=0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaKey):
            return NotImplemented
        return (
            self.name.lower() == other.name.lower()
            and self.version == other.version
        )

    def __hash__(self) -> int:
        return hash((self.name.lower(), self.version))

    @property
    def version(self) -> tuple[int, int, int]:
        return (self.read_version, self.write_version, self.minor_version)

    def to_string(self) -> str:
        return (
            f"{self.name}.{self.read_version:02d}."
            f"{self.write_version:02d}.{self.minor_version:02d}"
        )


class SchemaItemKey(BaseModel):
    """Identifies any item across schema boundaries: (schema name, item name)."""
    model_config = ConfigDict(frozen=True)

    schema_name: str = Field(pattern=ITEM_NAME_PATTERN)
    name: str = Field(pattern=ITEM_NAME_PATTERN)

    @classmethod
    def parse(cls, full_name: str) -> "SchemaItemKey":
        """Build a key from 'Schema:ITEM'."""
        schema_name, sep, name = full_name.strip().partition(SCHEMA_SEPARATOR)
        if not sep:
            raise ValueError(f"Expected 'Schema{SCHEMA_SEPARATOR}ITEM', got {full_name!r}")
        return cls(schema_name=schema_name, name=name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaItemKey):
            return NotImplemented
        return self.normalized == other.normalized

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self.full_name

    @property
    def normalized(self) -> tuple[str, str]:
        return (self.schema_name.lower(), self.name.lower())

    @property
    def full_name(self) -> str:
        return f"{self.schema_name}{SCHEMA_SEPARATOR}{self.name}"


# ─── Items ───────────────────────────────────────────────────────

class _SchemaItemBase(BaseModel):
    """Fields shared by every item kind."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(pattern=ITEM_NAME_PATTERN)
    schema_name: str | None = None  # stamped by Schema on load
    label: str | None = None
    description: str | None = None

    @property
    def item_type(self) -> SchemaItemType:
        return SchemaItemType(self.schema_item_type)

    @property
    def key(self) -> SchemaItemKey:
        if self.schema_name is None:
            raise ValueError(f"Item '{self.name}' does not belong to a schema")
        return SchemaItemKey(schema_name=self.schema_name, name=self.name)

    @property
    def full_name(self) -> str:
        if self.schema_name is None:
            return self.name
        return f"{self.schema_name}{SCHEMA_SEPARATOR}{self.name}"


class Phenomenon(_SchemaItemBase):
    """A physical quantity kind; definition is over other phenomena."""
    schema_item_type: Literal["Phenomenon"] = "Phenomenon"
    definition: str = Field(min_length=1)


class UnitSystem(_SchemaItemBase):
    """Classification tag (METRIC, IMPERIAL, ...). No behavior."""
    schema_item_type: Literal["UnitSystem"] = "UnitSystem"


class Unit(_SchemaItemBase):
    """A measurement unit: value_in_definition = (value + offset) * numerator / denominator."""
    schema_item_type: Literal["Unit"] = "Unit"
    phenomenon: str = Field(min_length=1)
    unit_system: str = Field(min_length=1)
    definition: str = Field(min_length=1)
    numerator: float = 1.0
    denominator: float = 1.0
    offset: float = 0.0

    @property
    def has_offset(self) -> bool:
        return self.offset != 0.0

    def without_offset(self) -> "Unit":
        """Same unit with offset stripped, for interval (delta) conversion."""
        if not self.has_offset:
            return self
        return self.model_copy(update={"offset": 0.0})

    def with_offset(self, offset: float) -> "Unit":
        return self.model_copy(update={"offset": float(offset)})


class Constant(_SchemaItemBase):
    """A named scale usable as a definition term. Never carries an offset."""
    schema_item_type: Literal["Constant"] = "Constant"
    phenomenon: str = Field(min_length=1)
    definition: str = Field(min_length=1)
    numerator: float = 1.0
    denominator: float = 1.0


SchemaItem = Annotated[
    Union[Phenomenon, UnitSystem, Unit, Constant],
    Field(discriminator="schema_item_type"),
]
