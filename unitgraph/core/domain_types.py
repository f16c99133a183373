"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - SchemaItemType is the only discriminator for item kinds: no shape probing
    - Exponents are Fractions, never floats
    - A Signature never holds a zero exponent

Design Decisions:
    - str Enum: the item kind serializes as its schema spelling ("UnitSystem")
"""

from enum import Enum
from fractions import Fraction


# ─── Value Types ─────────────────────────────────────────────────

# base item name (upper-cased, schema-qualified) -> exponent
Signature = dict[str, Fraction]

# Dimensionless identity: contributes scale but never dimension.
DIMENSIONLESS_NAMES = frozenset({"ONE", "NUMBER"})

SCHEMA_SEPARATOR = ":"


# ─── Enums ───────────────────────────────────────────────────────

class SchemaItemType(str, Enum):
    """Closed set of schema item kinds understood by the engine."""
    PHENOMENON = "Phenomenon"
    UNIT_SYSTEM = "UnitSystem"
    UNIT = "Unit"
    CONSTANT = "Constant"


def schema_item_type_to_string(item_type: SchemaItemType) -> str:
    return item_type.value


def parse_schema_item_type(value: str) -> SchemaItemType:
    """Case-insensitive lookup of an item kind by its schema spelling."""
    for item_type in SchemaItemType:
        if item_type.value.lower() == value.strip().lower():
            return item_type
    raise ValueError(f"Unknown schema item type: {value!r}")


def is_dimensionless(name: str) -> bool:
    """True for the dimensionless identity, qualified or not."""
    return name.rsplit(SCHEMA_SEPARATOR, 1)[-1].upper() in DIMENSIONLESS_NAMES


def normalize_signature(signature: dict[str, Fraction]) -> Signature:
    """Drop zero exponents and dimensionless entries; sort for stable comparison."""
    return {
        name: exp for name, exp in sorted(signature.items())
        if exp != 0 and not is_dimensionless(name)
    }


def format_signature(signature: Signature) -> str:
    """Render a signature in definition grammar, e.g. 'UNITS:M*UNITS:S(-1)'."""
    if not signature:
        return "ONE"
    parts = []
    for name, exp in signature.items():
        parts.append(name if exp == 1 else f"{name}({exp})")
    return "*".join(parts)
