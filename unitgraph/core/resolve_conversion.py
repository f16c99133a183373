"""Conversion Path Resolution - turns two units into one composed LinearMap.

Invariants:
    - Signatures are compared before any scale is combined: mismatch raises IncompatibleUnitsError
    - from == to yields exactly LinearMap(1, 0), after the unit itself reduces cleanly
    - factor = f_from / f_to and offset = (o_from - o_to) / f_to, rounded to float once
    - Every failure is raised here, at resolution time; evaluate() never fails

Design Decisions:
    - Each unit is anchored to the implicit base unit of its phenomenon; the
      requested map is to_base(from) followed by the inverse of to_base(to)
"""

from unitgraph.core.decompose import Reducer, Reduction, Scale
from unitgraph.core.domain_types import SchemaItemType, Signature
from unitgraph.core.errors import IncompatibleUnitsError, InvalidDefinitionError
from unitgraph.core.linear_map import LinearMap
from unitgraph.core.lookup_protocols import ItemLookup
from unitgraph.schemas.items import SchemaItem, Unit


def require_unit(item: SchemaItem) -> Unit:
    if item.item_type != SchemaItemType.UNIT:
        raise InvalidDefinitionError(
            item.full_name, f"a {item.item_type.value} cannot be converted; expected a Unit",
        )
    return item


def to_base(unit: Unit, lookup: ItemLookup, reducer: Reducer | None = None) -> Reduction:
    """Affine relationship of a unit to its phenomenon's base unit."""
    return (reducer or Reducer(lookup)).reduce(require_unit(unit))


def signature_of(unit: Unit, lookup: ItemLookup) -> Signature:
    return to_base(unit, lookup).signature


def is_compatible(unit_a: Unit, unit_b: Unit, lookup: ItemLookup) -> bool:
    """True iff both units reduce to exactly the same base signature."""
    reducer = Reducer(lookup)
    return (
        to_base(unit_a, lookup, reducer).signature
        == to_base(unit_b, lookup, reducer).signature
    )


def _to_float(value: Scale, owner: str) -> float:
    try:
        return float(value)
    except OverflowError:
        raise InvalidDefinitionError(owner, "conversion factor overflows a float") from None


def resolve_conversion(
    from_unit: Unit, to_unit: Unit, lookup: ItemLookup, *, delta: bool = False,
) -> LinearMap:
    """Build the map converting a value in from_unit to the same quantity in to_unit.

    With delta=True the offsets are ignored: the map converts differences
    (e.g. a 10 degree rise) rather than absolute readings.
    """
    reducer = Reducer(lookup)
    source = to_base(from_unit, lookup, reducer)
    target = to_base(to_unit, lookup, reducer)

    if source.signature != target.signature:
        raise IncompatibleUnitsError(
            from_unit.full_name, to_unit.full_name,
            from_signature=source.signature, to_signature=target.signature,
        )
    if from_unit.key == to_unit.key:
        return LinearMap.identity()

    owner = f"{from_unit.full_name}->{to_unit.full_name}"
    factor = source.factor / target.factor
    if delta:
        return LinearMap(_to_float(factor, owner), 0.0)
    offset = (source.offset - target.offset) / target.factor
    return LinearMap(_to_float(factor, owner), _to_float(offset, owner))
