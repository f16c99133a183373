"""Unit Definition Decomposition - reduces items to base-item signatures and exact scales.

Invariants:
    - A base item is defined as exactly its own name ('M' on M); it has scale 1, offset 0
    - Any other path back to a name on the active stack raises CircularDefinitionError
    - Phenomena reference only phenomena; units and constants reference only units and constants
    - Offsets survive only a single exponent-1 term; anything else raises InvalidOffsetUnitError
    - Scales are exact Fractions while every exponent is an integer

Design Decisions:
    - One Reducer per resolution request: its memo never outlives the request,
      so a reloaded schema is always re-read through the lookup
    - Offset is carried in base units: to_base(x) = x * factor + offset
"""

import math
from dataclasses import dataclass, field
from fractions import Fraction

from unitgraph.core.domain_types import (
    SchemaItemType, Signature, is_dimensionless, normalize_signature,
)
from unitgraph.core.errors import (
    CircularDefinitionError, InvalidDefinitionError, InvalidOffsetUnitError,
)
from unitgraph.core.lookup_protocols import ItemLookup
from unitgraph.core.parse_definition import DefinitionTerm, parse_definition
from unitgraph.schemas.items import Constant, Phenomenon, SchemaItem, Unit

Scale = Fraction | float

_SCALED_KINDS = (SchemaItemType.UNIT, SchemaItemType.CONSTANT)


@dataclass(frozen=True)
class Reduction:
    """An item expressed against base items: to_base(x) = x * factor + offset."""
    signature: Signature
    factor: Scale = Fraction(1)
    offset: Scale = Fraction(0)
    is_base: bool = False

    @property
    def has_offset(self) -> bool:
        return self.offset != 0


@dataclass
class _Accumulator:
    signature: dict[str, Fraction] = field(default_factory=dict)
    factor: Scale = Fraction(1)

    def add(self, reduction: Reduction, exponent: Fraction) -> None:
        for name, exp in reduction.signature.items():
            self.signature[name] = self.signature.get(name, Fraction(0)) + exp * exponent
        self.factor = self.factor * power(reduction.factor, exponent)


def power(base: Scale, exponent: Fraction) -> Scale:
    """Exact for integer exponents; float pow otherwise."""
    if exponent.denominator == 1:
        return base ** int(exponent)
    return float(base) ** float(exponent)


def exact_ratio(item: SchemaItem) -> Fraction:
    """numerator / denominator of a unit or constant as an exact Fraction."""
    numerator, denominator = item.numerator, item.denominator
    if not (math.isfinite(numerator) and math.isfinite(denominator)):
        raise InvalidDefinitionError(item.full_name, "numerator and denominator must be finite")
    if denominator == 0:
        raise InvalidDefinitionError(item.full_name, "denominator is zero")
    if numerator == 0:
        raise InvalidDefinitionError(item.full_name, "numerator is zero")
    return Fraction(numerator) / Fraction(denominator)


def _node(item: SchemaItem) -> str:
    return item.full_name.upper()


class Reducer:
    """Recursive, cycle-checked reduction of items through an ItemLookup."""

    def __init__(self, lookup: ItemLookup):
        self.lookup = lookup
        self._memo: dict[str, Reduction] = {}
        self._stack: list[str] = []

    # --- public ---------------------------------------------------------------

    def reduce(self, item: SchemaItem) -> Reduction:
        """Reduce a Phenomenon, Unit or Constant to its base signature and scale."""
        node = _node(item)
        if node in self._memo:
            return self._memo[node]
        if node in self._stack:
            start = self._stack.index(node)
            raise CircularDefinitionError(self._stack[start:] + [node])
        if item.item_type == SchemaItemType.UNIT_SYSTEM:
            raise InvalidDefinitionError(item.full_name, "a unit system has no definition")

        self._stack.append(node)
        try:
            reduction = self._reduce_definition(item)
        finally:
            self._stack.pop()
        self._memo[node] = reduction
        return reduction

    def decompose(self, definition: str, owner: SchemaItem) -> Signature:
        """Signature of an arbitrary definition, resolved in owner's schema."""
        acc = _Accumulator()
        for term in parse_definition(definition, owner.full_name):
            target = self._resolve_term(term, owner)
            acc.add(self.reduce(target), term.exponent)
        return normalize_signature(acc.signature)

    def dimension_signature(self, unit: Unit | Constant) -> Signature:
        """Signature of a unit over base phenomena (via each base unit's phenomenon)."""
        acc = _Accumulator()
        for name, exp in self.reduce(unit).signature.items():
            base_unit = self.lookup.resolve_reference(name, unit.schema_name or "")
            acc.add(self.reduce(self.phenomenon_of(base_unit)), exp)
        return normalize_signature(acc.signature)

    def phenomenon_of(self, item: Unit | Constant) -> Phenomenon:
        phenomenon = self.lookup.resolve_reference(item.phenomenon, item.schema_name or "")
        if phenomenon.item_type != SchemaItemType.PHENOMENON:
            raise InvalidDefinitionError(
                item.full_name,
                f"'{item.phenomenon}' is a {phenomenon.item_type.value}, not a Phenomenon",
            )
        return phenomenon

    # --- internals ------------------------------------------------------------

    def _resolve_term(self, term: DefinitionTerm, owner: SchemaItem) -> SchemaItem:
        target = self.lookup.resolve_reference(term.reference, owner.schema_name or "")
        owner_is_phenomenon = owner.item_type == SchemaItemType.PHENOMENON
        target_is_phenomenon = target.item_type == SchemaItemType.PHENOMENON
        if target.item_type == SchemaItemType.UNIT_SYSTEM or (
            owner_is_phenomenon != target_is_phenomenon
        ):
            raise InvalidDefinitionError(
                owner.full_name,
                f"'{term.reference}' is a {target.item_type.value}, "
                f"not allowed in a {owner.item_type.value} definition",
            )
        if term.bracketed and target.item_type != SchemaItemType.CONSTANT:
            raise InvalidDefinitionError(
                owner.full_name, f"'[{term.reference}]' must name a Constant",
            )
        return target

    def _reduce_definition(self, item: SchemaItem) -> Reduction:
        terms = parse_definition(item.definition, item.full_name)
        targets = [self._resolve_term(t, item) for t in terms]
        single = len(terms) == 1 and terms[0].exponent == 1
        if single and _node(targets[0]) == _node(item):
            return self._base(item)

        acc = _Accumulator()
        subs = []
        for term, target in zip(terms, targets):
            sub = self.reduce(target)
            if sub.has_offset and not single:
                raise InvalidOffsetUnitError(
                    item.full_name,
                    f"offset unit '{target.full_name}' used as {term.reference}"
                    f"({term.exponent}) in a compound definition",
                )
            acc.add(sub, term.exponent)
            subs.append(sub)

        signature = normalize_signature(acc.signature)
        if item.item_type not in _SCALED_KINDS:
            return Reduction(signature=signature)

        factor = exact_ratio(item) * acc.factor
        own_offset = item.offset if item.item_type == SchemaItemType.UNIT else 0.0
        if not single:
            if own_offset:
                raise InvalidOffsetUnitError(
                    item.full_name, "an offset requires a single term with exponent 1",
                )
            return Reduction(signature=signature, factor=factor)
        # x_sub = (x + own_offset) * ratio; x_base = x_sub * sub.factor + sub.offset
        offset = _exact(own_offset, item) * factor + subs[0].offset
        return Reduction(signature=signature, factor=factor, offset=offset)

    def _base(self, item: SchemaItem) -> Reduction:
        if item.item_type == SchemaItemType.CONSTANT:
            raise InvalidDefinitionError(item.full_name, "a constant cannot be a base item")
        if item.item_type == SchemaItemType.UNIT:
            if exact_ratio(item) != 1 or item.has_offset:
                raise InvalidDefinitionError(
                    item.full_name, "a base unit cannot carry a scale or offset",
                )
        node = _node(item)
        signature = {} if is_dimensionless(node) else {node: Fraction(1)}
        return Reduction(signature=signature, is_base=True)


def _exact(value: float, item: SchemaItem) -> Fraction:
    if not math.isfinite(value):
        raise InvalidDefinitionError(item.full_name, "offset must be finite")
    return Fraction(value)


def decompose(definition: str, owner: SchemaItem, lookup: ItemLookup) -> Signature:
    """Reduce a definition string to {base item full name: exponent}."""
    return Reducer(lookup).decompose(definition, owner)
