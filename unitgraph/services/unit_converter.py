"""Unit Converter - the public resolve/convert surface over a SchemaContext.

Invariants:
    - resolve(a, b) returns one LinearMap or raises one typed UnitConversionError
    - Failures are logged once (WARNING, with error_code) and re-raised unchanged
    - Cached and uncached resolution return identical maps

Design Decisions:
    - Thin imperative shell: lookups and caching here, all arithmetic in core/
    - Keys accepted as SchemaItemKey or 'Schema:ITEM' strings at this boundary only
"""

import logging

from unitgraph.config import Settings, get_settings
from unitgraph.core.decompose import Reducer
from unitgraph.core.domain_types import SchemaItemType, Signature
from unitgraph.core.errors import (
    IncompatibleUnitsError, InvalidDefinitionError, UnitConversionError,
)
from unitgraph.core.linear_map import LinearMap
from unitgraph.core.precision import within_ulps
from unitgraph.core.resolve_conversion import (
    is_compatible, require_unit, resolve_conversion, signature_of,
)
from unitgraph.schemas.items import SchemaItemKey, Unit
from unitgraph.services.conversion_cache import CacheKey
from unitgraph.services.schema_context import SchemaContext

logger = logging.getLogger(__name__)

KeyLike = SchemaItemKey | str


def _as_key(key: KeyLike) -> SchemaItemKey:
    return SchemaItemKey.parse(key) if isinstance(key, str) else key


class UnitConverter:
    """Resolves and applies conversions between units of one SchemaContext."""

    def __init__(self, context: SchemaContext, settings: Settings | None = None):
        self.context = context
        self.settings = settings or get_settings()

    # --- resolution -----------------------------------------------------------

    def resolve(self, from_key: KeyLike, to_key: KeyLike) -> LinearMap:
        """Map converting a value in from_key to the same quantity in to_key."""
        return self._resolve(_as_key(from_key), _as_key(to_key), delta=False)

    def resolve_delta(self, from_key: KeyLike, to_key: KeyLike) -> LinearMap:
        """Map converting a difference of values; offsets do not apply."""
        return self._resolve(_as_key(from_key), _as_key(to_key), delta=True)

    def convert(self, value: float, from_key: KeyLike, to_key: KeyLike) -> float:
        return self.resolve(from_key, to_key).evaluate(value)

    def same_quantity(
        self, value_a: float, key_a: KeyLike, value_b: float, key_b: KeyLike,
    ) -> bool:
        """True if both readings agree within settings.tolerance_ulps once in key_b."""
        converted = self.convert(value_a, key_a, key_b)
        return within_ulps(converted, value_b, self.settings.tolerance_ulps)

    def _resolve(self, from_key: SchemaItemKey, to_key: SchemaItemKey, delta: bool) -> LinearMap:
        cache = self.context.conversion_cache
        cache_key = CacheKey(from_key, to_key, delta)
        # read before resolving: a reload mid-resolution must not be cached over
        generation = cache.generation
        if self.settings.cache_enabled:
            cached = cache.get(cache_key)
            if cached is not None:
                return cached

        log_extra = {"from_unit": from_key.full_name, "to_unit": to_key.full_name}
        try:
            from_unit = self._unit(from_key)
            to_unit = self._unit(to_key)
            linear_map = resolve_conversion(from_unit, to_unit, self.context, delta=delta)
        except UnitConversionError as e:
            logger.warning(
                "Conversion rejected: %s", e.message,
                extra={**log_extra, "error_code": e.code},
            )
            raise

        logger.debug(
            "Resolved factor=%r offset=%r", linear_map.factor, linear_map.offset,
            extra=log_extra,
        )
        if not self.settings.cache_enabled:
            return linear_map
        return cache.put_if_absent(cache_key, linear_map, generation)

    def _unit(self, key: SchemaItemKey) -> Unit:
        return require_unit(self.context.require_item(key))

    # --- inspection -----------------------------------------------------------

    def is_compatible(self, key_a: KeyLike, key_b: KeyLike) -> bool:
        return is_compatible(
            self._unit(_as_key(key_a)), self._unit(_as_key(key_b)), self.context,
        )

    def signature(self, key: KeyLike) -> Signature:
        """Base-unit signature of a unit, e.g. {'UNITS:M': 1, 'UNITS:S': -1}."""
        return signature_of(self._unit(_as_key(key)), self.context)

    def validate_unit(self, key: KeyLike) -> None:
        """Check a unit against its declared phenomenon and unit system.

        Raises IncompatibleUnitsError when the unit's dimensions differ from its
        phenomenon's, InvalidDefinitionError when a reference names the wrong kind.
        """
        unit = self._unit(_as_key(key))
        reducer = Reducer(self.context)
        phenomenon = reducer.phenomenon_of(unit)
        unit_system = self.context.resolve_reference(unit.unit_system, unit.schema_name or "")
        if unit_system.item_type != SchemaItemType.UNIT_SYSTEM:
            raise InvalidDefinitionError(
                unit.full_name,
                f"'{unit.unit_system}' is a {unit_system.item_type.value}, not a UnitSystem",
            )
        expected = reducer.reduce(phenomenon).signature
        actual = reducer.dimension_signature(unit)
        if actual != expected:
            raise IncompatibleUnitsError(
                unit.full_name, phenomenon.full_name,
                from_signature=actual, to_signature=expected,
            )
