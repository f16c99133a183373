"""Unit Converter - resolve/convert surface, caching, validation and logging.

Tests cover:
    - resolve and convert accept keys or 'Schema:ITEM' strings
    - cached and uncached resolution agree; cache stores one map per pair
    - reload (replace_schema) is reflected in the next resolution, even mid-resolution
    - offset units with a ratio apply the offset before the ratio
    - each typed error surfaces from resolve and is logged with its code
    - validate_unit checks phenomenon dimensions and reference kinds
    - concurrent resolution from many threads yields identical maps
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from fractions import Fraction

import pytest

from unitgraph.core.errors import (
    CircularDefinitionError,
    IncompatibleUnitsError,
    InvalidDefinitionError,
    InvalidOffsetUnitError,
    UnknownReferenceError,
)
from unitgraph.core.linear_map import LinearMap
from unitgraph.core.precision import within_ulps
from unitgraph.schemas.items import SchemaItemKey
from unitgraph.services import unit_converter
from tests.units_fixture import units_schema


# --- resolve / convert --------------------------------------------------------

def test_resolve_accepts_keys_and_strings(converter):
    by_key = converter.resolve(
        SchemaItemKey(schema_name="Units", name="MILE"),
        SchemaItemKey(schema_name="Units", name="KM"),
    )
    by_string = converter.resolve("units:mile", "UNITS:KM")
    assert by_key == by_string


def test_convert_mile_to_kilometre(converter):
    assert within_ulps(converter.convert(1.0, "Units:MILE", "Units:KM"), 1.609344, 3)


def test_convert_celsius_to_kelvin(converter):
    assert converter.convert(0.0, "Units:CELSIUS", "Units:K") == 273.15


@pytest.mark.parametrize("fahrenheit,celsius", [(212.0, 100.0), (32.0, 0.0), (-40.0, -40.0)])
def test_convert_offset_unit_with_ratio(converter, fahrenheit, celsius):
    assert converter.convert(fahrenheit, "Units:DEG_F", "Units:CELSIUS") == pytest.approx(celsius)
    assert converter.convert(fahrenheit, "Units:DEG_F", "Units:FAHRENHEIT") == pytest.approx(fahrenheit)


def test_convert_speed(converter):
    assert converter.convert(100.0, "Units:KM_PER_HR", "Units:M_PER_SEC") == pytest.approx(27.7778, rel=1e-5)


def test_identity_resolution(converter):
    assert converter.resolve("Units:FAHRENHEIT", "Units:FAHRENHEIT") == LinearMap.identity()


def test_resolve_delta(converter):
    delta = converter.resolve_delta("Units:K", "Units:FAHRENHEIT")
    assert delta.offset == 0.0
    assert delta.evaluate(5.0) == pytest.approx(9.0)
    assert converter.resolve("Units:K", "Units:FAHRENHEIT").offset != 0.0


def test_signature(converter):
    assert converter.signature("Units:KM_PER_HR") == {
        "UNITS:M": Fraction(1), "UNITS:S": Fraction(-1),
    }


def test_is_compatible(converter):
    assert converter.is_compatible("Units:MPH", "Units:M_PER_SEC")
    assert converter.is_compatible("Survey:SURVEY_MILE", "Units:KM")
    assert not converter.is_compatible("Units:KM", "Units:K")


# --- caching ------------------------------------------------------------------

def test_resolution_is_cached(converter, context):
    first = converter.resolve("Units:MILE", "Units:KM")
    second = converter.resolve("Units:MILE", "Units:KM")
    assert first is second
    assert len(context.conversion_cache) == 1
    assert context.conversion_cache.hits == 1


def test_uncached_converter_gives_same_results(converter, uncached_converter, context):
    pairs = [("Units:MILE", "Units:KM"), ("Units:FAHRENHEIT", "Units:CELSIUS"), ("Units:MPH", "Units:KM_PER_HR")]
    cached = [converter.resolve(a, b) for a, b in pairs]
    context.conversion_cache.clear()
    uncached = [uncached_converter.resolve(a, b) for a, b in pairs]
    assert cached == uncached
    assert len(context.conversion_cache) == 0


def test_reload_is_reflected(converter, context):
    assert converter.convert(1.0, "Units:FT", "Units:M") == pytest.approx(0.3048)
    context.replace_schema(units_schema(ft_numerator=0.3))
    assert converter.convert(1.0, "Units:FT", "Units:M") == pytest.approx(0.3)


def test_reload_during_resolution_is_not_cached(converter, context, monkeypatch):
    real_resolve = unit_converter.resolve_conversion

    def resolve_then_reload(*args, **kwargs):
        linear_map = real_resolve(*args, **kwargs)
        context.replace_schema(units_schema(ft_numerator=0.5))
        return linear_map

    monkeypatch.setattr(unit_converter, "resolve_conversion", resolve_then_reload)
    assert converter.resolve("Units:FT", "Units:M").factor == 0.3048
    assert len(context.conversion_cache) == 0

    monkeypatch.setattr(unit_converter, "resolve_conversion", real_resolve)
    assert converter.resolve("Units:FT", "Units:M").factor == 0.5


def test_failures_are_not_cached(converter, context):
    with pytest.raises(IncompatibleUnitsError):
        converter.resolve("Units:KM", "Units:S")
    assert len(context.conversion_cache) == 0


# --- errors -------------------------------------------------------------------

@pytest.mark.parametrize("source,target,error", [
    ("Units:KM", "Units:K", IncompatibleUnitsError),
    ("Broken:SELF_REF", "Units:M", CircularDefinitionError),
    ("Units:M", "Broken:A", CircularDefinitionError),
    ("Broken:GHOST", "Units:M", UnknownReferenceError),
    ("Units:FURLONG", "Units:M", UnknownReferenceError),
    ("Nowhere:M", "Units:M", UnknownReferenceError),
    ("Broken:SQ_CELSIUS", "Units:K", InvalidOffsetUnitError),
    ("Broken:OFFSET_PRODUCT", "Units:M_PER_SEC", InvalidOffsetUnitError),
    ("Broken:ZERO_DEN", "Units:M", InvalidDefinitionError),
    ("Units:PI", "Units:ONE", InvalidDefinitionError),
])
def test_typed_errors_surface_from_resolve(converter, source, target, error):
    with pytest.raises(error):
        converter.resolve(source, target)


def test_rejection_is_logged_with_error_code(converter, caplog):
    with caplog.at_level(logging.WARNING, logger="unitgraph.services.unit_converter"):
        with pytest.raises(IncompatibleUnitsError):
            converter.resolve("Units:KM", "Units:K")
    record = caplog.records[-1]
    assert record.error_code == "INCOMPATIBLE_UNITS"
    assert record.from_unit == "Units:KM"
    assert record.to_unit == "Units:K"


def test_incompatible_error_message_for_users(converter):
    with pytest.raises(IncompatibleUnitsError) as exc:
        converter.resolve("Units:KM", "Units:K")
    assert exc.value.to_dict()["error"]["message"] == "cannot convert Units:KM to Units:K"


def test_incompatible_error_names_both_signatures(converter):
    with pytest.raises(IncompatibleUnitsError, match="UNITS:M vs UNITS:K"):
        converter.resolve("Units:KM", "Units:K")


# --- validate_unit ------------------------------------------------------------

@pytest.mark.parametrize("name", [
    "Units:M", "Units:MILE", "Units:MPH", "Units:CUB_KM", "Units:CELSIUS",
    "Units:ARC_DEG", "Units:PERCENT", "Survey:SURVEY_MILE",
])
def test_validate_unit_accepts_well_formed_units(converter, name):
    converter.validate_unit(name)


def test_validate_unit_rejects_wrong_phenomenon(converter):
    with pytest.raises(IncompatibleUnitsError):
        converter.validate_unit("Broken:MISLABELED")


def test_validate_unit_rejects_wrong_unit_system_kind(converter):
    with pytest.raises(InvalidDefinitionError):
        converter.validate_unit("Broken:WRONG_SYSTEM")


# --- concurrency --------------------------------------------------------------

def test_concurrent_resolution_is_consistent(converter, context):
    pairs = [
        ("Units:MILE", "Units:KM"), ("Units:CELSIUS", "Units:FAHRENHEIT"),
        ("Units:MPH", "Units:M_PER_SEC"), ("Survey:SURVEY_MILE", "Units:FT"),
    ] * 50
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda p: converter.resolve(*p), pairs))
    for (source, target), linear_map in zip(pairs, results):
        assert linear_map == converter.resolve(source, target)
    assert len(context.conversion_cache) == 4


# --- same_quantity ------------------------------------------------------------

def test_same_quantity_within_tolerance(converter):
    assert converter.same_quantity(1.0, "Units:MILE", 1.609344, "Units:KM")
    assert converter.same_quantity(0.0, "Units:CELSIUS", 273.15, "Units:K")
    assert not converter.same_quantity(1.0, "Units:MILE", 1.6093, "Units:KM")
