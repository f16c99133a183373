"""Schema Context - registry ownership and reference resolution by key.

Tests cover:
    - add/remove/replace schemas; duplicates rejected
    - get_item returns None for unknown keys; require_item raises
    - unqualified names search the current schema, then its references
    - qualified names accept schema name or alias
    - every registry change clears the conversion cache
"""

import pytest

from unitgraph.core.errors import DuplicateSchemaError, UnknownReferenceError
from unitgraph.core.linear_map import LinearMap
from unitgraph.schemas.items import SchemaItemKey, SchemaKey, Unit
from unitgraph.schemas.schema import Schema
from unitgraph.services.conversion_cache import CacheKey
from unitgraph.services.schema_context import SchemaContext
from tests.units_fixture import survey_schema, units_schema


def test_get_item_by_key(context):
    item = context.get_item(SchemaItemKey(schema_name="units", name="mile"))
    assert item is not None
    assert item.name == "MILE"


def test_get_item_unknown_returns_none(context):
    assert context.get_item(SchemaItemKey(schema_name="Units", name="FURLONG")) is None
    assert context.get_item(SchemaItemKey(schema_name="Nowhere", name="M")) is None


def test_require_item_raises_for_unknown(context):
    with pytest.raises(UnknownReferenceError):
        context.require_item("Units:FURLONG")


def test_duplicate_schema_rejected(context):
    with pytest.raises(DuplicateSchemaError):
        context.add_schema(units_schema())


def test_unqualified_reference_searches_references(context):
    item = context.resolve_reference("LENGTH", "Survey")
    assert item.full_name == "Units:LENGTH"


def test_local_item_shadows_referenced_item():
    local = Schema(
        key=SchemaKey(name="Local"), references=("Units",),
        items=[Unit(name="M", phenomenon="LENGTH", unit_system="SI", definition="u:M")],
    )
    context = SchemaContext([units_schema(), local])
    assert context.resolve_reference("M", "Local").full_name == "Local:M"


def test_qualified_reference_by_alias_and_name(context):
    assert context.resolve_reference("u:M", "Survey").full_name == "Units:M"
    assert context.resolve_reference("Units:M", "Survey").full_name == "Units:M"
    assert context.resolve_reference("sv:SURVEY_MILE", "Survey").full_name == "Survey:SURVEY_MILE"


def test_qualified_reference_to_unknown_item(context):
    with pytest.raises(UnknownReferenceError):
        context.resolve_reference("u:FURLONG", "Survey")
    with pytest.raises(UnknownReferenceError):
        context.resolve_reference("Nowhere:M", "Survey")


def test_unqualified_reference_not_visible_without_reference(context):
    with pytest.raises(UnknownReferenceError):
        context.resolve_reference("SURVEY_MILE", "Units")


def test_missing_referenced_schema_is_unknown_reference():
    context = SchemaContext([survey_schema()])
    with pytest.raises(UnknownReferenceError) as exc:
        context.resolve_reference("LENGTH", "Survey")
    assert exc.value.reference == "Units"


def test_remove_schema(context):
    removed = context.remove_schema("SURVEY")
    assert removed.name == "Survey"
    assert context.get_schema("Survey") is None
    with pytest.raises(UnknownReferenceError):
        context.remove_schema("Survey")


def test_replace_schema_returns_previous(context):
    previous = context.replace_schema(units_schema(ft_numerator=0.3))
    assert previous is not None
    assert context.get_item(SchemaItemKey.parse("Units:FT")).numerator == 0.3


@pytest.mark.parametrize("change", [
    lambda ctx: ctx.replace_schema(units_schema()),
    lambda ctx: ctx.remove_schema("Broken"),
    lambda ctx: ctx.add_schema(Schema(key=SchemaKey(name="Extra"))),
])
def test_registry_changes_clear_cache(context, change):
    key = CacheKey(SchemaItemKey.parse("Units:M"), SchemaItemKey.parse("Units:KM"))
    context.conversion_cache.put_if_absent(key, LinearMap(0.001, 0.0))
    change(context)
    assert len(context.conversion_cache) == 0
