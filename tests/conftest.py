"""Root conftest - shared fixtures: a context loaded with the test schemas."""

import os

import pytest

# Keep host environment settings out of the tests
os.environ.setdefault("UNITGRAPH_CACHE_ENABLED", "true")
os.environ.setdefault("UNITGRAPH_LOG_FORMAT", "text")

from unitgraph.config import Settings  # noqa: E402
from unitgraph.services.schema_context import SchemaContext  # noqa: E402
from unitgraph.services.unit_converter import UnitConverter  # noqa: E402
from tests.units_fixture import broken_schema, survey_schema, units_schema  # noqa: E402


@pytest.fixture
def context() -> SchemaContext:
    return SchemaContext([units_schema(), survey_schema(), broken_schema()])


@pytest.fixture
def converter(context) -> UnitConverter:
    return UnitConverter(context, Settings(cache_enabled=True))


@pytest.fixture
def uncached_converter(context) -> UnitConverter:
    return UnitConverter(context, Settings(cache_enabled=False))
