from __future__ import annotations

import pytest
import structlog

from analog_conversion.context import ConversionContext
from analog_conversion.domain.fields import DictRecord, StaticFieldRegistry

EVENT_FIELDS = {
    "fuelLevel": "double",
    "level": "float64",
    "fuelRaw": "int64",
    "tempInt": "int32",
    "tempFloat": "float32",
    "fuelText": "text",
    "ignition": "boolean",
    "snapshot": "blob",
}


@pytest.fixture
def field_registry() -> StaticFieldRegistry:
    return StaticFieldRegistry(EVENT_FIELDS)


@pytest.fixture
def context(field_registry: StaticFieldRegistry) -> ConversionContext:
    return ConversionContext(fields=field_registry)


@pytest.fixture
def linear_context(field_registry: StaticFieldRegistry) -> ConversionContext:
    """Context with curve fitting disabled globally."""
    return ConversionContext(fields=field_registry, use_curve_fit=False)


@pytest.fixture
def record() -> DictRecord:
    return DictRecord(label="acme/truck-17")


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
