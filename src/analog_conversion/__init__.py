"""Analog sensor value conversion for telemetry ingestion.

Converts raw analog readings (e.g. a fuel-level ADC value) into calibrated
values using gain/offset, piecewise-linear profiles, canned tank profiles or
polynomial curve fits, and writes the results into named record fields.
"""

from analog_conversion.context import ConversionContext, ConverterFactoryRegistry, new_conversion_spec
from analog_conversion.converter import calculate_analog_value, convert, write_outputs
from analog_conversion.curvefit import CurveFit, Precision
from analog_conversion.domain.fields import DictRecord, FieldDescriptor, FieldType, StaticFieldRegistry
from analog_conversion.domain.points import XYPoint
from analog_conversion.lookup import (
    AnalogSpecTable,
    analog_key,
    build_analog_map,
    convert_and_save,
    get_conversion_spec,
)
from analog_conversion.spec import ConversionSpec, SpecKind, parse_conversion_spec

__version__ = "0.1.0"
__all__ = [
    "AnalogSpecTable",
    "ConversionContext",
    "ConversionSpec",
    "ConverterFactoryRegistry",
    "CurveFit",
    "DictRecord",
    "FieldDescriptor",
    "FieldType",
    "Precision",
    "SpecKind",
    "StaticFieldRegistry",
    "XYPoint",
    "analog_key",
    "build_analog_map",
    "calculate_analog_value",
    "convert",
    "convert_and_save",
    "get_conversion_spec",
    "new_conversion_spec",
    "parse_conversion_spec",
    "write_outputs",
]
