"""Conversion of raw analog readings and writing of the results.

Evaluation order for a valid spec is strict: scale the input, then use the
fitted curve when there is one, else interpolate over the profile points,
else apply ``value * gain + offset``.
"""
from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import structlog

from analog_conversion.core.exceptions import UnsupportedFieldTypeError
from analog_conversion.domain.fields import FieldType, Record, convert_to
from analog_conversion.domain.points import interpolate
from analog_conversion.spec import ConversionSpec, parse_conversion_spec

if TYPE_CHECKING:
    from analog_conversion.context import ConversionContext

logger = structlog.get_logger(__name__)


def convert(spec: ConversionSpec, raw_value: float) -> float:
    """Convert ``raw_value`` according to ``spec``.

    An invalid spec passes the value through unchanged (with a warning);
    NaN passes through silently.
    """
    if not spec.valid:
        logger.warning("analog_spec_invalid_used", spec=str(spec), source=spec.source)
        return raw_value
    if math.isnan(raw_value):
        return raw_value

    value = spec.scale_value(float(raw_value))

    if spec.has_curve_fit:
        return spec.fitted_curve.evaluate(value)
    if spec.points is not None:
        return interpolate(spec.points, value)
    return value * spec.gain + spec.offset


def write_outputs(spec: ConversionSpec, record: Record | None, value: float, *, label: str = "") -> bool:
    """Write ``value`` into every output field of ``spec``.

    Each field is attempted even if an earlier one fails; the result is True
    only when all writes succeeded.
    """
    log = logger.bind(index=spec.index, record=label or _record_label(record))
    if record is None:
        log.warning("analog_write_no_record")
        return False
    if math.isnan(value):
        log.warning("analog_write_nan_ignored")
        return False
    if not spec.output_fields:
        log.warning("analog_write_no_fields")
        return False

    all_ok = True
    for descriptor in spec.output_fields:
        try:
            field_type = FieldType.parse(descriptor.declared_type)
        except UnsupportedFieldTypeError:
            log.error(
                "analog_field_type_unsupported",
                field=descriptor.name,
                declared_type=str(descriptor.declared_type),
            )
            all_ok = False
            continue
        converted = convert_to(field_type, value)
        ok = record.set_field(descriptor.name, converted)
        log.debug("analog_field_set", field=descriptor.name, value=converted, ok=ok)
        if not ok:
            all_ok = False
    return all_ok


def _record_label(record: Any) -> str:
    return str(getattr(record, "label", "") or "")


def calculate_analog_value(text: str, value: float, context: ConversionContext) -> float:
    """One-shot parse and convert; the input comes back unchanged for NaN or a bad spec."""
    if math.isnan(value):
        return value
    spec = parse_conversion_spec(text, 0, context)
    if not spec.valid:
        return value
    return convert(spec, value)
