"""Unit tests for writing converted values into destination records."""
from __future__ import annotations

import math

import pytest
from structlog.testing import capture_logs

from analog_conversion.converter import write_outputs
from analog_conversion.core.exceptions import UnsupportedFieldTypeError
from analog_conversion.domain.fields import DictRecord, FieldType, convert_to
from analog_conversion.spec import parse_conversion_spec


# ---------------------------------------------------------------------------
# FieldType
# ---------------------------------------------------------------------------
class TestFieldType:
    @pytest.mark.parametrize(
        ("declared", "expected"),
        [
            ("double", FieldType.FLOAT64),
            ("Float", FieldType.FLOAT32),
            ("long", FieldType.INT64),
            ("int", FieldType.INT32),
            (" String ", FieldType.TEXT),
            ("bool", FieldType.BOOLEAN),
            (FieldType.INT64, FieldType.INT64),
        ],
    )
    def test_parse(self, declared, expected):
        assert FieldType.parse(declared) is expected

    def test_parse_unknown(self):
        with pytest.raises(UnsupportedFieldTypeError):
            FieldType.parse("blob")


class TestConvertTo:
    def test_text(self):
        assert convert_to(FieldType.TEXT, 12.5) == "12.5"

    def test_int_truncates(self):
        assert convert_to(FieldType.INT32, 12.9) == 12
        assert convert_to(FieldType.INT64, -12.9) == -12

    def test_int32_saturates(self):
        assert convert_to(FieldType.INT32, 1e12) == 2**31 - 1
        assert convert_to(FieldType.INT32, -1e12) == -(2**31)

    def test_int64_saturates(self):
        assert convert_to(FieldType.INT64, 1e30) == 2**63 - 1
        assert convert_to(FieldType.INT64, -math.inf) == -(2**63)

    def test_float32_narrows(self):
        assert convert_to(FieldType.FLOAT32, 0.1) != 0.1
        assert convert_to(FieldType.FLOAT32, 0.1) == pytest.approx(0.1)

    def test_float64(self):
        assert convert_to(FieldType.FLOAT64, 0.1) == 0.1

    @pytest.mark.parametrize("field_type", [FieldType.INT32, FieldType.INT64])
    def test_nan_to_int_is_zero(self, field_type):
        assert convert_to(field_type, math.nan) == 0

    def test_nan_to_float(self):
        assert math.isnan(convert_to(FieldType.FLOAT64, math.nan))
        assert math.isnan(convert_to(FieldType.FLOAT32, math.nan))

    def test_boolean(self):
        assert convert_to(FieldType.BOOLEAN, 0.0) is False
        assert convert_to(FieldType.BOOLEAN, -0.5) is True


# ---------------------------------------------------------------------------
# write_outputs
# ---------------------------------------------------------------------------
class TestWriteOutputs:
    def test_writes_every_type(self, context, record):
        spec = parse_conversion_spec(
            "1,0,fuelLevel,level,fuelRaw,tempInt,tempFloat,fuelText,ignition", 1, context
        )
        assert write_outputs(spec, record, 42.75)
        assert record.values == {
            "fuelLevel": 42.75,
            "level": 42.75,
            "fuelRaw": 42,
            "tempInt": 42,
            "tempFloat": 42.75,
            "fuelText": "42.75",
            "ignition": True,
        }

    def test_no_record(self, context):
        spec = parse_conversion_spec("1,0,level", 1, context)
        with capture_logs() as logs:
            assert not write_outputs(spec, None, 1.0)
        assert logs[0]["event"] == "analog_write_no_record"

    def test_nan_not_written(self, context, record):
        spec = parse_conversion_spec("1,0,level", 1, context)
        with capture_logs() as logs:
            assert not write_outputs(spec, record, math.nan)
        assert record.values == {}
        assert logs[0]["event"] == "analog_write_nan_ignored"
        assert logs[0]["record"] == "acme/truck-17"

    def test_no_fields(self, context, record):
        spec = parse_conversion_spec("1,0", 1, context)
        with capture_logs() as logs:
            assert not write_outputs(spec, record, 1.0)
        assert logs[0]["event"] == "analog_write_no_fields"

    def test_unsupported_type_is_partial_failure(self, context, record):
        spec = parse_conversion_spec("1,0,snapshot,level", 1, context)
        with capture_logs() as logs:
            assert not write_outputs(spec, record, 3.0)
        assert record.values == {"level": 3.0}
        errors = [e for e in logs if e["log_level"] == "error"]
        assert errors[0]["event"] == "analog_field_type_unsupported"
        assert errors[0]["field"] == "snapshot"

    def test_refused_field(self, context):
        record = DictRecord(allowed=frozenset({"level"}))
        spec = parse_conversion_spec("1,0,fuelRaw,level", 1, context)
        assert not write_outputs(spec, record, 7.0)
        assert record.values == {"level": 7.0}

    def test_label_override(self, context, record):
        spec = parse_conversion_spec("1,0", 1, context)
        with capture_logs() as logs:
            write_outputs(spec, record, 1.0, label="other")
        assert logs[0]["record"] == "other"
