"""Destination fields for converted analog values."""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

import numpy as np

from analog_conversion.core.exceptions import UnsupportedFieldTypeError

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


class FieldType(str, Enum):
    """Value types a destination field may declare."""

    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"

    @classmethod
    def parse(cls, declared: FieldType | str) -> FieldType:
        """Map a declared type name (``"double"``, ``"long"``, ...) to a FieldType."""
        if isinstance(declared, FieldType):
            return declared
        try:
            return _TYPE_ALIASES[str(declared).strip().lower()]
        except KeyError:
            raise UnsupportedFieldTypeError(f"Unsupported field type: {declared!r}") from None


_TYPE_ALIASES: dict[str, FieldType] = {
    "text": FieldType.TEXT,
    "string": FieldType.TEXT,
    "str": FieldType.TEXT,
    "int32": FieldType.INT32,
    "int": FieldType.INT32,
    "integer": FieldType.INT32,
    "int64": FieldType.INT64,
    "long": FieldType.INT64,
    "float32": FieldType.FLOAT32,
    "float": FieldType.FLOAT32,
    "float64": FieldType.FLOAT64,
    "double": FieldType.FLOAT64,
    "boolean": FieldType.BOOLEAN,
    "bool": FieldType.BOOLEAN,
}


def _narrow_int(value: float, lo: int, hi: int) -> int:
    # truncate toward zero, saturate at the type bounds; NaN narrows to 0
    if math.isnan(value):
        return 0
    if value >= hi:
        return hi
    if value <= lo:
        return lo
    return int(value)


def convert_to(field_type: FieldType, value: float) -> str | int | float | bool:
    """Convert a calibrated value to the representation of ``field_type``."""
    match field_type:
        case FieldType.TEXT:
            return str(float(value))
        case FieldType.INT32:
            return _narrow_int(value, _INT32_MIN, _INT32_MAX)
        case FieldType.INT64:
            return _narrow_int(value, _INT64_MIN, _INT64_MAX)
        case FieldType.FLOAT32:
            return float(np.float32(value))
        case FieldType.FLOAT64:
            return float(value)
        case FieldType.BOOLEAN:
            return value != 0.0
    raise UnsupportedFieldTypeError(f"Unsupported field type: {field_type!r}")


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """A named field and the type it declares.

    ``declared_type`` stays as given by the registry; it is mapped onto
    :class:`FieldType` only when a value is written.
    """

    name: str
    declared_type: FieldType | str


class FieldRegistry(Protocol):
    def resolve_field(self, name: str) -> FieldDescriptor | None: ...


class Record(Protocol):
    def set_field(self, name: str, value: Any) -> bool: ...


class StaticFieldRegistry:
    """Read-only field registry built from a ``name -> type`` mapping."""

    def __init__(self, fields: Mapping[str, FieldType | str] | Iterable[FieldDescriptor] = ()) -> None:
        if isinstance(fields, Mapping):
            descriptors = {name: FieldDescriptor(name, ftype) for name, ftype in fields.items()}
        else:
            descriptors = {d.name: d for d in fields}
        self._fields: Mapping[str, FieldDescriptor] = MappingProxyType(descriptors)

    def resolve_field(self, name: str) -> FieldDescriptor | None:
        if not name:
            return None
        return self._fields.get(name.strip())

    def names(self) -> list[str]:
        return list(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


@dataclass
class DictRecord:
    """In-memory destination record.

    When ``allowed`` is set, only those field names can be written.
    """

    label: str = ""
    allowed: frozenset[str] | None = None
    values: dict[str, Any] = field(default_factory=dict)

    def set_field(self, name: str, value: Any) -> bool:
        if self.allowed is not None and name not in self.allowed:
            return False
        self.values[name] = value
        return True

    def get_field(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)
