"""Analog conversion specs and the spec-string parser.

Supported spec strings::

    "1,0,fuelLevel"                                   gain,offset[,field...]
    "[0.0,0.0|0.25,0.20|0.5,0.5|1.0,1.0],fuelLevel"   explicit profile
    "[PercentLevelCylinder:0.02],fuelLevel"           canned profile with input scale
    "CF[0,0|0.5,0.6|1,1],fuelLevel"                   force curve fit
    "CB[0,0|0.5,0.6|1,1],fuelLevel"                   force high-precision curve fit
    "LI[0,0|0.5,0.6|1,1],fuelLevel"                   force linear interpolation

A spec that fails to parse is still returned, with ``valid=False``.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Protocol

import structlog

from analog_conversion.curvefit import BIG_PRECISION, CurveFit, Precision
from analog_conversion.domain.fields import FieldDescriptor, FieldRegistry
from analog_conversion.domain.points import (
    LIST_START,
    XYPoint,
    format_point_list,
    index_of_list_end,
    parse_point_list,
    starts_with_list_char,
)

if TYPE_CHECKING:
    from analog_conversion.context import ConversionContext

logger = structlog.get_logger(__name__)

DEFAULT_GAIN = 1.0
DEFAULT_OFFSET = 0.0

# tag -> (use curve fit, high precision)
_PREFERENCE_TAGS: dict[str, tuple[bool, bool]] = {
    "CF": (True, False),
    "CB": (True, True),
    "LI": (False, False),
}


class SpecKind(str, Enum):
    GAIN_OFFSET = "gain_offset"
    PROFILE = "profile"
    CANNED_PROFILE = "canned_profile"
    CURVE_FIT = "curve_fit"


class CurveModel(Protocol):
    def is_valid(self) -> bool: ...

    def evaluate(self, x: float) -> float: ...


@dataclass(frozen=True, slots=True)
class ConversionSpec:
    """How one analog channel is converted and where the result is written.

    Built once from configuration and never mutated; use :meth:`with_group`
    (or :func:`dataclasses.replace`) to derive a tagged copy.
    """

    index: int
    kind: SpecKind
    valid: bool
    gain: float = DEFAULT_GAIN
    offset: float = DEFAULT_OFFSET
    scale: float = 0.0
    points: tuple[XYPoint, ...] | None = None
    fitted_curve: CurveModel | None = None
    output_fields: tuple[FieldDescriptor, ...] = ()
    profile_name: str | None = None
    group_id: str = ""
    source: str = ""

    @property
    def has_scale(self) -> bool:
        return self.scale != 0.0

    @property
    def has_curve_fit(self) -> bool:
        return self.fitted_curve is not None and self.fitted_curve.is_valid()

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.output_fields)

    @property
    def has_fields(self) -> bool:
        return bool(self.output_fields)

    def has_field(self, name: str) -> bool:
        return name in self.field_names

    def scale_value(self, value: float) -> float:
        if self.has_scale and not math.isnan(value):
            return value * self.scale
        return value

    def with_group(self, group_id: str) -> ConversionSpec:
        return replace(self, group_id=(group_id or "").strip())

    def __str__(self) -> str:
        parts: list[str] = []
        if self.group_id:
            parts.append(f"[{self.group_id}]")
        parts.append(f"index={self.index}")
        if self.has_curve_fit:
            parts.append("curveFit=" + (format_point_list(self.points) if self.points is not None else "na"))
        elif self.points is not None:
            parts.append("profile=" + format_point_list(self.points))
        else:
            parts.append(f"gain={self.gain} offset={self.offset}")
        if self.output_fields:
            parts.append("field=" + ",".join(self.field_names))
        return " ".join(parts)

    # ------------------------------------------------------------------
    # Programmatic constructors
    # ------------------------------------------------------------------
    @classmethod
    def gain_offset(
        cls,
        index: int,
        gain: float = DEFAULT_GAIN,
        offset: float = DEFAULT_OFFSET,
        field_names: Iterable[str] = (),
        *,
        context: ConversionContext,
    ) -> ConversionSpec:
        return cls(
            index=index,
            kind=SpecKind.GAIN_OFFSET,
            valid=True,
            gain=gain,
            offset=offset,
            output_fields=resolve_output_fields(field_names, context.fields),
        )

    @classmethod
    def from_points(
        cls,
        index: int,
        points: Sequence[XYPoint],
        field_names: Iterable[str] = (),
        *,
        context: ConversionContext,
        curve_fit: bool | None = None,
        precision: Precision | None = None,
    ) -> ConversionSpec:
        """Profile spec; a curve is fitted when curve fitting is in effect."""
        pts = tuple(points)
        valid = len(pts) >= 2
        curve = None
        use_cf = context.use_curve_fit if curve_fit is None else curve_fit
        if valid and use_cf:
            curve = _fit_curve(index, pts, precision, context)
            valid = curve is not None
        if not valid:
            logger.warning("analog_profile_invalid", index=index, points=format_point_list(pts))
            return cls(index=index, kind=SpecKind.PROFILE, valid=False)
        return cls(
            index=index,
            kind=SpecKind.CURVE_FIT if curve is not None else SpecKind.PROFILE,
            valid=True,
            points=pts,
            fitted_curve=curve,
            output_fields=resolve_output_fields(field_names, context.fields),
        )

    @classmethod
    def from_curve_fit(
        cls,
        index: int,
        curve: CurveModel | None,
        field_names: Iterable[str] = (),
        *,
        context: ConversionContext,
    ) -> ConversionSpec:
        valid = curve is not None and curve.is_valid()
        if not valid:
            return cls(index=index, kind=SpecKind.CURVE_FIT, valid=False)
        return cls(
            index=index,
            kind=SpecKind.CURVE_FIT,
            valid=True,
            fitted_curve=curve,
            output_fields=resolve_output_fields(field_names, context.fields),
        )


def resolve_output_fields(names: Iterable[str], registry: FieldRegistry) -> tuple[FieldDescriptor, ...]:
    """Resolve field names (each entry may itself be comma-separated).

    Unknown names are logged and dropped; they never invalidate the spec.
    """
    resolved: list[FieldDescriptor] = []
    for entry in names or ():
        if not entry or not entry.strip():
            continue
        for name in entry.split(","):
            name = name.strip()
            if not name:
                continue
            descriptor = registry.resolve_field(name)
            if descriptor is None:
                logger.error("analog_output_field_unknown", field=name)
                continue
            resolved.append(descriptor)
    return tuple(resolved)


def _parse_float(token: str, default: float) -> float:
    try:
        value = float(token.strip())
    except ValueError:
        return default
    return default if math.isnan(value) else value


def _strip_preference(text: str, use_curve_fit: bool) -> tuple[str, bool, bool]:
    """Strip a ``CF[``/``CB[``/``LI[`` style prefix, returning (rest, curve_fit, big)."""
    tag = text[:2]
    if tag in _PREFERENCE_TAGS and text[2:3] in LIST_START:
        curve_fit, big = _PREFERENCE_TAGS[tag]
        return text[2:], curve_fit, big
    return text, use_curve_fit, False


def _fit_curve(
    index: int,
    points: Sequence[XYPoint],
    precision: Precision | None,
    context: ConversionContext,
) -> CurveFit | None:
    try:
        curve = CurveFit(points, precision, precision_override=context.curve_fit_precision)
    except (ArithmeticError, ValueError) as exc:
        logger.warning("analog_curve_fit_failed", index=index, error=str(exc))
        return None
    if not curve.is_valid():
        logger.warning("analog_curve_fit_invalid", index=index, points=format_point_list(points))
        return None
    return curve


def _canned_scale(content: str) -> float:
    sep = content.find(":")
    if sep < 0:
        return 0.0
    return _parse_float(content[sep + 1 :], 0.0)


def parse_conversion_spec(
    text: str | None,
    index: int,
    context: ConversionContext,
    *,
    default_gain: float = DEFAULT_GAIN,
    default_offset: float = DEFAULT_OFFSET,
) -> ConversionSpec:
    """Parse a spec string for the 1-based analog channel ``index``.

    Never raises for malformed input: the returned spec carries ``valid=False``
    and a warning is logged.
    """
    source = (text or "").strip()
    body, curve_fit, big = _strip_preference(source, context.use_curve_fit)
    if starts_with_list_char(body):
        return _parse_profile(
            body,
            index,
            context,
            source=source,
            curve_fit=curve_fit,
            big=big,
            default_gain=default_gain,
            default_offset=default_offset,
        )
    return _parse_gain_offset(
        body, index, context, source=source, default_gain=default_gain, default_offset=default_offset
    )


def _parse_gain_offset(
    body: str,
    index: int,
    context: ConversionContext,
    *,
    source: str,
    default_gain: float,
    default_offset: float,
) -> ConversionSpec:
    tokens = body.split(",") if body else []
    if len(tokens) < 2:
        gain, offset = default_gain, default_offset
    else:
        gain = _parse_float(tokens[0], default_gain)
        offset = _parse_float(tokens[1], default_offset)
    return ConversionSpec(
        index=index,
        kind=SpecKind.GAIN_OFFSET,
        valid=True,
        gain=gain,
        offset=offset,
        output_fields=resolve_output_fields(tokens[2:], context.fields),
        source=source,
    )


def _parse_profile(
    body: str,
    index: int,
    context: ConversionContext,
    *,
    source: str,
    curve_fit: bool,
    big: bool,
    default_gain: float,
    default_offset: float,
) -> ConversionSpec:
    end = index_of_list_end(body, 1)
    if end < 0:
        logger.warning("analog_profile_invalid", index=index, spec=source, reason="missing_list_end")
        return ConversionSpec(
            index=index,
            kind=SpecKind.PROFILE,
            valid=False,
            gain=default_gain,
            offset=default_offset,
            source=source,
        )

    profile_text = body[: end + 1]
    content = body[1:end].strip()

    kind = SpecKind.PROFILE
    points: tuple[XYPoint, ...] | None = None
    curve: CurveModel | None = None
    scale = 0.0
    profile_name: str | None = None
    reason: str | None = None

    canned = context.profiles.match(content) if content else None
    if not content:
        reason = "empty_profile"
    elif canned is not None:
        kind = SpecKind.CANNED_PROFILE
        points = canned.points
        curve = canned.curve if curve_fit else None
        scale = _canned_scale(content)
        profile_name = canned.key
    elif content[0].isalpha():
        logger.warning("analog_profile_name_unrecognized", index=index, name=content)
        reason = "unrecognized_profile_name"
    else:
        points = parse_point_list(profile_text)
        if len(points) < 2:
            reason = "too_few_points"

    if reason is None and curve_fit:
        if curve is None:
            curve = _fit_curve(index, points, BIG_PRECISION if big else None, context)
        if curve is None or not curve.is_valid():
            reason = "curve_fit_invalid"
        elif kind is SpecKind.PROFILE:
            kind = SpecKind.CURVE_FIT

    if reason is not None:
        logger.warning("analog_profile_invalid", index=index, spec=source, reason=reason)
        return ConversionSpec(index=index, kind=kind, valid=False, source=source)

    fields_text = body[end + 1 :].strip()
    if fields_text.startswith(","):
        fields_text = fields_text[1:]
    return ConversionSpec(
        index=index,
        kind=kind,
        valid=True,
        scale=scale,
        points=points,
        fitted_curve=curve,
        output_fields=resolve_output_fields(fields_text.split(","), context.fields),
        profile_name=profile_name,
        source=source,
    )
