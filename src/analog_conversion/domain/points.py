"""Calibration points and the bracketed point-list syntax.

A point list looks like ``[x1,y1|x2,y2|...]``; ``(`` and ``)`` are accepted
as list delimiters as well.
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from analog_conversion.core.exceptions import ProfileParseError

logger = structlog.get_logger(__name__)

LIST_START = ("[", "(")
LIST_END = ("]", ")")
LIST_SEPARATOR = "|"


@dataclass(frozen=True, slots=True)
class XYPoint:
    """One (raw, calibrated) pair."""

    x: float
    y: float

    def __str__(self) -> str:
        return f"{self.x},{self.y}"


def starts_with_list_char(text: str | None) -> bool:
    return bool(text) and text.startswith(LIST_START)


def index_of_list_start(text: str, start: int = 0) -> int:
    return _first_index_of(text, LIST_START, start)


def index_of_list_end(text: str, start: int = 0) -> int:
    """Index of the first list-close character at or after ``start``, -1 if none."""
    return _first_index_of(text, LIST_END, start)


def _first_index_of(text: str, chars: Sequence[str], start: int) -> int:
    found = [i for i in (text.find(c, start) for c in chars) if i >= 0]
    return min(found) if found else -1


def parse_point(text: str) -> XYPoint:
    """Parse ``"x,y"`` into a point.

    Raises:
        ProfileParseError: blank text, missing coordinate, or a non-numeric or
            non-finite value.
    """
    if not text or not text.strip():
        raise ProfileParseError("Blank point")
    parts = [p.strip() for p in text.split(",")]
    if len(parts) < 2:
        raise ProfileParseError(f"Point needs x and y: {text!r}")
    try:
        x = float(parts[0])
        y = float(parts[1])
    except ValueError as exc:
        raise ProfileParseError(f"Invalid point value: {text!r}") from exc
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ProfileParseError(f"Invalid point value: {text!r}")
    return XYPoint(x, y)


def parse_point_list(text: str | None, start: int = 0) -> tuple[XYPoint, ...]:
    """Parse the bracketed point list found at or after ``start``.

    The surrounding list characters are required. Malformed points are logged
    and skipped; an absent or empty list yields an empty tuple.
    """
    if not text:
        return ()
    s = index_of_list_start(text, max(start, 0))
    e = index_of_list_end(text, s + 1) if s >= 0 else -1
    if s < 0 or e <= s + 1:
        return ()
    body = text[s + 1 : e].strip()
    if not body:
        return ()

    points: list[XYPoint] = []
    for item in body.split(LIST_SEPARATOR):
        try:
            points.append(parse_point(item))
        except ProfileParseError as exc:
            logger.warning("profile_point_invalid", point=item, error=str(exc))
    return tuple(points)


def format_point_list(points: Sequence[XYPoint] | None) -> str:
    inner = LIST_SEPARATOR.join(str(p) for p in points or ())
    return f"{LIST_START[0]}{inner}{LIST_END[0]}"


def is_sorted_by_x(points: Sequence[XYPoint], *, allow_duplicates: bool = False) -> bool:
    for prev, cur in zip(points, points[1:]):
        if prev.x > cur.x:
            return False
        if not allow_duplicates and prev.x == cur.x:
            return False
    return True


def interpolate(points: Sequence[XYPoint], value: float) -> float:
    """Piecewise-linear lookup of ``value`` over points ordered by x.

    Values below the first x return the first y, values beyond the last x
    return the last y. An empty point list yields 0.0.
    """
    if not points:
        return 0.0

    lo: XYPoint | None = None
    hi: XYPoint | None = None
    for i, point in enumerate(points):
        if point.x == value:
            lo = hi = point
            break
        if point.x >= value:
            hi = point
            lo = points[i - 1] if i > 0 else None
            break
        lo = point

    if lo is not None and hi is not None:
        if hi.x == lo.x:
            return lo.y
        fraction = (value - lo.x) / (hi.x - lo.x)
        return lo.y + fraction * (hi.y - lo.y)
    if hi is not None:
        return hi.y
    # value is beyond every x
    return points[-1].y
