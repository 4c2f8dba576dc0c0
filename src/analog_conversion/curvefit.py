"""Polynomial curve fit through a set of calibration points.

The fitted polynomial passes exactly through every point (degree N-1 for N
points). Coefficients are solved by Gaussian elimination, either in float64
via numpy or in arbitrary precision via :mod:`decimal`. Large point sets are
better served by a partial fit, which fits only the few points surrounding
the evaluated x.

Usage::

    from analog_conversion.curvefit import CurveFit, Precision

    cf = CurveFit(points, Precision.DIGITS20)
    if cf.is_valid():
        y = cf.evaluate(0.42)
"""
from __future__ import annotations

import math
from collections.abc import Sequence
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from enum import Enum

import numpy as np
import structlog

from analog_conversion.core.exceptions import CurveFitError
from analog_conversion.domain.points import XYPoint, format_point_list, interpolate, is_sorted_by_x

logger = structlog.get_logger(__name__)

# Below this many points a full polynomial is used by default, at or above it a partial fit.
PARTIAL_THRESHOLD = 10


class Precision(Enum):
    """Numeric strategy used by :class:`CurveFit`."""

    DOUBLE = ("Double", "double", 0)
    DIGITS16 = ("Digits16", "decimal", 16)
    DIGITS18 = ("Digits18", "decimal", 18)
    DIGITS20 = ("Digits20", "decimal", 20)
    DIGITS22 = ("Digits22", "decimal", 22)
    DIGITS24 = ("Digits24", "decimal", 24)
    DIGITS34 = ("Digits34", "decimal", 34)
    PARTIAL5 = ("Partial5", "partial", 5)
    PARTIAL7 = ("Partial7", "partial", 7)
    PARTIAL9 = ("Partial9", "partial", 9)
    LINEAR = ("Linear", "linear", 0)

    def __init__(self, label: str, mode: str, size: int) -> None:
        self.label = label
        self.mode = mode
        self.size = size

    def __str__(self) -> str:
        return self.label

    @property
    def is_double(self) -> bool:
        return self.mode == "double"

    @property
    def is_decimal(self) -> bool:
        return self.mode == "decimal"

    @property
    def is_partial(self) -> bool:
        return self.mode == "partial"

    @property
    def is_linear(self) -> bool:
        return self.mode == "linear"

    def decimal_context(self) -> Context | None:
        if not self.is_decimal:
            return None
        return Context(prec=self.size, rounding=ROUND_HALF_EVEN)

    @classmethod
    def from_name(cls, name: str | None, default: Precision | None = None) -> Precision | None:
        """Look up a precision by label (case-insensitive) or decimal alias."""
        if name is None or not name.strip():
            return default
        key = name.strip().lower()
        for member in cls:
            if member.label.lower() == key:
                return member
        alias = _PRECISION_ALIASES.get(key)
        if alias is not None:
            return alias
        logger.warning("curve_fit_precision_unrecognized", name=name)
        return default


_PRECISION_ALIASES: dict[str, Precision] = {
    "decimal64": Precision.DIGITS16,
    "decimal": Precision.DIGITS20,
    "decimal128": Precision.DIGITS34,
}

BIG_PRECISION = Precision.DIGITS20


def default_precision(point_count: int, override: str | None = None) -> Precision:
    """Precision used when a fit does not ask for one explicitly."""
    configured = Precision.from_name(override)
    if configured is not None:
        return configured
    return Precision.DOUBLE if point_count < PARTIAL_THRESHOLD else Precision.PARTIAL7


def _solve_double(points: Sequence[XYPoint]) -> np.ndarray | None:
    xs = np.array([p.x for p in points], dtype=np.float64)
    ys = np.array([p.y for p in points], dtype=np.float64)
    # Vandermonde rows: x^(n-1) ... x^0
    matrix = np.vander(xs, len(points))
    try:
        coefficients = np.linalg.solve(matrix, ys)
    except np.linalg.LinAlgError:
        logger.warning("curve_fit_coefficients_unsolvable", points=format_point_list(points))
        return None
    if not np.all(np.isfinite(coefficients)):
        logger.warning("curve_fit_coefficients_unsolvable", points=format_point_list(points))
        return None
    return coefficients


def _solve_decimal(points: Sequence[XYPoint], ctx: Context) -> tuple[Decimal, ...] | None:
    size = len(points)
    with localcontext(ctx):
        matrix = [
            [_decimal_pow(Decimal(p.x), size - i - 1) for i in range(size)]
            for p in points
        ]
        values = [+Decimal(p.y) for p in points]

        for row in range(size):
            pivot_row = max(range(row, size), key=lambda i: abs(matrix[i][row]))
            matrix[row], matrix[pivot_row] = matrix[pivot_row], matrix[row]
            values[row], values[pivot_row] = values[pivot_row], values[row]
            pivot = matrix[row][row]
            if pivot == 0:
                logger.warning("curve_fit_coefficients_unsolvable", points=format_point_list(points))
                return None
            for i in range(row + 1, size):
                factor = matrix[i][row] / pivot
                for j in range(row, size):
                    matrix[i][j] -= factor * matrix[row][j]
                values[i] -= factor * values[row]

        coefficients = [Decimal(0)] * size
        for i in reversed(range(size)):
            acc = Decimal(0)
            for j in range(i + 1, size):
                acc += matrix[i][j] * coefficients[j]
            coefficients[i] = (values[i] - acc) / matrix[i][i]
    return tuple(coefficients)


def _decimal_pow(base: Decimal, exponent: int) -> Decimal:
    # Decimal(0) ** 0 is an invalid operation
    return Decimal(1) if exponent == 0 else base**exponent


class CurveFit:
    """Curve through points sorted strictly ascending by x.

    A fit is valid only with at least two points, strictly ascending x values
    and a solvable coefficient system; check :meth:`is_valid` before use.
    """

    def __init__(
        self,
        points: Sequence[XYPoint],
        precision: Precision | None = None,
        *,
        precision_override: str | None = None,
    ) -> None:
        self._points: tuple[XYPoint, ...] = tuple(points)
        self._precision: Precision | None = None
        self._coefficients: np.ndarray | None = None
        self._decimal_coefficients: tuple[Decimal, ...] | None = None
        self._decimal_context: Context | None = None

        if len(self._points) < 2:
            logger.debug("curve_fit_too_few_points", count=len(self._points))
            return
        if not all(math.isfinite(p.x) and math.isfinite(p.y) for p in self._points):
            logger.debug("curve_fit_non_finite_points", points=format_point_list(self._points))
            return
        if not is_sorted_by_x(self._points):
            logger.debug("curve_fit_unsorted_points", points=format_point_list(self._points))
            return

        self._precision = precision or default_precision(len(self._points), precision_override)
        if self._precision.is_decimal:
            self._decimal_context = self._precision.decimal_context()
            self._decimal_coefficients = _solve_decimal(self._points, self._decimal_context)
        elif self._precision.is_double:
            self._coefficients = _solve_double(self._points)

    @property
    def precision(self) -> Precision | None:
        return self._precision

    @property
    def points(self) -> tuple[XYPoint, ...]:
        return self._points

    @property
    def min_x(self) -> float:
        return self._points[0].x if self._points else float("nan")

    @property
    def max_x(self) -> float:
        return self._points[-1].x if self._points else float("nan")

    @property
    def coefficients(self) -> tuple[float, ...]:
        """Polynomial coefficients, highest power first (empty for partial/linear fits)."""
        if self._coefficients is not None:
            return tuple(float(c) for c in self._coefficients)
        if self._decimal_coefficients is not None:
            return tuple(float(c) for c in self._decimal_coefficients)
        return ()

    def is_valid(self) -> bool:
        if self._precision is None:
            return False
        if self._precision.is_double:
            return self._coefficients is not None and len(self._coefficients) > 0
        if self._precision.is_decimal:
            return bool(self._decimal_coefficients)
        return len(self._points) >= 2

    def __len__(self) -> int:
        return len(self.coefficients) or len(self._points)

    def evaluate(self, x: float) -> float:
        """Value of the curve at ``x``.

        Only defined over the fitted range: x at or below the first point
        yields the first y, x at or above the last point yields the last y.
        """
        if not self.is_valid():
            raise CurveFitError("Cannot evaluate an invalid curve fit")
        first, last = self._points[0], self._points[-1]
        if x <= first.x:
            return first.y
        if x >= last.x:
            return last.y

        precision = self._precision
        if precision.is_double:
            return float(np.polyval(self._coefficients, x))
        if precision.is_decimal:
            with localcontext(self._decimal_context):
                xd = Decimal(x)
                y = Decimal(0)
                for c in self._decimal_coefficients:
                    y = y * xd + c
            return float(y)
        if precision.is_partial:
            return self._evaluate_partial(x, precision.size)
        return interpolate(self._points, x)

    def _evaluate_partial(self, x: float, size: int) -> float:
        points = self._points
        if size >= len(points):
            window = points
        else:
            start = -1
            for i, p in enumerate(points):
                if x > p.x:
                    start = i - (size + 1) // 2
                    continue
                if x == p.x:
                    start = i - size // 2
                break
            start = min(max(start, 0), len(points) - size)
            window = points[start : start + size]
        local = CurveFit(window, Precision.DOUBLE)
        if not local.is_valid():
            return interpolate(window, x)
        return local.evaluate(x)

    def __str__(self) -> str:
        if not self.is_valid():
            return "invalid"
        parts = [f"Precision={self._precision}"]
        parts.append(f"Min={self._points[0]}")
        parts.append(f"Max={self._points[-1]}")
        if self._coefficients is not None:
            parts.append("Coeff=" + ",".join(repr(float(c)) for c in self._coefficients))
        elif self._decimal_coefficients is not None:
            parts.append("Coeff=" + ",".join(str(c) for c in self._decimal_coefficients))
        return " ".join(parts)
