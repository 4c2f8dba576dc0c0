"""Unit tests for analog_conversion.curvefit module."""
from __future__ import annotations

import math

import pytest

from analog_conversion.core.exceptions import CurveFitError
from analog_conversion.curvefit import CurveFit, Precision, default_precision
from analog_conversion.domain.points import XYPoint
from analog_conversion.profiles import CYLINDER_POINTS

SQUARES = tuple(XYPoint(float(x), float(x * x)) for x in range(3))
SQUARES_12 = tuple(XYPoint(float(x), float(x * x)) for x in range(12))


# ---------------------------------------------------------------------------
# Validity
# ---------------------------------------------------------------------------
class TestValidity:
    def test_two_points(self):
        assert CurveFit((XYPoint(0, 0), XYPoint(1, 1))).is_valid()

    def test_single_point(self):
        assert not CurveFit((XYPoint(0, 0),)).is_valid()

    def test_empty(self):
        assert not CurveFit(()).is_valid()

    def test_unsorted(self):
        assert not CurveFit((XYPoint(1, 1), XYPoint(0, 0))).is_valid()

    def test_duplicate_x(self):
        assert not CurveFit((XYPoint(0, 0), XYPoint(0, 1), XYPoint(1, 1))).is_valid()

    @pytest.mark.parametrize("bad", [XYPoint(math.inf, 1.0), XYPoint(2.0, math.nan)])
    def test_non_finite_point(self, bad):
        assert not CurveFit((XYPoint(0, 0), XYPoint(1, 1), bad)).is_valid()

    def test_range(self):
        cf = CurveFit(SQUARES)
        assert (cf.min_x, cf.max_x) == (0.0, 2.0)

    def test_range_empty(self):
        cf = CurveFit(())
        assert math.isnan(cf.min_x)
        assert math.isnan(cf.max_x)

    def test_evaluate_invalid_raises(self):
        with pytest.raises(CurveFitError):
            CurveFit(()).evaluate(1.0)

    def test_str_invalid(self):
        assert str(CurveFit(())) == "invalid"


# ---------------------------------------------------------------------------
# Precision selection
# ---------------------------------------------------------------------------
class TestPrecision:
    def test_default_small(self):
        assert default_precision(9) is Precision.DOUBLE

    def test_default_large(self):
        assert default_precision(10) is Precision.PARTIAL7

    def test_override(self):
        assert default_precision(3, "Digits24") is Precision.DIGITS24

    def test_name_case_insensitive(self):
        assert Precision.from_name("partial5") is Precision.PARTIAL5

    def test_aliases(self):
        assert Precision.from_name("Decimal64") is Precision.DIGITS16
        assert Precision.from_name("Decimal") is Precision.DIGITS20
        assert Precision.from_name("Decimal128") is Precision.DIGITS34

    def test_unknown_returns_default(self):
        assert Precision.from_name("Quad", Precision.DOUBLE) is Precision.DOUBLE

    def test_blank_returns_default(self):
        assert Precision.from_name("", None) is None

    def test_fit_uses_default(self):
        assert CurveFit(SQUARES).precision is Precision.DOUBLE
        assert CurveFit(SQUARES_12).precision is Precision.PARTIAL7


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------
class TestEvaluate:
    @pytest.mark.parametrize(
        "precision",
        [Precision.DOUBLE, Precision.DIGITS16, Precision.DIGITS20, Precision.DIGITS34],
    )
    def test_quadratic(self, precision):
        cf = CurveFit(SQUARES, precision)
        assert cf.is_valid()
        assert cf.evaluate(1.5) == pytest.approx(2.25, rel=1e-9)

    def test_coefficients_highest_power_first(self):
        cf = CurveFit(SQUARES)
        assert cf.coefficients == pytest.approx((1.0, 0.0, 0.0), abs=1e-9)

    def test_linear_two_points(self):
        cf = CurveFit((XYPoint(0, 0), XYPoint(1, 1)))
        assert cf.evaluate(0.25) == pytest.approx(0.25)

    def test_clamps_below(self):
        assert CurveFit(SQUARES).evaluate(-3.0) == 0.0

    def test_clamps_above(self):
        assert CurveFit(SQUARES).evaluate(7.0) == 4.0

    def test_passes_through_cylinder_points(self):
        cf = CurveFit(CYLINDER_POINTS)
        for point in CYLINDER_POINTS:
            assert cf.evaluate(point.x) == pytest.approx(point.y, abs=1e-7)

    def test_partial_fit_on_quadratic_data(self):
        cf = CurveFit(SQUARES_12)
        assert cf.evaluate(5.5) == pytest.approx(30.25, rel=1e-6)
        assert cf.evaluate(10.5) == pytest.approx(110.25, rel=1e-6)

    def test_partial_window_larger_than_points(self):
        cf = CurveFit(SQUARES, Precision.PARTIAL5)
        assert cf.evaluate(1.5) == pytest.approx(2.25, rel=1e-9)

    def test_linear_precision_interpolates(self):
        cf = CurveFit(SQUARES, Precision.LINEAR)
        # between (1,1) and (2,4)
        assert cf.evaluate(1.5) == 2.5

    def test_str_valid(self):
        text = str(CurveFit(SQUARES))
        assert text.startswith("Precision=Double Min=0.0,0.0 Max=2.0,4.0 Coeff=")
