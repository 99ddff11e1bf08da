"""
Unit tests for utils.py module.

Tests validation helpers, money rounding, water-filling and statistics.
"""

import math

import numpy as np
import pytest

from monthdss.exceptions import ValidationError
from monthdss.utils import (
    check_finite,
    check_non_negative,
    check_range,
    coefficient_of_variation,
    floor_money,
    min_max_normalize,
    money_tolerance,
    renormalize_weights,
    water_fill,
)


class TestValidation:
    """Test input validation functions."""

    def test_check_non_negative_valid(self):
        """Zero and positive values should pass."""
        check_non_negative("amount", 0)
        check_non_negative("amount", 1.5)

    def test_check_non_negative_invalid(self):
        """Negative values raise ValidationError naming field and record."""
        with pytest.raises(ValidationError, match="amount must be non-negative") as exc:
            check_non_negative("amount", -0.1, entity_id="rent")
        assert exc.value.field == "amount"
        assert exc.value.entity_id == "rent"
        assert str(exc.value).startswith("[rent]")

    def test_check_finite_rejects_nan(self):
        """Test NaN is refused."""
        with pytest.raises(ValidationError):
            check_finite("balance", math.nan)
        with pytest.raises(ValidationError):
            check_finite("balance", math.inf)

    def test_check_range_exclusive_upper(self):
        """Upper bound can be excluded (interest rates live in [0, 1))."""
        check_range("rate", 0.99, 0.0, 1.0, high_inclusive=False)
        with pytest.raises(ValidationError, match=r"\[0, 1\)"):
            check_range("rate", 1.0, 0.0, 1.0, high_inclusive=False)

    def test_check_range_inclusive(self):
        """Test both bounds are accepted when inclusive."""
        check_range("urgency", 10, 1, 10)
        with pytest.raises(ValidationError):
            check_range("urgency", 0, 1, 10)


class TestMoney:
    """Test minor-unit rounding helpers."""

    def test_floor_money_rounds_down(self):
        """Test amounts are floored to the precision."""
        assert floor_money(10.129, 2) == pytest.approx(10.12)
        assert floor_money(10.0, 0) == 10.0

    def test_floor_money_tolerates_float_noise(self):
        """0.1 + 0.2 must not floor to 0.29."""
        assert floor_money(0.1 + 0.2, 2) == pytest.approx(0.30)

    def test_money_tolerance(self):
        """Test the tolerance is one minor unit."""
        assert money_tolerance(2) == pytest.approx(0.01)
        assert money_tolerance(0) == 1.0

    def test_money_tolerance_scales_with_magnitude(self):
        """Test the tolerance covers float rounding at large amounts."""
        assert money_tolerance(6, 1e12, 10) == pytest.approx(math.ulp(1e12) * 10)
        assert money_tolerance(6, 1e12, 10) > 1e-6
        assert money_tolerance(2, 1_000.0, 10) == pytest.approx(0.01)


class TestWaterFill:
    """Test capped proportional distribution."""

    def test_proportional_when_uncapped(self):
        """Test an uncapped pool is split by weight."""
        alloc = water_fill(100.0, caps=[1_000.0, 1_000.0], weights=[3.0, 1.0])
        np.testing.assert_allclose(alloc, [75.0, 25.0])

    def test_redistributes_capped_excess(self):
        """Excess over a cap flows to the remaining entries."""
        alloc = water_fill(100.0, caps=[10.0, 200.0], weights=[1.0, 1.0])
        np.testing.assert_allclose(alloc, [10.0, 90.0])

    def test_pool_larger_than_caps(self):
        """Every entry saturates; the rest of the pool is left over."""
        alloc = water_fill(1_000.0, caps=[10.0, 20.0], weights=[1.0, 1.0])
        np.testing.assert_allclose(alloc, [10.0, 20.0])

    def test_zero_weight_gets_nothing(self):
        """Test a zero weight receives nothing."""
        alloc = water_fill(100.0, caps=[50.0, 50.0], weights=[0.0, 1.0])
        np.testing.assert_allclose(alloc, [0.0, 50.0])

    def test_empty_and_non_positive_pool(self):
        """Test empty caps and a zero pool."""
        assert water_fill(100.0, caps=[], weights=[]).size == 0
        np.testing.assert_allclose(water_fill(0.0, [10.0], [1.0]), [0.0])

    def test_shape_mismatch(self):
        """Test caps and weights of different lengths raise."""
        with pytest.raises(ValueError, match="same length"):
            water_fill(10.0, caps=[1.0, 2.0], weights=[1.0])


class TestStatistics:
    """Test normalization and dispersion helpers."""

    def test_min_max_normalize(self):
        """Test scaling to [0, 1]."""
        np.testing.assert_allclose(min_max_normalize([2.0, 4.0, 6.0]), [0.0, 0.5, 1.0])

    def test_min_max_constant_maps_to_zero(self):
        """Test a constant vector maps to zeros."""
        np.testing.assert_allclose(min_max_normalize([5.0, 5.0]), [0.0, 0.0])

    def test_coefficient_of_variation(self):
        """Population std / mean."""
        assert coefficient_of_variation([5, 5, 5, 5]) == 0.0
        assert coefficient_of_variation([2, 4]) == pytest.approx(1.0 / 3.0)
        assert coefficient_of_variation([]) == 0.0

    def test_renormalize_weights(self):
        """Test weights are rescaled to sum to 1."""
        weights = renormalize_weights({"urgency": 2.0, "importance": 2.0}, ("urgency", "importance", "roi"))
        assert weights == pytest.approx({"urgency": 0.5, "importance": 0.5, "roi": 0.0})

    def test_renormalize_rejects_bad_weights(self):
        """Test unknown axes and negative weights are refused."""
        axes = ("urgency", "roi")
        with pytest.raises(ValidationError, match="unknown criteria"):
            renormalize_weights({"speed": 1.0}, axes)
        with pytest.raises(ValidationError):
            renormalize_weights({"urgency": -1.0, "roi": 2.0}, axes)
        with pytest.raises(ValidationError, match="positive sum"):
            renormalize_weights({"urgency": 0.0}, axes)
