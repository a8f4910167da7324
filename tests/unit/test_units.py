"""
Tests for kilogram/bag conversion and Decimal coercion.

Covers:
- kg -> bags for persisting, bags -> kg for display
- The accepted lossy round trip for non-multiples of 30
- ROUND_HALF_UP at 2 decimal places
- to_decimal defaults and failures
"""

from decimal import Decimal

import pytest

from billing_kernel.domain.units import (
    KG_PER_BAG,
    bags_to_kg,
    kg_to_bags,
    round_bags,
    to_decimal,
)


class TestBagConversion:
    """Tests for the 1 bag = 30 kg convention."""

    def test_bag_size(self):
        assert KG_PER_BAG == Decimal("30")

    def test_multiple_of_30_round_trips_exactly(self):
        """900 kg persists as 30 bags and displays as 900 kg."""
        bags = kg_to_bags("900")

        assert bags == Decimal("30.00")
        assert bags_to_kg(bags) == Decimal("900")

    def test_non_multiple_is_rounded(self):
        """100 kg -> 3.33 bags -> 99.90 kg on redisplay."""
        bags = kg_to_bags(100)

        assert bags == Decimal("3.33")
        assert bags_to_kg(bags) == Decimal("99.90")

    def test_zero(self):
        assert kg_to_bags(0) == Decimal("0")
        assert bags_to_kg(0) == Decimal("0")

    def test_float_input_goes_through_str(self):
        assert kg_to_bags(45.0) == Decimal("1.50")

    def test_non_numeric_raises(self):
        with pytest.raises(ValueError):
            kg_to_bags("lots")


class TestRoundBags:
    """Tests for the 2-decimal rounding rule."""

    def test_half_up(self):
        assert round_bags(Decimal("1.005")) == Decimal("1.01")

    def test_below_half_down(self):
        assert round_bags(Decimal("1.004")) == Decimal("1.00")

    def test_negative_half_away_from_zero(self):
        assert round_bags(Decimal("-0.005")) == Decimal("-0.01")


class TestToDecimal:
    """Tests for coercion of JSON and user values."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("12.5", Decimal("12.5")),
            (7, Decimal("7")),
            (0.1, Decimal("0.1")),
            (Decimal("3.33"), Decimal("3.33")),
            (" 42 ", Decimal("42")),
        ],
    )
    def test_parses_numbers(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", True, "NaN", "Infinity"])
    def test_unusable_values_return_default(self, value):
        assert to_decimal(value) == Decimal("0")

    def test_custom_default(self):
        assert to_decimal(None, default=Decimal("-1")) == Decimal("-1")

    def test_no_default_raises(self):
        with pytest.raises(ValueError, match="Not a number"):
            to_decimal("abc", default=None)
