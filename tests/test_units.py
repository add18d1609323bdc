"""Tests for base-unit conversion"""

from decimal import Decimal

import pytest

from satotrack.services.units import coerce_base_units, scale_exponent, to_base, to_major

SATS = 100_000_000


class TestUnitConversion:
    """Integer base units <-> Decimal major units"""

    def test_one_btc_is_exact(self):
        """100000000 satoshis normalize to exactly 1.00000000 and back"""
        amount = to_major(100_000_000, SATS)

        assert amount == Decimal("1")
        assert str(amount) == "1.00000000"
        assert to_base(amount, SATS) == 100_000_000

    def test_no_drift_on_awkward_values(self):
        """Values that are inexact in binary floating point survive a round trip"""
        for sats in (1, 10, 29_999_999, 2_100_000_000_000_000, 123_456_789):
            assert to_base(to_major(sats, SATS), SATS) == sats

    def test_negative_amounts(self):
        assert to_major(-10_000_000, SATS) == Decimal("-0.1")

    def test_excess_precision_rejected(self):
        with pytest.raises(ValueError):
            to_base(Decimal("0.000000001"), SATS)

    def test_scale_must_be_power_of_ten(self):
        assert scale_exponent(SATS) == 8
        assert scale_exponent(1) == 0
        for bad in (0, -100, 12_345):
            with pytest.raises(ValueError):
                scale_exponent(bad)


class TestCoerceBaseUnits:
    """Provider amount parsing"""

    def test_accepts_integral_values(self):
        assert coerce_base_units(5) == 5
        assert coerce_base_units(1e8) == 100_000_000
        assert coerce_base_units("250000000") == 250_000_000

    @pytest.mark.parametrize("value", [None, True, 1.5, "12.5", "abc", [1]])
    def test_rejects_non_integral_values(self, value):
        with pytest.raises(ValueError):
            coerce_base_units(value)
