"""
Tests for exact number helpers and FractionComplex.
"""

from fractions import Fraction

import pytest

from camel import FractionComplex, DivisionByZeroError, TypeMismatchError
from camel.core.bignum import to_bigint, to_fraction, trunc_div


class TestFractionComplex:
    """Test exact complex arithmetic."""

    def test_text_form(self):
        assert str(FractionComplex(Fraction(1, 2), -3)) == "1/2-3i"
        assert str(FractionComplex(1, 2)) == "1+2i"
        assert str(FractionComplex()) == "0+0i"

    def test_parts_are_fractions(self):
        z = FractionComplex(1, 2)
        assert isinstance(z.real, Fraction)
        assert isinstance(z.imag, Fraction)

    def test_arithmetic(self):
        a = FractionComplex(1, 2)
        b = FractionComplex(3, 4)
        assert a + b == FractionComplex(4, 6)
        assert a - b == FractionComplex(-2, -2)
        assert a * b == FractionComplex(-5, 10)
        assert a / b == FractionComplex(Fraction(11, 25), Fraction(2, 25))
        assert -a == FractionComplex(-1, -2)

    def test_conjugate_product_is_real(self):
        z = FractionComplex(Fraction(1, 2), -3)
        assert z * z.conjugate() == FractionComplex(Fraction(37, 4), 0)

    def test_mixed_with_int(self):
        z = FractionComplex(1, 1)
        assert z + 1 == FractionComplex(2, 1)
        assert 1 + z == FractionComplex(2, 1)
        assert 2 * z == FractionComplex(2, 2)
        assert FractionComplex(3) == 3

    def test_division_by_zero(self):
        with pytest.raises(DivisionByZeroError):
            FractionComplex(1, 1) / FractionComplex()
        with pytest.raises(ZeroDivisionError):
            FractionComplex(1, 1) / 0

    def test_from_value(self):
        assert FractionComplex.from_value(0.5) == FractionComplex(Fraction(1, 2))
        assert FractionComplex.from_value(1 + 2j) == FractionComplex(1, 2)
        assert FractionComplex.from_value(Fraction(2, 3)).real == Fraction(2, 3)
        with pytest.raises(TypeMismatchError):
            FractionComplex.from_value("1+2i")

    def test_not_equal_to_strings(self):
        assert FractionComplex(1) != "1"

    def test_hashable(self):
        assert len({FractionComplex(1, 2), FractionComplex(1, 2)}) == 1


class TestConversions:
    """Test integer and fraction conversion helpers."""

    def test_to_bigint(self):
        assert to_bigint(2 ** 80) == 2 ** 80
        with pytest.raises(TypeMismatchError):
            to_bigint(True)
        with pytest.raises(TypeMismatchError):
            to_bigint(1.0)

    def test_to_fraction_is_exact(self):
        assert to_fraction(3) == Fraction(3, 1)
        assert to_fraction(0.1) == Fraction(3602879701896397, 36028797018963968)

    @pytest.mark.parametrize("a,b,q", [(7, 2, 3), (-7, 2, -3), (7, -2, -3), (-7, -2, 3), (6, 3, 2)])
    def test_trunc_div(self, a, b, q):
        assert trunc_div(a, b) == q

    def test_trunc_div_by_zero(self):
        with pytest.raises(DivisionByZeroError):
            trunc_div(1, 0)
