"""
Arbitrary precision numbers.

BIGINT elements are plain Python ``int`` and FRACTION elements are
``fractions.Fraction``; both are already exact and unbounded. This module
adds the exact complex number (both parts are fractions) and the helpers
the element kinds use to convert incoming values.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Union

import numpy as np

from .error import DivisionByZeroError, TypeMismatchError

__all__ = ['FractionComplex', 'to_bigint', 'to_fraction', 'trunc_div']


ZERO = Fraction(0)
ONE = Fraction(1)


def to_bigint(value: Any) -> int:
    """Convert an integral value to ``int``; bools and floats are rejected."""
    if isinstance(value, (bool, np.bool_)):
        raise TypeMismatchError(f"bool is not a big integer: {value!r}")
    if isinstance(value, (int, np.integer)):
        return int(value)
    raise TypeMismatchError(f"Expected an integer, got {type(value).__name__}")


def to_fraction(value: Any) -> Fraction:
    """
    Convert a rational value to ``Fraction``.

    Integers and fractions convert exactly. Floats are converted exactly
    from their binary value (``0.1`` becomes ``3602879701896397/36028797018963968``).
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, (bool, np.bool_)):
        raise TypeMismatchError(f"bool is not a fraction: {value!r}")
    if isinstance(value, (int, np.integer)):
        return Fraction(int(value))
    if isinstance(value, (float, np.floating)):
        return Fraction(float(value))
    if isinstance(value, numbers.Rational):
        return Fraction(value.numerator, value.denominator)
    raise TypeMismatchError(f"Expected a rational number, got {type(value).__name__}")


def trunc_div(a: int, b: int) -> int:
    """Integer division truncating toward zero (C semantics)."""
    if b == 0:
        raise DivisionByZeroError("integer division by zero")
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


# =============================================================================
# Exact Complex Number
# =============================================================================

@dataclass(frozen=True)
class FractionComplex:
    """
    Exact complex number ``real + imag*i`` with fraction parts.

    Example:
        >>> z = FractionComplex(Fraction(1, 2), Fraction(-3))
        >>> str(z)
        '1/2-3i'
        >>> z * z.conjugate()
        FractionComplex(real=Fraction(37, 4), imag=Fraction(0, 1))
    """
    real: Fraction = ZERO
    imag: Fraction = ZERO

    def __post_init__(self):
        object.__setattr__(self, "real", to_fraction(self.real))
        object.__setattr__(self, "imag", to_fraction(self.imag))

    @classmethod
    def from_value(cls, value: Any) -> "FractionComplex":
        """Build from a FractionComplex, a rational/float, or a Python complex."""
        if isinstance(value, FractionComplex):
            return value
        if isinstance(value, (complex, np.complexfloating)):
            return cls(Fraction(float(value.real)), Fraction(float(value.imag)))
        return cls(to_fraction(value), ZERO)

    def conjugate(self) -> "FractionComplex":
        return FractionComplex(self.real, -self.imag)

    def is_zero(self) -> bool:
        return self.real == 0 and self.imag == 0

    def __add__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return FractionComplex(self.real + other.real, self.imag + other.imag)

    __radd__ = __add__

    def __sub__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return FractionComplex(self.real - other.real, self.imag - other.imag)

    def __rsub__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return other - self

    def __mul__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        a, b, c, d = self.real, self.imag, other.real, other.imag
        return FractionComplex(a * c - b * d, a * d + b * c)

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        if other.is_zero():
            raise DivisionByZeroError("complex division by zero")
        a, b, c, d = self.real, self.imag, other.real, other.imag
        denom = c * c + d * d
        return FractionComplex((a * c + b * d) / denom, (b * c - a * d) / denom)

    def __rtruediv__(self, other: Any) -> "FractionComplex":
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return other / self

    def __neg__(self) -> "FractionComplex":
        return FractionComplex(-self.real, -self.imag)

    def __eq__(self, other: Any) -> bool:
        other = _coerce(other)
        if other is NotImplemented:
            return NotImplemented
        return self.real == other.real and self.imag == other.imag

    def __hash__(self) -> int:
        return hash((self.real, self.imag))

    def __complex__(self) -> complex:
        return complex(float(self.real), float(self.imag))

    def __str__(self) -> str:
        sign = "-" if self.imag < 0 else "+"
        return f"{self.real}{sign}{abs(self.imag)}i"


def _coerce(value: Any) -> Union[FractionComplex, Any]:
    try:
        return FractionComplex.from_value(value)
    except TypeMismatchError:
        return NotImplemented
