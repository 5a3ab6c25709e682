"""Element kinds: per-type behavior behind a single interface.

Every ``NumericType`` has exactly one ``ElementKind`` registered. The
generic matrix layer looks the kind up by tag and delegates; it never
branches on the tag itself. Adding an element type means implementing one
kind and registering it.

Kinds work at two levels:

- element level (``zero``, ``copy``, ``add``, ``format``, ...), used for
  single values and by heap-backed kinds inside their loops;
- buffer level (``elementwise``, ``matmul``, ``copy_buffer``,
  ``fill_zero``, ``release``), which receives whole matrices so fixed-width
  kinds can vectorize with numpy.
"""

from __future__ import annotations

import numbers
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Any, Dict, Optional

import numpy as np
import sympy

from ..core.bignum import FractionComplex, to_bigint, to_fraction, trunc_div
from ..core.error import (
    DivisionByZeroError,
    InvalidArgumentError,
    NullPointerError,
    NumericOverflowError,
    TypeMismatchError,
)
from ..core.types import NumericType
from ._ownership import release, transfer

__all__ = [
    'ElementKind',
    'NumericKind',
    'HeapKind',
    'BigIntKind',
    'FractionKind',
    'ComplexKind',
    'ExpressionKind',
    'MatrixKind',
    'get_kind',
    'register_kind',
]

BINARY_OPS = ("add", "sub", "multew", "divew")


def _matrix_api():
    """Late import of the matrix layer (it imports this module)."""
    from . import _matrix, _ops
    return _matrix, _ops


def _is_bool(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))


# =============================================================================
# Base Interface
# =============================================================================

class ElementKind(ABC):
    """
    Behavior of one element type.

    Attributes:
        ntype: The NumericType this kind implements.
    """

    ntype: NumericType

    @property
    def itemsize(self) -> int:
        return self.ntype.itemsize

    @property
    def dtype(self) -> np.dtype:
        return self.ntype.np_dtype

    # -------------------------------------------------------------------------
    # Element Level
    # -------------------------------------------------------------------------

    @abstractmethod
    def zero(self, allocator: Any) -> Any:
        """Construct the zero value."""
        ...

    def destroy(self, value: Any) -> None:
        """Release whatever ``value`` owns. Values without resources ignore it."""

    def copy(self, value: Any, allocator: Any) -> Any:
        """Return an independent copy of ``value``."""
        return value

    @abstractmethod
    def coerce(self, value: Any, strict: bool = True) -> Any:
        """
        Convert an incoming value to the stored representation.

        Args:
            value: Value handed to ``set``.
            strict: Reject values whose dynamic type does not belong to
                this kind instead of converting them.

        Raises:
            TypeMismatchError: If the value cannot be stored.
            NumericOverflowError: If an integer does not fit.
        """
        ...

    @abstractmethod
    def add(self, a: Any, b: Any, allocator: Any) -> Any: ...

    @abstractmethod
    def sub(self, a: Any, b: Any, allocator: Any) -> Any: ...

    @abstractmethod
    def mult(self, a: Any, b: Any, allocator: Any) -> Any: ...

    def multew(self, a: Any, b: Any, allocator: Any) -> Any:
        """Element-wise product; the scalar product for every kind but MATRIX."""
        return self.mult(a, b, allocator)

    @abstractmethod
    def divew(self, a: Any, b: Any, allocator: Any) -> Any: ...

    @abstractmethod
    def format(self, value: Any, precision: int = 6) -> str: ...

    def equal(self, a: Any, b: Any) -> bool:
        return bool(a == b)

    def is_zero(self, value: Any) -> bool:
        return bool(value == 0)

    def adopt(self, value: Any, owner: Any) -> None:
        """Take ownership of ``value`` on behalf of ``owner``."""

    # -------------------------------------------------------------------------
    # Buffer Level
    # -------------------------------------------------------------------------

    @abstractmethod
    def elementwise(self, op: str, left: Any, right: Any, out: Any, allocator: Any) -> None:
        """
        Compute ``out = op(left, right)`` element by element.

        A single-element operand is broadcast against the other one. ``out``
        may be ``left`` or ``right``.
        """
        ...

    @abstractmethod
    def matmul(self, left: Any, right: Any, out: Any, allocator: Any) -> None:
        """Compute the matrix product of ``left`` and ``right`` into ``out``."""
        ...

    @abstractmethod
    def copy_buffer(self, values: np.ndarray, out: Any, allocator: Any) -> None:
        """Store copies of ``values`` (flat, ``out.size`` long) into ``out``."""
        ...

    @abstractmethod
    def fill_zero(self, out: Any, allocator: Any) -> None:
        """Zero-construct every slot of ``out``."""
        ...

    def release(self, out: Any) -> None:
        """Destroy every element of ``out`` in index order."""

    def equals(self, left: Any, right: Any) -> bool:
        """Element-wise equality of two matrices of this kind and equal shape."""
        return all(self.equal(a, b) for a, b in zip(left.data, right.data))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.ntype.name})"


# =============================================================================
# Fixed-Width Numbers (numpy)
# =============================================================================

_UFUNCS = {
    "add": np.add,
    "sub": np.subtract,
    "mult": np.multiply,
    "multew": np.multiply,
}


class NumericKind(ElementKind):
    """
    Fixed-width integers, floats and complex floats.

    Integers wrap around on overflow and ``divew`` truncates toward zero.
    Floats follow IEEE 754, so division by zero yields inf or nan.
    """

    def __init__(self, ntype: NumericType):
        if ntype.is_heap:
            raise InvalidArgumentError(f"{ntype.name} is not a fixed-width type")
        self.ntype = ntype

    def zero(self, allocator: Any) -> Any:
        return self.dtype.type(0)

    def coerce(self, value: Any, strict: bool = True) -> Any:
        if isinstance(value, (int, np.integer)) and not _is_bool(value):
            if self.ntype.is_integer:
                info = np.iinfo(self.dtype)
                if not info.min <= int(value) <= info.max:
                    raise NumericOverflowError(
                        f"{int(value)} does not fit in {self.ntype.label} "
                        f"[{info.min}, {info.max}]"
                    )
            try:
                return self.dtype.type(value)
            except OverflowError as e:
                raise NumericOverflowError(
                    f"integer does not fit in {self.ntype.label}: {e}"
                ) from e
        if strict:
            if _is_bool(value) or not self._accepts(value):
                raise TypeMismatchError(
                    f"Cannot store {type(value).__name__} in a {self.ntype.label} matrix"
                )
            return self.dtype.type(value)
        try:
            return np.asarray(value).astype(self.dtype)[()]
        except (TypeError, ValueError, OverflowError) as e:
            raise TypeMismatchError(
                f"Cannot convert {type(value).__name__} to {self.ntype.label}: {e}"
            ) from e

    def _accepts(self, value: Any) -> bool:
        if self.ntype.is_integer:
            return False
        if isinstance(value, (float, np.floating)):
            return True
        return self.ntype.is_complex and isinstance(value, (complex, np.complexfloating))

    def _apply(self, op: str, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        with np.errstate(all="ignore"):
            if op != "divew":
                return _UFUNCS[op](a, b).astype(self.dtype, copy=False)
            if self.ntype.is_integer:
                if np.any(b == 0):
                    raise DivisionByZeroError(f"{self.ntype.label} division by zero")
                return ((a - np.fmod(a, b)) // b).astype(self.dtype, copy=False)
            return np.true_divide(a, b).astype(self.dtype, copy=False)

    def _scalar(self, op: str, a: Any, b: Any) -> Any:
        a = np.asarray([a], dtype=self.dtype)
        b = np.asarray([b], dtype=self.dtype)
        return self._apply(op, a, b)[0]

    def add(self, a: Any, b: Any, allocator: Any) -> Any:
        return self._scalar("add", a, b)

    def sub(self, a: Any, b: Any, allocator: Any) -> Any:
        return self._scalar("sub", a, b)

    def mult(self, a: Any, b: Any, allocator: Any) -> Any:
        return self._scalar("mult", a, b)

    def divew(self, a: Any, b: Any, allocator: Any) -> Any:
        return self._scalar("divew", a, b)

    def format(self, value: Any, precision: int = 6) -> str:
        if self.ntype.is_integer:
            return str(int(value))
        if self.ntype.is_float:
            return f"{float(value):.{precision}f}"
        re, im = float(value.real), float(value.imag)
        sign = "-" if im < 0 else "+"
        return f"{re:.{precision}f}{sign}{abs(im):.{precision}f}i"

    def elementwise(self, op: str, left: Any, right: Any, out: Any, allocator: Any) -> None:
        out.data[...] = self._apply(op, left.data, right.data)

    def matmul(self, left: Any, right: Any, out: Any, allocator: Any) -> None:
        a = left.data.reshape(left.rows, left.columns)
        b = right.data.reshape(right.rows, right.columns)
        with np.errstate(all="ignore"):
            out.data[...] = np.matmul(a, b).astype(self.dtype, copy=False).ravel()

    def copy_buffer(self, values: np.ndarray, out: Any, allocator: Any) -> None:
        out.data[...] = values

    def fill_zero(self, out: Any, allocator: Any) -> None:
        out.data.fill(0)

    def equals(self, left: Any, right: Any) -> bool:
        return bool(np.array_equal(left.data, right.data))


# =============================================================================
# Heap-Backed Values
# =============================================================================

class HeapKind(ElementKind):
    """
    Base for kinds whose elements are Python objects in an object buffer.

    Slots start out as ``None`` after ``init`` and hold the zero value
    after ``init0``. Arithmetic on an unconstructed slot raises
    ``NullPointerError``. Results are stored with set semantics: the
    previous value of the slot is destroyed once the new one is in place.
    """

    def store(self, out: Any, index: int, value: Any) -> None:
        old = out.data[index]
        if value is old:
            return
        if value is not None:
            self.adopt(value, out)
        out.data[index] = value
        if old is not None:
            self.destroy(old)

    @staticmethod
    def _require(value: Any, index: int) -> Any:
        if value is None:
            raise NullPointerError(f"element {index} is not constructed (use init0)")
        return value

    def elementwise(self, op: str, left: Any, right: Any, out: Any, allocator: Any) -> None:
        # All results are computed before the first store so a failure
        # leaves ``out`` untouched, as the numpy path does.
        fn = getattr(self, op)
        lhs, rhs = left.data, right.data
        results = []
        try:
            for i in range(out.size):
                li = i if lhs.size > 1 else 0
                ri = i if rhs.size > 1 else 0
                results.append(
                    fn(self._require(lhs[li], li), self._require(rhs[ri], ri), allocator)
                )
        except Exception:
            for value in results:
                self.destroy(value)
            raise
        for i, value in enumerate(results):
            self.store(out, i, value)

    def _dot(self, lhs: Any, rhs: Any, r: int, c: int, k: int, n: int, allocator: Any) -> Any:
        acc = prod = None
        try:
            for t in range(k):
                a = self._require(lhs[r * k + t], r * k + t)
                b = self._require(rhs[t * n + c], t * n + c)
                prod = self.mult(a, b, allocator)
                if acc is None:
                    acc, prod = prod, None
                    continue
                total = self.add(acc, prod, allocator)
                self.destroy(acc)
                self.destroy(prod)
                acc, prod = total, None
        except Exception:
            for value in (acc, prod):
                if value is not None:
                    self.destroy(value)
            raise
        return acc

    def matmul(self, left: Any, right: Any, out: Any, allocator: Any) -> None:
        m, k, n = left.rows, left.columns, right.columns
        lhs, rhs = left.data, right.data
        for r in range(m):
            for c in range(n):
                self.store(out, r * n + c, self._dot(lhs, rhs, r, c, k, n, allocator))

    def copy_buffer(self, values: np.ndarray, out: Any, allocator: Any) -> None:
        for i, value in enumerate(values):
            self.store(out, i, None if value is None else self.copy(value, allocator))

    def fill_zero(self, out: Any, allocator: Any) -> None:
        data = out.data
        built = 0
        try:
            for i in range(data.size):
                value = self.zero(allocator)
                self.adopt(value, out)
                data[i] = value
                built += 1
        except Exception:
            for i in range(built):
                self.destroy(data[i])
                data[i] = None
            raise

    def release(self, out: Any) -> None:
        data = out.data
        for i in range(data.size):
            value = data[i]
            if value is not None:
                data[i] = None
                self.destroy(value)

    def equal(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return bool(a == b)


class BigIntKind(HeapKind):
    """Arbitrary precision integers (Python ``int``)."""

    ntype = NumericType.BIGINT

    def zero(self, allocator: Any) -> int:
        return 0

    def coerce(self, value: Any, strict: bool = True) -> int:
        if strict:
            return to_bigint(value)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise TypeMismatchError(f"Cannot convert {type(value).__name__} to bigint") from e

    def add(self, a, b, allocator):
        return a + b

    def sub(self, a, b, allocator):
        return a - b

    def mult(self, a, b, allocator):
        return a * b

    def divew(self, a, b, allocator):
        return trunc_div(a, b)

    def format(self, value: Any, precision: int = 6) -> str:
        return "(null)" if value is None else str(value)


class FractionKind(HeapKind):
    """Exact rationals (``fractions.Fraction``); zero is 0/1."""

    ntype = NumericType.FRACTION

    def zero(self, allocator: Any) -> Fraction:
        return Fraction(0, 1)

    def coerce(self, value: Any, strict: bool = True) -> Fraction:
        if strict and not isinstance(value, (numbers.Rational, np.integer)):
            raise TypeMismatchError(f"Cannot store {type(value).__name__} in a fraction matrix")
        return to_fraction(value)

    def add(self, a, b, allocator):
        return a + b

    def sub(self, a, b, allocator):
        return a - b

    def mult(self, a, b, allocator):
        return a * b

    def divew(self, a, b, allocator):
        if b == 0:
            raise DivisionByZeroError("fraction division by zero")
        return a / b

    def format(self, value: Any, precision: int = 6) -> str:
        if value is None:
            return "(null)"
        return f"{value.numerator}/{value.denominator}"


class ComplexKind(HeapKind):
    """Exact complex numbers with fraction parts."""

    ntype = NumericType.COMPLEX

    def zero(self, allocator: Any) -> FractionComplex:
        return FractionComplex()

    def coerce(self, value: Any, strict: bool = True) -> FractionComplex:
        if strict and not isinstance(value, (FractionComplex, numbers.Rational, np.integer)):
            raise TypeMismatchError(f"Cannot store {type(value).__name__} in a complex matrix")
        return FractionComplex.from_value(value)

    def add(self, a, b, allocator):
        return a + b

    def sub(self, a, b, allocator):
        return a - b

    def mult(self, a, b, allocator):
        return a * b

    def divew(self, a, b, allocator):
        return a / b

    def format(self, value: Any, precision: int = 6) -> str:
        return "(null)" if value is None else str(value)

    def is_zero(self, value: Any) -> bool:
        return value.is_zero()


class ExpressionKind(HeapKind):
    """Symbolic expressions (sympy)."""

    ntype = NumericType.EXPRESSION

    def zero(self, allocator: Any) -> sympy.Expr:
        return sympy.Integer(0)

    def coerce(self, value: Any, strict: bool = True) -> sympy.Basic:
        if isinstance(value, sympy.Basic):
            return value
        if strict and (_is_bool(value) or not isinstance(value, (numbers.Number, np.number, str))):
            raise TypeMismatchError(f"Cannot store {type(value).__name__} in an expression matrix")
        try:
            return sympy.sympify(value)
        except sympy.SympifyError as e:
            raise TypeMismatchError(f"Cannot parse expression {value!r}") from e

    def add(self, a, b, allocator):
        return a + b

    def sub(self, a, b, allocator):
        return a - b

    def mult(self, a, b, allocator):
        return a * b

    def divew(self, a, b, allocator):
        if b.is_zero:
            raise DivisionByZeroError("expression division by zero")
        return a / b

    def format(self, value: Any, precision: int = 6) -> str:
        return "(null)" if value is None else str(value)

    def equal(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        return a == b or sympy.simplify(a - b) == 0

    def is_zero(self, value: Any) -> bool:
        return sympy.simplify(value) == 0


class MatrixKind(HeapKind):
    """
    Nested matrices.

    The zero value is an empty ``Matrix``, which acts as the additive zero
    of whatever shape the other operand has. Element operations are the
    matrix operations themselves: ``add`` of two elements is ``add`` of two
    matrices, ``mult`` is the matrix product and ``multew``/``divew`` are the
    element-wise ones. Results are allocated with the allocator of the outer
    operation; destroying an element uses the element's own allocator.
    """

    ntype = NumericType.MATRIX

    def zero(self, allocator: Any) -> Any:
        matrix, _ = _matrix_api()
        return matrix.Matrix()

    def destroy(self, value: Any) -> None:
        value._dispose()
        release(value)

    def copy(self, value: Any, allocator: Any) -> Any:
        matrix, _ = _matrix_api()
        if not value.is_alive:
            return matrix.Matrix()
        return value.copy(allocator or value.allocator)

    def coerce(self, value: Any, strict: bool = True) -> Any:
        matrix, _ = _matrix_api()
        if not isinstance(value, matrix.Matrix):
            raise TypeMismatchError(f"Cannot store {type(value).__name__} in a matrix of matrices")
        return value

    def adopt(self, value: Any, owner: Any) -> None:
        transfer(value, owner)

    @staticmethod
    def _alloc(allocator: Any, *operands: Any) -> Any:
        if allocator is not None:
            return allocator
        for operand in operands:
            if operand.is_alive:
                return operand.allocator
        return None

    def add(self, a, b, allocator):
        _, ops = _matrix_api()
        if not a.is_alive:
            return self.copy(b, allocator)
        if not b.is_alive:
            return self.copy(a, allocator)
        return ops.add(self._alloc(allocator, a), a, b)

    def sub(self, a, b, allocator):
        matrix, ops = _matrix_api()
        if not b.is_alive:
            return self.copy(a, allocator)
        alloc = self._alloc(allocator, a, b)
        if not a.is_alive:
            zero = matrix.init0(alloc, b.rows, b.columns, b.type)
            try:
                return ops.sub(alloc, zero, b)
            finally:
                matrix.destroy(zero)
        return ops.sub(alloc, a, b)

    def mult(self, a, b, allocator):
        matrix, ops = _matrix_api()
        if not a.is_alive or not b.is_alive:
            return matrix.Matrix()
        return ops.mult(self._alloc(allocator, a), a, b)

    def multew(self, a, b, allocator):
        matrix, ops = _matrix_api()
        if not a.is_alive or not b.is_alive:
            return matrix.Matrix()
        return ops.multew(self._alloc(allocator, a), a, b)

    def divew(self, a, b, allocator):
        matrix, ops = _matrix_api()
        if not b.is_alive:
            raise DivisionByZeroError("division by an empty (zero) matrix")
        if not a.is_alive:
            return matrix.Matrix()
        return ops.divew(self._alloc(allocator, a), a, b)

    def format(self, value: Any, precision: int = 6) -> str:
        if value is None:
            return "(null)"
        if not value.is_alive:
            return "[]"
        kind = get_kind(value.type)
        rows = []
        for r in range(value.rows):
            row = value.data[r * value.columns:(r + 1) * value.columns]
            rows.append("[" + ", ".join(kind.format(v, precision) for v in row) + "]")
        return "[" + ", ".join(rows) + "]"

    def is_zero(self, value: Any) -> bool:
        if not value.is_alive:
            return True
        kind = get_kind(value.type)
        return all(v is not None and kind.is_zero(v) for v in value.data)

    def equal(self, a: Any, b: Any) -> bool:
        if a is None or b is None:
            return a is b
        if a.is_alive != b.is_alive:
            return self.is_zero(a) and self.is_zero(b)
        return a == b


# =============================================================================
# Registry
# =============================================================================

_KINDS: Dict[NumericType, ElementKind] = {}


def register_kind(kind: ElementKind) -> Optional[ElementKind]:
    """
    Register ``kind`` for its ``ntype``.

    Returns:
        The kind previously registered for that type, if any.
    """
    previous = _KINDS.get(kind.ntype)
    _KINDS[kind.ntype] = kind
    return previous


def get_kind(ntype: Any) -> ElementKind:
    """Look up the element kind of a NumericType."""
    try:
        return _KINDS[NumericType(ntype)]
    except (KeyError, ValueError):
        raise TypeMismatchError(f"No element kind registered for type {ntype!r}")


for _ntype in NumericType:
    if not _ntype.is_heap:
        register_kind(NumericKind(_ntype))
for _kind in (BigIntKind(), FractionKind(), ComplexKind(), ExpressionKind(), MatrixKind()):
    register_kind(_kind)
del _ntype, _kind
