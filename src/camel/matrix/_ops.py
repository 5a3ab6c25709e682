"""Matrix operations.

Arithmetic, transpose, select and printing for the generic ``Matrix``.
Every operation validates its operands, prepares the output matrix and then
hands the numeric work to the element kind of the operands' type.

Output convention for the binary operations and ``transpose``/``select``:

- ``allocator`` given: ``out`` (if any) is destroyed and re-initialized
  with it, otherwise a new matrix is created.
- ``allocator`` None: ``out`` must already be a live matrix of the result
  shape and type; its elements are replaced.
- ``out`` must not be one of the operands (use the in-place variants).
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from .._config import config
from ..core.error import (
    ExpectedVectorError,
    IndexOutOfBoundsError,
    InvalidArgumentError,
    InvalidSizeError,
    NullPointerError,
    ShapeMismatchError,
    TypeMismatchError,
)
from ..core.memory import Allocator
from ..core.types import NumericType
from ._kinds import get_kind
from ._matrix import Matrix, destroy, init
from ._ownership import ensure_alive

__all__ = [
    # Binary
    'add',
    'sub',
    'mult',
    'multew',
    'divew',
    # In-place
    'add_inplace',
    'sub_inplace',
    'multew_inplace',
    'divew_inplace',
    # Structure
    'transpose',
    'select',
    # Display
    'format_matrix',
    'print_matrix',
]

logger = logging.getLogger("camel.matrix")

IndexVector = Union[Matrix, Sequence[int], np.ndarray, None]


# =============================================================================
# Helpers
# =============================================================================

def _check_operands(name: str, left: Matrix, right: Matrix) -> None:
    ensure_alive(left, name, "left")
    ensure_alive(right, name, "right")
    if left.type != right.type:
        raise TypeMismatchError(
            f"{name}: {left.type.label} and {right.type.label} operands"
        )


def _elementwise_shape(name: str, left: Matrix, right: Matrix) -> Tuple[int, int]:
    if left.shape == right.shape:
        return left.shape
    if config.broadcast_scalars and (left.is_scalar or right.is_scalar):
        logger.debug("%s: broadcasting 1x1 operand", name)
        return right.shape if left.is_scalar else left.shape
    raise ShapeMismatchError(
        f"{name}: shapes {left.rows}x{left.columns} and {right.rows}x{right.columns} differ"
    )


def _prepare_out(
    name: str,
    allocator: Optional[Allocator],
    shape: Tuple[int, int],
    ntype: NumericType,
    out: Optional[Matrix],
    operands: Tuple[Any, ...],
) -> Matrix:
    if out is not None and any(out is operand for operand in operands):
        raise InvalidArgumentError(f"{name}: out must not alias an operand")
    if allocator is not None:
        return init(allocator, shape[0], shape[1], ntype, out)
    if out is None:
        raise NullPointerError(f"{name}: neither an allocator nor an output matrix was given")
    ensure_alive(out, name, "out")
    if out.type != ntype:
        raise TypeMismatchError(f"{name}: out is {out.type.label}, result is {ntype.label}")
    if out.shape != shape:
        raise InvalidSizeError(
            f"{name}: out is {out.rows}x{out.columns}, result is {shape[0]}x{shape[1]}"
        )
    return out


def _run(allocator: Optional[Allocator], out: Matrix, compute) -> Matrix:
    """Run ``compute``; a freshly initialized ``out`` is destroyed if it fails."""
    try:
        compute()
    except Exception:
        if allocator is not None:
            destroy(out)
        raise
    return out


def _binary_elementwise(
    op: str,
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix],
) -> Matrix:
    _check_operands(op, left, right)
    shape = _elementwise_shape(op, left, right)
    out = _prepare_out(op, allocator, shape, left.type, out, (left, right))
    kind = get_kind(left.type)
    alloc = allocator or out.allocator
    return _run(allocator, out, lambda: kind.elementwise(op, left, right, out, alloc))


def _inplace(op: str, right: Matrix, out: Matrix) -> Matrix:
    name = f"{op}_inplace"
    ensure_alive(out, name, "out")
    ensure_alive(right, name, "right")
    if right.type != out.type:
        raise TypeMismatchError(f"{name}: {out.type.label} and {right.type.label} operands")
    if right.shape != out.shape and not (config.broadcast_scalars and right.is_scalar):
        raise ShapeMismatchError(
            f"{name}: shapes {out.rows}x{out.columns} and {right.rows}x{right.columns} differ"
        )
    get_kind(out.type).elementwise(op, out, right, out, out.allocator)
    return out


# =============================================================================
# Binary Operations
# =============================================================================

def add(
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Element-wise sum ``left + right``.

    Args:
        allocator: Allocator for the result, or None to write into ``out``.
        left: Left operand.
        right: Right operand of the same type and shape.
        out: Output matrix.

    Returns:
        The result matrix.

    Raises:
        NullPointerError: If an operand is missing or destroyed.
        TypeMismatchError: If the operand types differ.
        ShapeMismatchError: If the shapes differ.
    """
    return _binary_elementwise("add", allocator, left, right, out)


def sub(
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """Element-wise difference ``left - right``. See ``add``."""
    return _binary_elementwise("sub", allocator, left, right, out)


def multew(
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """Element-wise (Hadamard) product. See ``add``."""
    return _binary_elementwise("multew", allocator, left, right, out)


def divew(
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Element-wise quotient ``left / right``.

    Fixed-width and big integers truncate toward zero. Exact types
    (integers, fractions, exact complex, expressions) raise
    ``DivisionByZeroError`` on a zero divisor; floats follow IEEE 754.
    """
    return _binary_elementwise("divew", allocator, left, right, out)


def mult(
    allocator: Optional[Allocator],
    left: Matrix,
    right: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Matrix product of ``left`` (m x k) and ``right`` (k x n).

    Returns:
        An m x n matrix.

    Raises:
        ShapeMismatchError: If ``left.columns != right.rows``.

    Example:
        >>> a = Matrix.from_rows(alloc, [[1, 2], [3, 4]], "f64")
        >>> b = Matrix.from_rows(alloc, [[5, 6], [7, 8]], "f64")
        >>> print(mult(alloc, a, b))
        	19.000000 22.000000
        	43.000000 50.000000
    """
    _check_operands("mult", left, right)
    if left.columns != right.rows:
        if config.broadcast_scalars and (left.is_scalar or right.is_scalar):
            return _binary_elementwise("multew", allocator, left, right, out)
        raise ShapeMismatchError(
            f"mult: {left.rows}x{left.columns} @ {right.rows}x{right.columns}"
        )
    out = _prepare_out("mult", allocator, (left.rows, right.columns), left.type, out, (left, right))
    kind = get_kind(left.type)
    alloc = allocator or out.allocator
    return _run(allocator, out, lambda: kind.matmul(left, right, out, alloc))


# =============================================================================
# In-Place Operations
# =============================================================================

def add_inplace(right: Matrix, out: Matrix) -> Matrix:
    """
    ``out += right``.

    ``out`` fixes the shape; ``right`` may be ``out`` itself. For heap-backed
    types each element of ``out`` is replaced by a fresh value and the old
    one is destroyed.
    """
    return _inplace("add", right, out)


def sub_inplace(right: Matrix, out: Matrix) -> Matrix:
    """``out -= right``."""
    return _inplace("sub", right, out)


def multew_inplace(right: Matrix, out: Matrix) -> Matrix:
    """``out *= right`` element-wise."""
    return _inplace("multew", right, out)


def divew_inplace(right: Matrix, out: Matrix) -> Matrix:
    """``out /= right`` element-wise."""
    return _inplace("divew", right, out)


# =============================================================================
# Structure
# =============================================================================

def transpose(
    allocator: Optional[Allocator],
    a: Matrix,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Transpose ``a`` into a ``columns x rows`` matrix.

    Heap-backed elements are deep-copied; ``out`` never shares elements
    with ``a``.
    """
    ensure_alive(a, "transpose", "a")
    out = _prepare_out("transpose", allocator, (a.columns, a.rows), a.type, out, (a,))
    values = a.data.reshape(a.rows, a.columns).T.ravel()
    kind = get_kind(a.type)
    alloc = allocator or out.allocator
    return _run(allocator, out, lambda: kind.copy_buffer(values, out, alloc))


def _index_vector(name: str, vector: IndexVector, limit: int) -> np.ndarray:
    if vector is None:
        return np.arange(limit, dtype=np.intp)
    if isinstance(vector, Matrix):
        ensure_alive(vector, "select", name)
        if not vector.is_vector:
            raise ExpectedVectorError(
                f"select: {name} is {vector.rows}x{vector.columns}, expected 1xk or kx1"
            )
        if not (vector.type.is_integer or vector.type is NumericType.BIGINT):
            raise TypeMismatchError(f"select: {name} has type {vector.type.label}, expected integers")
        if any(v is None for v in vector.data):
            raise NullPointerError(f"select: {name} has unconstructed elements (use init0)")
        values = [int(v) for v in vector.data]
    else:
        array = np.asarray(vector)
        if array.ndim != 1:
            raise ExpectedVectorError(f"select: {name} must be one-dimensional")
        if array.size and not np.issubdtype(array.dtype, np.integer):
            raise TypeMismatchError(f"select: {name} has dtype {array.dtype}, expected integers")
        values = [int(v) for v in array]
    for v in values:
        if not 0 <= v < limit:
            raise IndexOutOfBoundsError(f"select: {name} index {v} outside [0, {limit})")
    return np.asarray(values, dtype=np.intp)


def select(
    allocator: Optional[Allocator],
    a: Matrix,
    p: IndexVector = None,
    q: IndexVector = None,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Gather rows ``p`` and columns ``q`` of ``a``.

    The result has ``len(p)`` rows and ``len(q)`` columns and element
    ``[i, j] = a[p[i], q[j]]``. Indices may repeat.

    Args:
        allocator: Allocator for the result, or None to write into ``out``.
        a: Source matrix.
        p: Row indices as a 1xk/kx1 integer matrix or an integer sequence;
            None selects every row in order.
        q: Column indices, same forms as ``p``.
        out: Output matrix.

    Raises:
        ExpectedVectorError: If ``p`` or ``q`` is not a vector.
        TypeMismatchError: If ``p`` or ``q`` does not hold integers.
        IndexOutOfBoundsError: If an index is negative or too large.

    Example:
        >>> s = select(alloc, a, p=[2, 0], q=[1])
        >>> s.shape
        (2, 1)
    """
    ensure_alive(a, "select", "a")
    rows = _index_vector("p", p, a.rows)
    cols = _index_vector("q", q, a.columns)
    out = _prepare_out("select", allocator, (rows.size, cols.size), a.type, out, (a, p, q))
    values = a.data.reshape(a.rows, a.columns)[np.ix_(rows, cols)].ravel()
    kind = get_kind(a.type)
    alloc = allocator or out.allocator
    return _run(allocator, out, lambda: kind.copy_buffer(values, out, alloc))


# =============================================================================
# Display
# =============================================================================

def _render(matrix: Matrix, precision: Optional[int]) -> list:
    ensure_alive(matrix, "print")
    if precision is None:
        precision = config.print_precision
    kind = get_kind(matrix.type)
    return [kind.format(v, precision) for v in matrix.data]


def _layout(entries: list, columns: int, width: int) -> str:
    lines = []
    for start in range(0, len(entries), columns):
        row = entries[start:start + columns]
        lines.append("\t" + " ".join(e.rjust(width) for e in row))
    return "\n".join(lines)


def format_matrix(matrix: Matrix, precision: Optional[int] = None) -> str:
    """
    Render ``matrix`` as text.

    One line per row, each starting with a tab; entries are right-aligned
    to the widest entry.

    Args:
        matrix: Matrix to render.
        precision: Digits after the decimal point for floats; defaults to
            the configured ``print_precision``.
    """
    entries = _render(matrix, precision)
    width = max(len(e) for e in entries)
    return _layout(entries, matrix.columns, width)


def print_matrix(
    allocator: Optional[Allocator],
    matrix: Matrix,
    file: Any = None,
    precision: Optional[int] = None,
) -> None:
    """
    Print ``matrix`` to ``file`` (default ``sys.stdout``).

    The entry widths are measured in a scratch buffer borrowed from
    ``allocator`` (the matrix's own allocator when None) and released
    before returning.
    """
    entries = _render(matrix, precision)
    alloc = allocator or matrix.allocator
    widths = alloc.malloc(len(entries), np.int64)
    try:
        for i, entry in enumerate(entries):
            widths[i] = len(entry)
        text = _layout(entries, matrix.columns, int(widths.max()))
    finally:
        alloc.free(widths)
    stream = sys.stdout if file is None else file
    stream.write(text + "\n")
