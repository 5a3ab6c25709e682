"""Generic Matrix: lifecycle and element access.

A ``Matrix`` is a runtime-typed, row-major container. Its buffer comes from
an injected allocator and is released through the same allocator. The
element type tag is fixed from ``init`` until ``destroy``.

Lifecycle:
    >>> alloc = DefaultAllocator()
    >>> m = init(alloc, 2, 2, NumericType.F64)
    >>> set(3.0, 0, 0, m)
    >>> float(get(0, 0, m))
    3.0
    >>> destroy(m)
"""

from __future__ import annotations

import logging
import operator
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from .._config import IndexPolicy, config
from ..core.error import (
    AllocationError,
    IndexOutOfBoundsError,
    InvalidArgumentError,
    InvalidSizeError,
    NullPointerError,
    ShapeMismatchError,
    TypeMismatchError,
    UnregisteredBufferError,
    ExpectedVectorError,
)
from ..core.memory import Allocator
from ..core.types import NumericType
from ._kinds import get_kind
from ._ownership import Ownership, ensure_alive

__all__ = [
    'Matrix',
    'init',
    'init0',
    'destroy',
    'get',
    'set',
    'idx',
]

logger = logging.getLogger("camel.matrix")

TypeLike = Union[NumericType, str, int]


def _as_type(ntype: TypeLike) -> NumericType:
    if isinstance(ntype, NumericType):
        return ntype
    if isinstance(ntype, str):
        return NumericType.from_name(ntype)
    try:
        return NumericType(ntype)
    except (TypeError, ValueError):
        raise TypeMismatchError(f"Not a numeric type: {ntype!r}")


def _as_index(value: Any, name: str) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise IndexOutOfBoundsError(f"{name} index must be an integer, got {type(value).__name__}")


# =============================================================================
# Matrix
# =============================================================================

class Matrix:
    """
    Runtime-typed matrix with an injected allocator.

    ``Matrix()`` is the empty state (no buffer, no allocator). Use ``init``
    or ``init0`` to give it storage. Vectors are 1xn or nx1 matrices and
    scalars are 1x1 matrices; there is no separate vector type.

    Attributes:
        type: NumericType tag (None while empty).
        rows: Number of rows.
        columns: Number of columns.
        data: Flat row-major numpy buffer of ``rows*columns`` slots.
        allocator: Allocator that owns ``data`` (not owned by the matrix).
        ownership: OWNED, or MOVED once stored into another matrix.

    Example:
        >>> with init0(alloc, 2, 2, "fraction") as m:
        ...     m[0, 1] = Fraction(1, 3)
        ...     print(m[0, 1])
        1/3
    """

    def __init__(self):
        self.type: Optional[NumericType] = None
        self.rows = 0
        self.columns = 0
        self.data: Optional[np.ndarray] = None
        self.allocator: Optional[Allocator] = None
        self.ownership = Ownership.OWNED
        self._owner: Optional[Matrix] = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_rows(
        cls,
        allocator: Allocator,
        rows: Sequence[Sequence[Any]],
        ntype: TypeLike,
    ) -> "Matrix":
        """
        Build a matrix from nested row sequences.

        Args:
            allocator: Allocator for the buffer.
            rows: Sequence of equally long row sequences.
            ntype: Element type.

        Returns:
            New matrix; heap values are moved in with ``set`` semantics.

        Raises:
            ShapeMismatchError: If the rows are ragged.
        """
        rows = [list(row) for row in rows]
        n_rows = len(rows)
        n_cols = len(rows[0]) if rows else 0
        if any(len(row) != n_cols for row in rows):
            raise ShapeMismatchError("from_rows: rows have different lengths")
        out = init(allocator, n_rows, n_cols, ntype)
        try:
            for r, row in enumerate(rows):
                for c, value in enumerate(row):
                    set(value, r, c, out)
        except Exception:
            destroy(out)
            raise
        return out

    def copy(self, allocator: Optional[Allocator] = None) -> "Matrix":
        """Deep copy, allocated with ``allocator`` (default: this matrix's)."""
        ensure_alive(self, "copy")
        out = init(allocator or self.allocator, self.rows, self.columns, self.type)
        try:
            get_kind(self.type).copy_buffer(self.data, out, out.allocator)
        except Exception:
            destroy(out)
            raise
        return out

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.columns)

    @property
    def size(self) -> int:
        return self.rows * self.columns

    @property
    def is_alive(self) -> bool:
        """Whether the matrix currently holds a buffer."""
        return self.data is not None

    @property
    def is_vector(self) -> bool:
        return self.is_alive and (self.rows == 1 or self.columns == 1)

    @property
    def is_scalar(self) -> bool:
        return self.is_alive and self.rows == 1 and self.columns == 1

    @property
    def length(self) -> int:
        """Number of elements of a vector."""
        if not self.is_vector:
            raise ExpectedVectorError(f"{self.rows}x{self.columns} matrix is not a vector")
        return self.size

    @property
    def owner(self) -> Optional["Matrix"]:
        """Matrix this one was moved into, if any."""
        return self._owner

    # -------------------------------------------------------------------------
    # Element Access
    # -------------------------------------------------------------------------

    def get(self, row: int, column: int) -> Any:
        return get(row, column, self)

    def set(self, value: Any, row: int, column: int) -> None:
        set(value, row, column, self)

    def idx(self, row: int, column: int, policy: Optional[IndexPolicy] = None) -> int:
        return idx(row, column, self, policy)

    def _key(self, key: Any) -> Tuple[int, int]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise InvalidArgumentError("Matrix indices must be a (row, column) pair")
        return key

    def __getitem__(self, key: Tuple[int, int]) -> Any:
        row, column = self._key(key)
        return get(row, column, self)

    def __setitem__(self, key: Tuple[int, int], value: Any) -> None:
        row, column = self._key(key)
        set(value, row, column, self)

    def tolist(self) -> List[List[Any]]:
        """Stored elements as nested lists (references, not copies)."""
        ensure_alive(self, "tolist")
        c = self.columns
        return [list(self.data[r * c:(r + 1) * c]) for r in range(self.rows)]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def destroy(self) -> None:
        destroy(self)

    def _dispose(self) -> None:
        """Tear down elements and buffer regardless of ownership."""
        if self.data is None:
            return
        data, allocator, ntype = self.data, self.allocator, self.type
        get_kind(ntype).release(self)
        try:
            allocator.free(data)
        except UnregisteredBufferError as e:
            logger.error("destroy: %s", e)
        self._reset()
        logger.debug("destroyed %s matrix", ntype.label)

    def _reset(self) -> None:
        self.type = None
        self.rows = 0
        self.columns = 0
        self.data = None
        self.allocator = None

    def __enter__(self) -> "Matrix":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        destroy(self)
        return False

    # -------------------------------------------------------------------------
    # Comparison and Display
    # -------------------------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        if not self.is_alive or not other.is_alive:
            return not self.is_alive and not other.is_alive
        if self.type != other.type or self.shape != other.shape:
            return False
        return get_kind(self.type).equals(self, other)

    __hash__ = None

    def __repr__(self) -> str:
        if not self.is_alive:
            return "Matrix(<empty>)"
        return f"Matrix({self.type.label}, {self.rows}x{self.columns})"

    def __str__(self) -> str:
        if not self.is_alive:
            return repr(self)
        from ._ops import format_matrix
        return format_matrix(self)

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def __add__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import add
        return add(self.allocator, self, other)

    def __sub__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import sub
        return sub(self.allocator, self, other)

    def __matmul__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import mult
        return mult(self.allocator, self, other)

    def __mul__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import multew
        return multew(self.allocator, self, other)

    def __truediv__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import divew
        return divew(self.allocator, self, other)

    def __iadd__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import add_inplace
        return add_inplace(other, self)

    def __isub__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import sub_inplace
        return sub_inplace(other, self)

    def __imul__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import multew_inplace
        return multew_inplace(other, self)

    def __itruediv__(self, other: Any) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        from ._ops import divew_inplace
        return divew_inplace(other, self)


# =============================================================================
# Lifecycle Functions
# =============================================================================

def init(
    allocator: Allocator,
    rows: int,
    columns: int,
    ntype: TypeLike,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Allocate a zero-filled matrix.

    Heap-backed types get ``None`` slots; use ``init0`` to construct their
    zero values.

    Args:
        allocator: Allocator used for the buffer and stored in the matrix.
        rows: Number of rows (> 0).
        columns: Number of columns (> 0).
        ntype: Element type (NumericType, name or alias).
        out: Matrix to (re)initialize. A live ``out`` is destroyed first. A
            nested matrix obtained with ``get`` may be re-initialized in
            place; it stays owned by its container.

    Returns:
        The initialized matrix (``out`` if given).

    Raises:
        NullPointerError: If ``allocator`` is None.
        InvalidSizeError: If ``rows`` or ``columns`` is not positive.
        AllocationError: If the allocator fails; ``out`` is left empty.
    """
    if allocator is None:
        raise NullPointerError("init: allocator is None")
    ntype = _as_type(ntype)
    try:
        rows = operator.index(rows)
        columns = operator.index(columns)
    except TypeError:
        raise InvalidSizeError(f"init: dimensions must be integers, got {rows!r}x{columns!r}")
    if rows <= 0 or columns <= 0:
        raise InvalidSizeError(f"init: invalid dimensions {rows}x{columns}")
    if out is None:
        out = Matrix()
    else:
        out._dispose()

    try:
        data = allocator.calloc(rows * columns, ntype.np_dtype)
    except AllocationError:
        raise
    except MemoryError as e:
        raise AllocationError(f"init: {rows}x{columns} {ntype.label}: {e}") from e

    out.type = ntype
    out.rows = rows
    out.columns = columns
    out.data = data
    out.allocator = allocator
    logger.debug("init %dx%d %s matrix", rows, columns, ntype.label)
    return out


def init0(
    allocator: Allocator,
    rows: int,
    columns: int,
    ntype: TypeLike,
    out: Optional[Matrix] = None,
) -> Matrix:
    """
    Allocate a matrix and zero-construct every element.

    For heap-backed types each slot receives the element kind's zero value
    (0/1 for fractions, an empty matrix for nested matrices). If a
    constructor fails, the elements already built are destroyed in index
    order, the buffer is freed, ``out`` is left empty and the error
    propagates.

    Args:
        allocator: Allocator used for the buffer and stored in the matrix.
        rows: Number of rows (> 0).
        columns: Number of columns (> 0).
        ntype: Element type.
        out: Matrix to (re)initialize.

    Returns:
        The initialized matrix.
    """
    out = init(allocator, rows, columns, ntype, out)
    try:
        get_kind(out.type).fill_zero(out, allocator)
    except Exception:
        logger.debug("init0 of %s failed, rolling back", out.type.label)
        allocator.free(out.data)
        out._reset()
        raise
    return out


def destroy(matrix: Optional[Matrix]) -> None:
    """
    Destroy every element, free the buffer and reset the matrix to empty.

    None and already destroyed matrices are ignored. A matrix that was
    moved into another matrix is left alone (its owner destroys it) and a
    warning is logged.
    """
    if matrix is None or not matrix.is_alive:
        return
    if matrix.ownership is Ownership.MOVED:
        logger.warning("destroy ignored: %r is owned by another matrix", matrix)
        return
    matrix._dispose()


# =============================================================================
# Element Access Functions
# =============================================================================

def _check_bounds(row: Any, column: Any, matrix: Matrix, context: str) -> Tuple[int, int]:
    row = _as_index(row, "row")
    column = _as_index(column, "column")
    if not (0 <= row < matrix.rows and 0 <= column < matrix.columns):
        raise IndexOutOfBoundsError(
            f"{context}: ({row}, {column}) outside {matrix.rows}x{matrix.columns} matrix"
        )
    return row, column


def set(element: Any, row: int, column: int, out: Matrix) -> None:
    """
    Store ``element`` at ``(row, column)``.

    Fixed-width values are copied. Heap-backed values are moved in: the
    previous element is destroyed and the matrix takes ownership of the new
    one. A nested ``Matrix`` becomes MOVED; the caller must not destroy it.

    Raises:
        NullPointerError: If ``out`` is None or not initialized.
        IndexOutOfBoundsError: If the position is outside ``out``.
        TypeMismatchError: If the element's type does not fit ``out.type``.
        NumericOverflowError: If an integer does not fit a fixed-width type.
        InvalidArgumentError: If a nested matrix is already owned, or is
            ``out`` itself.
    """
    ensure_alive(out, "set", "out")
    row, column = _check_bounds(row, column, out, "set")
    kind = get_kind(out.type)
    value = kind.coerce(element, strict=config.check_element_types)
    i = row * out.columns + column
    if out.type.is_heap:
        kind.store(out, i, value)
    else:
        out.data[i] = value


def get(row: int, column: int, matrix: Matrix) -> Any:
    """
    Return the element at ``(row, column)``.

    Nothing is copied and ownership does not change: heap-backed elements
    are returned as the stored object itself and stay owned by ``matrix``.
    Fixed-width elements are numpy scalars of the storage dtype.

    Raises:
        NullPointerError: If ``matrix`` is None or not initialized.
        IndexOutOfBoundsError: If the position is outside ``matrix``.
    """
    ensure_alive(matrix, "get")
    row, column = _check_bounds(row, column, matrix, "get")
    return matrix.data[row * matrix.columns + column]


def idx(
    row: int,
    column: int,
    matrix: Matrix,
    policy: Optional[IndexPolicy] = None,
) -> int:
    """
    Flat index of ``(row, column)`` (``row*columns + column``).

    Args:
        row: Row index.
        column: Column index.
        matrix: Matrix providing the dimensions.
        policy: ``IndexPolicy.RAISE`` or ``IndexPolicy.CLAMP``; defaults to
            the configured ``index_policy``.

    Raises:
        IndexOutOfBoundsError: Under RAISE for any position outside the
            matrix, and under CLAMP for negative indices.
    """
    ensure_alive(matrix, "idx")
    if policy is None:
        policy = config.index_policy
    if IndexPolicy(policy) is IndexPolicy.CLAMP:
        row = _as_index(row, "row")
        column = _as_index(column, "column")
        if row < 0 or column < 0:
            raise IndexOutOfBoundsError(f"idx: negative index ({row}, {column})")
        if row >= matrix.rows or column >= matrix.columns:
            clamped = (min(row, matrix.rows - 1), min(column, matrix.columns - 1))
            logger.warning("idx: clamped (%d, %d) to %s for %dx%d matrix",
                           row, column, clamped, matrix.rows, matrix.columns)
            row, column = clamped
    else:
        row, column = _check_bounds(row, column, matrix, "idx")
    return row * matrix.columns + column
