"""Conversion between CAMEL matrices and numpy / scipy.sparse.

Only the conversion itself lives here; the matrices produced are ordinary
allocator-backed ``Matrix`` objects.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
import scipy.sparse as sp

from ._config import config
from .core.bignum import FractionComplex, to_fraction
from .core.error import InvalidArgumentError, InvalidSizeError, TypeMismatchError
from .core.memory import Allocator
from .core.types import NumericType
from .matrix import Matrix, destroy, init, set
from .matrix._matrix import _as_type
from .matrix._ownership import ensure_alive

__all__ = [
    'from_numpy',
    'to_numpy',
    'from_scipy',
    'to_scipy',
]

_SPARSE_FORMATS = ("csr", "csc", "coo", "lil", "dok", "bsr", "dia")


def _exact(value: Any, ntype: NumericType) -> Any:
    """Convert floats exactly for the fraction-backed types."""
    if ntype is NumericType.FRACTION and isinstance(value, float):
        return to_fraction(value)
    if ntype is NumericType.COMPLEX and isinstance(value, (float, complex)):
        return FractionComplex.from_value(value)
    return value


def _as_2d(array: Any) -> np.ndarray:
    array = np.asarray(array)
    if array.ndim == 0:
        return array.reshape(1, 1)
    if array.ndim == 1:
        return array.reshape(1, -1)
    if array.ndim != 2:
        raise InvalidSizeError(f"Expected a 1-D or 2-D array, got {array.ndim}-D")
    return array


def from_numpy(
    allocator: Allocator,
    array: Any,
    ntype: Optional[Any] = None,
) -> Matrix:
    """Create a matrix from a numpy array (or anything ``np.asarray`` accepts).

    A 1-D array becomes a 1xn row vector. Float and complex data stored
    into FRACTION or COMPLEX matrices is converted exactly from its binary
    value.

    Args:
        allocator: Allocator for the new matrix.
        array: Source data.
        ntype: Element type; inferred from a fixed-width dtype when None.

    Returns:
        A new matrix holding a copy of the data.

    Raises:
        TypeMismatchError: If the type cannot be inferred (object arrays) or
            the dtype cannot be stored without changing kind.

    Example:
        >>> m = from_numpy(alloc, np.eye(3))
        >>> m.type
        <NumericType.F64: 9>
    """
    array = _as_2d(array)
    ntype = NumericType.from_dtype(array.dtype) if ntype is None else _as_type(ntype)
    rows, columns = array.shape
    out = init(allocator, rows, columns, ntype)
    try:
        if ntype.is_heap:
            for (r, c), value in np.ndenumerate(array):
                if isinstance(value, np.generic):
                    value = value.item()
                set(_exact(value, ntype), r, c, out)
        else:
            if (
                config.check_element_types
                and array.dtype != object
                and not np.can_cast(array.dtype, ntype.np_dtype, casting="same_kind")
            ):
                raise TypeMismatchError(
                    f"Cannot store {array.dtype} data in a {ntype.label} matrix"
                )
            out.data[...] = array.astype(ntype.np_dtype).ravel()
    except Exception:
        destroy(out)
        raise
    return out


def to_numpy(matrix: Matrix) -> np.ndarray:
    """Copy a matrix into a new 2-D numpy array.

    Fixed-width types produce an array of the storage dtype. Heap types
    (except MATRIX) produce an object array sharing the immutable element
    values.

    Raises:
        TypeMismatchError: For MATRIX-typed matrices.
    """
    ensure_alive(matrix, "to_numpy")
    if matrix.type is NumericType.MATRIX:
        raise TypeMismatchError("to_numpy: nested matrices have no numpy representation")
    return matrix.data.reshape(matrix.rows, matrix.columns).copy()


def from_scipy(
    allocator: Allocator,
    mat: Any,
    ntype: Optional[Any] = None,
) -> Matrix:
    """Create a dense matrix from a scipy.sparse matrix or array.

    Raises:
        TypeMismatchError: If ``mat`` is not sparse or ``ntype`` is heap-backed.
    """
    if not sp.issparse(mat):
        raise TypeMismatchError(f"from_scipy: expected a scipy sparse matrix, got {type(mat).__name__}")
    if ntype is not None and _as_type(ntype).is_heap:
        raise TypeMismatchError("from_scipy: only fixed-width numeric types are supported")
    return from_numpy(allocator, mat.toarray(), ntype)


def to_scipy(matrix: Matrix, format: str = "csr") -> Any:
    """Convert a fixed-width numeric matrix to scipy.sparse.

    Args:
        matrix: Source matrix.
        format: Sparse format name ("csr", "csc", "coo", ...).

    Returns:
        scipy.sparse matrix in the requested format.
    """
    ensure_alive(matrix, "to_scipy")
    if matrix.type.is_heap:
        raise TypeMismatchError(f"to_scipy: {matrix.type.label} matrices are not supported")
    if format not in _SPARSE_FORMATS:
        raise InvalidArgumentError(f"to_scipy: unknown sparse format {format!r}")
    return sp.csr_matrix(to_numpy(matrix)).asformat(format)
