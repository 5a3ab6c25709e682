"""CAMEL Matrix Module.

The generic, runtime-typed matrix and its operations.

Type Dispatch:

    Matrix (type tag + flat buffer + allocator)
    └── ElementKind (one per NumericType)
        ├── NumericKind       # U8..CF64, vectorized with numpy
        ├── BigIntKind        # int
        ├── FractionKind      # fractions.Fraction
        ├── ComplexKind       # FractionComplex
        ├── ExpressionKind    # sympy expressions
        └── MatrixKind        # nested Matrix

Ownership Rules:
    - ``set`` moves heap values into the matrix; a nested matrix becomes
      MOVED and is destroyed by its container.
    - ``get`` returns a reference; ownership never changes.
    - Results of arithmetic are new matrices owned by the caller.

Quick Start:
    >>> from camel import DefaultAllocator, NumericType
    >>> from camel.matrix import Matrix, mult
    >>>
    >>> alloc = DefaultAllocator()
    >>> a = Matrix.from_rows(alloc, [[1, 2], [3, 4]], NumericType.F64)
    >>> b = Matrix.from_rows(alloc, [[5, 6], [7, 8]], NumericType.F64)
    >>> c = a @ b
    >>> float(c[1, 1])
    50.0
"""

from ._ownership import Ownership, ensure_alive
from ._kinds import (
    ElementKind,
    NumericKind,
    HeapKind,
    BigIntKind,
    FractionKind,
    ComplexKind,
    ExpressionKind,
    MatrixKind,
    get_kind,
    register_kind,
)
from ._matrix import Matrix, init, init0, destroy, get, set, idx
from ._ops import (
    add,
    sub,
    mult,
    multew,
    divew,
    add_inplace,
    sub_inplace,
    multew_inplace,
    divew_inplace,
    transpose,
    select,
    format_matrix,
    print_matrix,
)

__all__ = [
    # Core class
    'Matrix',
    'Ownership',
    'ensure_alive',

    # Lifecycle and access
    'init',
    'init0',
    'destroy',
    'get',
    'set',
    'idx',

    # Arithmetic
    'add',
    'sub',
    'mult',
    'multew',
    'divew',
    'add_inplace',
    'sub_inplace',
    'multew_inplace',
    'divew_inplace',

    # Structure and display
    'transpose',
    'select',
    'format_matrix',
    'print_matrix',

    # Dispatch
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
