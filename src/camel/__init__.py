"""
CAMEL - Generic Matrix Core

Runtime-typed matrices with:
- One container for fixed-width numbers, big integers, fractions, exact
  complex numbers, symbolic expressions and nested matrices
- Per-type dispatch through element kinds
- Injected allocators (no global allocator)
- Explicit ownership transfer for heap-backed elements

Modules:
- core: numeric type tags, status codes and errors, allocators, exact numbers
- matrix: the Matrix type and its operations
- interop: numpy / scipy.sparse conversion

Architecture:
    ┌──────────────────────────────────────────────┐
    │        Matrix (type tag, rows, columns)      │
    ├──────────────────────────────────────────────┤
    │  ElementKind: Numeric | BigInt | Fraction    │
    │               Complex | Expression | Matrix  │
    │  Allocator:   injected, tracks live buffers  │
    └──────────────────────────────────────────────┘

Example:
    >>> import camel
    >>> alloc = camel.DefaultAllocator()
    >>> a = camel.init0(alloc, 2, 2, camel.NumericType.FRACTION)
    >>> a[0, 0] = camel.Fraction(1, 2)
    >>> b = a + a
    >>> print(b)
    	1/1 0/1
    	0/1 0/1
    >>> camel.destroy(a); camel.destroy(b)
    >>> alloc.get_stats().live_buffers
    0
"""

__version__ = '0.1.0'

from fractions import Fraction

from . import core
from . import matrix
from . import interop
from ._config import config, get_config, CamelConfig, MatrixConfig, IndexPolicy

# Re-export common types
from .core import (
    # Types
    NumericType,

    # Memory
    Allocator,
    AllocatorStats,
    DefaultAllocator,
    BoundedAllocator,

    # Exact numbers
    FractionComplex,

    # Errors
    Status,
    CamelError,
    NullPointerError,
    InvalidSizeError,
    InvalidArgumentError,
    AllocationError,
    UnregisteredBufferError,
    ShapeMismatchError,
    ExpectedVectorError,
    TypeMismatchError,
    IndexOutOfBoundsError,
    SingularMatrixError,
    DivisionByZeroError,
    NumericOverflowError,
    check_error,
    capture,
)

from .matrix import (
    Matrix,
    Ownership,
    init,
    init0,
    destroy,
    get,
    set,
    idx,
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
    get_kind,
    register_kind,
)

from .interop import from_numpy, to_numpy, from_scipy, to_scipy

__all__ = [
    # Version
    '__version__',

    # Modules
    'core',
    'matrix',
    'interop',

    # Configuration
    'config',
    'get_config',
    'CamelConfig',
    'MatrixConfig',
    'IndexPolicy',

    # Types and memory
    'NumericType',
    'Allocator',
    'AllocatorStats',
    'DefaultAllocator',
    'BoundedAllocator',
    'Fraction',
    'FractionComplex',

    # Errors
    'Status',
    'CamelError',
    'NullPointerError',
    'InvalidSizeError',
    'InvalidArgumentError',
    'AllocationError',
    'UnregisteredBufferError',
    'ShapeMismatchError',
    'ExpectedVectorError',
    'TypeMismatchError',
    'IndexOutOfBoundsError',
    'SingularMatrixError',
    'DivisionByZeroError',
    'NumericOverflowError',
    'check_error',
    'capture',

    # Matrix
    'Matrix',
    'Ownership',
    'init',
    'init0',
    'destroy',
    'get',
    'set',
    'idx',
    'add',
    'sub',
    'mult',
    'multew',
    'divew',
    'add_inplace',
    'sub_inplace',
    'multew_inplace',
    'divew_inplace',
    'transpose',
    'select',
    'format_matrix',
    'print_matrix',
    'get_kind',
    'register_kind',

    # Interop
    'from_numpy',
    'to_numpy',
    'from_scipy',
    'to_scipy',
]
