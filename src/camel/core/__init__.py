"""
CAMEL core: numeric type tags, error codes, allocators and exact numbers.
"""

from .error import (
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
    error_for,
    check_error,
    status_of,
    capture,
)
from .types import NumericType, HEAP_TYPES, INTEGER_TYPES, FLOAT_TYPES, COMPLEX_TYPES
from .memory import AllocatorStats, Allocator, DefaultAllocator, BoundedAllocator
from .bignum import FractionComplex

__all__ = [
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
    'error_for',
    'check_error',
    'status_of',
    'capture',
    # Types
    'NumericType',
    'HEAP_TYPES',
    'INTEGER_TYPES',
    'FLOAT_TYPES',
    'COMPLEX_TYPES',
    # Memory
    'AllocatorStats',
    'Allocator',
    'DefaultAllocator',
    'BoundedAllocator',
    # Exact numbers
    'FractionComplex',
]
