"""
Error handling for CAMEL.

Status codes follow the grouping of the C status enum the library grew out
of (general, argument, type, memory and numerical errors). Every failure is
raised as a subclass of ``CamelError`` carrying its ``Status`` code, so
callers that want plain status values can use ``capture``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Tuple, Type


__all__ = [
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
]


# =============================================================================
# Status Codes
# =============================================================================

class Status(IntEnum):
    """Status codes returned by (or attached to errors of) CAMEL operations."""

    # Success
    OK = 0

    # General errors (1-9)
    UNKNOWN = 1
    INTERNAL = 2
    NULL_POINTER = 4

    # Argument errors (10-19)
    INVALID_ARGUMENT = 10
    SHAPE_MISMATCH = 11
    INVALID_SIZE = 12
    INDEX_OUT_OF_BOUNDS = 14
    EXPECTED_VECTOR = 15

    # Type errors (20-29)
    TYPE_MISMATCH = 21

    # Memory errors (30-39)
    ALLOCATION_FAILURE = 30
    UNREGISTERED_BUFFER = 35

    # Numerical errors (50-59)
    DIVISION_BY_ZERO = 51
    OVERFLOW = 52
    SINGULAR_MATRIX = 55

    def __str__(self) -> str:
        return _ERROR_MESSAGES.get(self, f"Unknown status (code={int(self)})")


# Status code to message mapping
_ERROR_MESSAGES: Dict[Status, str] = {
    Status.OK: "Success",
    Status.UNKNOWN: "Unknown error",
    Status.INTERNAL: "Internal error",
    Status.NULL_POINTER: "Null pointer",
    Status.INVALID_ARGUMENT: "Invalid argument",
    Status.SHAPE_MISMATCH: "Shape mismatch",
    Status.INVALID_SIZE: "Invalid size",
    Status.INDEX_OUT_OF_BOUNDS: "Index out of bounds",
    Status.EXPECTED_VECTOR: "Expected vector",
    Status.TYPE_MISMATCH: "Type mismatch",
    Status.ALLOCATION_FAILURE: "Allocation failure",
    Status.UNREGISTERED_BUFFER: "Unregistered buffer",
    Status.DIVISION_BY_ZERO: "Division by zero",
    Status.OVERFLOW: "Overflow",
    Status.SINGULAR_MATRIX: "Singular matrix",
}


# =============================================================================
# Exception Classes
# =============================================================================

class CamelError(Exception):
    """
    Base exception for all CAMEL errors.

    Attributes:
        code: The ``Status`` describing the failure.
        message: Human readable detail.
    """

    status: Status = Status.UNKNOWN

    def __init__(self, message: Optional[str] = None, code: Optional[Status] = None):
        self.code = Status(code) if code is not None else type(self).status
        if message is None:
            message = _ERROR_MESSAGES.get(self.code, f"Unknown error (code={int(self.code)})")
        self.message = message
        super().__init__(f"CAMEL Error {int(self.code)} ({self.code.name}): {message}")

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "CamelError":
        """Create the matching exception subclass from a status code."""
        return error_for(code, context)


class NullPointerError(CamelError, ValueError):
    """A required argument was absent (None or an uninitialized matrix)."""
    status = Status.NULL_POINTER


class InvalidSizeError(CamelError, ValueError):
    """A requested dimension was zero or otherwise nonsensical."""
    status = Status.INVALID_SIZE


class InvalidArgumentError(CamelError, ValueError):
    """An argument is well-typed but not acceptable (aliasing, ownership)."""
    status = Status.INVALID_ARGUMENT


class AllocationError(CamelError, MemoryError):
    """The allocator could not satisfy a request."""
    status = Status.ALLOCATION_FAILURE


class UnregisteredBufferError(CamelError):
    """A buffer was released to an allocator that does not own it."""
    status = Status.UNREGISTERED_BUFFER


class ShapeMismatchError(CamelError, ValueError):
    """Operand dimensions are incompatible with the requested operation."""
    status = Status.SHAPE_MISMATCH


class ExpectedVectorError(ShapeMismatchError):
    """A 1xn or nx1 matrix was required."""
    status = Status.EXPECTED_VECTOR


class TypeMismatchError(CamelError, TypeError):
    """Numeric type tags (or an element's dynamic type) disagree."""
    status = Status.TYPE_MISMATCH


class IndexOutOfBoundsError(CamelError, IndexError):
    """A row, column or permutation index exceeds the matrix dimensions."""
    status = Status.INDEX_OUT_OF_BOUNDS


class SingularMatrixError(CamelError, ArithmeticError):
    """A required inverse does not exist."""
    status = Status.SINGULAR_MATRIX


class DivisionByZeroError(CamelError, ZeroDivisionError):
    """An element-wise division hit an exact zero divisor."""
    status = Status.DIVISION_BY_ZERO


class NumericOverflowError(CamelError, OverflowError):
    """A value does not fit the fixed-width element type."""
    status = Status.OVERFLOW


_ERROR_CLASSES: Dict[Status, Type[CamelError]] = {
    cls.status: cls
    for cls in (
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
    )
}


# =============================================================================
# Error Checking Functions
# =============================================================================

def error_for(code: int, context: str = "") -> CamelError:
    """
    Build the exception that corresponds to a status code.

    Args:
        code: Status code.
        context: Optional context prepended to the standard message.

    Returns:
        An instance of the most specific ``CamelError`` subclass.
    """
    status = Status(code)
    base_msg = _ERROR_MESSAGES.get(status, "Unknown error")
    msg = f"{context}: {base_msg}" if context else base_msg
    cls = _ERROR_CLASSES.get(status, CamelError)
    return cls(msg, code=status)


def check_error(code: int, context: str = "") -> None:
    """
    Check a status code and raise if it is not OK.

    Args:
        code: Status code.
        context: Optional context message for better error reporting.

    Raises:
        CamelError: If code indicates an error.
    """
    if code == Status.OK:
        return
    raise error_for(code, context)


def status_of(exc: BaseException) -> Status:
    """Map an exception to a status code (``UNKNOWN`` for foreign errors)."""
    if isinstance(exc, CamelError):
        return exc.code
    if isinstance(exc, MemoryError):
        return Status.ALLOCATION_FAILURE
    return Status.UNKNOWN


def capture(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Tuple[Status, Any]:
    """
    Call ``func`` and return ``(status, result)`` instead of raising.

    Only CAMEL errors are converted; anything else propagates.

    Example:
        >>> status, m = capture(init, alloc, 0, 2, NumericType.F64)
        >>> status
        <Status.INVALID_SIZE: 12>
    """
    try:
        return Status.OK, func(*args, **kwargs)
    except CamelError as exc:
        return exc.code, None
