"""
CAMEL Numeric Types - Element Type Definitions

Defines the numeric type tag stored in every matrix together with the
information table (storage dtype, slot size, classification) the dispatch
layer reads.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict

import numpy as np

from .error import TypeMismatchError

__all__ = ['NumericType', 'HEAP_TYPES', 'INTEGER_TYPES', 'FLOAT_TYPES', 'COMPLEX_TYPES']


# =============================================================================
# Numeric Type Enumeration
# =============================================================================

class NumericType(IntEnum):
    """
    Element types a matrix can hold.

    Fixed-width types are stored unboxed in a numpy buffer of the matching
    dtype. Heap-backed types (big integers, fractions, exact complex numbers,
    symbolic expressions and nested matrices) are stored as handles in an
    object buffer and own their value.
    """
    U8 = 0
    U16 = 1
    U32 = 2
    U64 = 3
    I8 = 4
    I16 = 5
    I32 = 6
    I64 = 7
    F32 = 8
    F64 = 9
    CF32 = 10          # complex, two float32 parts
    CF64 = 11          # complex, two float64 parts
    BIGINT = 12        # arbitrary precision integer
    FRACTION = 13      # a/b, both BIGINT
    COMPLEX = 14       # a + bi, both FRACTION
    EXPRESSION = 15    # symbolic expression
    MATRIX = 16        # nested matrix

    @property
    def itemsize(self) -> int:
        """Size in bytes of one slot (handle size for heap types)."""
        return _TYPE_INFO[self]["dtype"].itemsize

    @property
    def np_dtype(self) -> np.dtype:
        """numpy dtype of the backing buffer."""
        return _TYPE_INFO[self]["dtype"]

    @property
    def label(self) -> str:
        """Human-readable name."""
        return _TYPE_INFO[self]["label"]

    @property
    def is_heap(self) -> bool:
        """Whether elements are heap-backed objects with their own lifecycle."""
        return self in HEAP_TYPES

    @property
    def is_integer(self) -> bool:
        """Fixed-width integer types (BIGINT is not included)."""
        return self in INTEGER_TYPES

    @property
    def is_signed(self) -> bool:
        return self in (NumericType.I8, NumericType.I16, NumericType.I32, NumericType.I64)

    @property
    def is_float(self) -> bool:
        return self in FLOAT_TYPES

    @property
    def is_complex(self) -> bool:
        """Fixed-width complex types (COMPLEX is heap-backed and not included)."""
        return self in COMPLEX_TYPES

    @classmethod
    def from_name(cls, name: str) -> "NumericType":
        """Get NumericType from its label, member name, or an alias."""
        name_lower = name.lower()
        for ntype, info in _TYPE_INFO.items():
            if info["label"] == name_lower or ntype.name.lower() == name_lower:
                return ntype
        if name_lower in _ALIASES:
            return _ALIASES[name_lower]
        raise TypeMismatchError(f"Unknown numeric type name: {name}")

    @classmethod
    def from_dtype(cls, dtype: Any) -> "NumericType":
        """Infer the NumericType of a fixed-width numpy dtype."""
        dtype = np.dtype(dtype)
        if dtype == np.dtype(bool):
            return cls.U8
        for ntype in _FIXED_ORDER:
            if _TYPE_INFO[ntype]["dtype"] == dtype:
                return ntype
        raise TypeMismatchError(f"No fixed-width numeric type for dtype {dtype}")


# Type information table
_TYPE_INFO: Dict[NumericType, Dict[str, Any]] = {
    NumericType.U8: {"dtype": np.dtype(np.uint8), "label": "u8"},
    NumericType.U16: {"dtype": np.dtype(np.uint16), "label": "u16"},
    NumericType.U32: {"dtype": np.dtype(np.uint32), "label": "u32"},
    NumericType.U64: {"dtype": np.dtype(np.uint64), "label": "u64"},
    NumericType.I8: {"dtype": np.dtype(np.int8), "label": "i8"},
    NumericType.I16: {"dtype": np.dtype(np.int16), "label": "i16"},
    NumericType.I32: {"dtype": np.dtype(np.int32), "label": "i32"},
    NumericType.I64: {"dtype": np.dtype(np.int64), "label": "i64"},
    NumericType.F32: {"dtype": np.dtype(np.float32), "label": "f32"},
    NumericType.F64: {"dtype": np.dtype(np.float64), "label": "f64"},
    NumericType.CF32: {"dtype": np.dtype(np.complex64), "label": "cf32"},
    NumericType.CF64: {"dtype": np.dtype(np.complex128), "label": "cf64"},
    NumericType.BIGINT: {"dtype": np.dtype(object), "label": "bigint"},
    NumericType.FRACTION: {"dtype": np.dtype(object), "label": "fraction"},
    NumericType.COMPLEX: {"dtype": np.dtype(object), "label": "complex"},
    NumericType.EXPRESSION: {"dtype": np.dtype(object), "label": "expression"},
    NumericType.MATRIX: {"dtype": np.dtype(object), "label": "matrix"},
}

_ALIASES: Dict[str, NumericType] = {
    "byte": NumericType.U8,
    "uint8": NumericType.U8,
    "uint16": NumericType.U16,
    "uint32": NumericType.U32,
    "uint64": NumericType.U64,
    "int8": NumericType.I8,
    "int16": NumericType.I16,
    "int32": NumericType.I32,
    "int": NumericType.I64,
    "int64": NumericType.I64,
    "long": NumericType.I64,
    "float": NumericType.F32,
    "float32": NumericType.F32,
    "double": NumericType.F64,
    "real": NumericType.F64,
    "float64": NumericType.F64,
    "complex64": NumericType.CF32,
    "complex128": NumericType.CF64,
    "bint": NumericType.BIGINT,
    "frac": NumericType.FRACTION,
    "rational": NumericType.FRACTION,
    "cmplx": NumericType.COMPLEX,
    "exp": NumericType.EXPRESSION,
    "expr": NumericType.EXPRESSION,
    "symbolic": NumericType.EXPRESSION,
    "mat": NumericType.MATRIX,
}


# =============================================================================
# Type Groups
# =============================================================================

INTEGER_TYPES = frozenset({
    NumericType.U8, NumericType.U16, NumericType.U32, NumericType.U64,
    NumericType.I8, NumericType.I16, NumericType.I32, NumericType.I64,
})

FLOAT_TYPES = frozenset({NumericType.F32, NumericType.F64})

COMPLEX_TYPES = frozenset({NumericType.CF32, NumericType.CF64})

HEAP_TYPES = frozenset({
    NumericType.BIGINT, NumericType.FRACTION, NumericType.COMPLEX,
    NumericType.EXPRESSION, NumericType.MATRIX,
})

# Preference order when inferring from a dtype
_FIXED_ORDER = (
    NumericType.F64, NumericType.F32, NumericType.CF64, NumericType.CF32,
    NumericType.I64, NumericType.I32, NumericType.I16, NumericType.I8,
    NumericType.U64, NumericType.U32, NumericType.U16, NumericType.U8,
)
