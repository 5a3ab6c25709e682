"""
Tests for Matrix lifecycle, element access and ownership.

Covers camel.matrix._matrix:
- Lifecycle: init, init0 (with rollback), destroy, context manager
- Access: get, set, idx, item syntax
- Ownership: moving nested matrices, ignored destroys, cycles
"""

import logging
from fractions import Fraction

import numpy as np
import pytest
import sympy

import camel
from camel import (
    Matrix,
    NumericType,
    Ownership,
    IndexPolicy,
    FractionComplex,
    BoundedAllocator,
    DefaultAllocator,
    AllocationError,
    NullPointerError,
    InvalidSizeError,
    InvalidArgumentError,
    IndexOutOfBoundsError,
    TypeMismatchError,
    ShapeMismatchError,
    ExpectedVectorError,
    NumericOverflowError,
    init,
    init0,
    destroy,
    get,
    set,
    idx,
)
from camel.matrix import _kinds
from camel.matrix._kinds import FractionKind

from conftest import values


# =============================================================================
# Lifecycle
# =============================================================================

class TestInit:
    """Test init and the dimension invariant."""

    def test_empty_state(self):
        m = Matrix()
        assert m.rows == 0 and m.columns == 0
        assert m.data is None
        assert m.allocator is None
        assert not m.is_alive

    @pytest.mark.parametrize("rows,columns", [(1, 1), (2, 3), (4, 1), (1, 5)])
    def test_dimension_invariant(self, alloc, rows, columns):
        m = init(alloc, rows, columns, NumericType.F64)
        assert m.data.size == rows * columns
        assert m.shape == (rows, columns)
        assert m.allocator is alloc
        destroy(m)
        assert m.rows == 0 and m.columns == 0
        assert m.data is None
        assert alloc.get_stats().live_buffers == 0

    def test_zero_filled(self, alloc):
        m = init(alloc, 2, 2, NumericType.I32)
        assert np.all(m.data == 0)
        assert m.data.dtype == np.int32
        destroy(m)

    def test_heap_slots_start_empty(self, alloc):
        m = init(alloc, 1, 2, NumericType.FRACTION)
        assert list(m.data) == [None, None]
        destroy(m)

    def test_type_by_name(self, alloc):
        m = init(alloc, 1, 1, "double")
        assert m.type is NumericType.F64
        destroy(m)

    def test_null_allocator(self):
        with pytest.raises(NullPointerError):
            init(None, 2, 2, NumericType.F64)

    @pytest.mark.parametrize("rows,columns", [(0, 2), (2, 0), (-1, 2)])
    def test_invalid_size(self, alloc, rows, columns):
        with pytest.raises(InvalidSizeError):
            init(alloc, rows, columns, NumericType.F64)

    def test_allocation_failure_leaves_out_empty(self):
        alloc = BoundedAllocator(8)
        out = Matrix()
        with pytest.raises(AllocationError):
            init(alloc, 2, 2, NumericType.F64, out)
        assert not out.is_alive
        assert out.rows == 0 and out.columns == 0

    def test_reinit_destroys_previous(self, alloc):
        m = init(alloc, 2, 2, NumericType.F64)
        same = init(alloc, 3, 1, NumericType.I32, m)
        assert same is m
        assert m.shape == (3, 1)
        assert m.type is NumericType.I32
        assert alloc.get_stats().live_buffers == 1
        destroy(m)


class TestInit0:
    """Test zero construction of heap-backed elements."""

    def test_fraction_zero_is_zero_over_one(self, alloc):
        m = init0(alloc, 2, 2, NumericType.FRACTION)
        for r in range(2):
            for c in range(2):
                v = get(r, c, m)
                assert isinstance(v, Fraction)
                assert v == Fraction(0, 1)
                assert v.denominator == 1
        destroy(m)

    def test_zero_values_per_type(self, alloc):
        expected = {
            NumericType.BIGINT: 0,
            NumericType.COMPLEX: FractionComplex(),
            NumericType.EXPRESSION: sympy.Integer(0),
        }
        for ntype, zero in expected.items():
            m = init0(alloc, 1, 1, ntype)
            assert get(0, 0, m) == zero
            destroy(m)

    def test_nested_zero_is_empty_owned_matrix(self, alloc):
        m = init0(alloc, 1, 2, NumericType.MATRIX)
        elem = get(0, 1, m)
        assert isinstance(elem, Matrix)
        assert not elem.is_alive
        assert elem.ownership is Ownership.MOVED
        assert elem.owner is m
        destroy(m)

    def test_numeric_init0(self, alloc):
        m = init0(alloc, 2, 2, NumericType.CF64)
        assert np.all(m.data == 0)
        destroy(m)

    def test_rollback_on_constructor_failure(self, alloc, monkeypatch):
        """A failing element constructor unwinds everything already built."""

        class FailingFractionKind(FractionKind):
            def __init__(self):
                self.built = []
                self.destroyed = []

            def zero(self, allocator):
                if len(self.built) == 2:
                    raise AllocationError("out of fraction handles")
                value = Fraction(len(self.built) + 1, 7)
                self.built.append(value)
                return value

            def destroy(self, value):
                self.destroyed.append(value)

        kind = FailingFractionKind()
        monkeypatch.setitem(_kinds._KINDS, NumericType.FRACTION, kind)

        out = Matrix()
        with pytest.raises(AllocationError):
            init0(alloc, 2, 2, NumericType.FRACTION, out)

        assert kind.destroyed == kind.built
        assert len(kind.destroyed) == 2
        assert not out.is_alive
        assert alloc.get_stats().live_buffers == 0


class TestDestroy:
    """Test destroy and the context manager."""

    def test_destroy_none(self):
        destroy(None)

    def test_destroy_twice(self, alloc):
        m = init(alloc, 2, 2, NumericType.F64)
        destroy(m)
        destroy(m)
        assert alloc.get_stats().total_frees == 1

    def test_context_manager(self, alloc):
        with init0(alloc, 2, 2, NumericType.BIGINT) as m:
            m[0, 0] = 2 ** 70
            assert m.is_alive
        assert not m.is_alive
        assert alloc.get_stats().live_buffers == 0

    def test_method(self, alloc):
        m = init(alloc, 1, 1, NumericType.U8)
        m.destroy()
        assert not m.is_alive


# =============================================================================
# Element Access
# =============================================================================

class TestGetSet:
    """Test element access."""

    def test_f64_scenario(self, alloc):
        m = init(alloc, 2, 2, NumericType.F64)
        set(3.0, 0, 0, m)
        set(5.0, 1, 1, m)
        assert get(0, 0, m) == 3.0
        assert get(1, 1, m) == 5.0
        assert get(0, 1, m) == 0.0
        destroy(m)

    def test_row_major_layout(self, alloc):
        m = init(alloc, 2, 3, NumericType.I64)
        set(7, 1, 2, m)
        assert m.data[1 * 3 + 2] == 7
        destroy(m)

    def test_numeric_get_returns_numpy_scalar(self, alloc):
        m = init(alloc, 1, 1, NumericType.F32)
        set(1.5, 0, 0, m)
        assert isinstance(get(0, 0, m), np.float32)
        destroy(m)

    def test_heap_get_returns_stored_object(self, alloc):
        m = init(alloc, 1, 1, NumericType.FRACTION)
        f = Fraction(1, 3)
        set(f, 0, 0, m)
        assert get(0, 0, m) is f
        destroy(m)

    @pytest.mark.parametrize("row,column", [(2, 0), (0, 2), (-1, 0), (0, -1)])
    def test_out_of_bounds(self, alloc, row, column):
        m = init(alloc, 2, 2, NumericType.F64)
        with pytest.raises(IndexOutOfBoundsError):
            set(1.0, row, column, m)
        with pytest.raises(IndexOutOfBoundsError):
            get(row, column, m)
        destroy(m)

    def test_uninitialized_out(self):
        with pytest.raises(NullPointerError):
            set(1.0, 0, 0, Matrix())
        with pytest.raises(NullPointerError):
            set(1.0, 0, 0, None)
        with pytest.raises(NullPointerError):
            get(0, 0, Matrix())

    def test_type_checked(self, alloc):
        m = init(alloc, 1, 1, NumericType.I32)
        with pytest.raises(TypeMismatchError):
            set(1.5, 0, 0, m)
        with pytest.raises(TypeMismatchError):
            set("1", 0, 0, m)
        destroy(m)

    def test_type_check_disabled_converts(self, alloc):
        m = init(alloc, 1, 1, NumericType.I32)
        with camel.config.local(check_element_types=False):
            set(1.7, 0, 0, m)
        assert get(0, 0, m) == 1
        destroy(m)

    def test_integer_overflow(self, alloc):
        m = init(alloc, 1, 1, NumericType.U8)
        set(255, 0, 0, m)
        with pytest.raises(NumericOverflowError):
            set(256, 0, 0, m)
        with pytest.raises(NumericOverflowError):
            set(-1, 0, 0, m)
        assert get(0, 0, m) == 255
        destroy(m)

    @pytest.mark.parametrize("ntype", [NumericType.F32, NumericType.F64, NumericType.CF64])
    def test_integer_too_large_for_float(self, alloc, ntype):
        m = init(alloc, 1, 1, ntype)
        with pytest.raises(NumericOverflowError):
            set(10 ** 400, 0, 0, m)
        assert get(0, 0, m) == 0
        destroy(m)

    def test_item_syntax(self, alloc):
        m = init(alloc, 2, 2, NumericType.F64)
        m[0, 1] = 2.5
        assert m[0, 1] == 2.5
        assert m.get(0, 1) == 2.5
        with pytest.raises(InvalidArgumentError):
            m[0]
        destroy(m)

    def test_bigint_stays_exact(self, alloc):
        m = init0(alloc, 1, 1, NumericType.BIGINT)
        m[0, 0] = 3 ** 100
        assert m[0, 0] == 3 ** 100
        destroy(m)

    def test_expression_from_string(self, alloc):
        x = sympy.Symbol("x")
        m = init0(alloc, 1, 1, NumericType.EXPRESSION)
        m[0, 0] = "x**2 + 1"
        assert m[0, 0] == x ** 2 + 1
        destroy(m)


class TestIdx:
    """Test flat index computation and the index policy."""

    def test_flat_index(self, alloc):
        m = init(alloc, 2, 3, NumericType.F64)
        assert idx(1, 1, m) == 4
        assert m.idx(0, 2) == 2
        destroy(m)

    def test_out_of_range_raises_by_default(self, alloc):
        m = init(alloc, 2, 3, NumericType.F64)
        with pytest.raises(IndexOutOfBoundsError):
            idx(2, 0, m)
        destroy(m)

    def test_clamp_is_opt_in_legacy_behavior(self, alloc, caplog):
        """Clamping must be requested explicitly; out-of-range indices raise otherwise."""
        m = init(alloc, 2, 3, NumericType.F64)
        with caplog.at_level(logging.WARNING, logger="camel.matrix"):
            assert idx(5, 7, m, policy=IndexPolicy.CLAMP) == 5
        assert "clamped" in caplog.text
        with camel.config.local(index_policy=IndexPolicy.CLAMP):
            assert idx(1, 9, m) == 5
            with pytest.raises(IndexOutOfBoundsError):
                idx(-1, 0, m)
        destroy(m)


class TestProperties:
    """Test shape-related properties."""

    def test_vector_and_scalar(self, alloc):
        row = init(alloc, 1, 4, NumericType.F64)
        col = init(alloc, 3, 1, NumericType.F64)
        scalar = init(alloc, 1, 1, NumericType.F64)
        square = init(alloc, 2, 2, NumericType.F64)
        assert row.is_vector and row.length == 4
        assert col.is_vector and col.length == 3
        assert scalar.is_scalar and scalar.is_vector
        assert not square.is_vector
        with pytest.raises(ExpectedVectorError):
            square.length
        for m in (row, col, scalar, square):
            destroy(m)

    def test_repr(self, alloc):
        assert repr(Matrix()) == "Matrix(<empty>)"
        m = init(alloc, 2, 3, NumericType.I16)
        assert repr(m) == "Matrix(i16, 2x3)"
        destroy(m)


# =============================================================================
# Ownership
# =============================================================================

class TestOwnership:
    """Test moving heap elements into a matrix."""

    def test_set_moves_nested_matrix(self, alloc, caplog):
        outer = init0(alloc, 1, 1, NumericType.MATRIX)
        inner = Matrix.from_rows(alloc, [[1, 2], [3, 4]], NumericType.F64)
        set(inner, 0, 0, outer)
        assert inner.ownership is Ownership.MOVED
        assert inner.owner is outer
        assert get(0, 0, outer) is inner

        with caplog.at_level(logging.WARNING, logger="camel.matrix"):
            destroy(inner)
        assert inner.is_alive
        assert "owned by another matrix" in caplog.text

        del inner
        destroy(outer)
        stats = alloc.get_stats()
        assert stats.live_buffers == 0
        assert stats.total_frees == stats.total_allocations

    def test_replacing_element_destroys_previous(self, alloc):
        outer = init0(alloc, 1, 1, NumericType.MATRIX)
        first = init(alloc, 2, 2, NumericType.F64)
        second = init(alloc, 1, 1, NumericType.F64)
        set(first, 0, 0, outer)
        set(second, 0, 0, outer)
        assert not first.is_alive
        assert first.ownership is Ownership.OWNED
        assert alloc.get_stats().live_buffers == 2
        destroy(outer)
        assert alloc.get_stats().live_buffers == 0

    def test_setting_same_element_again(self, alloc):
        outer = init0(alloc, 1, 1, NumericType.MATRIX)
        inner = init(alloc, 1, 1, NumericType.F64)
        set(inner, 0, 0, outer)
        set(inner, 0, 0, outer)
        assert inner.is_alive
        destroy(outer)
        assert alloc.get_stats().live_buffers == 0

    def test_already_owned_matrix(self, alloc):
        a = init0(alloc, 1, 1, NumericType.MATRIX)
        b = init0(alloc, 1, 1, NumericType.MATRIX)
        inner = init(alloc, 1, 1, NumericType.F64)
        set(inner, 0, 0, a)
        with pytest.raises(InvalidArgumentError):
            set(inner, 0, 0, b)
        destroy(a)
        destroy(b)

    def test_matrix_into_itself(self, alloc):
        m = init0(alloc, 1, 1, NumericType.MATRIX)
        with pytest.raises(InvalidArgumentError):
            set(m, 0, 0, m)
        destroy(m)

    def test_ownership_cycle(self, alloc):
        outer = init0(alloc, 1, 1, NumericType.MATRIX)
        inner = init0(alloc, 1, 1, NumericType.MATRIX)
        set(inner, 0, 0, outer)
        with pytest.raises(InvalidArgumentError):
            set(outer, 0, 0, inner)
        destroy(outer)
        assert alloc.get_stats().live_buffers == 0

    def test_non_matrix_into_matrix_type(self, alloc):
        m = init0(alloc, 1, 1, NumericType.MATRIX)
        with pytest.raises(TypeMismatchError):
            set(1.0, 0, 0, m)
        destroy(m)

    def test_nested_uses_its_own_allocator(self, alloc):
        other = DefaultAllocator()
        outer = init0(alloc, 1, 2, NumericType.MATRIX)
        set(init(other, 3, 3, NumericType.F64), 0, 1, outer)
        assert other.get_stats().live_buffers == 1
        destroy(outer)
        assert other.get_stats().live_buffers == 0
        assert alloc.get_stats().live_buffers == 0

    def test_reinit_nested_element_in_place(self, alloc):
        outer = init0(alloc, 1, 1, NumericType.MATRIX)
        elem = get(0, 0, outer)
        init(alloc, 2, 2, NumericType.I32, elem)
        assert get(0, 0, outer).shape == (2, 2)
        assert elem.ownership is Ownership.MOVED
        destroy(outer)
        assert alloc.get_stats().live_buffers == 0

    def test_caller_drops_handle_without_freeing(self, alloc):
        """Heap values handed to set are released exactly once, by the matrix."""
        m = init0(alloc, 2, 1, NumericType.COMPLEX)
        z = FractionComplex(1, 2)
        set(z, 0, 0, m)
        del z
        destroy(m)
        assert alloc.get_stats().live_buffers == 0


# =============================================================================
# Construction Helpers and Equality
# =============================================================================

class TestFromRowsAndCopy:
    """Test from_rows, copy and equality."""

    def test_from_rows(self, alloc):
        m = Matrix.from_rows(alloc, [[1, 2, 3], [4, 5, 6]], NumericType.I32)
        assert m.shape == (2, 3)
        assert values(m) == [[1, 2, 3], [4, 5, 6]]
        destroy(m)

    def test_from_rows_ragged(self, alloc):
        with pytest.raises(ShapeMismatchError):
            Matrix.from_rows(alloc, [[1, 2], [3]], NumericType.I32)
        assert alloc.get_stats().live_buffers == 0

    def test_from_rows_bad_value_releases_buffer(self, alloc):
        with pytest.raises(TypeMismatchError):
            Matrix.from_rows(alloc, [[1.0, "x"]], NumericType.F64)
        assert alloc.get_stats().live_buffers == 0

    def test_copy_is_deep(self, alloc):
        a = Matrix.from_rows(alloc, [[Fraction(1, 2), Fraction(3, 4)]], NumericType.FRACTION)
        b = a.copy()
        assert b == a
        assert b.data is not a.data
        b[0, 0] = Fraction(5)
        assert a[0, 0] == Fraction(1, 2)
        destroy(a)
        destroy(b)

    def test_copy_nested(self, alloc):
        other = DefaultAllocator()
        a = Matrix.from_rows(
            alloc, [[Matrix.from_rows(alloc, [[1, 2]], NumericType.I8)]], NumericType.MATRIX
        )
        b = a.copy(other)
        assert b == a
        assert b[0, 0] is not a[0, 0]
        assert b[0, 0].allocator is other
        destroy(a)
        assert b[0, 0].is_alive
        destroy(b)
        assert alloc.get_stats().live_buffers == 0
        assert other.get_stats().live_buffers == 0

    def test_equality(self, alloc):
        a = Matrix.from_rows(alloc, [[1, 2]], NumericType.I32)
        b = Matrix.from_rows(alloc, [[1, 2]], NumericType.I32)
        c = Matrix.from_rows(alloc, [[1, 2]], NumericType.I64)
        d = Matrix.from_rows(alloc, [[1], [2]], NumericType.I32)
        assert a == b
        assert a != c
        assert a != d
        assert a != 3
        assert Matrix() == Matrix()
        assert a != Matrix()
        for m in (a, b, c, d):
            destroy(m)
        assert a == Matrix()
