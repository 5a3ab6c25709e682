"""
Pytest configuration and shared fixtures for CAMEL tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import camel
from camel import DefaultAllocator, Matrix, NumericType


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_config():
    """Every test starts from the environment defaults."""
    camel.config.reset()
    yield
    camel.config.reset()


@pytest.fixture
def alloc():
    """Fresh tracking allocator."""
    return DefaultAllocator()


@pytest.fixture
def f64_pair(alloc):
    """A = [[1, 2], [3, 4]], B = [[5, 6], [7, 8]] as F64."""
    a = Matrix.from_rows(alloc, [[1, 2], [3, 4]], NumericType.F64)
    b = Matrix.from_rows(alloc, [[5, 6], [7, 8]], NumericType.F64)
    yield a, b
    camel.destroy(a)
    camel.destroy(b)


@pytest.fixture
def square3(alloc):
    """3x3 F64 matrix with distinct entries 1..9."""
    m = Matrix.from_rows(alloc, [[1, 2, 3], [4, 5, 6], [7, 8, 9]], NumericType.F64)
    yield m
    camel.destroy(m)


def nested(alloc, blocks, ntype=NumericType.F64):
    """Build a MATRIX-typed matrix from a grid of nested row lists."""
    return Matrix.from_rows(
        alloc,
        [[Matrix.from_rows(alloc, rows, ntype) for rows in row] for row in blocks],
        NumericType.MATRIX,
    )


def values(matrix):
    """Elements as nested Python lists of plain numbers/objects."""
    return [[v.item() if isinstance(v, np.generic) else v for v in row] for row in matrix.tolist()]
