"""Ownership of nested matrices.

A matrix stored into a MATRIX-typed matrix is moved: the containing matrix
becomes responsible for destroying it and the caller's handle turns into a
borrowed view of an element.

Safety Model:
    1. OWNED: the caller owns the matrix and must destroy it.
    2. MOVED: another matrix owns it; ``destroy`` on the handle is ignored
       (with a warning) and the owner tears it down.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any, Optional

from ..core.error import InvalidArgumentError, NullPointerError

__all__ = [
    'Ownership',
    'transfer',
    'release',
    'ensure_alive',
]

logger = logging.getLogger("camel.matrix")


class Ownership(IntEnum):
    """Who is responsible for destroying a matrix."""
    OWNED = 0          # Caller owns it
    MOVED = 1          # Moved into another matrix


def _ancestors(matrix: Any):
    node = getattr(matrix, "_owner", None)
    while node is not None:
        yield node
        node = getattr(node, "_owner", None)


def transfer(value: Any, owner: Any) -> None:
    """Move ``value`` into ``owner``.

    Args:
        value: Matrix being stored as an element.
        owner: Matrix that takes ownership.

    Raises:
        InvalidArgumentError: If ``value`` is ``owner``, already belongs to a
            matrix, or contains ``owner`` (which would form a cycle).
    """
    if value is owner:
        raise InvalidArgumentError("A matrix cannot be stored into itself")
    if value.ownership is Ownership.MOVED:
        raise InvalidArgumentError("Matrix is already owned by another matrix")
    for ancestor in _ancestors(owner):
        if ancestor is value:
            raise InvalidArgumentError("Storing this matrix would create an ownership cycle")
    value.ownership = Ownership.MOVED
    value._owner = owner
    logger.debug("moved %r into %r", value, owner)


def release(value: Any) -> None:
    """Hand a matrix back to the caller (its owner no longer holds it)."""
    value.ownership = Ownership.OWNED
    value._owner = None


def ensure_alive(matrix: Optional[Any], context: str = "", name: str = "matrix") -> None:
    """Raise ``NullPointerError`` unless ``matrix`` is an initialized matrix.

    Args:
        matrix: Object to check.
        context: Operation name used in the message.
        name: Argument name used in the message.
    """
    prefix = f"{context}: " if context else ""
    if matrix is None:
        raise NullPointerError(f"{prefix}{name} is None")
    if getattr(matrix, "data", None) is None:
        raise NullPointerError(f"{prefix}{name} is not initialized")
