"""
CAMEL Config - Matrix Behavior Configuration

Provides the switches that select between strict and legacy behavior of the
matrix layer (element type checking, index clamping, scalar broadcasting)
and the print precision. Defaults come from the environment; overrides can
be applied globally or per thread through a context manager.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Any, Dict, Optional

from .core.error import InvalidArgumentError


# =============================================================================
# Policy Enumerations
# =============================================================================

class IndexPolicy(IntEnum):
    """
    What ``idx`` does with an out-of-range row or column.
    """
    RAISE = 0          # Raise IndexOutOfBoundsError
    CLAMP = 1          # Clamp to the last valid row/column (legacy)


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_policy() -> IndexPolicy:
    value = os.environ.get("CAMEL_INDEX_POLICY")
    if not value:
        return IndexPolicy.RAISE
    try:
        return IndexPolicy[value.strip().upper()]
    except KeyError:
        raise InvalidArgumentError(f"CAMEL_INDEX_POLICY must be RAISE or CLAMP, got {value!r}")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")


# =============================================================================
# Configuration Classes
# =============================================================================

@dataclass
class MatrixConfig:
    """Configuration for the matrix layer."""
    check_element_types: bool = field(default_factory=lambda: _env_flag("CAMEL_CHECK_TYPES", True))
    index_policy: IndexPolicy = field(default_factory=_env_policy)
    broadcast_scalars: bool = field(default_factory=lambda: _env_flag("CAMEL_BROADCAST_SCALARS", False))
    print_precision: int = field(default_factory=lambda: _env_int("CAMEL_PRINT_PRECISION", 6))


# =============================================================================
# Global Configuration Manager
# =============================================================================

class CamelConfig:
    """
    Global configuration manager for CAMEL.

    Matrix operations only read configuration. Thread-local overrides take
    precedence over the global values.

    Example:
        # Global configuration
        camel.config.matrix.print_precision = 3

        # Local configuration (context manager)
        with camel.config.local(broadcast_scalars=True):
            c = camel.add(alloc, a, scalar)
        # Back to global config
    """

    def __init__(self):
        self._global_matrix = MatrixConfig()

        # Thread-local storage for context overrides
        self._local = threading.local()

    @property
    def matrix(self) -> MatrixConfig:
        """Get matrix configuration."""
        local = getattr(self._local, "matrix", None)
        if local is not None:
            return local
        return self._global_matrix

    @matrix.setter
    def matrix(self, value: MatrixConfig):
        """Set global matrix configuration."""
        self._global_matrix = value

    # -------------------------------------------------------------------------
    # Convenience Properties
    # -------------------------------------------------------------------------

    @property
    def check_element_types(self) -> bool:
        return self.matrix.check_element_types

    @property
    def index_policy(self) -> IndexPolicy:
        return self.matrix.index_policy

    @property
    def broadcast_scalars(self) -> bool:
        return self.matrix.broadcast_scalars

    @property
    def print_precision(self) -> int:
        return self.matrix.print_precision

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **overrides) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **overrides: MatrixConfig fields to override in this thread.

        Returns:
            Context manager

        Raises:
            InvalidArgumentError: If a keyword is not a MatrixConfig field.
        """
        known = {f.name for f in fields(MatrixConfig)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidArgumentError(f"Unknown configuration keys: {sorted(unknown)}")
        return _LocalConfigContext(self, overrides)

    # -------------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------------

    def reset(self):
        """Reset to the environment defaults and drop this thread's overrides."""
        self._global_matrix = MatrixConfig()
        self._local.matrix = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        m = self.matrix
        return {
            "check_element_types": m.check_element_types,
            "index_policy": m.index_policy.name,
            "broadcast_scalars": m.broadcast_scalars,
            "print_precision": m.print_precision,
        }

    def __repr__(self) -> str:
        return f"CamelConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: CamelConfig, overrides: Dict[str, Any]):
        self._config = config
        self._overrides = overrides
        self._previous: Optional[MatrixConfig] = None

    def __enter__(self):
        self._previous = getattr(self._config._local, "matrix", None)
        self._config._local.matrix = replace(self._config.matrix, **self._overrides)
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._local.matrix = self._previous
        return False


# =============================================================================
# Global Instance
# =============================================================================

config = CamelConfig()


def get_config() -> CamelConfig:
    """Get the global configuration instance."""
    return config
