"""Memory management: injectable allocators.

Every data-owning CAMEL structure receives an allocator instead of reaching
for a global one. Buffers are flat numpy arrays; object buffers hold the
handles of heap-backed elements and start out filled with ``None``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .error import AllocationError, InvalidSizeError, UnregisteredBufferError

__all__ = ['AllocatorStats', 'Allocator', 'DefaultAllocator', 'BoundedAllocator']

logger = logging.getLogger("camel.memory")


@dataclass
class AllocatorStats:
    """Snapshot of an allocator's bookkeeping."""
    live_buffers: int = 0
    bytes_in_use: int = 0
    peak_bytes: int = 0
    total_allocations: int = 0
    total_frees: int = 0


# =============================================================================
# Allocator Interface
# =============================================================================

class Allocator(ABC):
    """Capability object that hands out and takes back element buffers.

    Subclasses must implement ``malloc`` and ``free``. ``calloc`` and
    ``realloc`` have generic implementations on top of those two.

    Allocators signal failure by raising ``AllocationError`` (a
    ``MemoryError``). An allocator must outlive every matrix that stores it.
    """

    @abstractmethod
    def malloc(self, count: int, dtype: Any) -> np.ndarray:
        """Allocate an uninitialized flat buffer of ``count`` elements."""
        ...

    @abstractmethod
    def free(self, buffer: np.ndarray) -> None:
        """Release a buffer obtained from this allocator."""
        ...

    def calloc(self, count: int, dtype: Any) -> np.ndarray:
        """Allocate a zero-filled buffer (``None``-filled for object dtype)."""
        buffer = self.malloc(count, dtype)
        buffer.fill(None if buffer.dtype == object else 0)
        return buffer

    def realloc(self, buffer: np.ndarray, count: int) -> np.ndarray:
        """Resize ``buffer`` to ``count`` elements, preserving the common prefix."""
        new_buffer = self.calloc(count, buffer.dtype)
        keep = min(count, buffer.size)
        new_buffer[:keep] = buffer[:keep]
        self.free(buffer)
        return new_buffer

    def get_stats(self) -> AllocatorStats:
        """Return allocation statistics (empty if the allocator keeps none)."""
        return AllocatorStats()


# =============================================================================
# Default Allocator
# =============================================================================

class DefaultAllocator(Allocator):
    """numpy-backed allocator that tracks every live buffer.

    Freeing a buffer that this allocator did not hand out, or freeing the
    same buffer twice, raises ``UnregisteredBufferError``.

    Example:
        >>> alloc = DefaultAllocator()
        >>> buf = alloc.calloc(4, np.float64)
        >>> alloc.get_stats().live_buffers
        1
        >>> alloc.free(buf)
    """

    def __init__(self):
        self._live: Dict[int, Tuple[np.ndarray, int]] = {}
        self._stats = AllocatorStats()

    def malloc(self, count: int, dtype: Any) -> np.ndarray:
        if count < 0:
            raise InvalidSizeError(f"Cannot allocate {count} elements")
        dtype = np.dtype(dtype)
        nbytes = count * dtype.itemsize
        self._reserve(nbytes)
        try:
            buffer = np.empty(count, dtype=dtype)
        except MemoryError as e:
            self._release(nbytes)
            raise AllocationError(f"malloc of {nbytes} bytes failed: {e}") from e
        self._live[id(buffer)] = (buffer, nbytes)
        self._stats.live_buffers += 1
        self._stats.total_allocations += 1
        logger.debug("malloc %d x %s (%d bytes)", count, dtype, nbytes)
        return buffer

    def free(self, buffer: np.ndarray) -> None:
        entry = self._live.get(id(buffer))
        if entry is None or entry[0] is not buffer:
            raise UnregisteredBufferError("free of a buffer not owned by this allocator")
        del self._live[id(buffer)]
        nbytes = entry[1]
        self._release(nbytes)
        self._stats.live_buffers -= 1
        self._stats.total_frees += 1
        logger.debug("free %d bytes", nbytes)

    def owns(self, buffer: Optional[np.ndarray]) -> bool:
        """Check whether ``buffer`` is a live buffer of this allocator."""
        entry = self._live.get(id(buffer)) if buffer is not None else None
        return entry is not None and entry[0] is buffer

    def get_stats(self) -> AllocatorStats:
        return AllocatorStats(**vars(self._stats))

    def _reserve(self, nbytes: int) -> None:
        self._stats.bytes_in_use += nbytes
        self._stats.peak_bytes = max(self._stats.peak_bytes, self._stats.bytes_in_use)

    def _release(self, nbytes: int) -> None:
        self._stats.bytes_in_use -= nbytes

    def __repr__(self) -> str:
        s = self._stats
        return f"{type(self).__name__}(live={s.live_buffers}, bytes={s.bytes_in_use})"


class BoundedAllocator(DefaultAllocator):
    """DefaultAllocator with a byte budget.

    Requests that would push ``bytes_in_use`` beyond ``capacity`` raise
    ``AllocationError`` without allocating.

    Args:
        capacity: Maximum number of bytes that may be live at once.
    """

    def __init__(self, capacity: int):
        super().__init__()
        if capacity < 0:
            raise InvalidSizeError(f"capacity must be non-negative, got {capacity}")
        self.capacity = capacity

    def _reserve(self, nbytes: int) -> None:
        if self._stats.bytes_in_use + nbytes > self.capacity:
            logger.debug("allocation of %d bytes refused (in use %d, capacity %d)",
                         nbytes, self._stats.bytes_in_use, self.capacity)
            raise AllocationError(
                f"request of {nbytes} bytes exceeds capacity "
                f"({self._stats.bytes_in_use}/{self.capacity} in use)"
            )
        super()._reserve(nbytes)
