"""
Capped object pool for recycling octree nodes between ticks.

The tree is rebuilt every tick; drawing nodes from a pool keeps the
allocation count flat instead of creating and discarding a full tree per
tick. The pool is only touched from the coordinating thread, so it holds
no locks.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CapacityExceededError(RuntimeError):
    """Base exception for bounded resources that ran out."""

    pass


class PoolExhaustedError(CapacityExceededError):
    """Raised when acquiring would push the pool past its maximum size."""

    pass


class TreeDepthExceededError(CapacityExceededError):
    """Raised when an insertion would split deeper than the depth cap."""

    pass


class ObjectPool(Generic[T]):
    """
    Free-list pool with a hard cap on the number of live objects.

    Objects are created lazily by ``create`` until ``max_size`` objects
    exist; after that, acquiring with an empty free list raises
    PoolExhaustedError instead of silently growing.

    Example:
        pool = ObjectPool(OctreeNode, on_acquire=OctreeNode.clear,
                          default_capacity=16, max_size=256)
        node = pool.acquire()
        ...
        pool.release(node)
    """

    def __init__(
        self,
        create: Callable[[], T],
        *,
        on_acquire: Optional[Callable[[T], None]] = None,
        on_release: Optional[Callable[[T], None]] = None,
        default_capacity: int = 10,
        max_size: int = 10000,
    ) -> None:
        """
        Initialize the pool.

        Args:
            create: Factory for new objects
            on_acquire: Hook run on every object handed out
            on_release: Hook run on every object returned
            default_capacity: Objects created up front
            max_size: Maximum number of objects the pool may ever create

        Raises:
            ValueError: If the capacities are inconsistent
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        if default_capacity < 0 or default_capacity > max_size:
            raise ValueError(
                f"default_capacity must be in [0, {max_size}], got {default_capacity}"
            )

        self._create = create
        self._on_acquire = on_acquire
        self._on_release = on_release
        self._max_size = max_size
        self._free: list[T] = [create() for _ in range(default_capacity)]
        # id -> object for everything currently handed out
        self._active: dict[int, T] = {}

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def count_active(self) -> int:
        """Objects currently handed out."""
        return len(self._active)

    @property
    def count_inactive(self) -> int:
        """Objects waiting in the free list."""
        return len(self._free)

    @property
    def count_all(self) -> int:
        """Objects created by this pool."""
        return len(self._active) + len(self._free)

    def acquire(self) -> T:
        """
        Hand out an object, creating one if the free list is empty.

        Raises:
            PoolExhaustedError: If max_size objects are already in use
        """
        if self._free:
            item = self._free.pop()
        elif self.count_all < self._max_size:
            item = self._create()
        else:
            raise PoolExhaustedError(
                f"Object pool exhausted: {self.count_active} of {self._max_size} objects in use"
            )

        if self._on_acquire is not None:
            self._on_acquire(item)
        self._active[id(item)] = item
        return item

    def release(self, item: T) -> None:
        """
        Return an object to the free list.

        Raises:
            ValueError: If the object is not currently handed out by this pool
        """
        if self._active.pop(id(item), None) is None:
            raise ValueError("Released an object that is not active in this pool")

        if self._on_release is not None:
            self._on_release(item)
        self._free.append(item)

    def clear(self) -> None:
        """Drop every inactive object."""
        logger.debug("Dropping %d pooled objects", len(self._free))
        self._free.clear()


__all__ = [
    "CapacityExceededError",
    "PoolExhaustedError",
    "TreeDepthExceededError",
    "ObjectPool",
]
