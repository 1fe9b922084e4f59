"""
Work batching for the force evaluation phase.

A work item is one kernel evaluation: a source body against a target,
which is either another body (exact) or an aggregate pseudo-body yielded
by the octree (Barnes-Hut, target_index = -1). Items are stored
column-wise in numpy arrays sized to the worst case (N^2 items), filled
once per tick and discarded after reduction.
"""

from __future__ import annotations

import math
from typing import Iterator, NamedTuple, Sequence

import numpy as np

from ..spatial.octree import Octree
from ..spatial.pool import CapacityExceededError
from ..types import DEFAULT_CHUNK_DIVISOR, PointMass

AGGREGATE_INDEX = -1
"""target_index of Barnes-Hut items, whose target is not a concrete body."""


class WorkItem(NamedTuple):
    """One unit of force-kernel evaluation."""

    source_index: int
    source_position: np.ndarray
    source_mass: float
    target_position: np.ndarray
    target_mass: float
    target_index: int = AGGREGATE_INDEX


class WorkBatch:
    """
    Column-wise buffer of work items.

    The column properties return views of the filled prefix, so they can be
    sliced per chunk without copying.
    """

    def __init__(self, capacity: int) -> None:
        capacity = max(0, int(capacity))
        self._capacity = capacity
        self._count = 0
        self._source_index = np.zeros(capacity, dtype=np.intp)
        self._source_position = np.zeros((capacity, 3), dtype=np.float64)
        self._source_mass = np.zeros(capacity, dtype=np.float64)
        self._target_position = np.zeros((capacity, 3), dtype=np.float64)
        self._target_mass = np.zeros(capacity, dtype=np.float64)
        self._target_index = np.full(capacity, AGGREGATE_INDEX, dtype=np.intp)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def source_index(self) -> np.ndarray:
        return self._source_index[: self._count]

    @property
    def source_position(self) -> np.ndarray:
        return self._source_position[: self._count]

    @property
    def source_mass(self) -> np.ndarray:
        return self._source_mass[: self._count]

    @property
    def target_position(self) -> np.ndarray:
        return self._target_position[: self._count]

    @property
    def target_mass(self) -> np.ndarray:
        return self._target_mass[: self._count]

    @property
    def target_index(self) -> np.ndarray:
        return self._target_index[: self._count]

    def append(
        self,
        source_index: int,
        source_position: np.ndarray,
        source_mass: float,
        target_position: np.ndarray,
        target_mass: float,
        target_index: int = AGGREGATE_INDEX,
    ) -> None:
        """
        Add one item.

        Raises:
            CapacityExceededError: If the buffer is full
        """
        k = self._count
        if k >= self._capacity:
            raise CapacityExceededError(f"Work batch is full ({self._capacity} items)")
        self._source_index[k] = source_index
        self._source_position[k] = source_position
        self._source_mass[k] = source_mass
        self._target_position[k] = target_position
        self._target_mass[k] = target_mass
        self._target_index[k] = target_index
        self._count = k + 1

    def permuted(self, order: Sequence[int]) -> WorkBatch:
        """New batch holding the same items in the given order."""
        order = np.asarray(order, dtype=np.intp)
        if sorted(order.tolist()) != list(range(self._count)):
            raise ValueError("order must be a permutation of the item indices")
        batch = WorkBatch(self._capacity)
        batch._count = self._count
        batch._source_index[: self._count] = self.source_index[order]
        batch._source_position[: self._count] = self.source_position[order]
        batch._source_mass[: self._count] = self.source_mass[order]
        batch._target_position[: self._count] = self.target_position[order]
        batch._target_mass[: self._count] = self.target_mass[order]
        batch._target_index[: self._count] = self.target_index[order]
        return batch

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, k: int) -> WorkItem:
        if k < 0:
            k += self._count
        if not 0 <= k < self._count:
            raise IndexError(f"work item {k} out of range [0, {self._count})")
        return WorkItem(
            int(self._source_index[k]),
            self._source_position[k].copy(),
            float(self._source_mass[k]),
            self._target_position[k].copy(),
            float(self._target_mass[k]),
            int(self._target_index[k]),
        )

    def __iter__(self) -> Iterator[WorkItem]:
        for k in range(self._count):
            yield self[k]

    def __repr__(self) -> str:
        return f"WorkBatch(items={self._count}, capacity={self._capacity})"


def build_exact_batch(points: Sequence[PointMass]) -> WorkBatch:
    """
    One work item per unordered pair (i, j) with i < j.

    Pairs are order-independent, so each is evaluated exactly once and no
    body is paired with itself. Items are ordered by i, then j.

    Returns:
        Batch of N * (N - 1) / 2 items
    """
    n = len(points)
    batch = WorkBatch(n * n)
    if n < 2:
        return batch

    positions = np.array([p.position for p in points], dtype=np.float64)
    masses = np.array([p.mass for p in points], dtype=np.float64)
    first, second = np.triu_indices(n, k=1)
    k = len(first)

    batch._count = k
    batch._source_index[:k] = first
    batch._source_position[:k] = positions[first]
    batch._source_mass[:k] = masses[first]
    batch._target_index[:k] = second
    batch._target_position[:k] = positions[second]
    batch._target_mass[:k] = masses[second]
    return batch


def build_barnes_hut_batch(
    points: Sequence[PointMass],
    tree: Octree,
    theta: float,
) -> WorkBatch:
    """
    One work item per interaction the tree accepts for each body.

    The tree must already hold ``points``. Uninitialized nodes (NaN mass)
    are skipped. A body's own leaf is yielded too; it sits at zero distance
    and the kernel turns it into a zero contribution.

    Args:
        points: Snapshot the tree was built from
        tree: Populated octree
        theta: Barnes-Hut threshold

    Returns:
        Batch whose targets are aggregates (target_index = -1)
    """
    n = len(points)
    batch = WorkBatch(n * n)
    for i, point in enumerate(points):
        for position, mass in tree.collect_interactions(point.position, theta):
            if math.isnan(mass):
                continue
            batch.append(i, point.position, point.mass, position, mass)
    return batch


def partition(count: int, chunk_divisor: int = DEFAULT_CHUNK_DIVISOR) -> list[slice]:
    """
    Split item indices into contiguous chunks.

    Chunk size is count // chunk_divisor, minimum 1.

    Returns:
        Slices covering [0, count) exactly once, in order
    """
    if count <= 0:
        return []
    size = max(1, count // max(1, chunk_divisor))
    return [slice(start, min(start + size, count)) for start in range(0, count, size)]


__all__ = [
    "AGGREGATE_INDEX",
    "WorkItem",
    "WorkBatch",
    "build_exact_batch",
    "build_barnes_hut_batch",
    "partition",
]
