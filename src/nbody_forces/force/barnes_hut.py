"""
Barnes-Hut gravitation.

Each tick the bodies are inserted into a pooled octree. For every body the
tree yields the leaves and aggregates it should interact with; distant
groups whose width/distance ratio is below theta are replaced by their
barycenter, reducing the number of kernel evaluations to O(n log n).

Aggregates are pseudo-bodies with no state of their own, so only the force
on the querying body is applied.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np

from ..spatial.octree import Octree, make_node_pool
from ..types import (
    DEFAULT_CHUNK_DIVISOR,
    DEFAULT_GRAVITATIONAL_CONSTANT,
    DEFAULT_PADDING,
    DEFAULT_THETA,
    MAX_DEPTH,
    Algorithm,
    LeafSnapshot,
    PointMass,
)
from ..validation import validate_positive, validate_positive_int, validate_theta
from .batching import WorkBatch, build_barnes_hut_batch
from .evaluation import ForcePairs, ParallelEvaluator, reduce_one_sided
from .solver import ForceSolver

logger = logging.getLogger(__name__)


class BarnesHutSolver(ForceSolver):
    """
    Barnes-Hut O(n log n) force solver.

    The octree and its node pool persist across ticks; the pool is sized
    for the body count (default capacity n, hard cap n^2) and recreated
    only when the body count changes.

    Example:
        solver = BarnesHutSolver(gravitational_constant=1.0, barnes_hut_theta=0.5)
        result = solver.compute(points)
        leaves = result.tree_snapshot
    """

    algorithm = Algorithm.BARNES_HUT

    def __init__(
        self,
        *,
        gravitational_constant: float = DEFAULT_GRAVITATIONAL_CONSTANT,
        barnes_hut_theta: float = DEFAULT_THETA,
        padding: float = DEFAULT_PADDING,
        max_tree_depth: int = MAX_DEPTH,
        max_workers: Optional[int] = None,
        chunk_divisor: int = DEFAULT_CHUNK_DIVISOR,
        evaluator: Optional[ParallelEvaluator] = None,
    ) -> None:
        """
        Initialize Barnes-Hut solver.

        Args:
            gravitational_constant: G
            barnes_hut_theta: Accuracy (0 = exact, larger = more aggregation)
            padding: Margin added to each side of the root bounding box
            max_tree_depth: Depth cap for tree insertion
            max_workers: Evaluation worker threads
            chunk_divisor: Chunking of the batch
            evaluator: Shared evaluator; one is created if omitted
        """
        super().__init__(
            gravitational_constant=gravitational_constant,
            max_workers=max_workers,
            chunk_divisor=chunk_divisor,
            evaluator=evaluator,
        )
        self._theta = validate_theta(barnes_hut_theta)
        self._padding = validate_positive(padding, "padding")
        self._max_tree_depth = validate_positive_int(max_tree_depth, "max_tree_depth")
        self._tree: Optional[Octree] = None
        self._tree_body_count = 0

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def barnes_hut_theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._theta

    @barnes_hut_theta.setter
    def barnes_hut_theta(self, value: float) -> None:
        """Set Barnes-Hut theta parameter."""
        self._theta = validate_theta(value)

    @property
    def padding(self) -> float:
        return self._padding

    @property
    def max_tree_depth(self) -> int:
        return self._max_tree_depth

    @property
    def tree(self) -> Optional[Octree]:
        """The octree built by the last tick, if any."""
        return self._tree

    # -------------------------------------------------------------------------
    # Solver Implementation
    # -------------------------------------------------------------------------

    def _tree_for(self, body_count: int) -> Octree:
        if self._tree is None or self._tree_body_count != body_count:
            pool = make_node_pool(body_count)
            self._tree = Octree(pool, padding=self._padding, max_depth=self._max_tree_depth)
            self._tree_body_count = body_count
            logger.debug(
                "Created octree node pool for %d bodies (max %d nodes)", body_count, pool.max_size
            )
        return self._tree

    def build_batch(self, points: Sequence[PointMass]) -> WorkBatch:
        tree = self._tree_for(len(points))
        tree.rebuild(points)
        return build_barnes_hut_batch(points, tree, self._theta)

    def reduce(self, batch: WorkBatch, forces: ForcePairs, body_count: int) -> np.ndarray:
        return reduce_one_sided(batch, forces, body_count)

    def tree_snapshot(self) -> Optional[tuple[LeafSnapshot, ...]]:
        if self._tree is None:
            return None
        return self._tree.snapshot_leaves()


__all__ = ["BarnesHutSolver"]
