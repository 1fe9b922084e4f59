"""
Exact pairwise gravitation.

Every unordered pair of bodies is evaluated once and both halves of the
symmetric force pair are applied, giving O(n^2) kernel evaluations.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..types import Algorithm, PointMass
from .batching import WorkBatch, build_exact_batch
from .evaluation import ForcePairs, reduce_pairwise
from .solver import ForceSolver


class ExactSolver(ForceSolver):
    """
    Exact O(n^2) force solver.

    Example:
        solver = ExactSolver(gravitational_constant=1.0)
        result = solver.compute([
            PointMass((0, 0, 0), 1.0),
            PointMass((1, 0, 0), 1.0),
        ])
        result.velocity_deltas  # [[1, 0, 0], [-1, 0, 0]]
    """

    algorithm = Algorithm.EXACT

    def build_batch(self, points: Sequence[PointMass]) -> WorkBatch:
        return build_exact_batch(points)

    def reduce(self, batch: WorkBatch, forces: ForcePairs, body_count: int) -> np.ndarray:
        return reduce_pairwise(batch, forces, body_count)


__all__ = ["ExactSolver"]
