"""
Base class for force solvers.

A solver turns one tick's point-mass snapshot into per-body velocity
deltas: build a work batch, evaluate it in parallel, reduce it
sequentially. Subclasses decide how the batch is built and reduced.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Optional, Sequence

import numpy as np

from ..metrics import system_barycenter
from ..types import (
    DEFAULT_CHUNK_DIVISOR,
    DEFAULT_GRAVITATIONAL_CONSTANT,
    Algorithm,
    LeafSnapshot,
    PointMass,
    TickResult,
)
from ..validation import validate_point_masses, validate_positive
from .batching import WorkBatch
from .evaluation import ForcePairs, ParallelEvaluator


class ForceSolver(ABC):
    """
    Abstract force solver.

    Example:
        solver = ExactSolver(gravitational_constant=1.0)
        result = solver.compute(points)
        for body, delta in zip(bodies, result.velocity_deltas):
            body.velocity += delta
    """

    algorithm: ClassVar[Algorithm]

    def __init__(
        self,
        *,
        gravitational_constant: float = DEFAULT_GRAVITATIONAL_CONSTANT,
        max_workers: Optional[int] = None,
        chunk_divisor: int = DEFAULT_CHUNK_DIVISOR,
        evaluator: Optional[ParallelEvaluator] = None,
    ) -> None:
        """
        Initialize solver.

        Args:
            gravitational_constant: G
            max_workers: Evaluation worker threads (ignored if evaluator given)
            chunk_divisor: Chunking of the batch (ignored if evaluator given)
            evaluator: Shared evaluator; one is created if omitted
        """
        self._gravitational_constant = validate_positive(
            gravitational_constant, "gravitational_constant"
        )
        self._owns_evaluator = evaluator is None
        self._evaluator = evaluator or ParallelEvaluator(
            max_workers=max_workers, chunk_divisor=chunk_divisor
        )

    @property
    def gravitational_constant(self) -> float:
        """Get G."""
        return self._gravitational_constant

    @gravitational_constant.setter
    def gravitational_constant(self, value: float) -> None:
        """Set G (must be positive)."""
        self._gravitational_constant = validate_positive(value, "gravitational_constant")

    @property
    def evaluator(self) -> ParallelEvaluator:
        return self._evaluator

    def compute(self, points: Sequence[PointMass]) -> TickResult:
        """
        Compute one tick of velocity deltas.

        Args:
            points: Snapshot of every body, in index order

        Returns:
            TickResult with deltas, interaction count and diagnostics
        """
        n = validate_point_masses(points)
        barycenter, total_mass = system_barycenter(points)

        batch = self.build_batch(points)
        forces = self._evaluator.evaluate(batch, self._gravitational_constant)
        deltas = self.reduce(batch, forces, n)

        return TickResult(
            velocity_deltas=deltas,
            interaction_count=len(batch),
            barycenter=barycenter,
            total_mass=total_mass,
            tree_snapshot=self.tree_snapshot(),
        )

    @abstractmethod
    def build_batch(self, points: Sequence[PointMass]) -> WorkBatch:
        """Build this tick's work items."""
        pass

    @abstractmethod
    def reduce(self, batch: WorkBatch, forces: ForcePairs, body_count: int) -> np.ndarray:
        """Fold evaluated forces into (body_count, 3) velocity deltas."""
        pass

    def tree_snapshot(self) -> Optional[tuple[LeafSnapshot, ...]]:
        """Leaves of the spatial tree, if the solver builds one."""
        return None

    def close(self) -> None:
        """Release the evaluation worker pool if this solver created it."""
        if self._owns_evaluator:
            self._evaluator.close()


__all__ = ["ForceSolver"]
