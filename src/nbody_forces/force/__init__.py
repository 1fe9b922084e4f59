"""
Gravitational force solvers.

This module provides the two interchangeable algorithms:
- ExactSolver: Pairwise summation over every unordered pair, O(n^2)
- BarnesHutSolver: Octree approximation controlled by theta, O(n log n)

plus the work batching, parallel evaluation and reduction they share.
"""

from .barnes_hut import BarnesHutSolver
from .batching import (
    AGGREGATE_INDEX,
    WorkBatch,
    WorkItem,
    build_barnes_hut_batch,
    build_exact_batch,
    partition,
)
from .evaluation import ForcePairs, ParallelEvaluator, reduce_one_sided, reduce_pairwise
from .exact import ExactSolver
from .solver import ForceSolver

__all__ = [
    "ForceSolver",
    "ExactSolver",
    "BarnesHutSolver",
    "AGGREGATE_INDEX",
    "WorkItem",
    "WorkBatch",
    "build_exact_batch",
    "build_barnes_hut_batch",
    "partition",
    "ForcePairs",
    "ParallelEvaluator",
    "reduce_pairwise",
    "reduce_one_sided",
]
