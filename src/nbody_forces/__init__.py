"""
nbody-forces: Gravitational N-body force solvers in Python.

This package computes per-body velocity updates for one simulation tick
using one of two interchangeable algorithms:

Available algorithms:
- exact: Pairwise summation over every unordered pair, O(n^2)
- barnes_hut: Octree approximation controlled by theta, O(n log n)

Both share one inverse-square force kernel and a parallel evaluation
phase with sequential reduction.
"""

import logging

__version__ = "0.1.0"

# Shared types
# Base classes for building simulations
from .base import BaseSimulation

# Force solvers
from .force import (
    BarnesHutSolver,
    ExactSolver,
    ForceSolver,
    ParallelEvaluator,
    WorkBatch,
    WorkItem,
)

# Initial conditions
from .initial import random_bodies

# Force kernel
from .kernel import gravitational_force, gravitational_forces

# Diagnostics
from .metrics import (
    kinetic_energy,
    relative_force_error,
    system_barycenter,
    total_momentum,
)
from .simulation import Simulation, SimulationHaltedError

# Spatial data structures
from .spatial import (
    Bounds,
    CapacityExceededError,
    ObjectPool,
    Octree,
    OctreeNode,
    OutOfBoundsError,
    PoolExhaustedError,
    TreeDepthExceededError,
)
from .types import (
    MAX_DEPTH,
    Algorithm,
    Body,
    BodyLike,
    Event,
    EventType,
    LeafSnapshot,
    PointMass,
    SimulationConfig,
    TickResult,
)

# Validation utilities
from .validation import (
    InvalidAlgorithmError,
    InvalidBodyCountError,
    InvalidBodyError,
    InvalidParameterError,
    InvalidThetaError,
    ValidationError,
    ZeroMassError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Version
    "__version__",
    # Shared types
    "MAX_DEPTH",
    "Algorithm",
    "Body",
    "BodyLike",
    "PointMass",
    "SimulationConfig",
    "TickResult",
    "LeafSnapshot",
    "EventType",
    "Event",
    # Simulation
    "BaseSimulation",
    "Simulation",
    "SimulationHaltedError",
    # Solvers
    "ForceSolver",
    "ExactSolver",
    "BarnesHutSolver",
    "ParallelEvaluator",
    "WorkBatch",
    "WorkItem",
    # Kernel
    "gravitational_force",
    "gravitational_forces",
    # Spatial data structures
    "Bounds",
    "Octree",
    "OctreeNode",
    "ObjectPool",
    # Metrics
    "system_barycenter",
    "total_momentum",
    "kinetic_energy",
    "relative_force_error",
    # Initial conditions
    "random_bodies",
    # Errors
    "ValidationError",
    "InvalidAlgorithmError",
    "InvalidBodyError",
    "InvalidBodyCountError",
    "InvalidThetaError",
    "InvalidParameterError",
    "ZeroMassError",
    "CapacityExceededError",
    "PoolExhaustedError",
    "TreeDepthExceededError",
    "OutOfBoundsError",
]
