"""
Common types for the N-body force solvers.

This module provides the fundamental types shared by every solver:
- PointMass: Immutable per-tick snapshot of one body
- Body: Mutable live state of one body, owned by the host harness
- Algorithm: Force algorithm selector
- SimulationConfig: Bundled solver configuration
- TickResult / LeafSnapshot: Per-tick output handed back to the host
- EventType / Event: Simulation lifecycle events
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Optional, TypedDict, Union

import numpy as np

from .validation import (
    InvalidAlgorithmError,
    validate_mass,
    validate_positive,
    validate_positive_int,
    validate_theta,
    validate_vector,
)

# Default solver parameters
DEFAULT_GRAVITATIONAL_CONSTANT = 1e-4
DEFAULT_THETA = 1.5
# Added to each side of the tightest bounding box, so the root grows by
# twice this on every axis and tolerates drift between rebuilds.
DEFAULT_PADDING = 50.0
DEFAULT_CHUNK_DIVISOR = 8
MAX_DEPTH = 512

Vector3 = np.ndarray
"""A float64 array of shape (3,)."""


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - start: First tick is about to run
    - tick: Fired once per applied tick
    - end: Simulation was stopped
    """

    start = 0
    tick = 1
    end = 2


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    tick: int
    interaction_count: int
    result: Optional[TickResult]


class Algorithm(str, Enum):
    """Force algorithm selector."""

    EXACT = "exact"
    BARNES_HUT = "barnes_hut"

    @classmethod
    def parse(cls, value: Union[Algorithm, str]) -> Algorithm:
        """
        Resolve an algorithm from an enum member or a string name.

        Accepts "exact", "barnes_hut", "barnes-hut", "BarnesHut" and the
        enum member names, case-insensitively.

        Raises:
            InvalidAlgorithmError: If the value names no known variant
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "").replace("_", "")
            for member in cls:
                if key == member.value.replace("_", ""):
                    return member
        valid = ", ".join(m.value for m in cls)
        raise InvalidAlgorithmError(f"algorithm must be one of {valid}, got {value!r}")


def _frozen_vector(value: Any, name: str) -> np.ndarray:
    vector = validate_vector(value, name)
    vector.setflags(write=False)
    return vector


@dataclass(frozen=True, eq=False)
class PointMass:
    """
    Immutable snapshot of one body for the duration of a tick.

    The position and velocity arrays are read-only; solvers return
    velocity changes as deltas instead of writing them here.
    """

    position: Vector3
    mass: float
    velocity: Vector3 = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", _frozen_vector(self.position, "position"))
        object.__setattr__(self, "velocity", _frozen_vector(self.velocity, "velocity"))
        object.__setattr__(self, "mass", validate_mass(self.mass))

    def __repr__(self) -> str:
        x, y, z = self.position
        return f"PointMass(position=({x:.4g}, {y:.4g}, {z:.4g}), mass={self.mass:.4g})"


class Body:
    """
    Live state of one body, owned by the host harness.

    Attributes:
        index: Index in the simulation's body list (set by the simulation)
        position: Current position (float64 array of shape (3,))
        mass: Body mass (> 0)
        velocity: Current velocity (float64 array of shape (3,))
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize body with optional properties."""
        self.index: Optional[int] = kwargs.get("index")
        self.position: Vector3 = validate_vector(kwargs.get("position", (0.0, 0.0, 0.0)), "position")
        self.mass: float = validate_mass(kwargs.get("mass", 1.0))
        self.velocity: Vector3 = validate_vector(kwargs.get("velocity", (0.0, 0.0, 0.0)), "velocity")

        # Copy any additional custom properties
        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def snapshot(self) -> PointMass:
        """Freeze the current state into a PointMass."""
        return PointMass(self.position, self.mass, self.velocity)

    def __repr__(self) -> str:
        x, y, z = self.position
        return f"Body(index={self.index}, position=({x:.2f}, {y:.2f}, {z:.2f}), mass={self.mass:.2f})"


@dataclass(frozen=True)
class SimulationConfig:
    """
    Solver configuration.

    Attributes:
        algorithm: Exact pairwise summation or Barnes-Hut approximation
        gravitational_constant: G in F = G * m1 * m2 / d^2
        barnes_hut_theta: Opening angle threshold (0 = exact)
        padding: Margin added to each side of the root bounding box
        max_workers: Evaluation worker count (None = executor default)
        chunk_divisor: Work items are split into roughly this many chunks
        max_tree_depth: Deepest octree level insertion may create
    """

    algorithm: Algorithm = Algorithm.EXACT
    gravitational_constant: float = DEFAULT_GRAVITATIONAL_CONSTANT
    barnes_hut_theta: float = DEFAULT_THETA
    padding: float = DEFAULT_PADDING
    max_workers: Optional[int] = None
    chunk_divisor: int = DEFAULT_CHUNK_DIVISOR
    max_tree_depth: int = MAX_DEPTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "algorithm", Algorithm.parse(self.algorithm))
        object.__setattr__(
            self,
            "gravitational_constant",
            validate_positive(self.gravitational_constant, "gravitational_constant"),
        )
        object.__setattr__(self, "barnes_hut_theta", validate_theta(self.barnes_hut_theta))
        object.__setattr__(self, "padding", validate_positive(self.padding, "padding"))
        if self.max_workers is not None:
            validate_positive_int(self.max_workers, "max_workers")
        validate_positive_int(self.chunk_divisor, "chunk_divisor")
        validate_positive_int(self.max_tree_depth, "max_tree_depth")

    @classmethod
    def from_intensity(cls, exponent: float, **kwargs: Any) -> SimulationConfig:
        """
        Build a configuration with G = 10 ** exponent.

        Args:
            exponent: Gravitation intensity, typically in [-10, -1]
            **kwargs: Remaining SimulationConfig fields
        """
        return cls(gravitational_constant=10.0 ** float(exponent), **kwargs)


@dataclass(frozen=True)
class LeafSnapshot:
    """Read-only copy of one octree leaf, for visualization."""

    bounds_min: Vector3
    bounds_max: Vector3
    barycenter: Vector3
    total_mass: float

    @property
    def size(self) -> Vector3:
        """Edge lengths of the leaf cube."""
        return self.bounds_max - self.bounds_min


@dataclass(frozen=True, eq=False)
class TickResult:
    """
    Output of one simulation tick.

    Attributes:
        velocity_deltas: (N, 3) array; row i is added to body i's velocity
        interaction_count: Force evaluations performed this tick
        barycenter: Mass-weighted centroid of all bodies
        total_mass: Sum of all body masses
        tree_snapshot: Leaves of the Barnes-Hut tree (None for exact)
    """

    velocity_deltas: np.ndarray
    interaction_count: int
    barycenter: Vector3
    total_mass: float
    tree_snapshot: Optional[tuple[LeafSnapshot, ...]] = None


# Type aliases for Pythonic API
BodyLike = Union[Body, PointMass, dict[str, Any], Any]
"""Input type for bodies: Body/PointMass objects, dicts, or objects with body attributes."""

AlgorithmLike = Union[Algorithm, str]
"""Algorithm selector: Algorithm member or its string name."""

EventCallback = Callable[[Optional[Event]], None]


__all__ = [
    "DEFAULT_GRAVITATIONAL_CONSTANT",
    "DEFAULT_THETA",
    "DEFAULT_PADDING",
    "DEFAULT_CHUNK_DIVISOR",
    "MAX_DEPTH",
    "Vector3",
    "EventType",
    "Event",
    "Algorithm",
    "PointMass",
    "Body",
    "SimulationConfig",
    "LeafSnapshot",
    "TickResult",
    "BodyLike",
    "AlgorithmLike",
    "EventCallback",
]
