"""
Random initial conditions.

Scatters bodies uniformly inside a sphere with random velocities and
masses. Useful as a starting point for simulations and as a workload for
comparing the exact and Barnes-Hut solvers.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Optional

from ..types import Body
from ..validation import InvalidParameterError, validate_body_count, validate_positive

logger = logging.getLogger(__name__)


def _inside_unit_sphere(rng: random.Random) -> tuple[float, float, float]:
    """Uniform point inside the unit sphere (rejection sampling)."""
    while True:
        x = rng.uniform(-1.0, 1.0)
        y = rng.uniform(-1.0, 1.0)
        z = rng.uniform(-1.0, 1.0)
        if x * x + y * y + z * z <= 1.0:
            return x, y, z


def random_bodies(
    count: int,
    *,
    seed: Optional[int] = None,
    radius: float = 5000.0,
    max_speed: float = 1000.0,
    min_mass: float = 1.0,
    max_mass: float = 10.0,
) -> list[Body]:
    """
    Generate bodies with random positions, velocities and masses.

    Positions are uniform inside a sphere of ``radius``, velocities
    uniform inside a sphere of ``max_speed``, and masses are
    ``U(0, 1) * max_mass`` clamped to [min_mass, max_mass].

    Args:
        count: Number of bodies (>= 1)
        seed: Random seed for reproducible output; None or 0 picks a
            time-derived seed
        radius: Radius of the spawn sphere
        max_speed: Largest initial speed
        min_mass: Lower mass clamp (> 0)
        max_mass: Upper mass clamp

    Returns:
        List of Body objects indexed 0..count-1

    Raises:
        ValidationError: If any parameter is out of range
    """
    validate_body_count(count)
    validate_positive(radius, "radius")
    validate_positive(max_speed, "max_speed", allow_zero=True)
    validate_positive(min_mass, "min_mass")
    validate_positive(max_mass, "max_mass")
    if min_mass > max_mass:
        raise InvalidParameterError(f"min_mass ({min_mass}) must not exceed max_mass ({max_mass})")

    if not seed:
        seed = abs(time.time_ns())
        logger.info("Using time-derived seed %d", seed)
    rng = random.Random(seed)

    bodies = []
    for i in range(count):
        px, py, pz = _inside_unit_sphere(rng)
        vx, vy, vz = _inside_unit_sphere(rng)
        mass = min(max(rng.random() * max_mass, min_mass), max_mass)
        bodies.append(
            Body(
                index=i,
                position=(px * radius, py * radius, pz * radius),
                velocity=(vx * max_speed, vy * max_speed, vz * max_speed),
                mass=mass,
            )
        )
    return bodies


__all__ = ["random_bodies"]
