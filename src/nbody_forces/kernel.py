"""
Gravitational force kernel shared by every solver.

Both algorithms use one inverse-square law:

    F1 = G * m1 * m2 / d^2 * (r2 - r1) / d
    F2 = -F1

F1 acts on body 1 and points from body 1 toward body 2. Coincident
positions (d == 0) produce a zero force pair instead of NaN/Inf.

The functions are pure and safe to call from any worker thread.
"""

from __future__ import annotations

import numpy as np


def gravitational_force(
    position1: np.ndarray,
    mass1: float,
    position2: np.ndarray,
    mass2: float,
    gravitational_constant: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Compute the force pair between two point masses.

    Args:
        position1: Position of body 1, shape (3,)
        mass1: Mass of body 1
        position2: Position of body 2, shape (3,)
        mass2: Mass of body 2
        gravitational_constant: G

    Returns:
        (force on body 1, force on body 2)
    """
    direction = np.asarray(position2, dtype=np.float64) - np.asarray(position1, dtype=np.float64)
    distance = float(np.linalg.norm(direction))

    if distance == 0.0:
        return np.zeros(3), np.zeros(3)

    magnitude = gravitational_constant * mass1 * mass2 / (distance * distance)
    force = direction * (magnitude / distance)
    return force, -force


def gravitational_forces(
    positions1: np.ndarray,
    masses1: np.ndarray,
    positions2: np.ndarray,
    masses2: np.ndarray,
    gravitational_constant: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Vectorized kernel over k pairs.

    Args:
        positions1: (k, 3) positions of the first bodies
        masses1: (k,) masses of the first bodies
        positions2: (k, 3) positions of the second bodies
        masses2: (k,) masses of the second bodies
        gravitational_constant: G

    Returns:
        (forces on first bodies, forces on second bodies), each (k, 3)
    """
    direction = positions2 - positions1
    distance = np.sqrt(np.einsum("ij,ij->i", direction, direction))

    coincident = distance == 0.0
    # Substitute 1 for zero distances; their direction is zero anyway and
    # the factor is masked out below.
    safe = np.where(coincident, 1.0, distance)
    factor = gravitational_constant * masses1 * masses2 / (safe * safe * safe)
    factor[coincident] = 0.0

    forces = direction * factor[:, np.newaxis]
    return forces, -forces


__all__ = ["gravitational_force", "gravitational_forces"]
