"""
System diagnostics.

Provides instrumentation values computed from a body snapshot:
- Barycenter and total mass of the system
- Total linear momentum
- Kinetic energy
- Relative force error of an approximate solver against the exact one

None of these feed back into the force math.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple

import numpy as np

from .validation import ZeroMassError


def system_barycenter(bodies: Sequence[Any]) -> Tuple[np.ndarray, float]:
    """
    Mass-weighted centroid and total mass of a set of bodies.

    Mass-weighted positions and masses are accumulated body by body and
    the sum is divided by the total mass at the end.

    Args:
        bodies: Objects with ``position`` and ``mass`` attributes

    Returns:
        (barycenter, total_mass)

    Raises:
        ZeroMassError: If the total mass is zero (barycenter undefined)
    """
    center = np.zeros(3, dtype=np.float64)
    total_mass = 0.0
    for body in bodies:
        center += np.asarray(body.position, dtype=np.float64) * body.mass
        total_mass += body.mass

    if total_mass == 0:
        raise ZeroMassError("Barycenter is undefined for a total mass of zero")
    return center / total_mass, total_mass


def total_momentum(bodies: Sequence[Any]) -> np.ndarray:
    """Sum of mass * velocity over all bodies."""
    momentum = np.zeros(3, dtype=np.float64)
    for body in bodies:
        momentum += np.asarray(body.velocity, dtype=np.float64) * body.mass
    return momentum


def kinetic_energy(bodies: Sequence[Any]) -> float:
    """Sum of 1/2 * m * |v|^2 over all bodies."""
    energy = 0.0
    for body in bodies:
        velocity = np.asarray(body.velocity, dtype=np.float64)
        energy += 0.5 * body.mass * float(velocity @ velocity)
    return energy


def relative_force_error(approximate: np.ndarray, exact: np.ndarray) -> np.ndarray:
    """
    Per-body relative error |approx - exact| / |exact|.

    Bodies whose exact force is zero report the absolute error instead.

    Args:
        approximate: (N, 3) velocity deltas from an approximate solver
        exact: (N, 3) velocity deltas from the exact solver

    Returns:
        (N,) array of errors
    """
    approximate = np.asarray(approximate, dtype=np.float64)
    exact = np.asarray(exact, dtype=np.float64)
    if approximate.shape != exact.shape:
        raise ValueError(f"shape mismatch: {approximate.shape} vs {exact.shape}")

    error = np.linalg.norm(approximate - exact, axis=1)
    scale = np.linalg.norm(exact, axis=1)
    return np.where(scale > 0, error / np.where(scale > 0, scale, 1.0), error)


__all__ = [
    "system_barycenter",
    "total_momentum",
    "kinetic_energy",
    "relative_force_error",
]
