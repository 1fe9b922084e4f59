"""
Input validation utilities for the N-body force solvers.

Provides centralized validation functions for bodies, algorithm selection
and solver parameters. Configuration problems are reported before any tick
runs by raising descriptive exceptions.
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np


class ValidationError(ValueError):
    """Base exception for simulation configuration errors."""

    pass


class InvalidAlgorithmError(ValidationError):
    """Raised when the algorithm selector is not a known variant."""

    pass


class InvalidBodyError(ValidationError):
    """Raised when a body is malformed (bad vector, non-positive mass)."""

    pass


class InvalidBodyCountError(ValidationError):
    """Raised when a simulation has no bodies to operate on."""

    pass


class InvalidThetaError(ValidationError):
    """Raised when the Barnes-Hut opening angle is negative or not finite."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a numeric solver parameter is out of range."""

    pass


class ZeroMassError(ValidationError):
    """Raised when a barycenter is requested for a set with zero total mass."""

    pass


def validate_vector(value: Any, name: str = "vector") -> np.ndarray:
    """
    Convert a 3-vector to a float64 array, rejecting malformed input.

    Args:
        value: Sequence of three numbers (tuple, list or array)
        name: Label used in the error message

    Returns:
        New float64 array of shape (3,)

    Raises:
        InvalidBodyError: If the value is not three finite numbers
    """
    try:
        vector = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidBodyError(f"{name} must be a 3-vector of numbers, got {value!r}") from exc

    if vector.shape != (3,):
        raise InvalidBodyError(f"{name} must have shape (3,), got {vector.shape}")
    if not np.all(np.isfinite(vector)):
        raise InvalidBodyError(f"{name} must be finite, got {vector.tolist()}")
    return vector


def validate_mass(mass: Any) -> float:
    """
    Validate a body mass.

    Raises:
        InvalidBodyError: If mass is not a finite number > 0
    """
    try:
        value = float(mass)
    except (TypeError, ValueError) as exc:
        raise InvalidBodyError(f"mass must be a number, got {mass!r}") from exc

    if not math.isfinite(value) or value <= 0:
        raise InvalidBodyError(f"mass must be positive and finite, got {value}")
    return value


def validate_body_count(count: int) -> int:
    """
    Validate that there is at least one body.

    Raises:
        InvalidBodyCountError: If count < 1
    """
    if count < 1:
        raise InvalidBodyCountError(f"body count must be >= 1, got {count}")
    return count


def validate_theta(theta: float) -> float:
    """
    Validate the Barnes-Hut theta (opening angle threshold).

    Args:
        theta: Accuracy parameter; 0 = exact, larger = more aggregation

    Returns:
        Validated theta as float

    Raises:
        InvalidThetaError: If theta is negative or not finite
    """
    value = float(theta)
    if not math.isfinite(value) or value < 0:
        raise InvalidThetaError(f"barnes_hut_theta must be finite and >= 0, got {theta}")
    return value


def validate_positive(value: float, name: str, allow_zero: bool = False) -> float:
    """
    Validate a numeric parameter is positive (or non-negative).

    Raises:
        InvalidParameterError: If value is out of range or not finite
    """
    number = float(value)
    if not math.isfinite(number):
        raise InvalidParameterError(f"{name} must be finite, got {value}")
    if allow_zero:
        if number < 0:
            raise InvalidParameterError(f"{name} must be >= 0, got {value}")
    elif number <= 0:
        raise InvalidParameterError(f"{name} must be positive, got {value}")
    return number


def validate_positive_int(value: int, name: str) -> int:
    """
    Validate an integer parameter is >= 1.

    Raises:
        InvalidParameterError: If value is not an integer >= 1
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidParameterError(f"{name} must be >= 1, got {value}")
    return int(value)


def validate_point_masses(points: Sequence[Any]) -> int:
    """
    Validate a per-tick snapshot of point masses.

    Every element must expose ``position``, ``mass`` and ``velocity``
    attributes with a positive mass.

    Returns:
        Number of point masses

    Raises:
        InvalidBodyCountError: If the snapshot is empty
        InvalidBodyError: If any point mass is malformed
    """
    validate_body_count(len(points))
    for i, point in enumerate(points):
        for attr in ("position", "mass", "velocity"):
            if not hasattr(point, attr):
                raise InvalidBodyError(f"Body {i}: missing attribute '{attr}'")
        try:
            validate_mass(point.mass)
        except InvalidBodyError as exc:
            raise InvalidBodyError(f"Body {i}: {exc}") from exc
    return len(points)


__all__ = [
    "ValidationError",
    "InvalidAlgorithmError",
    "InvalidBodyError",
    "InvalidBodyCountError",
    "InvalidThetaError",
    "InvalidParameterError",
    "ZeroMassError",
    "validate_vector",
    "validate_mass",
    "validate_body_count",
    "validate_theta",
    "validate_positive",
    "validate_positive_int",
    "validate_point_masses",
]
