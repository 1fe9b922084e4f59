"""
Axis-aligned bounding boxes for the octree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

# Octant corner selectors: for each axis, False = lower half (min..center),
# True = upper half (center..max). Order: lower-back-left, lower-back-right,
# lower-front-left, lower-front-right, upper-back-left, upper-back-right,
# upper-front-left, upper-front-right, where "lower" is min y and "back"
# is max z.
_OCTANT_SELECTORS = (
    (False, False, True),
    (True, False, True),
    (False, False, False),
    (True, False, False),
    (False, True, True),
    (True, True, True),
    (False, True, False),
    (True, True, False),
)


@dataclass(frozen=True, eq=False)
class Bounds:
    """
    Axis-aligned box given by its min and max corners.

    Attributes:
        min: Lower corner, shape (3,)
        max: Upper corner, shape (3,)
    """

    min: np.ndarray
    max: np.ndarray

    @classmethod
    def from_points(cls, points: Iterable[np.ndarray]) -> Bounds:
        """
        Tightest box enclosing a set of points.

        Raises:
            ValueError: If no points are given
        """
        stacked = np.array([np.asarray(p, dtype=np.float64) for p in points])
        if stacked.size == 0:
            raise ValueError("Cannot compute bounds of an empty point set")
        return cls(stacked.min(axis=0), stacked.max(axis=0))

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    @property
    def extents(self) -> np.ndarray:
        """Half the size on every axis."""
        return self.size / 2

    def contains(self, point: np.ndarray) -> bool:
        """Check if point is inside the box (faces inclusive)."""
        return bool(np.all(self.min <= point) and np.all(point <= self.max))

    def expanded(self, padding: float) -> Bounds:
        """Box grown by padding on every side."""
        return Bounds(self.min - padding, self.max + padding)

    def to_cube(self) -> Bounds:
        """Box with the same center grown to equal extents on every axis."""
        center = self.center
        half = float(np.max(self.extents))
        return Bounds(center - half, center + half)

    def octants(self) -> tuple[Bounds, ...]:
        """
        Split the box into its 8 octants.

        Octants are built from the min, center and max planes directly so
        they tile the box with no gaps between neighbours.
        """
        center = self.center
        result = []
        for selector in _OCTANT_SELECTORS:
            upper = np.array(selector)
            result.append(
                Bounds(
                    np.where(upper, center, self.min),
                    np.where(upper, self.max, center),
                )
            )
        return tuple(result)

    def __repr__(self) -> str:
        return f"Bounds(min={self.min.tolist()}, max={self.max.tolist()})"


__all__ = ["Bounds"]
