"""
Spatial data structures for efficient force calculations.

Provides the pooled octree used for Barnes-Hut O(n log n) force approximation.
"""

from .bounds import Bounds
from .octree import Octree, OctreeNode, OutOfBoundsError, make_node_pool
from .pool import (
    CapacityExceededError,
    ObjectPool,
    PoolExhaustedError,
    TreeDepthExceededError,
)

__all__ = [
    "Bounds",
    "Octree",
    "OctreeNode",
    "OutOfBoundsError",
    "make_node_pool",
    "ObjectPool",
    "CapacityExceededError",
    "PoolExhaustedError",
    "TreeDepthExceededError",
]
