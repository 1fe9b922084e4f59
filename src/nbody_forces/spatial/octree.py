"""
Octree implementation for Barnes-Hut force approximation.

The octree recursively subdivides 3D space into octants, enabling
O(n log n) approximate n-body force calculations. Every node keeps the
total mass and barycenter of the bodies below it, updated incrementally
as bodies are inserted.

Nodes are drawn from an ObjectPool and returned to it when the tree is
reset, so rebuilding the tree every tick reuses the same node objects.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..types import DEFAULT_PADDING, MAX_DEPTH, LeafSnapshot, PointMass
from .bounds import Bounds
from .pool import ObjectPool, TreeDepthExceededError

logger = logging.getLogger(__name__)


class OutOfBoundsError(ValueError):
    """Raised when a point lies outside every octant of the node it is routed to."""

    pass


@dataclass(eq=False)
class OctreeNode:
    """
    A node in the octree.

    A node is either a leaf (no children; holds one occupant, or is empty
    with ``total_mass`` NaN) or an internal node (has children, occupant
    cleared).

    Attributes:
        bounds: Cubic region covered by this node
        octants: The 8 sub-regions of ``bounds``, fixed before any insertion
        children: Child nodes in creation order
        barycenter: Mass-weighted centroid of the subtree
        total_mass: Total mass of the subtree (NaN while empty)
        occupant: The single point mass held by a leaf
    """

    bounds: Optional[Bounds] = None
    octants: Tuple[Bounds, ...] = ()
    children: List[OctreeNode] = field(default_factory=list)
    barycenter: np.ndarray = field(default_factory=lambda: np.full(3, np.nan))
    total_mass: float = math.nan
    occupant: Optional[PointMass] = None

    def clear(self) -> None:
        """Invalidate aggregates and forget children and bounds."""
        self.bounds = None
        self.octants = ()
        self.children = []
        self.barycenter = np.full(3, np.nan)
        self.total_mass = math.nan
        self.occupant = None

    def encapsulate(self, bounds: Bounds) -> None:
        """
        Take a cubic region and precompute its octants.

        Child regions are octants of a cube and are used as-is so that they
        tile their parent exactly.
        """
        self.bounds = bounds
        self.octants = self.bounds.octants()

    def is_empty(self) -> bool:
        """True if no body has been inserted (NaN mass sentinel)."""
        return math.isnan(self.total_mass)

    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return not self.children

    def contains(self, position: np.ndarray) -> bool:
        return self.bounds is not None and self.bounds.contains(position)

    def child_containing(self, position: np.ndarray) -> Optional[OctreeNode]:
        """First child whose bounds contain position, if any."""
        for child in self.children:
            if child.contains(position):
                return child
        return None

    def octant_containing(self, position: np.ndarray) -> Bounds:
        """
        First octant whose bounds contain position.

        Raises:
            OutOfBoundsError: If no octant contains the position
        """
        for octant in self.octants:
            if octant.contains(position):
                return octant
        raise OutOfBoundsError(f"Position {np.asarray(position).tolist()} is outside {self.bounds}")

    def occupy(self, point: PointMass) -> None:
        """Store a point mass directly in this empty node."""
        self.occupant = point
        self.barycenter = point.position.copy()
        self.total_mass = point.mass

    def accumulate(self, point: PointMass) -> None:
        """Fold a point mass into the aggregate barycenter and total mass."""
        combined = self.total_mass + point.mass
        self.barycenter = (self.barycenter * self.total_mass + point.position * point.mass) / combined
        self.total_mass = combined

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf() else f"internal({len(self.children)})"
        return f"OctreeNode({kind}, total_mass={self.total_mass:.4g})"


def make_node_pool(body_count: int) -> ObjectPool[OctreeNode]:
    """
    Node pool sized for a body count.

    Default capacity is one node per body and the hard cap is body_count
    squared.
    """
    count = max(1, int(body_count))
    return ObjectPool(
        OctreeNode,
        on_acquire=OctreeNode.clear,
        on_release=OctreeNode.clear,
        default_capacity=count,
        max_size=count * count,
    )


class Octree:
    """
    Barnes-Hut octree over a set of point masses.

    The tree is rebuilt from scratch every tick: reset, encapsulate the
    current positions with padding, then insert every point mass once in
    snapshot order.

    Usage:
        tree = Octree(make_node_pool(len(points)))
        tree.rebuild(points)

        for position, mass in tree.collect_interactions(points[0].position, theta=0.5):
            ...

    The theta parameter controls the accuracy/speed tradeoff:
    - theta = 0: Every leaf is visited (no approximation)
    - theta = 0.5: Good balance
    - theta = 1.0+: Fast but less accurate
    """

    def __init__(
        self,
        pool: Optional[ObjectPool[OctreeNode]] = None,
        *,
        padding: float = DEFAULT_PADDING,
        max_depth: int = MAX_DEPTH,
    ) -> None:
        """
        Initialize an empty octree.

        Args:
            pool: Node pool; a pool with a generous cap is created if omitted
            padding: Margin added to each side of the tightest bounding box
            max_depth: Deepest level an insertion may create (root is level 0)
        """
        if pool is None:
            pool = ObjectPool(
                OctreeNode,
                on_acquire=OctreeNode.clear,
                on_release=OctreeNode.clear,
                default_capacity=1,
                max_size=1_000_000,
            )
        self.pool = pool
        self.padding = float(padding)
        self.max_depth = int(max_depth)
        self.root: OctreeNode = pool.acquire()
        self.body_count = 0

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Release every node below the root and invalidate the root."""
        stack = list(self.root.children)
        while stack:
            node = stack.pop()
            stack.extend(node.children)
            self.pool.release(node)
        self.root.clear()
        self.body_count = 0

    def encapsulate(self, positions: Iterable[np.ndarray]) -> Bounds:
        """
        Fit the root around a set of positions.

        The tightest enclosing box is grown by ``padding`` on every side,
        then expanded to a cube and split into octants.

        Returns:
            The root bounds

        Raises:
            ValueError: If no positions are given
        """
        bounds = Bounds.from_points(positions).expanded(self.padding).to_cube()
        self.root.encapsulate(bounds)
        assert self.root.bounds is not None
        return self.root.bounds

    def rebuild(self, points: Sequence[PointMass]) -> None:
        """Reset, encapsulate and insert every point mass in order."""
        self.reset()
        self.encapsulate(p.position for p in points)
        for point in points:
            self.insert(point)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Rebuilt octree: %d bodies, %d nodes, depth %d",
                self.body_count,
                self.node_count(),
                self.depth(),
            )

    def insert(self, point: PointMass) -> None:
        """
        Insert one point mass.

        An empty node stores the point directly. An occupied leaf spawns
        two children, one for its old occupant and one for the new point,
        each bounded by the octant containing its point. An internal node
        routes the point to the first child containing it, creating a new
        child from the containing octant if none does. Every node visited
        folds the point into its aggregate before the descent continues.

        Raises:
            ValueError: If the root has not been encapsulated
            OutOfBoundsError: If the point is outside the root bounds
            TreeDepthExceededError: If a split would exceed max_depth
            PoolExhaustedError: If the node pool is exhausted
        """
        if self.root.bounds is None:
            raise ValueError("Octree root has no bounds; call encapsulate() first")

        node = self.root
        depth = 0
        while True:
            if node.is_empty():
                node.occupy(point)
                break

            if node.is_leaf():
                if depth + 1 > self.max_depth:
                    raise TreeDepthExceededError(
                        f"Inserting {point!r} would split the octree below depth {self.max_depth}"
                    )
                occupant = node.occupant
                assert occupant is not None
                node.occupant = None
                node.children.append(self._spawn_child(node, occupant))
                node.children.append(self._spawn_child(node, point))
                node.accumulate(point)
                break

            node.accumulate(point)
            child = node.child_containing(point.position)
            if child is None:
                node.children.append(self._spawn_child(node, point))
                break
            node = child
            depth += 1

        self.body_count += 1

    def _spawn_child(self, parent: OctreeNode, point: PointMass) -> OctreeNode:
        """Draw a node from the pool, bound it by point's octant and store point in it."""
        region = parent.octant_containing(point.position)
        child = self.pool.acquire()
        child.encapsulate(region)
        child.occupy(point)
        return child

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def collect_interactions(
        self, position: np.ndarray, theta: float
    ) -> Iterator[Tuple[np.ndarray, float]]:
        """
        Lazily yield the (position, mass) pairs a query point interacts with.

        A leaf yields its own barycenter and mass. An internal node whose
        width/distance ratio is below theta yields its aggregate and is not
        opened; otherwise every non-empty child is visited in creation
        order. An empty root yields its NaN sentinel, which callers skip.

        Args:
            position: Query point, shape (3,)
            theta: Barnes-Hut threshold (0 = visit every leaf)
        """
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                yield node.barycenter, node.total_mass
                continue

            assert node.bounds is not None
            width = float(np.mean(node.bounds.size))
            distance = float(np.linalg.norm(node.barycenter - position))
            if distance > 0 and width / distance < theta:
                yield node.barycenter, node.total_mass
                continue

            for child in reversed(node.children):
                if not child.is_empty():
                    stack.append(child)

    def collect_leaves(self) -> List[OctreeNode]:
        """Every leaf reachable from the root, in traversal order."""
        leaves: List[OctreeNode] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf():
                leaves.append(node)
            else:
                stack.extend(reversed(node.children))
        return leaves

    def snapshot_leaves(self) -> Tuple[LeafSnapshot, ...]:
        """Read-only copies of every initialized leaf."""
        snapshots = []
        for leaf in self.collect_leaves():
            if leaf.is_empty() or leaf.bounds is None:
                continue
            snapshots.append(
                LeafSnapshot(
                    bounds_min=leaf.bounds.min.copy(),
                    bounds_max=leaf.bounds.max.copy(),
                    barycenter=leaf.barycenter.copy(),
                    total_mass=leaf.total_mass,
                )
            )
        return tuple(snapshots)

    def node_count(self) -> int:
        """Number of nodes in the tree, root included."""
        count = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children)
        return count

    def depth(self) -> int:
        """Deepest level in the tree (root = 0)."""
        deepest = 0
        stack = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((child, level + 1) for child in node.children)
        return deepest

    @classmethod
    def from_points(
        cls,
        points: Sequence[PointMass],
        padding: float = DEFAULT_PADDING,
        max_depth: int = MAX_DEPTH,
    ) -> Octree:
        """
        Build an octree from a list of point masses.

        Args:
            points: Point masses to insert
            padding: Margin around the bounding box
            max_depth: Depth cap for insertion

        Returns:
            Octree with every point inserted (empty if points is empty)
        """
        tree = cls(padding=padding, max_depth=max_depth)
        if points:
            tree.rebuild(points)
        return tree


__all__ = [
    "Octree",
    "OctreeNode",
    "OutOfBoundsError",
    "make_node_pool",
]
