"""Tests for the Octree implementation and Barnes-Hut interaction collection."""

import math

import numpy as np
import pytest

from nbody_forces.spatial.bounds import Bounds
from nbody_forces.spatial.octree import Octree, OctreeNode, OutOfBoundsError, make_node_pool
from nbody_forces.spatial.pool import ObjectPool, PoolExhaustedError, TreeDepthExceededError
from nbody_forces.types import MAX_DEPTH, PointMass


def random_points(n, seed=0, spread=1000.0):
    """Point masses with random positions and masses."""
    rng = np.random.default_rng(seed)
    return [
        PointMass(rng.uniform(-spread, spread, size=3), float(rng.uniform(1, 10)))
        for _ in range(n)
    ]


def large_pool():
    return ObjectPool(
        OctreeNode,
        on_acquire=OctreeNode.clear,
        on_release=OctreeNode.clear,
        default_capacity=0,
        max_size=100_000,
    )


class TestBounds:
    """Tests for the Bounds box."""

    def test_from_points(self):
        """Tightest box around a point set."""
        bounds = Bounds.from_points([np.array([0.0, 5.0, -1.0]), np.array([2.0, -3.0, 4.0])])
        np.testing.assert_array_equal(bounds.min, [0.0, -3.0, -1.0])
        np.testing.assert_array_equal(bounds.max, [2.0, 5.0, 4.0])

    def test_from_no_points_raises(self):
        """An empty point set has no bounds."""
        with pytest.raises(ValueError):
            Bounds.from_points([])

    def test_contains_is_inclusive(self):
        """Points on the faces are inside."""
        bounds = Bounds(np.zeros(3), np.ones(3))
        assert bounds.contains(np.array([0.5, 0.5, 0.5]))
        assert bounds.contains(np.array([0.0, 0.0, 0.0]))
        assert bounds.contains(np.array([1.0, 1.0, 1.0]))
        assert not bounds.contains(np.array([1.1, 0.5, 0.5]))
        assert not bounds.contains(np.array([0.5, -0.1, 0.5]))

    def test_to_cube(self):
        """Cube keeps the center and takes the largest extent on every axis."""
        cube = Bounds(np.zeros(3), np.array([4.0, 2.0, 1.0])).to_cube()
        np.testing.assert_allclose(cube.center, [2.0, 1.0, 0.5])
        np.testing.assert_allclose(cube.size, [4.0, 4.0, 4.0])

    def test_expanded(self):
        """Padding is added on every side."""
        bounds = Bounds(np.zeros(3), np.ones(3)).expanded(50.0)
        np.testing.assert_array_equal(bounds.min, [-50.0, -50.0, -50.0])
        np.testing.assert_array_equal(bounds.max, [51.0, 51.0, 51.0])

    def test_octants_tile_the_box(self):
        """Eight half-size octants whose corners cover the parent."""
        bounds = Bounds(np.full(3, -8.0), np.full(3, 8.0))
        octants = bounds.octants()

        assert len(octants) == 8
        for octant in octants:
            np.testing.assert_allclose(octant.size, [8.0, 8.0, 8.0])
        corners = {tuple(o.min.tolist()) for o in octants}
        assert len(corners) == 8

    def test_octant_order(self):
        """First octant is lower-back-left: min x, min y, max z."""
        octants = Bounds(np.zeros(3), np.full(3, 2.0)).octants()
        np.testing.assert_array_equal(octants[0].min, [0.0, 0.0, 1.0])
        np.testing.assert_array_equal(octants[5].min, [1.0, 1.0, 1.0])
        np.testing.assert_array_equal(octants[2].min, [0.0, 0.0, 0.0])


class TestOctreeNode:
    """Tests for OctreeNode."""

    def test_cleared_node_is_empty_leaf(self):
        """A fresh node is an empty leaf with the NaN mass sentinel."""
        node = OctreeNode()
        assert node.is_empty()
        assert node.is_leaf()
        assert math.isnan(node.total_mass)
        assert node.occupant is None

    def test_encapsulate_precomputes_octants(self):
        """Encapsulating fixes 8 octants before any insertion."""
        node = OctreeNode()
        node.encapsulate(Bounds(np.zeros(3), np.full(3, 10.0)))
        assert len(node.octants) == 8

    def test_accumulate_weighted(self):
        """Aggregate follows the incremental weighted-average formula."""
        node = OctreeNode()
        node.occupy(PointMass((0.0, 0.0, 0.0), 3.0))
        node.accumulate(PointMass((4.0, 0.0, 0.0), 1.0))

        assert node.total_mass == 4.0
        np.testing.assert_allclose(node.barycenter, [1.0, 0.0, 0.0])

    def test_octant_containing_outside_raises(self):
        """A point outside every octant is rejected."""
        node = OctreeNode()
        node.encapsulate(Bounds(np.zeros(3), np.ones(3)))
        with pytest.raises(OutOfBoundsError):
            node.octant_containing(np.array([5.0, 5.0, 5.0]))


class TestOctreeInsertion:
    """Tests for Octree insertion."""

    def test_insert_requires_bounds(self):
        """Inserting before encapsulating is an error."""
        tree = Octree()
        with pytest.raises(ValueError):
            tree.insert(PointMass((0.0, 0.0, 0.0), 1.0))

    def test_single_body(self):
        """One body: root is a leaf holding it, no children."""
        point = PointMass((3.0, -2.0, 1.0), 4.5)
        tree = Octree.from_points([point])

        assert tree.root.is_leaf()
        assert tree.root.children == []
        assert tree.root.occupant is point
        assert tree.root.total_mass == 4.5
        np.testing.assert_array_equal(tree.root.barycenter, [3.0, -2.0, 1.0])

    def test_two_bodies_split(self):
        """A second body splits the root leaf into two children."""
        tree = Octree.from_points(
            [PointMass((-10.0, 0.0, 0.0), 1.0), PointMass((10.0, 0.0, 0.0), 1.0)]
        )

        assert not tree.root.is_leaf()
        assert tree.root.occupant is None
        assert len(tree.root.children) == 2
        assert all(child.is_leaf() for child in tree.root.children)

    def test_root_is_padded_cube(self):
        """Root bounds are a cube around every point grown by the padding."""
        points = [PointMass((0.0, 0.0, 0.0), 1.0), PointMass((100.0, 10.0, 5.0), 1.0)]
        tree = Octree.from_points(points, padding=50.0)
        bounds = tree.root.bounds

        assert bounds is not None
        size = bounds.size
        assert size[0] == pytest.approx(size[1])
        assert size[1] == pytest.approx(size[2])
        assert size[0] == pytest.approx(200.0)
        for point in points:
            assert bounds.contains(point.position)
        assert np.all(bounds.min <= -50.0)

    def test_mass_conservation(self):
        """Root mass and barycenter equal the sum and weighted centroid."""
        points = random_points(200, seed=1)
        tree = Octree.from_points(points)

        masses = np.array([p.mass for p in points])
        positions = np.array([p.position for p in points])
        assert tree.root.total_mass == pytest.approx(masses.sum())
        np.testing.assert_allclose(
            tree.root.barycenter, (positions * masses[:, None]).sum(axis=0) / masses.sum()
        )

    def test_every_internal_node_aggregates_its_subtree(self):
        """Each node's mass equals the sum of its children's masses."""
        tree = Octree.from_points(random_points(60, seed=2))

        stack = [tree.root]
        while stack:
            node = stack.pop()
            if node.children:
                assert node.total_mass == pytest.approx(sum(c.total_mass for c in node.children))
                assert node.occupant is None
                stack.extend(node.children)
            else:
                assert node.occupant is not None

    def test_children_inside_parent(self):
        """Child bounds lie inside their parent's bounds."""
        tree = Octree.from_points(random_points(80, seed=4))

        stack = [tree.root]
        while stack:
            node = stack.pop()
            for child in node.children:
                assert np.all(child.bounds.min >= node.bounds.min)
                assert np.all(child.bounds.max <= node.bounds.max)
                stack.append(child)

    def test_node_count_bound(self):
        """Each insertion adds at most two nodes."""
        n = 150
        tree = Octree.from_points(random_points(n, seed=5))
        assert tree.node_count() <= 2 * n - 1
        assert len(tree.collect_leaves()) == n

    def test_out_of_bounds_insert(self):
        """A point outside the root region cannot be placed."""
        tree = Octree(padding=1.0)
        tree.encapsulate([np.zeros(3)])
        tree.insert(PointMass((0.0, 0.0, 0.0), 1.0))
        with pytest.raises(OutOfBoundsError):
            tree.insert(PointMass((1000.0, 0.0, 0.0), 1.0))


class TestCoincidentBodies:
    """Tests for bodies at identical positions and the depth cap."""

    def test_coincident_bodies_terminate(self):
        """Each coincident insertion deepens the tree by exactly one level."""
        points = [PointMass((1.0, 2.0, 3.0), 1.0) for _ in range(5)]
        tree = Octree(large_pool(), max_depth=8)
        tree.rebuild(points)

        assert tree.depth() == 4
        assert tree.node_count() == 9
        assert tree.root.total_mass == pytest.approx(5.0)
        np.testing.assert_allclose(tree.root.barycenter, [1.0, 2.0, 3.0])

    def test_depth_cap_raises(self):
        """Exceeding max_depth fails loudly instead of recursing forever."""
        points = [PointMass((1.0, 2.0, 3.0), 1.0) for _ in range(5)]
        tree = Octree(large_pool(), max_depth=3)

        with pytest.raises(TreeDepthExceededError):
            tree.rebuild(points)

    def test_depth_cap_boundary(self):
        """max_depth + 1 coincident bodies fit exactly."""
        points = [PointMass((0.0, 0.0, 0.0), 1.0) for _ in range(4)]
        tree = Octree(large_pool(), max_depth=3)
        tree.rebuild(points)
        assert tree.depth() == 3

    def test_default_depth_cap_handles_many_coincident_bodies(self):
        """Hundreds of coincident bodies fit under the default cap."""
        points = [PointMass((5.0, 5.0, 5.0), 2.0) for _ in range(300)]
        tree = Octree(large_pool())
        tree.rebuild(points)

        assert tree.max_depth == MAX_DEPTH
        assert tree.depth() == 299
        assert tree.root.total_mass == pytest.approx(600.0)

    def test_coincident_interactions_are_finite(self):
        """Interactions collected at a coincident position carry finite values."""
        points = [PointMass((0.0, 0.0, 0.0), 1.0) for _ in range(3)]
        points.append(PointMass((100.0, 0.0, 0.0), 1.0))
        tree = Octree(large_pool())
        tree.rebuild(points)

        items = list(tree.collect_interactions(points[0].position, theta=0.5))
        assert sum(mass for _, mass in items) == pytest.approx(4.0)
        for position, mass in items:
            assert np.all(np.isfinite(position))
            assert math.isfinite(mass)


class TestOctreePooling:
    """Tests for node reuse across rebuilds."""

    def test_reset_returns_nodes(self):
        """Reset releases every node but the root."""
        pool = make_node_pool(30)
        tree = Octree(pool)
        tree.rebuild(random_points(30, seed=6))

        assert pool.count_active == tree.node_count()
        tree.reset()
        assert pool.count_active == 1
        assert tree.root.is_empty()
        assert tree.root.children == []

    def test_rebuild_reuses_nodes(self):
        """Rebuilding the same snapshot does not create new nodes."""
        points = random_points(40, seed=7)
        pool = make_node_pool(40)
        tree = Octree(pool)

        tree.rebuild(points)
        created = pool.count_all
        for _ in range(5):
            tree.rebuild(points)
        assert pool.count_all == created

    def test_make_node_pool_capacity(self):
        """Pool starts with one node per body and caps at the square."""
        pool = make_node_pool(6)
        assert pool.count_inactive == 6
        assert pool.max_size == 36

    def test_single_body_pool(self):
        """A one-body pool holds exactly the root."""
        pool = make_node_pool(1)
        tree = Octree(pool)
        tree.rebuild([PointMass((0.0, 0.0, 0.0), 1.0)])
        assert pool.count_all == 1

    def test_small_pool_exhausts(self):
        """Growing past the pool cap fails loudly."""
        pool = ObjectPool(OctreeNode, on_acquire=OctreeNode.clear, default_capacity=0, max_size=2)
        tree = Octree(pool)
        with pytest.raises(PoolExhaustedError):
            tree.rebuild(
                [PointMass((0.0, 0.0, 0.0), 1.0), PointMass((10.0, 10.0, 10.0), 1.0)]
            )


class TestCollectInteractions:
    """Tests for Barnes-Hut interaction collection."""

    def test_theta_zero_visits_every_leaf(self):
        """theta=0 yields every body's own position and mass."""
        points = random_points(25, seed=8)
        tree = Octree.from_points(points)

        items = list(tree.collect_interactions(points[0].position, theta=0.0))
        assert len(items) == 25
        yielded = sorted(tuple(p.tolist()) for p, _ in items)
        expected = sorted(tuple(p.position.tolist()) for p in points)
        assert yielded == expected

    def test_huge_theta_yields_root_aggregate(self):
        """A very large theta collapses the whole tree into one term."""
        points = random_points(25, seed=9)
        tree = Octree.from_points(points)

        items = list(tree.collect_interactions(np.array([1e5, 0.0, 0.0]), theta=1e9))
        assert len(items) == 1
        assert items[0][1] == pytest.approx(tree.root.total_mass)

    def test_theta_monotonicity(self):
        """Increasing theta never increases the number of terms."""
        points = random_points(120, seed=10)
        tree = Octree.from_points(points)

        for point in points[:10]:
            counts = [
                len(list(tree.collect_interactions(point.position, theta)))
                for theta in (0.0, 0.1, 0.3, 0.5, 0.8, 1.0, 1.5, 3.0, 10.0)
            ]
            assert counts == sorted(counts, reverse=True)

    def test_mass_is_conserved_across_terms(self):
        """Collected terms always account for the total mass."""
        points = random_points(70, seed=11)
        tree = Octree.from_points(points)

        for theta in (0.0, 0.5, 1.5):
            items = list(tree.collect_interactions(points[3].position, theta))
            assert sum(m for _, m in items) == pytest.approx(tree.root.total_mass)

    def test_empty_tree_yields_sentinel(self):
        """An empty root yields its NaN sentinel for callers to skip."""
        tree = Octree()
        items = list(tree.collect_interactions(np.zeros(3), theta=0.5))
        assert len(items) == 1
        assert math.isnan(items[0][1])

    def test_lazy(self):
        """Interactions are produced lazily."""
        tree = Octree.from_points(random_points(10, seed=12))
        generator = tree.collect_interactions(np.zeros(3), theta=0.0)
        first = next(generator)
        assert len(first) == 2


class TestCollectLeaves:
    """Tests for leaf collection and snapshots."""

    def test_leaves_hold_all_mass(self):
        """Leaves partition the inserted bodies."""
        points = random_points(40, seed=13)
        tree = Octree.from_points(points)

        leaves = tree.collect_leaves()
        assert len(leaves) == 40
        assert sum(leaf.total_mass for leaf in leaves) == pytest.approx(
            sum(p.mass for p in points)
        )

    def test_snapshot_is_a_copy(self):
        """Leaf snapshots do not alias tree state."""
        tree = Octree.from_points(random_points(5, seed=14))
        snapshot = tree.snapshot_leaves()

        assert len(snapshot) == 5
        leaf = tree.collect_leaves()[0]
        assert snapshot[0].barycenter is not leaf.barycenter
        np.testing.assert_allclose(snapshot[0].barycenter, leaf.barycenter)
        assert np.all(snapshot[0].size > 0)
