"""Tests for the Voronoi dual builder (pyvd/voronoi.py)."""

import numpy as np
import pytest

from pyvd.build import build_triangulation
from pyvd.delaunay import Triangulation
from pyvd.geometry import convex_hull, orient2d
from pyvd.query import find_cell, nearest_datapoint, region_contains
from pyvd.voronoi import (
    BoundedRegion,
    DegenerateAccumulator,
    HullAccumulator,
    InteriorAccumulator,
    UnboundedRegion,
    delaunay_and_voronoi,
    voronoi_accumulators,
    voronoi_diagram,
    walk_one_ring,
)


def grid_points(n):
    x = np.linspace(0, n - 1, n)
    xx, yy = np.meshgrid(x, x)
    return np.column_stack([xx.ravel(), yy.ravel()])


def is_strictly_inside_hull(points, idx):
    hull = convex_hull(points)
    p = points[idx]
    return all(
        orient2d(hull[i], hull[(i + 1) % len(hull)], p) > 0 for i in range(len(hull))
    )


class TestScenarios:
    def test_triangle(self):
        points = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        cells = voronoi_diagram(points)

        assert [cell.index for cell in cells] == [0, 1, 2]
        assert all(isinstance(cell.region, UnboundedRegion) for cell in cells)
        for cell in cells:
            np.testing.assert_allclose(cell.region.polyline, [[0.5, 0.5]])

    def test_triangle_rays(self):
        cells = voronoi_diagram([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        region = cells[0].region

        # boundary comes up along x = 0.5 and leaves along y = 0.5
        np.testing.assert_allclose(region.ray_1.origin, [0.5, 0.5])
        np.testing.assert_allclose(region.ray_1.direction, [0.0, -1.0], atol=1e-12)
        np.testing.assert_allclose(region.ray_2.direction, [-1.0, 0.0], atol=1e-12)

    def test_unit_square(self):
        points = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
        cells = voronoi_diagram(points)

        assert len(cells) == 4
        for cell in cells:
            assert isinstance(cell.region, UnboundedRegion)
            np.testing.assert_allclose(
                cell.region.polyline, np.full_like(cell.region.polyline, 0.5)
            )
        # vertex 0 sits on the diagonal (0, 2): two triangles, two circumcenters
        assert len(cells[0].region.polyline) == 2
        assert len(cells[1].region.polyline) == 1

    def test_collinear(self):
        assert voronoi_diagram([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]]) == []

    def test_duplicate_point(self):
        points = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
        cells = voronoi_diagram(points)

        assert [cell.index for cell in cells] == [0, 2, 3]
        assert all(isinstance(cell.region, UnboundedRegion) for cell in cells)


@pytest.mark.parametrize("n", [0, 1, 2])
def test_too_few_points(n):
    points = np.random.default_rng(n).random((n, 2))

    assert voronoi_diagram(points) == []


class TestAccumulators:
    def test_collinear_middle_vertex(self):
        accumulators = voronoi_accumulators([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])

        assert all(isinstance(acc, DegenerateAccumulator) for acc in accumulators)
        # both sides of both real edges are hull triangles
        assert accumulators[1].hull_triangle_count == 4
        assert accumulators[1].reason == "inconsistent number of hull triangles"
        assert accumulators[0].reason == "no finite triangles"

    def test_single_point(self):
        (acc,) = voronoi_accumulators([[3.0, 4.0]])

        assert isinstance(acc, DegenerateAccumulator)
        assert acc.hull_triangle_count == 0

    def test_duplicate(self):
        accumulators = voronoi_accumulators([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 0.0]])

        assert isinstance(accumulators[3], DegenerateAccumulator)
        assert accumulators[3].reason == "duplicate of point 1"

    def test_kinds(self):
        points = np.array([[0.0, 0.0], [4.0, 0.0], [4.0, 4.0], [0.0, 4.0], [1.0, 2.0]])
        accumulators = voronoi_accumulators(points)

        assert [acc.vertex for acc in accumulators] == [0, 1, 2, 3, 4]
        assert all(isinstance(acc, HullAccumulator) for acc in accumulators[:4])
        assert isinstance(accumulators[4], InteriorAccumulator)
        assert len(accumulators[4].circumcenters) == 4

    def test_flat_interior_cell_is_degenerate(self, monkeypatch):
        """An interior vertex whose circumcenters collapse to a point is reported as dropped."""
        points = np.array([[0.0, 0.0], [4.0, 0.0], [4.0, 4.0], [0.0, 4.0], [1.0, 2.0]])
        monkeypatch.setattr(
            Triangulation,
            "circumcenter",
            lambda self, t: None if self.bootstrap_count(t) else np.array([2.0, 2.0]),
        )

        accumulators = voronoi_accumulators(points)

        assert isinstance(accumulators[4], DegenerateAccumulator)
        assert accumulators[4].reason == "flat cell"
        assert accumulators[4].hull_triangle_count == 0
        assert 4 not in [cell.index for cell in voronoi_diagram(points)]

    def test_strict_raises(self):
        with pytest.raises(ValueError):
            voronoi_accumulators([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0]], strict=True)


def test_one_ring_is_closed_and_ccw():
    points = np.random.default_rng(5).random((20, 2))
    tri = build_triangulation(points)

    for vertex in range(len(points)):
        start = next(t for t in range(tri.n_triangles) if vertex in tri.triangle_vertices[t])
        ring = walk_one_ring(tri, vertex, start)
        incident = [t for t in range(tri.n_triangles) if vertex in tri.triangle_vertices[t]]
        assert sorted(ring) == incident


class TestRandomPoints:
    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_duality_counts(self, seed):
        points = np.random.default_rng(seed).random((50, 2))
        cells = voronoi_diagram(points)
        h = len(convex_hull(points))

        assert len(cells) == len(points)
        bounded = [cell for cell in cells if isinstance(cell.region, BoundedRegion)]
        unbounded = [cell for cell in cells if isinstance(cell.region, UnboundedRegion)]
        assert len(bounded) == len(points) - h
        assert len(unbounded) == h
        for cell in bounded:
            assert is_strictly_inside_hull(points, cell.index)

    def test_bounded_polygons_are_convex_and_ccw(self):
        points = np.random.default_rng(11).random((60, 2))

        for cell in voronoi_diagram(points):
            if not isinstance(cell.region, BoundedRegion):
                continue
            poly = cell.region.polygon
            assert len(poly) >= 3
            for i in range(len(poly)):
                assert orient2d(poly[i - 1], poly[i], poly[(i + 1) % len(poly)]) > 0

    def test_circumcenters_are_equidistant(self):
        points = np.random.default_rng(8).random((40, 2))

        for cell in voronoi_diagram(points):
            region = cell.region
            vertices = region.polygon if isinstance(region, BoundedRegion) else region.polyline
            d = np.hypot(*(vertices - cell.datapoint).T)
            # every Voronoi vertex is at least as close to its site as to any other
            others = np.delete(points, cell.index, axis=0)
            for vertex, dist in zip(vertices, d):
                assert np.min(np.hypot(*(others - vertex).T)) >= dist - 1e-9

    def test_rays_point_outwards(self):
        points = np.random.default_rng(4).random((30, 2))
        centroid = points.mean(axis=0)

        for cell in voronoi_diagram(points):
            if isinstance(cell.region, UnboundedRegion):
                for ray in (cell.region.ray_1, cell.region.ray_2):
                    assert np.linalg.norm(ray.direction) == pytest.approx(1.0)
                    assert np.dot(ray.direction, cell.datapoint - centroid) > 0

    @pytest.mark.parametrize("seed", [0, 3])
    @pytest.mark.parametrize("scale", [1.0, 1e-10, 1e6])
    def test_partition(self, seed, scale):
        """Every probe lies in the cell of its nearest datapoint, and only there."""
        rng = np.random.default_rng(seed)
        points = rng.random((40, 2)) * scale
        cell_list = voronoi_diagram(points)
        cells = {cell.index: cell for cell in cell_list}

        for probe in rng.uniform(-0.5, 1.5, size=(300, 2)) * scale:
            nearest = nearest_datapoint(points, probe)
            assert region_contains(cells[nearest].region, probe)
            assert find_cell(cell_list, probe).index == nearest


def test_grid():
    points = grid_points(5)
    cells = voronoi_diagram(points)

    bounded = [cell for cell in cells if isinstance(cell.region, BoundedRegion)]
    assert len(bounded) == 9
    assert len(cells) - len(bounded) == 16
    for cell in bounded:
        assert len(cell.region.polygon) == 4
        np.testing.assert_allclose(
            np.sort(np.abs(cell.region.polygon - cell.datapoint), axis=0),
            np.full((4, 2), 0.5),
        )


def test_delaunay_and_voronoi_consistent():
    points = np.random.default_rng(9).random((30, 2))
    mesh, cells = delaunay_and_voronoi(points)

    # one Voronoi vertex per Delaunay triangle
    centers = mesh.circumcenters()
    for cell in cells:
        region = cell.region
        vertices = region.polygon if isinstance(region, BoundedRegion) else region.polyline
        for vertex in vertices:
            assert np.min(np.hypot(*(centers - vertex).T)) < 1e-9
    assert len(cells) == len(points)
