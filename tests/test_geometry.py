"""Tests for the geometric primitives in pyvd/geometry.py."""

import numpy as np
import pytest

from pyvd.geometry import (
    angle_from,
    circumcenter,
    convex_hull,
    incircle,
    orient2d,
    outward_normal,
    sort_by_angle,
    symbolic_incircle,
    symbolic_orient2d,
)


def real(x, y):
    return np.array([x, 0.0]), np.array([y, 0.0])


def infinite(dx, dy):
    return np.array([0.0, dx]), np.array([0.0, dy])


class TestPredicates:
    def test_orient2d_signs(self):
        assert orient2d((0, 0), (1, 0), (0, 1)) == 1
        assert orient2d((0, 0), (0, 1), (1, 0)) == -1
        assert orient2d((0, 0), (1, 1), (2, 2)) == 0

    def test_incircle_signs(self):
        a, b, c = (0.0, 0.0), (2.0, 0.0), (0.0, 2.0)
        assert incircle(a, b, c, (1.0, 1.0)) == 1
        assert incircle(a, b, c, (3.0, 3.0)) == -1
        # (2, 2) is on the circle
        assert incircle(a, b, c, (2.0, 2.0)) == 0

    def test_symbolic_matches_real_predicates(self):
        a, b, c, d = real(0, 0), real(2, 0), real(0, 2), real(1, 1)
        assert symbolic_orient2d(a, b, c) == 1
        assert symbolic_incircle(a, b, c, d) == 1
        assert symbolic_incircle(a, b, c, real(3, 3)) == -1

    def test_infinite_vertex_orientation(self):
        # a point at infinity straight up is left of the x axis
        assert symbolic_orient2d(real(0, 0), real(1, 0), infinite(0, 1)) == 1
        assert symbolic_orient2d(real(1, 0), real(0, 0), infinite(0, 1)) == -1

    def test_infinite_vertex_parallel_edge_uses_next_term(self):
        # edge parallel to the direction: decided by which side the origin is on
        assert symbolic_orient2d(real(1, 0), real(1, 1), infinite(0, 1)) == 1
        assert symbolic_orient2d(real(-1, 1), real(-1, 0), infinite(0, 1)) == 1
        assert symbolic_orient2d(real(0, 0), real(0, 1), infinite(0, 1)) == 0

    def test_circle_through_infinite_vertex_is_half_plane(self):
        a, b, inf = real(0, 0), real(1, 0), infinite(0, 1)
        assert symbolic_incircle(a, b, inf, real(5, 0.1)) == 1
        assert symbolic_incircle(a, b, inf, real(5, -0.1)) == -1
        # on the line: inside only between a and b
        assert symbolic_incircle(a, b, inf, real(0.5, 0)) == 1
        assert symbolic_incircle(a, b, inf, real(2.0, 0)) == -1

    def test_bootstrap_triangle_contains_everything(self):
        d0, d1, d2 = infinite(0, 1), infinite(-1, -1), infinite(1, -1)
        assert symbolic_orient2d(d0, d1, d2) == 1
        for p in [real(0, 0), real(1e9, -1e9), real(-3, 7)]:
            assert symbolic_incircle(d0, d1, d2, p) == 1


class TestCircumcenter:
    def test_right_triangle(self):
        center = circumcenter((0.0, 0.0), (2.0, 0.0), (0.0, 2.0))
        np.testing.assert_allclose(center, [1.0, 1.0])

    def test_equilateral(self):
        center = circumcenter((0.0, 0.0), (2.0, 0.0), (1.0, np.sqrt(3.0)))
        np.testing.assert_allclose(center, [1.0, 1.0 / np.sqrt(3.0)])

    def test_orientation_does_not_matter(self):
        ccw = circumcenter((0.0, 0.0), (4.0, 1.0), (1.0, 3.0))
        cw = circumcenter((0.0, 0.0), (1.0, 3.0), (4.0, 1.0))
        np.testing.assert_allclose(ccw, cw)

    @pytest.mark.parametrize(
        "a, b, c",
        [
            ((0.0, 0.0), (1.0, 1.0), (2.0, 2.0)),
            ((0.0, 0.0), (0.0, 0.0), (1.0, 0.0)),
            ((1.0, 1.0), (1.0, 1.0), (1.0, 1.0)),
        ],
    )
    def test_collinear_returns_none(self, a, b, c):
        assert circumcenter(a, b, c) is None


class TestConvexHull:
    def test_square_with_inner_and_collinear_points(self):
        points = np.array(
            [[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [1.0, 1.0]]
        )
        hull = convex_hull(points)

        np.testing.assert_array_equal(
            hull, [[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]]
        )

    def test_counterclockwise(self):
        points = np.random.default_rng(0).random((30, 2))
        hull = convex_hull(points)

        for i in range(len(hull)):
            assert orient2d(hull[i - 1], hull[i], hull[(i + 1) % len(hull)]) == 1

    def test_duplicates_collapse(self):
        hull = convex_hull(np.array([[0.5, 0.5]] * 4))

        assert hull.shape == (1, 2)

    def test_empty(self):
        assert convex_hull(np.empty((0, 2))).shape == (0, 2)


def test_angle_from():
    assert angle_from((1.0, 0.0)) == 0.0
    assert angle_from((0.0, 1.0)) == pytest.approx(np.pi / 2)
    assert angle_from((-1.0, 0.0)) == pytest.approx(np.pi)


def test_sort_by_angle_starts_at_reference():
    center = (0.0, 0.0)
    points = np.array([[0.0, -1.0], [1.0, 0.0], [-1.0, 0.0], [0.0, 1.0]])

    result = sort_by_angle(points, center, start_angle=np.pi / 2)

    np.testing.assert_array_equal(
        result, [[0.0, 1.0], [-1.0, 0.0], [0.0, -1.0], [1.0, 0.0]]
    )


def test_sort_by_angle_keeps_ties_in_order():
    points = np.array([[1.0, 1.0], [2.0, 2.0], [1.0, 0.0]])

    result = sort_by_angle(points, (0.0, 0.0))

    np.testing.assert_array_equal(result, [[1.0, 0.0], [1.0, 1.0], [2.0, 2.0]])


def test_outward_normal():
    np.testing.assert_allclose(outward_normal((0.0, 0.0), (2.0, 0.0)), [0.0, 1.0])
    with pytest.raises(ValueError):
        outward_normal((1.0, 1.0), (1.0, 1.0))
