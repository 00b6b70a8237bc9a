from enum import Enum, auto

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import NDArray
from shewchuk import incircle_test, orientation

from pyvd.utils import EPS, Vec2d


class PointInTriangle(Enum):
    vertex = auto()
    edge = auto()
    inside = auto()
    outside = auto()


# A coordinate of a (possibly infinite) vertex as a polynomial in R:
# coeffs[0] + coeffs[1] * R. Real vertices have coeffs[1] == 0.
LiftedVertex = tuple[NDArray[np.floating], NDArray[np.floating]]


def orient2d(pa: Vec2d, pb: Vec2d, pc: Vec2d) -> int:
    """
    Shewchuk's robust 2D orientation predicate.
    Returns 1 if points are in counterclockwise order
    Returns -1 if points are in clockwise order
    Returns 0 if points are collinear
    """
    return int(
        orientation(
            float(pa[0]), float(pa[1]), float(pb[0]), float(pb[1]), float(pc[0]), float(pc[1])
        )
    )


def incircle(pa: Vec2d, pb: Vec2d, pc: Vec2d, pd: Vec2d) -> int:
    """
    Sign of the in-circle determinant: 1 if pd lies strictly inside the circle
    through the counterclockwise triangle (pa, pb, pc), -1 if outside, 0 if on it.
    """
    sign = int(
        incircle_test(
            float(pd[0]),
            float(pd[1]),
            float(pa[0]),
            float(pa[1]),
            float(pb[0]),
            float(pb[1]),
            float(pc[0]),
            float(pc[1]),
        )
    )
    return sign


def _leading_sign(coeffs: NDArray[np.floating]) -> int:
    """Sign of a polynomial in R as R goes to infinity."""
    for c in coeffs[::-1]:
        if c > 0:
            return 1
        if c < 0:
            return -1
    return 0


def symbolic_orient2d(pa: LiftedVertex, pb: LiftedVertex, pc: LiftedVertex) -> int:
    """
    Orientation predicate for vertices that may lie at infinity.

    Every coordinate is a degree one polynomial in R, the determinant is a
    polynomial of degree two and its sign for an arbitrarily large R is the
    sign of its leading non-zero coefficient.
    """
    bax = P.polysub(pb[0], pa[0])
    bay = P.polysub(pb[1], pa[1])
    cax = P.polysub(pc[0], pa[0])
    cay = P.polysub(pc[1], pa[1])
    det = P.polysub(P.polymul(bax, cay), P.polymul(bay, cax))
    return _leading_sign(det)


def symbolic_incircle(
    pa: LiftedVertex, pb: LiftedVertex, pc: LiftedVertex, pd: LiftedVertex
) -> int:
    """In-circle predicate for vertices that may lie at infinity, see symbolic_orient2d."""
    adx, ady = P.polysub(pa[0], pd[0]), P.polysub(pa[1], pd[1])
    bdx, bdy = P.polysub(pb[0], pd[0]), P.polysub(pb[1], pd[1])
    cdx, cdy = P.polysub(pc[0], pd[0]), P.polysub(pc[1], pd[1])

    alift = P.polyadd(P.polymul(adx, adx), P.polymul(ady, ady))
    blift = P.polyadd(P.polymul(bdx, bdx), P.polymul(bdy, bdy))
    clift = P.polyadd(P.polymul(cdx, cdx), P.polymul(cdy, cdy))

    det = P.polymul(adx, P.polysub(P.polymul(bdy, clift), P.polymul(blift, cdy)))
    det = P.polysub(
        det, P.polymul(ady, P.polysub(P.polymul(bdx, clift), P.polymul(blift, cdx)))
    )
    det = P.polyadd(
        det, P.polymul(alift, P.polysub(P.polymul(bdx, cdy), P.polymul(bdy, cdx)))
    )
    return _leading_sign(det)


def circumcenter(a: Vec2d, b: Vec2d, c: Vec2d) -> NDArray[np.floating] | None:
    """
    Center of the circle through a, b and c.

    Returns None when the points are collinear (or two of them coincide), in
    which case no such circle exists.
    """
    if orient2d(a, b, c) == 0:
        return None

    ax, ay = float(a[0]), float(a[1])
    bx, by = float(b[0]), float(b[1])
    cx, cy = float(c[0]), float(c[1])

    # Translate to a for precision
    bx, by = bx - ax, by - ay
    cx, cy = cx - ax, cy - ay
    d = 2.0 * (bx * cy - by * cx)
    if d == 0.0:
        return None

    b_sq = bx * bx + by * by
    c_sq = cx * cx + cy * cy
    ux = (cy * b_sq - by * c_sq) / d
    uy = (bx * c_sq - cx * b_sq) / d
    return np.array([ax + ux, ay + uy])


def convex_hull(points: NDArray[np.floating]) -> NDArray[np.floating]:
    """
    Convex hull of a point set (Andrew's monotone chain).

    Returns the hull vertices in counterclockwise order, starting from the
    lowest-leftmost point. Collinear and duplicate points are dropped, so the
    result can have fewer than three rows for degenerate input.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) == 0:
        return pts

    # lexsort sorts by the last key first
    order = np.lexsort((pts[:, 1], pts[:, 0]))
    pts = pts[order]
    unique = [pts[0]]
    for p in pts[1:]:
        if not np.array_equal(p, unique[-1]):
            unique.append(p)
    if len(unique) < 3:
        return np.array(unique)

    lower: list[NDArray[np.floating]] = []
    for p in unique:
        while len(lower) >= 2 and orient2d(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)

    upper: list[NDArray[np.floating]] = []
    for p in reversed(unique):
        while len(upper) >= 2 and orient2d(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)

    return np.array(lower[:-1] + upper[:-1])


def angle_from(direction: Vec2d) -> float:
    """Polar angle of a direction, in (-pi, pi]."""
    return float(np.arctan2(direction[1], direction[0]))


def sort_by_angle(
    points: NDArray[np.floating], center: Vec2d, start_angle: float = 0.0
) -> NDArray[np.floating]:
    """
    Sort points counterclockwise by polar angle about center, measuring angles
    from start_angle so that the sweep never wraps. Ties keep their input order.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) == 0:
        return pts
    angles = np.arctan2(pts[:, 1] - center[1], pts[:, 0] - center[0])
    offsets = np.mod(angles - start_angle, 2 * np.pi)
    # a point right at start_angle may come back as ~2*pi
    offsets[np.isclose(offsets, 2 * np.pi, atol=EPS)] = 0.0
    return pts[np.argsort(offsets, kind="stable")]


def outward_normal(a: Vec2d, b: Vec2d) -> NDArray[np.floating]:
    """Unit normal of the directed edge a -> b pointing to its left."""
    dx = float(b[0]) - float(a[0])
    dy = float(b[1]) - float(a[1])
    length = np.hypot(dx, dy)
    if length == 0.0:
        raise ValueError("Cannot compute the normal of a zero-length edge")
    return np.array([-dy / length, dx / length])

