"""Query functions for Voronoi diagrams."""

import numpy as np
from numpy.typing import NDArray

from pyvd.utils import EPS, Vec2d, as_points
from pyvd.voronoi import BoundedRegion, VoronoiCell, VoronoiRegion

HalfPlane = tuple[NDArray[np.floating], NDArray[np.floating]]


def nearest_datapoint(points, probe: Vec2d) -> int:
    """Index of the input point closest to probe (first one on ties)."""
    pts = as_points(points)
    if len(pts) == 0:
        raise ValueError("No points to search")
    d2 = np.sum((pts - np.asarray(probe, dtype=float)) ** 2, axis=1)
    return int(np.argmin(d2))


def _same_point(a: NDArray[np.floating], b: NDArray[np.floating]) -> bool:
    # relative to the coordinates, so tiny point sets keep their short edges
    return bool(np.allclose(a, b, rtol=EPS, atol=0.0))


def region_half_planes(region: VoronoiRegion) -> list[HalfPlane]:
    """
    Boundary of a region as (point, direction) pairs, the region lying on the
    left of every directed line.
    """
    if isinstance(region, BoundedRegion):
        poly = region.polygon
        return [
            (poly[i], poly[(i + 1) % len(poly)] - poly[i])
            for i in range(len(poly))
            if not _same_point(poly[i], poly[(i + 1) % len(poly)])
        ]

    planes: list[HalfPlane] = [(region.ray_1.origin, -region.ray_1.direction)]
    line = region.polyline
    for i in range(len(line) - 1):
        if not _same_point(line[i], line[i + 1]):
            planes.append((line[i], line[i + 1] - line[i]))
    planes.append((region.ray_2.origin, region.ray_2.direction))
    return planes


def _side(plane: HalfPlane, q: NDArray[np.floating]) -> float:
    origin, direction = plane
    return float(direction[0] * (q[1] - origin[1]) - direction[1] * (q[0] - origin[0]))


def region_contains(region: VoronoiRegion, probe: Vec2d, eps: float = EPS) -> bool:
    """
    Check if probe lies in the region (boundary included).

    Parameters
    ----------
    region : VoronoiRegion
        Bounded or unbounded cell
    probe : Vec2d
        Query point
    eps : float
        Relative tolerance on the signed distance to each boundary line,
        scaled by the size of the region or the distance of the probe to the
        line origin, whichever is larger

    Returns
    -------
    bool
        True if the probe is inside or on the boundary
    """
    q = np.asarray(probe, dtype=float)
    planes = region_half_planes(region)
    if not planes:
        return False
    origins = np.array([origin for origin, _ in planes])
    extent = float(np.max(np.ptp(origins, axis=0)))
    for plane in planes:
        norm = np.hypot(plane[1][0], plane[1][1])
        if norm == 0.0:
            continue
        scale = max(extent, float(np.hypot(*(q - plane[0]))))
        if _side(plane, q) / norm < -eps * scale:
            return False
    return True


def find_cell(cells: list[VoronoiCell], probe: Vec2d) -> VoronoiCell | None:
    """First cell containing probe, None if the probe is in no listed cell."""
    for cell in cells:
        if region_contains(cell.region, probe):
            return cell
    return None


def _clip(
    polygon: list[NDArray[np.floating]], plane: HalfPlane
) -> list[NDArray[np.floating]]:
    """One Sutherland-Hodgman pass: keep the part of polygon left of plane."""
    out = []
    for i in range(len(polygon)):
        cur, prev = polygon[i], polygon[i - 1]
        s_cur, s_prev = _side(plane, cur), _side(plane, prev)
        if s_cur >= 0:
            if s_prev < 0:
                out.append(prev + s_prev / (s_prev - s_cur) * (cur - prev))
            out.append(cur)
        elif s_prev >= 0:
            out.append(prev + s_prev / (s_prev - s_cur) * (cur - prev))
    return out


def clip_region(
    region: VoronoiRegion, clip_bounds: NDArray[np.floating]
) -> NDArray[np.floating] | None:
    """
    Clip a region against an axis-aligned bounding box.

    :param region: Bounded or unbounded cell
    :param clip_bounds: [[min_x, min_y], [max_x, max_y]]
    :return: ccw polygon of the clipped cell, None if nothing is left
    """
    bounds = np.asarray(clip_bounds, dtype=float)
    if bounds.shape != (2, 2):
        raise ValueError("clip_bounds must have shape (2, 2) [[min_x, min_y], [max_x, max_y]]")
    (min_x, min_y), (max_x, max_y) = bounds
    if not (min_x <= max_x and min_y <= max_y):
        raise ValueError("Clip bounds min must be less than or equal to max")

    polygon = [
        np.array([min_x, min_y]),
        np.array([max_x, min_y]),
        np.array([max_x, max_y]),
        np.array([min_x, max_y]),
    ]
    for plane in region_half_planes(region):
        polygon = _clip(polygon, plane)
        if len(polygon) < 3:
            return None
    return np.array(polygon)


def voronoi_polygons(
    cells: list[VoronoiCell], clip_bounds: NDArray[np.floating]
) -> list[tuple[VoronoiCell, NDArray[np.floating]]]:
    """Finite polygon of every cell clipped to clip_bounds, for rendering."""
    result = []
    for cell in cells:
        polygon = clip_region(cell.region, clip_bounds)
        if polygon is not None:
            result.append((cell, polygon))
    return result
