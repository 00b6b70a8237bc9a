"""Voronoi diagrams as the dual of the Delaunay triangulation."""

from dataclasses import dataclass
from typing import TypeAlias

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from pyvd.build import build_triangulation, extract_mesh
from pyvd.delaunay import DelaunayMesh, Triangulation
from pyvd.geometry import angle_from, convex_hull, outward_normal, sort_by_angle
from pyvd.topology import find_vertex_position


@dataclass(frozen=True, eq=False)
class Ray:
    origin: NDArray[np.floating]
    direction: NDArray[np.floating]


@dataclass(frozen=True, eq=False)
class BoundedRegion:
    """Cell of a point strictly inside the convex hull: a convex ccw polygon."""

    polygon: NDArray[np.floating]


@dataclass(frozen=True, eq=False)
class UnboundedRegion:
    """
    Cell of a convex hull point.

    The boundary comes in from infinity along ray_1 (reversed), follows the
    polyline counterclockwise around the datapoint and leaves along ray_2.
    polyline[0] is ray_1.origin and polyline[-1] is ray_2.origin.
    """

    polyline: NDArray[np.floating]
    ray_1: Ray
    ray_2: Ray


VoronoiRegion: TypeAlias = BoundedRegion | UnboundedRegion


@dataclass(frozen=True, eq=False)
class VoronoiCell:
    index: int
    datapoint: NDArray[np.floating]
    region: VoronoiRegion


@dataclass(frozen=True, eq=False)
class InteriorAccumulator:
    vertex: int
    circumcenters: NDArray[np.floating]


@dataclass(frozen=True, eq=False)
class HullAccumulator:
    vertex: int
    circumcenters: NDArray[np.floating]
    ray_1: Ray
    ray_2: Ray


@dataclass(frozen=True, eq=False)
class DegenerateAccumulator:
    vertex: int
    reason: str
    hull_triangle_count: int


Accumulator: TypeAlias = InteriorAccumulator | HullAccumulator | DegenerateAccumulator


def vertex_triangles(triangulation: Triangulation) -> NDArray[np.integer]:
    """One incident triangle per vertex (bootstrap vertices included), -1 if none."""
    incident = np.full(triangulation.n_points + 3, -1, dtype=int)
    for t_idx, tri in enumerate(triangulation.triangles):
        incident[tri] = t_idx
    return incident


def walk_one_ring(
    triangulation: Triangulation, vertex: int, start_triangle: int
) -> list[int]:
    """
    Triangles around vertex in counterclockwise order, starting at start_triangle.

    In a ccw triangle (v, a, b) the next triangle counterclockwise about v is
    the one across the edge (v, b).
    """
    vertices = triangulation.triangle_vertices
    neighbors = triangulation.triangle_neighbors

    ring = []
    t_idx = start_triangle
    for _ in range(triangulation.n_triangles):
        ring.append(t_idx)
        pos = find_vertex_position(vertices[t_idx], vertex)
        t_idx = int(neighbors[t_idx][(pos + 1) % 3])
        if t_idx == start_triangle:
            return ring
        if t_idx == -1:
            raise RuntimeError(f"Open one-ring around vertex {vertex}: {ring}")
    raise RuntimeError(f"One-ring around vertex {vertex} does not close")


def _hull_ray(
    triangulation: Triangulation,
    vertex: int,
    hull_triangle: int,
    real_triangle: int,
    origin: NDArray[np.floating],
) -> Ray:
    """Ray leaving the cell of vertex across the hull edge shared by both triangles."""
    real = set(int(v) for v in triangulation.triangle_vertices[real_triangle])
    other = next(
        int(v)
        for v in triangulation.triangle_vertices[hull_triangle]
        if v != vertex and not triangulation.is_bootstrap(int(v))
    )
    inner = next(v for v in real if v != vertex and v != other)

    p = triangulation.points[vertex]
    normal = outward_normal(p, triangulation.points[other])
    # point away from the triangulation
    if np.dot(normal, triangulation.points[inner] - p) > 0:
        normal = -normal
    return Ray(origin=origin, direction=normal)


def accumulate_vertex(
    triangulation: Triangulation, vertex: int, start_triangle: int
) -> Accumulator:
    """
    Collect the circumcenters around a vertex and classify it.

    The count that matters is the number of incident triangles with exactly
    one bootstrap vertex: each of them stands for a convex hull edge through
    the vertex. Triangles with two bootstrap vertices only fill the angle
    outside the hull and are ignored.

    - 0 hull triangles and no bootstrap contact: interior point, bounded cell
    - 2 hull triangles around a fan of real triangles: hull point, unbounded cell
    - anything else: degenerate (collinear input, fewer than 3 points, ...)
    """
    ring = walk_one_ring(triangulation, vertex, start_triangle)
    kinds = [triangulation.bootstrap_count(t) for t in ring]
    hull_count = sum(1 for k in kinds if k == 1)

    if hull_count == 0:
        if any(kinds):
            return DegenerateAccumulator(vertex, "no finite triangles", hull_count)
        fan = ring
    elif hull_count == 2:
        m = len(ring)
        first = next(
            (i for i in range(m) if kinds[i] == 1 and kinds[(i + 1) % m] == 0), None
        )
        if first is None:
            return DegenerateAccumulator(vertex, "no finite triangles", hull_count)
        fan = []
        i = (first + 1) % m
        while kinds[i] == 0:
            fan.append(ring[i])
            i = (i + 1) % m
        if kinds[i] != 1:
            return DegenerateAccumulator(vertex, "hull edges not adjacent to the fan", hull_count)
        start_hull, end_hull = ring[first], ring[i]
    else:
        return DegenerateAccumulator(
            vertex, "inconsistent number of hull triangles", hull_count
        )

    centers = []
    for t_idx in fan:
        center = triangulation.circumcenter(t_idx)
        if center is None:
            return DegenerateAccumulator(vertex, "collinear triangle", hull_count)
        centers.append(center)
    circumcenters = np.array(centers)

    if hull_count == 0:
        if len(convex_hull(circumcenters)) < 3:
            return DegenerateAccumulator(vertex, "flat cell", hull_count)
        return InteriorAccumulator(vertex, circumcenters)

    ray_1 = _hull_ray(triangulation, vertex, start_hull, fan[0], circumcenters[0])
    ray_2 = _hull_ray(triangulation, vertex, end_hull, fan[-1], circumcenters[-1])
    return HullAccumulator(vertex, circumcenters, ray_1, ray_2)


def region_from_accumulator(
    accumulator: Accumulator, datapoint: NDArray[np.floating]
) -> VoronoiRegion | None:
    """Turn an accumulator into the final cell, None for degenerate vertices."""
    if isinstance(accumulator, InteriorAccumulator):
        # don't trust the walk order, near-degenerate rings can be noisy
        return BoundedRegion(polygon=convex_hull(accumulator.circumcenters))

    if isinstance(accumulator, HullAccumulator):
        start = accumulator.ray_1.origin - datapoint
        polyline = sort_by_angle(
            accumulator.circumcenters, datapoint, start_angle=angle_from(start)
        )
        return UnboundedRegion(
            polyline=polyline, ray_1=accumulator.ray_1, ray_2=accumulator.ray_2
        )

    logger.debug(
        f"Vertex {accumulator.vertex} omitted from the Voronoi diagram: "
        f"{accumulator.reason} ({accumulator.hull_triangle_count} hull triangles)"
    )
    return None


def accumulators_from_triangulation(triangulation: Triangulation) -> list[Accumulator]:
    """One accumulator per input point, in input order."""
    incident = vertex_triangles(triangulation)
    accumulators: list[Accumulator] = []
    for vertex in range(triangulation.n_points):
        if vertex in triangulation.duplicates:
            accumulators.append(
                DegenerateAccumulator(
                    vertex, f"duplicate of point {triangulation.duplicates[vertex]}", 0
                )
            )
            continue
        accumulators.append(accumulate_vertex(triangulation, vertex, int(incident[vertex])))
    return accumulators


def voronoi_from_triangulation(triangulation: Triangulation) -> list[VoronoiCell]:
    cells = []
    for accumulator in accumulators_from_triangulation(triangulation):
        datapoint = triangulation.points[accumulator.vertex]
        region = region_from_accumulator(accumulator, datapoint)
        if region is not None:
            cells.append(
                VoronoiCell(index=accumulator.vertex, datapoint=datapoint, region=region)
            )
    return cells


def voronoi_accumulators(points, strict: bool = False) -> list[Accumulator]:
    """
    Per-point accumulators, degenerate ones included, for callers who need to
    know which points voronoi_diagram dropped and why.
    """
    return accumulators_from_triangulation(build_triangulation(points, strict=strict))


def voronoi_diagram(points, strict: bool = False) -> list[VoronoiCell]:
    """
    Voronoi diagram of a planar point set.

    Points strictly inside the convex hull get a BoundedRegion, hull points an
    UnboundedRegion. Points in degenerate configurations (fewer than three
    points, all collinear, duplicates) are omitted.

    :param points: (n, 2) array-like of coordinates
    :param strict: Raise CoincidentVerticesError on duplicate points
    :return: cells in input order
    """
    return voronoi_from_triangulation(build_triangulation(points, strict=strict))


def delaunay_and_voronoi(
    points, strict: bool = False
) -> tuple[DelaunayMesh, list[VoronoiCell]]:
    """Both the Delaunay mesh and the Voronoi diagram from a single triangulation."""
    triangulation = build_triangulation(points, strict=strict)
    return extract_mesh(triangulation), voronoi_from_triangulation(triangulation)
