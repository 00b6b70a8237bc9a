from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from pyvd.delaunay import DelaunayMesh, Triangulation
from pyvd.geometry import PointInTriangle
from pyvd.topology import find_vertex_position, lawson_swapping, replace_neighbor
from pyvd.utils import as_points


class CoincidentVerticesError(ValueError):
    """Two input points share the same coordinates."""

    def __init__(self, first: int, second: int):
        super().__init__(f"Points {first} and {second} coincide")
        self.first = first
        self.second = second


@dataclass
class ContainingTriangle:
    idx: int
    position: PointInTriangle
    # opposite vertex of the hit edge, or the coincident vertex
    vertex: int | None


def classify_point(
    triangulation: Triangulation, triangle_idx: int, point_idx: int
) -> tuple[PointInTriangle, int | None, list[int]]:
    """
    Classify a vertex against a triangle of the mesh.

    Returns the classification, the vertex of interest (opposite to the hit
    edge, or the coincident vertex) and the local edge indices the point lies
    strictly outside of.
    """
    tri = triangulation.triangle_vertices[triangle_idx]
    signs = [
        triangulation.orientation(int(tri[(i + 1) % 3]), int(tri[(i + 2) % 3]), point_idx)
        for i in range(3)
    ]
    outside = [i for i in range(3) if signs[i] < 0]
    if outside:
        return PointInTriangle.outside, None, outside

    zeros = [i for i in range(3) if signs[i] == 0]
    if not zeros:
        return PointInTriangle.inside, None, []
    if len(zeros) == 1:
        return PointInTriangle.edge, int(tri[zeros[0]]), []
    # on two edges at once: the point is their common vertex
    vertex_pos = next(i for i in range(3) if i not in zeros)
    return PointInTriangle.vertex, int(tri[vertex_pos]), []


def find_containing_triangle(
    triangulation: Triangulation,
    point_idx: int,
    last_triangle_idx: int,
) -> ContainingTriangle:
    """
    Implementation of Lawson's walk to find the triangle containing a point.
    Starts from the most recently added triangle and "walks" towards the point
    using the adjacency information in triangle_neighbors. Falls back to
    scanning every triangle if the walk cannot make progress.

    :param triangulation: Mesh to search
    :param point_idx: Index of the point to locate
    :param last_triangle_idx: Index of the triangle to start from
    :return: The containing triangle and where the point lies on it
    """
    if triangulation.n_triangles == 0 or not (
        0 <= last_triangle_idx < triangulation.n_triangles
    ):
        raise ValueError("No triangles available or invalid starting triangle")

    triangle_idx = last_triangle_idx

    # Keep track of visited triangles to avoid cycles
    visited = {triangle_idx}
    steps = 0
    while True:
        position, vertex, outside = classify_point(triangulation, triangle_idx, point_idx)
        if position != PointInTriangle.outside:
            logger.trace(f"Found triangle {triangle_idx} in {steps} steps")
            return ContainingTriangle(idx=triangle_idx, position=position, vertex=vertex)

        candidates = []
        for i in outside:
            adjacent_idx = int(triangulation.triangle_neighbors[triangle_idx, i])
            if adjacent_idx != -1 and adjacent_idx not in visited:
                candidates.append(adjacent_idx)

        if not candidates:
            logger.debug(
                f"Walk for point {point_idx} stuck after {steps} steps, scanning all triangles"
            )
            return _scan_for_containing_triangle(triangulation, point_idx)

        triangle_idx = candidates.pop()
        visited.add(triangle_idx)
        steps += 1


def _scan_for_containing_triangle(
    triangulation: Triangulation, point_idx: int
) -> ContainingTriangle:
    for triangle_idx in range(triangulation.n_triangles):
        position, vertex, _ = classify_point(triangulation, triangle_idx, point_idx)
        if position != PointInTriangle.outside:
            return ContainingTriangle(idx=triangle_idx, position=position, vertex=vertex)
    raise RuntimeError(
        f"Couldn't find a triangle containing point {point_idx}! "
        f"Triangulation has {triangulation.n_triangles} triangles"
    )


def initialize_triangulation(points: NDArray[np.floating]) -> Triangulation:
    """
    Initialize the triangulation with the bootstrap triangle.

    The bootstrap vertices get indices n, n+1, n+2 and lie at infinity, so the
    bootstrap triangle contains every point of the plane. Each insertion adds
    exactly two triangles, so the arena is sized for 2n + 1 rows.

    :param points: Input points, shape (n, 2)
    :return: Triangulation holding only the bootstrap triangle
    """
    n = len(points)
    capacity = 2 * n + 1
    triangulation = Triangulation(
        points=points,
        triangle_vertices=np.full((capacity, 3), -1, dtype=int),
        triangle_neighbors=np.full((capacity, 3), -1, dtype=int),
    )
    # Initial triangle has no neighbors (all boundaries)
    triangulation.add_triangle([n, n + 1, n + 2], [-1, -1, -1])
    return triangulation


def insert_point_inside_triangle(
    triangulation: Triangulation, point_idx: int, containing_idx: int
) -> list[tuple[int, int]]:
    """
    Split triangle containing_idx into three by connecting point_idx to its corners.

    :return: stack of (neighbor, new triangle) pairs for Lawson swapping
    """
    v1, v2, v3 = (int(v) for v in triangulation.triangle_vertices[containing_idx])

    # Get the original neighbors before we modify anything
    n1, n2, n3 = (int(n) for n in triangulation.triangle_neighbors[containing_idx])
    logger.trace(f"Neighbours: opposite v1={n1}, opposite v2={n2}, opposite v3={n3}")

    t12 = containing_idx  # reusing the original index
    t23 = triangulation.n_triangles
    t31 = t23 + 1

    # for every triangle [v1, v2, v3] we define the neighbor as:
    # [t_sharing_edge_opposite_of_v1, t_sharing_edge_opposite_of_v2, t_sharing_edge_opposite_of_v3]
    triangulation.triangle_vertices[t12] = [point_idx, v1, v2]
    triangulation.triangle_neighbors[t12] = [n3, t23, t31]
    triangulation.add_triangle([point_idx, v2, v3], [n1, t31, t12])
    triangulation.add_triangle([point_idx, v3, v1], [n2, t12, t23])

    replace_neighbor(triangulation, n1, containing_idx, t23)  # v2-v3 edge
    replace_neighbor(triangulation, n2, containing_idx, t31)  # v3-v1 edge

    return [(n1, t23), (n2, t31), (n3, t12)]


def insert_point_on_edge(
    triangulation: Triangulation,
    point_idx: int,
    containing_idx: int,
    opposite_vertex_idx: int,
) -> list[tuple[int, int]]:
    """
    Insert a point lying on the edge of triangle containing_idx opposite to
    opposite_vertex_idx, splitting both triangles sharing that edge (2 into 4).

    :return: stack of (neighbor, new triangle) pairs for Lawson swapping
    """
    vertices = triangulation.triangle_vertices[containing_idx]
    k = find_vertex_position(vertices, opposite_vertex_idx)
    v3 = opposite_vertex_idx
    v1 = int(vertices[(k + 1) % 3])
    v2 = int(vertices[(k + 2) % 3])

    t_neighbors = triangulation.triangle_neighbors[containing_idx]
    To = int(t_neighbors[k])  # across the split edge
    Ty = int(t_neighbors[(k + 1) % 3])  # opposite v1, edge (v2, v3)
    Tx = int(t_neighbors[(k + 2) % 3])  # opposite v2, edge (v3, v1)
    if To == -1:
        raise RuntimeError(f"Point {point_idx} falls on the boundary of the bootstrap triangle")

    To_vertices = triangulation.triangle_vertices[To]
    v4 = next(int(v) for v in To_vertices if v != v1 and v != v2)
    Tz = int(triangulation.triangle_neighbors[To][find_vertex_position(To_vertices, v2)])
    Tw = int(triangulation.triangle_neighbors[To][find_vertex_position(To_vertices, v1)])

    t1 = containing_idx  # reusing the original index
    t3 = To  # reusing the original index
    t2 = triangulation.n_triangles
    t4 = t2 + 1

    triangulation.triangle_vertices[t1] = [point_idx, v3, v1]
    triangulation.triangle_neighbors[t1] = [Tx, t3, t2]
    triangulation.triangle_vertices[t3] = [point_idx, v1, v4]
    triangulation.triangle_neighbors[t3] = [Tz, t4, t1]
    triangulation.add_triangle([point_idx, v2, v3], [Ty, t1, t4])
    triangulation.add_triangle([point_idx, v4, v2], [Tw, t2, t3])

    replace_neighbor(triangulation, Ty, containing_idx, t2)
    replace_neighbor(triangulation, Tw, To, t4)

    return [(Tx, t1), (Ty, t2), (Tz, t3), (Tw, t4)]


def insert_point(
    point_idx: int,
    triangulation: Triangulation,
    strict: bool = False,
    debug: bool = False,
) -> Triangulation:
    """
    Insert a point into the triangulation.

    :param point_idx: Index of the point to insert
    :param triangulation: Mesh to update in place
    :param strict: Raise CoincidentVerticesError on duplicates instead of skipping them
    :param debug: Plot the mesh after the insertion
    :return: The updated triangulation
    """
    logger.debug(
        f"Searching containing triangle for point {point_idx}: {np.round(triangulation.points[point_idx], 2)}"
    )
    containing_tri = find_containing_triangle(
        triangulation, point_idx, triangulation.last_triangle_idx
    )

    if containing_tri.position == PointInTriangle.vertex:
        first = int(containing_tri.vertex)  # type: ignore[arg-type]
        if strict:
            raise CoincidentVerticesError(first, point_idx)
        logger.warning(
            f"Point {point_idx} coincides with point {first}! Not adding it again"
        )
        triangulation.duplicates[point_idx] = first
        triangulation.last_triangle_idx = containing_tri.idx
        return triangulation

    if containing_tri.position == PointInTriangle.edge:
        if containing_tri.vertex is None:
            raise RuntimeError("Opposite vertex cannot be None")
        stack = insert_point_on_edge(
            triangulation, point_idx, containing_tri.idx, containing_tri.vertex
        )
    else:
        stack = insert_point_inside_triangle(
            triangulation, point_idx, containing_tri.idx
        )

    # Restore Delaunay triangulation (edge flipping)
    flips = lawson_swapping(point_idx, stack, triangulation)
    logger.trace(f"Point {point_idx} inserted with {flips} flips")

    if debug:
        triangulation.plot(show=True, title=f"After inserting P{point_idx}")

    triangulation.last_triangle_idx = triangulation.n_triangles - 1
    return triangulation


def build_triangulation(
    points, strict: bool = False, debug: bool = False
) -> Triangulation:
    """
    Build the full working mesh (input points plus bootstrap vertices).

    Points are inserted in input order. The returned mesh still contains the
    triangles touching bootstrap vertices; use extract_mesh for the Delaunay
    triangles of the input alone.

    :param points: (n, 2) array-like of coordinates
    :param strict: Raise CoincidentVerticesError on duplicate points
    :param debug: Plot the mesh after every insertion
    """
    pts = as_points(points)
    triangulation = initialize_triangulation(pts)

    for point_idx in range(len(pts)):
        insert_point(point_idx, triangulation, strict=strict, debug=debug)

    logger.debug(
        f"Triangulated {len(pts)} points into {triangulation.n_triangles} triangles "
        f"({len(triangulation.duplicates)} duplicates skipped)"
    )
    return triangulation


def extract_mesh(triangulation: Triangulation) -> DelaunayMesh:
    """Keep the triangles whose three vertices are input points."""
    triangles = triangulation.triangles
    mask = np.all(triangles < triangulation.n_points, axis=1)
    return DelaunayMesh(
        vertices=triangulation.points,
        triangles=triangles[mask].copy(),
    )


def triangulate(points, strict: bool = False, debug: bool = False) -> DelaunayMesh:
    """
    Delaunay triangulation of a planar point set, by incremental insertion with
    Lawson edge flipping.

    Fewer than three points, or only collinear points, give an empty mesh.
    Duplicate points are skipped (the first occurrence is kept) unless strict is set.

    :param points: Input points to triangulate, shape (n, 2)
    :param strict: Raise CoincidentVerticesError on duplicate points
    :param debug: plot debug images
    :return: mesh of counterclockwise index triples into points
    """
    return extract_mesh(build_triangulation(points, strict=strict, debug=debug))


def triangulate_by(
    items: Iterable[Any],
    position: Callable[[Any], tuple[float, float]],
    strict: bool = False,
) -> tuple[list[Any], DelaunayMesh]:
    """
    Triangulate arbitrary objects given a function returning their position.

    :return: the items as a list (mesh indices refer to it) and the mesh
    """
    items = list(items)
    points = np.array([position(item) for item in items], dtype=float).reshape(-1, 2)
    return items, triangulate(points, strict=strict)
