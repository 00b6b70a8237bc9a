from dataclasses import dataclass

from loguru import logger
from numpy.typing import NDArray

from pyvd.delaunay import Triangulation


class SharedEdgeError(Exception): ...


@dataclass(frozen=True)
class SwapDiagonalResult:
    """Result of a diagonal swap operation.

    Attributes
    ----------
    t7 : int
        Triangle across the edge opposite point_idx in the new t4
    t8 : int
        Triangle across the edge opposite point_idx in the new t3
    diagonal_vk : int
        First vertex index of the new diagonal edge
    diagonal_vl : int
        Second vertex index of the new diagonal edge
    """

    t7: int
    t8: int
    diagonal_vk: int
    diagonal_vl: int


def find_vertex_position(triangle_vertices: NDArray, vertex: int) -> int:
    """Find the position (0, 1, or 2) of a vertex in a triangle"""
    for i in range(3):
        if triangle_vertices[i] == vertex:
            return i
    raise RuntimeError(f"Vertex {vertex} not in triangle {triangle_vertices}")


def find_shared_edge(
    tri1_vertices: NDArray, tri2_vertices: NDArray
) -> tuple[int, int, int, int]:
    """
    Find the shared edge between two triangles.
    Returns (v1, v2, opposite1, opposite2) where:
    - v1, v2 are the shared vertices, v1 -> v2 being ccw in tri1
    - opposite1 is the vertex in tri1 not on the shared edge
    - opposite2 is the vertex in tri2 not on the shared edge
    """
    shared = set(int(v) for v in tri1_vertices) & set(int(v) for v in tri2_vertices)
    if len(shared) != 2:
        raise SharedEdgeError(
            f"Triangles must share exactly one edge. Shared vertices: {sorted(shared)}"
        )

    opposite1 = next(int(v) for v in tri1_vertices if v not in shared)
    opposite2 = next(int(v) for v in tri2_vertices if v not in shared)
    pos = find_vertex_position(tri1_vertices, opposite1)
    v1 = int(tri1_vertices[(pos + 1) % 3])
    v2 = int(tri1_vertices[(pos + 2) % 3])
    return v1, v2, opposite1, opposite2


def replace_neighbor(
    triangulation: Triangulation, triangle_idx: int, old_idx: int, new_idx: int
) -> None:
    """Make triangle_idx point to new_idx where it used to point to old_idx."""
    if triangle_idx < 0:
        # outside of the bootstrap triangle
        return
    row = triangulation.triangle_neighbors[triangle_idx]
    for i in range(3):
        if row[i] == old_idx:
            row[i] = new_idx
            return
    raise RuntimeError(f"{old_idx} not found in {triangle_idx} neighbors!")


def swap_diagonal(
    triangulation: Triangulation,
    t3_idx: int,
    t4_idx: int,
    point_idx: int | None = None,
) -> SwapDiagonalResult:
    """
    Swap the diagonal between two adjacent triangles.

    Before swap:
        Triangle t4_idx: (p, a, b), counterclockwise
        Triangle t3_idx: (c, b, a), counterclockwise
        Shared edge: (a, b)

    After swap:
        New triangle at t3_idx: (p, a, c)
        New triangle at t4_idx: (p, c, b)
        New shared edge: (p, c)

    Both triangles keep their indices, so the caller's handles stay valid.

    Parameters
    ----------
    triangulation : Triangulation
        The triangulation to modify (modified in-place)
    t3_idx : int
        Index of the neighboring triangle
    t4_idx : int
        Index of the candidate triangle
    point_idx : int | None, optional
        Vertex of t4_idx opposite to the shared edge. Determined from the
        shared edge if None.

    Returns
    -------
    SwapDiagonalResult
        The triangles now across the edges opposite p (to be checked next for
        Delaunay violations) and the new diagonal.

    Raises
    ------
    ValueError
        If point_idx is provided but is not the vertex of t4_idx opposite the shared edge
    SharedEdgeError
        If the triangles don't share an edge
    """
    vertices = triangulation.triangle_vertices
    neighbors = triangulation.triangle_neighbors

    a, b, p, c = find_shared_edge(vertices[t4_idx], vertices[t3_idx])
    if point_idx is not None and point_idx != p:
        raise ValueError(f"Expected point_idx {point_idx}, but got {p}")

    t4 = vertices[t4_idx].copy()
    t3 = vertices[t3_idx].copy()
    n_t4 = neighbors[t4_idx].copy()
    n_t3 = neighbors[t3_idx].copy()

    n_bp = int(n_t4[find_vertex_position(t4, a)])  # edge (b, p)
    n_pa = int(n_t4[find_vertex_position(t4, b)])  # edge (p, a)
    n_cb = int(n_t3[find_vertex_position(t3, a)])  # edge (c, b)
    n_ac = int(n_t3[find_vertex_position(t3, b)])  # edge (a, c)

    vertices[t3_idx] = [p, a, c]
    neighbors[t3_idx] = [n_ac, t4_idx, n_pa]
    vertices[t4_idx] = [p, c, b]
    neighbors[t4_idx] = [n_cb, n_bp, t3_idx]

    replace_neighbor(triangulation, n_pa, t4_idx, t3_idx)
    replace_neighbor(triangulation, n_cb, t3_idx, t4_idx)

    return SwapDiagonalResult(t7=n_cb, t8=n_ac, diagonal_vk=p, diagonal_vl=c)


def prefers_flip(a: int, b: int, p: int, c: int) -> bool:
    """
    Tie-break for exactly cocircular quadrilaterals: keep the diagonal whose
    sorted vertex pair is lexicographically smallest.
    """
    return sorted((p, c)) < sorted((a, b))


def lawson_swapping(
    point_idx: int,
    stack: list[tuple[int, int]],
    triangulation: Triangulation,
) -> int:
    """
    Restore the Delaunay condition by flipping edges as necessary.

    :param point_idx: Index of the newly inserted point
    :param stack: List of (neighbor_idx, candidate_triangle_idx) pairs to check,
        where candidate_triangle_idx contains point_idx and neighbor_idx lies
        across the edge opposite to it
    :param triangulation: Triangulation structure containing geometry and topology
    :return: number of flips performed
    """
    vertices = triangulation.triangle_vertices
    neighbors = triangulation.triangle_neighbors
    n_points = triangulation.n_points
    flips = 0

    logger.trace("Lawson swapping phase")
    while stack:
        logger.trace(f"Stack -> {stack}")
        t3_idx, t4_idx = stack.pop()

        # Skip if either triangle is invalid
        if t3_idx == -1 or t4_idx == -1:
            continue

        t4 = vertices[t4_idx]
        pos_p = find_vertex_position(t4, point_idx)
        if neighbors[t4_idx][pos_p] != t3_idx:
            # an earlier flip already replaced this edge
            continue

        a = int(t4[(pos_p + 1) % 3])
        b = int(t4[(pos_p + 2) % 3])
        t3 = vertices[t3_idx]
        c = next(int(v) for v in t3 if v != a and v != b)

        # Is the new point inside the circumcircle of (c, b, a)?
        sign = triangulation.incircle(c, b, a, point_idx)
        if sign < 0:
            continue
        if sign == 0:
            if max(a, b, c, point_idx) >= n_points or not prefers_flip(a, b, point_idx, c):
                continue
            logger.trace(f"Cocircular tie on edge ({a}, {b}), flipping to ({point_idx}, {c})")

        logger.trace(
            f"Point {point_idx} from triangle {t4_idx} lies in circumcircle of triangle {t3_idx}; flipping shared edge"
        )
        result = swap_diagonal(triangulation, t3_idx, t4_idx, point_idx)
        flips += 1

        # check the edge opposite to point_idx in both new triangles
        if result.t8 != -1:
            stack.append((result.t8, t3_idx))
        if result.t7 != -1:
            stack.append((result.t7, t4_idx))

    return flips


def neighbors_are_symmetric(triangulation: Triangulation) -> bool:
    """Check that every neighbor link is mirrored by the neighbor."""
    for t_idx, row in enumerate(triangulation.neighbors):
        for n_idx in row:
            if n_idx == -1:
                continue
            if t_idx not in triangulation.triangle_neighbors[n_idx]:
                return False
    return True

