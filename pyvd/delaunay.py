from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from pyvd.geometry import (
    LiftedVertex,
    circumcenter,
    incircle,
    orient2d,
    symbolic_incircle,
    symbolic_orient2d,
)
from pyvd.utils import BOOTSTRAP_DIRECTIONS


@dataclass
class Triangulation:
    """
    Working triangle mesh over the input points plus three bootstrap vertices.

    Vertices 0..n-1 are the input points, n..n+2 are the bootstrap vertices at
    infinity (see BOOTSTRAP_DIRECTIONS). Triangles live in preallocated rows;
    only the first n_triangles rows are in use. For every triangle [v0, v1, v2]
    the neighbors row is
    [t_sharing_edge_opposite_of_v0, t_sharing_edge_opposite_of_v1, t_sharing_edge_opposite_of_v2]
    with -1 marking a missing neighbor.
    """

    points: NDArray[np.floating]
    triangle_vertices: NDArray[np.integer]
    triangle_neighbors: NDArray[np.integer]
    n_triangles: int = 0
    last_triangle_idx: int = 0
    duplicates: dict[int, int] = field(default_factory=dict)
    debug_plots: list[NDArray[np.floating]] = field(default_factory=list)

    @property
    def n_points(self) -> int:
        return len(self.points)

    @property
    def triangles(self) -> NDArray[np.integer]:
        """Vertex rows of the triangles currently in use."""
        return self.triangle_vertices[: self.n_triangles]

    @property
    def neighbors(self) -> NDArray[np.integer]:
        return self.triangle_neighbors[: self.n_triangles]

    def is_bootstrap(self, vertex: int) -> bool:
        return vertex >= self.n_points

    def bootstrap_count(self, triangle_idx: int) -> int:
        """Number of bootstrap vertices of a triangle."""
        return int(np.count_nonzero(self.triangle_vertices[triangle_idx] >= self.n_points))

    def lifted(self, vertex: int) -> LiftedVertex:
        if self.is_bootstrap(vertex):
            direction = BOOTSTRAP_DIRECTIONS[vertex - self.n_points]
            return np.array([0.0, direction[0]]), np.array([0.0, direction[1]])
        x, y = self.points[vertex]
        return np.array([x, 0.0]), np.array([y, 0.0])

    def orientation(self, a: int, b: int, c: int) -> int:
        n = self.n_points
        if a < n and b < n and c < n:
            return orient2d(self.points[a], self.points[b], self.points[c])
        return symbolic_orient2d(self.lifted(a), self.lifted(b), self.lifted(c))

    def incircle(self, a: int, b: int, c: int, d: int) -> int:
        """Is vertex d inside the circumcircle of the ccw triangle (a, b, c)?"""
        n = self.n_points
        if a < n and b < n and c < n and d < n:
            return incircle(self.points[a], self.points[b], self.points[c], self.points[d])
        return symbolic_incircle(
            self.lifted(a), self.lifted(b), self.lifted(c), self.lifted(d)
        )

    def add_triangle(
        self, vertices: list[int] | NDArray[np.integer], neighbors: list[int]
    ) -> int:
        """Store a new triangle in the next free row and return its index."""
        idx = self.n_triangles
        if idx >= len(self.triangle_vertices):
            raise RuntimeError(
                f"Triangle arena exhausted ({len(self.triangle_vertices)} rows)"
            )
        self.triangle_vertices[idx] = vertices
        self.triangle_neighbors[idx] = neighbors
        self.n_triangles += 1
        return idx

    def circumcenter(self, triangle_idx: int) -> NDArray[np.floating] | None:
        """Circumcenter of a triangle with only real vertices, None otherwise."""
        v = self.triangle_vertices[triangle_idx]
        if np.any(v >= self.n_points):
            return None
        return circumcenter(*self.points[v])

    def plot(
        self,
        show: bool = False,
        title: str = "Triangulation",
        point_labels: bool = False,
        fontsize: int = 7,
    ) -> None:
        """
        Plot the triangles made only of real vertices using matplotlib.

        Bootstrap vertices live at infinity and cannot be drawn, so triangles
        touching them are left out.

        :param show: Whether to call plt.show() after plotting
        :param title: Title of the plot
        :param point_labels: Whether to label points with their indices
        :param fontsize: Font size for labels
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots()

        offset = 0.01

        mask = np.all(self.triangles < self.n_points, axis=1)
        for tri_idx in np.flatnonzero(mask):
            pts = self.points[self.triangles[tri_idx]]
            tri_closed = np.vstack([pts, pts[0]])
            ax.plot(tri_closed[:, 0], tri_closed[:, 1], "b-", linewidth=1.0, alpha=0.6)

            centroid = np.mean(pts, axis=0)
            ax.text(
                centroid[0],
                centroid[1],
                str(tri_idx),
                fontsize=fontsize,
                ha="center",
                va="center",
                color="green",
            )

        if self.n_points:
            ax.plot(self.points[:, 0], self.points[:, 1], "ko", markersize=5, zorder=11)

        if point_labels:
            for idx, (x, y) in enumerate(self.points):
                ax.text(
                    x + offset,
                    y + offset,
                    str(idx),
                    fontsize=fontsize,
                    ha="left",
                    va="bottom",
                    color="darkgreen",
                )

        ax.set_aspect("equal")
        ax.set_title(title)

        if show:
            plt.show()

        # Convert figure to RGB image in memory
        fig.canvas.draw()
        buf = fig.canvas.buffer_rgba()  # type: ignore[reportAttributeAccessIssue]
        img = np.asarray(buf)[:, :, :3].copy()
        plt.close(fig)
        self.debug_plots.append(img)


@dataclass(frozen=True)
class DelaunayMesh:
    """
    Delaunay triangulation of a point set.

    vertices is the caller's point array, triangles an (m, 3) array of
    counterclockwise index triples into it.
    """

    vertices: NDArray[np.floating]
    triangles: NDArray[np.integer]

    def __len__(self) -> int:
        return len(self.triangles)

    def edges(self) -> list[tuple[int, int]]:
        """Unique undirected edges as sorted (i, j) pairs."""
        seen = set()
        for tri in self.triangles:
            for i in range(3):
                a, b = int(tri[i]), int(tri[(i + 1) % 3])
                seen.add((a, b) if a < b else (b, a))
        return sorted(seen)

    def hull_edges(self) -> list[tuple[int, int]]:
        """Directed edges (ccw) used by exactly one triangle, i.e. the convex hull."""
        directed = set()
        for tri in self.triangles:
            for i in range(3):
                directed.add((int(tri[i]), int(tri[(i + 1) % 3])))
        return sorted(e for e in directed if (e[1], e[0]) not in directed)

    def circumcenters(self) -> NDArray[np.floating]:
        """Circumcenter of every triangle, rows aligned with triangles."""
        centers = np.empty((len(self.triangles), 2))
        for idx, tri in enumerate(self.triangles):
            center = circumcenter(*self.vertices[tri])
            centers[idx] = np.nan if center is None else center
        return centers
