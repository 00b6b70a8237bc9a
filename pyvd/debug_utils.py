import numpy as np
from numpy.typing import NDArray

from pyvd.delaunay import DelaunayMesh
from pyvd.query import voronoi_polygons
from pyvd.voronoi import BoundedRegion, VoronoiCell


def plot_voronoi(
    cells: list[VoronoiCell],
    clip_bounds: NDArray[np.floating],
    mesh: DelaunayMesh | None = None,
    show: bool = False,
    title: str = "Voronoi diagram",
    fontsize: int = 7,
) -> NDArray[np.uint8]:
    """
    Visualize Voronoi cells clipped to a bounding box, optionally with the
    Delaunay mesh on top.

    Parameters
    ----------
    cells : list[VoronoiCell]
        Cells to draw
    clip_bounds : NDArray[np.floating]
        [[min_x, min_y], [max_x, max_y]] used to close unbounded cells
    mesh : DelaunayMesh | None
        Delaunay triangulation to overlay
    show : bool
        Whether to call plt.show()
    title : str
        Title of the plot
    fontsize : int
        Font size for the datapoint labels

    Returns
    -------
    NDArray[np.uint8]
        RGB image of the figure
    """
    import matplotlib.pyplot as plt
    from matplotlib.patches import Polygon

    fig, ax = plt.subplots(figsize=(8, 8))

    for cell, polygon in voronoi_polygons(cells, clip_bounds):
        bounded = isinstance(cell.region, BoundedRegion)
        poly = Polygon(
            polygon,
            alpha=0.4,
            facecolor="lightblue" if bounded else "orange",
            edgecolor="black",
            linewidth=0.8,
            zorder=1,
        )
        ax.add_patch(poly)
        ax.text(
            cell.datapoint[0],
            cell.datapoint[1],
            str(cell.index),
            fontsize=fontsize,
            ha="left",
            va="bottom",
            color="darkgreen",
            zorder=4,
        )

    if mesh is not None:
        for tri in mesh.triangles:
            pts = mesh.vertices[tri]
            tri_closed = np.vstack([pts, pts[0]])
            ax.plot(tri_closed[:, 0], tri_closed[:, 1], "b-", linewidth=0.6, alpha=0.6, zorder=2)

    if cells:
        datapoints = np.array([cell.datapoint for cell in cells])
        ax.plot(datapoints[:, 0], datapoints[:, 1], "ko", markersize=3, zorder=3)

    (min_x, min_y), (max_x, max_y) = np.asarray(clip_bounds, dtype=float)
    ax.set_xlim(min_x, max_x)
    ax.set_ylim(min_y, max_y)
    ax.set_aspect("equal")
    ax.set_title(title)

    if show:
        plt.show()

    fig.canvas.draw()
    buf = fig.canvas.buffer_rgba()  # type: ignore[reportAttributeAccessIssue]
    img = np.asarray(buf)[:, :, :3].copy()
    plt.close(fig)
    return img
