import numpy as np

from pyvd.debug_utils import plot_voronoi
from pyvd.voronoi import delaunay_and_voronoi


if __name__ == "__main__":
    rng = np.random.default_rng(0)
    points = rng.random((40, 2))

    mesh, cells = delaunay_and_voronoi(points)
    print(f"{len(mesh)} triangles, {len(cells)} cells")
    plot_voronoi(cells, [[-0.25, -0.25], [1.25, 1.25]], mesh=mesh, show=True)
