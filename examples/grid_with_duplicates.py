import numpy as np

from pyvd.build import build_triangulation
from pyvd.voronoi import DegenerateAccumulator, voronoi_accumulators


if __name__ == "__main__":
    x = np.arange(4.0)
    xx, yy = np.meshgrid(x, x)
    points = np.column_stack([xx.ravel(), yy.ravel()])
    # the same corner twice
    points = np.vstack([points, points[:1]])

    for acc in voronoi_accumulators(points):
        if isinstance(acc, DegenerateAccumulator):
            print(f"point {acc.vertex} dropped: {acc.reason}")

    triangulation = build_triangulation(points)
    triangulation.plot(show=True, point_labels=True)
