from typing import TypeAlias
from numpy.typing import NDArray
import numpy as np

EPS = 1e-9
Vec2d: TypeAlias = tuple[float, float] | NDArray[np.floating]

# Directions of the three bootstrap vertices at infinity, counter-clockwise.
BOOTSTRAP_DIRECTIONS = np.array([[0.0, 1.0], [-1.0, -1.0], [1.0, -1.0]])


def as_points(points) -> NDArray[np.floating]:
    """Convert user input into a float (n, 2) array, rejecting anything else."""
    arr = np.asarray(points, dtype=float)
    if arr.ndim == 1 and arr.size == 0:
        return arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected an (n, 2) array of points, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError("Points must have finite coordinates")
    return arr
