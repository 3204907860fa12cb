"""
Spatial helper functions for the clustering index.

Provides utilities for:
- Greedy radius clustering with a KD-Tree
- Viewport containment
- Pixel-radius hit testing
"""
import numpy as np
from scipy.spatial import KDTree
from shapely.geometry import Point, box
import logging

logger = logging.getLogger(__name__)


def cluster_points(pixel_coords: np.ndarray, radius: float) -> list[list[int]]:
    """
    Group points that lie within ``radius`` pixels of a seed point.

    Points are visited in input order; each unassigned point seeds a group
    made of itself and every still-unassigned neighbour within the radius.

    Args:
        pixel_coords: Array of shape (n, 2) with pixel coordinates
        radius: Clustering radius in pixels

    Returns:
        List of groups, each a sorted list of indices into ``pixel_coords``
    """
    if len(pixel_coords) == 0:
        return []

    kdtree = KDTree(pixel_coords)
    assigned = np.zeros(len(pixel_coords), dtype=bool)
    groups: list[list[int]] = []

    for index in range(len(pixel_coords)):
        if assigned[index]:
            continue
        neighbours = [
            j for j in kdtree.query_ball_point(pixel_coords[index], r=radius)
            if not assigned[j]
        ]
        assigned[neighbours] = True
        groups.append(sorted(neighbours))

    logger.debug(f"Clustered {len(pixel_coords)} points into {len(groups)} groups")
    return groups


def viewport_contains(width: float, height: float, x: float, y: float) -> bool:
    """
    Check whether a screen pixel lies inside the viewport, edges included.

    Args:
        width: Viewport width in pixels
        height: Viewport height in pixels
        x: Screen x
        y: Screen y

    Returns:
        True if the pixel is visible
    """
    return box(0, 0, width, height).covers(Point(x, y))


def within_radius(
    origin: tuple[float, float],
    x: float,
    y: float,
    radius: float,
) -> bool:
    """Check whether (x, y) lies within ``radius`` pixels of ``origin``."""
    return Point(origin).distance(Point(x, y)) <= radius
