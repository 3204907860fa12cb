"""
Geospatial projection utilities for converting between lon/lat and map pixels.
"""
from functools import lru_cache
from typing import Tuple, List
import numpy as np
from pyproj import Transformer

# Half the Web Mercator world extent in metres
MERCATOR_HALF_EXTENT = 20037508.342789244

# Mapbox-style vector tiles are 512 px wide
TILE_SIZE = 512


@lru_cache(maxsize=1)
def _forward_transformer() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def _inverse_transformer() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def world_size(zoom: float) -> float:
    """
    Width of the whole world in pixels at a zoom level.

    Args:
        zoom: Map zoom level

    Returns:
        World size in pixels
    """
    return TILE_SIZE * 2.0 ** zoom


def project_to_pixels(
    coordinates: List[Tuple[float, float]],
    zoom: float,
) -> np.ndarray:
    """
    Project (longitude, latitude) pairs to world pixel coordinates.

    Pixel y grows southwards, as on screen.

    Args:
        coordinates: List of (longitude, latitude) tuples in degrees
        zoom: Map zoom level

    Returns:
        Array of shape (n, 2) with world pixel coordinates
    """
    if not coordinates:
        return np.empty((0, 2))

    points = np.asarray(coordinates, dtype=float)
    lons, lats = points[:, 0], points[:, 1]
    mx, my = _forward_transformer().transform(lons, lats)
    mx = np.asarray(mx, dtype=float)
    my = np.asarray(my, dtype=float)

    size = world_size(zoom)
    px = (mx + MERCATOR_HALF_EXTENT) / (2 * MERCATOR_HALF_EXTENT) * size
    py = (MERCATOR_HALF_EXTENT - my) / (2 * MERCATOR_HALF_EXTENT) * size
    return np.column_stack([px, py])


def unproject_from_pixels(x: float, y: float, zoom: float) -> Tuple[float, float]:
    """
    Convert a world pixel coordinate back to (longitude, latitude).

    Args:
        x: World pixel x
        y: World pixel y
        zoom: Map zoom level

    Returns:
        (longitude, latitude) in degrees
    """
    size = world_size(zoom)
    mx = x / size * (2 * MERCATOR_HALF_EXTENT) - MERCATOR_HALF_EXTENT
    my = MERCATOR_HALF_EXTENT - y / size * (2 * MERCATOR_HALF_EXTENT)
    lon, lat = _inverse_transformer().transform(mx, my)
    return float(lon), float(lat)
