"""
Spatial helper functions for pasture boundaries.

Boundaries are ordered (latitude, longitude) vertex lists. Geometry checks
are done with shapely on vertices projected to UTM meters with pyproj.
"""
from functools import lru_cache

from pyproj import Transformer
from shapely.geometry import Polygon


MIN_POLYGON_VERTICES = 3


@lru_cache(maxsize=8)
def _utm_transformer(zone: int, northern: bool) -> Transformer:
    epsg = (32600 if northern else 32700) + zone
    return Transformer.from_crs("EPSG:4326", f"EPSG:{epsg}", always_xy=True)


def project_to_meters(vertices: list[tuple[float, float]]) -> list[tuple[float, float]]:
    """
    Project (latitude, longitude) vertices onto the UTM zone of the first vertex.

    Raises:
        ValueError: If no vertices are given
    """
    if not vertices:
        raise ValueError("Cannot project an empty vertex list")
    lat, lng = vertices[0]
    zone = int((lng + 180) // 6) + 1
    transformer = _utm_transformer(zone, lat >= 0)
    return [transformer.transform(v_lng, v_lat) for v_lat, v_lng in vertices]


def build_polygon(vertices: list[tuple[float, float]]) -> Polygon:
    """
    Build a planar polygon (meters) from (latitude, longitude) vertices.

    Args:
        vertices: Ordered boundary vertices, optionally closed

    Returns:
        Shapely Polygon in UTM meters

    Raises:
        ValueError: If fewer than three distinct vertices are given
    """
    ring = _open_ring(vertices)
    if len(ring) < MIN_POLYGON_VERTICES:
        raise ValueError(
            f"A boundary needs at least {MIN_POLYGON_VERTICES} vertices"
        )
    return Polygon(project_to_meters(ring))


def boundary_problems(vertices: list[tuple[float, float]]) -> list[str]:
    """
    Describe what is wrong with a pasture boundary.

    An empty vertex list means no boundary was drawn and is accepted.

    Args:
        vertices: Ordered (latitude, longitude) vertices

    Returns:
        List of problem descriptions, empty when the boundary is usable
    """
    if not vertices:
        return []
    try:
        polygon = build_polygon(vertices)
    except ValueError as e:
        return [str(e)]
    if not polygon.is_valid:
        return ["Boundary polygon is self-intersecting"]
    if polygon.area <= 0:
        return ["Boundary polygon has no area"]
    return []


def _open_ring(vertices: list[tuple[float, float]]) -> list[tuple[float, float]]:
    if len(vertices) > 1 and tuple(vertices[0]) == tuple(vertices[-1]):
        return list(vertices[:-1])
    return list(vertices)
