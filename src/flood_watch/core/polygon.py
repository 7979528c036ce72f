"""Point-in-polygon tests for GeoJSON flood area polygons."""

from typing import Any, Iterable, Sequence

from .bbox import extract_bbox, iter_coordinate_pairs, iter_feature_geometries


def _ring_points(ring: Any) -> list[tuple[float, float]]:
    return list(iter_coordinate_pairs(ring))


def point_in_ring(lng: float, lat: float, ring: Sequence[tuple[float, float]]) -> bool:
    """Even-odd ray casting against a single ring of ``(lng, lat)`` pairs."""
    inside = False
    n = len(ring)
    if n < 3:
        return False
    for j in range(n):
        x1, y1 = ring[j]
        x2, y2 = ring[(j + 1) % n]
        if ((y1 > lat) != (y2 > lat)) and (lng < (x2 - x1) * (lat - y1) / (y2 - y1) + x1):
            inside = not inside
    return inside


def point_in_polygon(lng: float, lat: float, rings: Any) -> bool:
    """Containment for one Polygon's ring list.

    Every ring toggles the even-odd state, so a point inside a hole counts as
    outside.
    """
    if not isinstance(rings, (list, tuple)):
        return False
    inside = False
    for ring in rings:
        if point_in_ring(lng, lat, _ring_points(ring)):
            inside = not inside
    return inside


def point_in_geometry(lng: float, lat: float, geometry: dict) -> bool:
    geom_type = geometry.get("type")
    coords = geometry.get("coordinates")
    if geom_type == "Polygon":
        return point_in_polygon(lng, lat, coords)
    if geom_type == "MultiPolygon" and isinstance(coords, (list, tuple)):
        return any(point_in_polygon(lng, lat, polygon) for polygon in coords)
    return False


def point_in_feature_collection(lng: float, lat: float, feature_collection: Any) -> bool:
    return any(
        point_in_geometry(lng, lat, geometry)
        for geometry in iter_feature_geometries(feature_collection)
    )


def any_point_in_feature_collection(
    points: Iterable[Sequence[float]], feature_collection: Any
) -> bool:
    """Whether any ``[lng, lat]`` point falls inside the collection's polygons.

    Points outside the collection's bounding box are rejected before the
    ring walk.
    """
    bbox = extract_bbox(feature_collection)
    if bbox.is_empty:
        return False
    for point in points:
        lng, lat = point[0], point[1]
        if not bbox.contains(lat, lng):
            continue
        if point_in_feature_collection(lng, lat, feature_collection):
            return True
    return False
