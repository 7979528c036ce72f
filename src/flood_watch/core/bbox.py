"""Bounding boxes from GeoJSON FeatureCollections and route polylines.

Handles Polygon and MultiPolygon geometries by walking every coordinate pair
in the nested rings, so holes contribute exactly like outer rings. Malformed
input degrades to the zero box instead of raising.
"""

from typing import Any, Iterator, Sequence

from .coords import to_float
from .models import BoundingBox


def _is_pair(item: Any) -> bool:
    return (
        isinstance(item, (list, tuple))
        and len(item) >= 2
        and not isinstance(item[0], (list, tuple))
        and to_float(item[0]) is not None
        and to_float(item[1]) is not None
    )


def iter_coordinate_pairs(coords: Any) -> Iterator[tuple[float, float]]:
    """Yield every ``(lng, lat)`` pair from arbitrarily nested GeoJSON coordinates."""
    if not isinstance(coords, (list, tuple)):
        return
    if _is_pair(coords):
        yield to_float(coords[0]), to_float(coords[1])
        return
    for item in coords:
        yield from iter_coordinate_pairs(item)


def _bbox_from_pairs(pairs: Iterator[tuple[float, float]]) -> BoundingBox:
    min_lng = min_lat = float("inf")
    max_lng = max_lat = float("-inf")
    found = False
    for lng, lat in pairs:
        found = True
        min_lng = min(min_lng, lng)
        max_lng = max(max_lng, lng)
        min_lat = min(min_lat, lat)
        max_lat = max(max_lat, lat)
    if not found:
        return BoundingBox.zero()
    return BoundingBox(min_lng=min_lng, min_lat=min_lat, max_lng=max_lng, max_lat=max_lat)


def iter_feature_geometries(feature_collection: Any) -> Iterator[dict]:
    """Yield the geometry mapping of each feature in a FeatureCollection."""
    if not isinstance(feature_collection, dict):
        return
    features = feature_collection.get("features") or []
    if not isinstance(features, list):
        return
    for feature in features:
        if not isinstance(feature, dict):
            continue
        geometry = feature.get("geometry")
        if isinstance(geometry, dict):
            yield geometry


def extract_bbox(feature_collection: Any) -> BoundingBox:
    """Bounding box of all Polygon/MultiPolygon features in a FeatureCollection.

    Returns the all-zero box when there are no usable coordinates.
    """
    def pairs():
        for geometry in iter_feature_geometries(feature_collection):
            yield from iter_coordinate_pairs(geometry.get("coordinates"))

    return _bbox_from_pairs(pairs())


def bbox_from_coords(coords: Sequence) -> BoundingBox:
    """Bounding box of a ``[lng, lat]`` polyline."""
    return _bbox_from_pairs(iter_coordinate_pairs(list(coords or [])))
