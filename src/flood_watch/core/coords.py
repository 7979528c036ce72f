"""Coordinate normalisation, great-circle distance and local plane projection."""

import math
from typing import Any, Mapping, Optional, Sequence

import numpy as np

EARTH_RADIUS_KM = 6371.0

LAT_KEYS = ("lat", "latitude")
LNG_KEYS = ("lng", "long", "lon", "longitude")


def to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _first_present(data: Mapping, keys: Sequence[str]) -> Optional[float]:
    for key in keys:
        if data.get(key) is not None:
            return to_float(data[key])
    return None


def extract_lat(data: Mapping) -> Optional[float]:
    """Latitude from ``lat`` or ``latitude``."""
    return _first_present(data, LAT_KEYS)


def extract_lng(data: Mapping) -> Optional[float]:
    """Longitude from ``lng``, ``long``, ``lon`` or ``longitude``."""
    return _first_present(data, LNG_KEYS)


def normalize(data: Any) -> dict[str, Optional[float]]:
    """Map an upstream record's coordinate keys to ``{"lat": ..., "lng": ...}``.

    Each axis is resolved independently; a missing or unparsable value gives
    None for that axis only.
    """
    if not isinstance(data, Mapping):
        return {"lat": None, "lng": None}
    return {"lat": extract_lat(data), "lng": extract_lng(data)}


def normalize_in_range(data: Any) -> dict[str, Optional[float]]:
    """Like ``normalize``, but an out-of-range axis nulls both axes."""
    coords = normalize(data)
    lat, lng = coords["lat"], coords["lng"]
    if (lat is not None and not -90 <= lat <= 90) or (lng is not None and not -180 <= lng <= 180):
        return {"lat": None, "lng": None}
    return coords


def from_point_array(point: Sequence) -> dict[str, Optional[float]]:
    """Map a ``[lat, lng]`` pair (e.g. from a GML posList) to our schema."""
    lat = to_float(point[0]) if len(point) > 0 else None
    lng = to_float(point[1]) if len(point) > 1 else None
    return {"lat": lat, "lng": lng}


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class LocalProjection:
    """Equirectangular projection around a reference point, in kilometres.

    - X: east (longitude scaled by cos of the reference latitude)
    - Y: north (latitude)

    Distortion stays well under one percent within a few tens of km of the
    reference point, which covers any single route segment check.
    """

    def __init__(self, ref_lat: float, ref_lng: float):
        self.ref_lat = ref_lat
        self.ref_lng = ref_lng
        self.km_per_deg = math.radians(1.0) * EARTH_RADIUS_KM
        self.lng_scale = math.cos(math.radians(ref_lat))

    def project_array(
        self, lats: np.ndarray, lngs: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """Convert arrays of lat/lng to plane X, Y."""
        x = (lngs - self.ref_lng) * self.lng_scale * self.km_per_deg
        y = (lats - self.ref_lat) * self.km_per_deg
        return x, y
