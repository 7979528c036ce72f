"""Select road incidents lying within a proximity threshold of a route polyline.

Route coordinates are GeoJSON ``[lng, lat]`` pairs. Candidates are first
rejected against the route bounding box grown by the threshold, then measured
against every route segment in a local flat plane centred on the incident.
"""

import logging
import math
from typing import Any, Optional, Sequence

import numpy as np

from flood_watch.models import RoadIncident

from .bbox import bbox_from_coords, iter_coordinate_pairs
from .coords import LocalProjection, haversine_km, normalize
from .models import BoundingBox

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUTE_POINTS = 150


def _incident_coords(incident: Any) -> tuple[Optional[float], Optional[float]]:
    if isinstance(incident, RoadIncident):
        return incident.lat, incident.lng
    coords = normalize(incident)
    return coords["lat"], coords["lng"]


def _annotate(incident: Any, distance_km: float) -> Any:
    if isinstance(incident, RoadIncident):
        return incident.model_copy(update={"distance_km": distance_km})
    annotated = dict(incident)
    annotated["distanceKm"] = distance_km
    return annotated


class IncidentsOnRouteFilter:
    """Stable filter of incidents by distance to the nearest route segment."""

    def __init__(self, max_route_points: int = DEFAULT_MAX_ROUTE_POINTS):
        self.max_route_points = max_route_points

    def filter(
        self,
        incidents: Sequence[Any],
        route_coords: Sequence[Sequence[float]],
        route_bbox: Optional[BoundingBox] = None,
        proximity_km: float = 0.5,
        max_route_points: Optional[int] = None,
    ) -> list:
        """Return incidents within ``proximity_km`` of the route, in input order.

        Each kept incident carries its distance rounded to 2 dp: RoadIncident
        models come back as copies with ``distance_km`` set, mappings as
        copied dicts with a ``distanceKm`` key. Incidents without a usable
        coordinate are skipped.

        Args:
            incidents: RoadIncident models or raw incident mappings.
            route_coords: Ordered ``[lng, lat]`` polyline.
            route_bbox: Bounding box of the route; computed when omitted or empty.
            proximity_km: Inclusion threshold in kilometres.
            max_route_points: Decimation limit for long routes.
        """
        points = list(iter_coordinate_pairs(list(route_coords or [])))
        if not points or not incidents:
            return []

        if route_bbox is None or route_bbox.is_empty:
            route_bbox = bbox_from_coords(points)
        search_box = route_bbox.expand_km(proximity_km)

        limit = self.max_route_points if max_route_points is None else max_route_points
        sampled = self.downsample(points, limit)

        kept = []
        for incident in incidents:
            lat, lng = _incident_coords(incident)
            if lat is None or lng is None:
                continue
            if not search_box.contains(lat, lng):
                continue
            distance = self.distance_to_route_km(lat, lng, sampled)
            if distance <= proximity_km:
                kept.append(_annotate(incident, round(distance, 2)))

        logger.debug(
            "%d of %d incidents within %.2f km of route (%d points sampled)",
            len(kept), len(incidents), proximity_km, len(sampled),
        )
        return kept

    @staticmethod
    def downsample(points: Sequence, max_points: int) -> list:
        """Regularly sample ``points`` down to ``max_points``, keeping both ends.

        Below two points there is no segment to keep, so only the first point
        survives.
        """
        points = list(points)
        n = len(points)
        if n <= max_points:
            return points
        if max_points < 2:
            return points[:1]
        step = (n - 1) / (max_points - 1)
        return [points[int(math.floor(i * step + 0.5))] for i in range(max_points)]

    def distance_to_route_km(
        self, lat: float, lng: float, route_points: Sequence[Sequence[float]]
    ) -> float:
        """Minimum distance in km from a point to any segment of the route."""
        if not route_points:
            return math.inf
        if len(route_points) == 1:
            return haversine_km(lat, lng, route_points[0][1], route_points[0][0])

        route = np.asarray(route_points, dtype=float)
        proj = LocalProjection(lat, lng)
        x, y = proj.project_array(route[:, 1], route[:, 0])

        ax, ay = x[:-1], y[:-1]
        dx, dy = x[1:] - ax, y[1:] - ay
        length_sq = dx * dx + dy * dy

        # The incident sits at the projection origin
        with np.errstate(divide="ignore", invalid="ignore"):
            t = np.where(length_sq > 0, -(ax * dx + ay * dy) / length_sq, 0.0)
        t = np.clip(t, 0.0, 1.0)

        cx = ax + t * dx
        cy = ay + t * dy
        return float(np.min(np.hypot(cx, cy)))
