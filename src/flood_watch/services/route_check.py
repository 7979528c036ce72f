"""Route safety check: is the drive from A to B blocked, at risk or delayed?

One call resolves both ends, fetches a route, pulls floods and road incidents
around it concurrently, keeps the ones on the route and classifies a verdict.
Every failure ends up in the returned result; ``check_route`` never raises.
"""

import asyncio
import hashlib
import logging
from typing import Any, Optional, Sequence

from ..config import RouteCheckSettings
from ..core.bbox import bbox_from_coords, extract_bbox, iter_coordinate_pairs
from ..core.coords import haversine_km
from ..core.models import BoundingBox, RouteCheckResult, RouteResponse, Verdict
from ..core.polygon import any_point_in_feature_collection
from ..core.route_filter import IncidentsOnRouteFilter
from ..models import FloodWarning, LocationResult, RoadIncident, coerce_records

logger = logging.getLogger(__name__)

MISSING_LOCATIONS = "Please enter both a start and a destination."
INVALID_FROM = "We couldn't find the starting location."
INVALID_TO = "We couldn't find the destination."
OUTSIDE_AREA = "Both locations must be within the area covered by Flood Watch."
NO_GEOMETRY = "The routing service returned a route without usable geometry."
ROUTE_FAILED = "Unable to check this route right now. Please try again shortly."
MAX_NAMED = 3


def _as_location(value: Any) -> LocationResult:
    if isinstance(value, LocationResult):
        return value
    return LocationResult.model_validate(value)


def _as_route(value: Any) -> RouteResponse:
    if isinstance(value, RouteResponse):
        return value
    return RouteResponse.model_validate(value)


def _named(names: Sequence[str]) -> str:
    names = [n for n in dict.fromkeys(names) if n]
    if not names:
        return ""
    shown = ", ".join(names[:MAX_NAMED])
    if len(names) > MAX_NAMED:
        shown += f" and {len(names) - MAX_NAMED} more"
    return f" ({shown})"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


def classify_verdict(floods: Sequence[FloodWarning], incidents: Sequence[RoadIncident]) -> Verdict:
    """First match wins: blocked, at_risk, delays, clear."""
    if any(i.is_active and i.is_blocking_closure for i in incidents):
        return "blocked"
    if any(f.is_severe for f in floods):
        return "at_risk"
    if floods or incidents:
        return "delays"
    return "clear"


def build_summary(
    verdict: Verdict, floods: Sequence[FloodWarning], incidents: Sequence[RoadIncident]
) -> str:
    if verdict == "blocked":
        closures = [i.road for i in incidents if i.is_active and i.is_blocking_closure]
        return (
            f"Route blocked: {_plural(len(closures), 'road closure')} on the route"
            f"{_named(closures)}. Consider an alternative route."
        )
    if verdict == "at_risk":
        severe = [f.description for f in floods if f.is_severe]
        text = f"Route at risk: {_plural(len(severe), 'severe flood warning')} on the route{_named(severe)}."
        if incidents:
            text += f" {_plural(len(incidents), 'road incident')} also reported."
        return text
    if verdict == "delays":
        parts = []
        if floods:
            parts.append(_plural(len(floods), "flood warning") + _named([f.description for f in floods]))
        if incidents:
            parts.append(_plural(len(incidents), "road incident") + _named([i.road for i in incidents]))
        return "Possible delays: " + " and ".join(parts) + " on the route."
    return "No flood warnings or road incidents reported on this route."


def route_key(geometry: Sequence[Sequence[float]]) -> str:
    """Stable 32-character key for a route geometry, insensitive below 4 dp."""
    rounded = ";".join(f"{lng:.4f},{lat:.4f}" for lng, lat in geometry)
    return hashlib.md5(rounded.encode("utf-8")).hexdigest()


def flood_radius_km(
    points: Sequence[Sequence[float]], bbox: BoundingBox, settings: RouteCheckSettings
) -> float:
    """Farthest route point from the bbox centre plus a buffer, clamped to the configured range."""
    farthest = max(
        (haversine_km(bbox.center_lat, bbox.center_lng, lat, lng) for lng, lat in points),
        default=0.0,
    )
    radius = farthest + settings.flood_radius_buffer_km
    return max(settings.flood_radius_km, min(radius, settings.flood_radius_max_km))


def filter_floods_on_route(
    floods: Sequence[FloodWarning],
    points: Sequence[Sequence[float]],
    route_bbox: BoundingBox,
    proximity_km: float,
) -> list[FloodWarning]:
    """Floods touching the route, returned without their polygons.

    A flood with a polygon counts when its bbox overlaps the route bbox and a
    route point lies inside the polygon. A flood with only a centroid counts
    when the centroid is inside the route bbox grown by ``proximity_km``.
    """
    near_box = route_bbox.expand_km(proximity_km)
    on_route = []
    for flood in floods:
        if flood.polygon is not None:
            flood_box = extract_bbox(flood.polygon)
            if flood_box.is_empty or not route_bbox.overlaps(flood_box):
                continue
            if any_point_in_feature_collection(points, flood.polygon):
                on_route.append(flood.without_polygon())
        elif flood.lat is not None and flood.lng is not None:
            if near_box.contains(flood.lat, flood.lng):
                on_route.append(flood.without_polygon())
    return on_route


class RouteCheckService:
    """Checks a single origin/destination pair against live floods and incidents.

    Collaborators are duck-typed async objects:
    ``resolver.resolve(text)``, ``flood_source.get_floods(lat, lng, radius_km)``,
    ``incident_source.get_incidents()`` and ``router.get_route(origin, destination)``.
    Plain dicts are accepted wherever a model is expected.
    """

    def __init__(
        self,
        resolver,
        flood_source,
        incident_source,
        router,
        settings: Optional[RouteCheckSettings] = None,
        debug: bool = False,
        incidents_filter: Optional[IncidentsOnRouteFilter] = None,
    ):
        self.resolver = resolver
        self.flood_source = flood_source
        self.incident_source = incident_source
        self.router = router
        self.settings = settings or RouteCheckSettings()
        self.debug = debug
        self.incidents_filter = incidents_filter or IncidentsOnRouteFilter(
            self.settings.incident_check_max_route_points
        )

    def _failure_message(self, exc: BaseException) -> str:
        if self.debug:
            return str(exc) or type(exc).__name__
        return ROUTE_FAILED

    async def check_route(self, origin: str, destination: str) -> RouteCheckResult:
        try:
            return await self._check(origin, destination)
        except Exception as exc:
            logger.exception("Route check failed for %r -> %r", origin, destination)
            return RouteCheckResult.error(self._failure_message(exc))

    async def _resolve(self, text: str, invalid_message: str) -> tuple[Optional[LocationResult], Optional[str]]:
        location = _as_location(await self.resolver.resolve(text))
        if not location.valid:
            return None, location.error or invalid_message
        if not location.in_area:
            return None, OUTSIDE_AREA
        if location.coordinate is None:
            return None, invalid_message
        return location, None

    async def _timed(self, awaitable):
        return await asyncio.wait_for(awaitable, timeout=self.settings.collaborator_timeout_s)

    async def _check(self, origin: str, destination: str) -> RouteCheckResult:
        origin = (origin or "").strip()
        destination = (destination or "").strip()
        if not origin or not destination:
            return RouteCheckResult.error(MISSING_LOCATIONS)

        start, error = await self._resolve(origin, INVALID_FROM)
        if error:
            return RouteCheckResult.error(error)
        end, error = await self._resolve(destination, INVALID_TO)
        if error:
            return RouteCheckResult.error(error)

        try:
            route = _as_route(
                await self._timed(self.router.get_route(start.coordinate, end.coordinate))
            )
        except Exception as exc:
            logger.warning("Routing failed for %r -> %r: %s", origin, destination, exc)
            return RouteCheckResult.error(self._failure_message(exc))

        points = [[lng, lat] for lng, lat in iter_coordinate_pairs(route.geometry)]
        if len(points) < 2:
            return RouteCheckResult.error(NO_GEOMETRY)

        bbox = bbox_from_coords(points)
        radius = flood_radius_km(points, bbox, self.settings)
        flood_result, incident_result = await asyncio.gather(
            self._timed(self.flood_source.get_floods(bbox.center_lat, bbox.center_lng, radius)),
            self._timed(self.incident_source.get_incidents()),
            return_exceptions=True,
        )

        failures = []
        for name, outcome in (("floods", flood_result), ("incidents", incident_result)):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(
                    "Fetching %s for route check failed: %s", name, str(outcome) or type(outcome).__name__
                )
                failures.append(outcome)
        if len(failures) == 2 or (failures and not self.settings.allow_partial_results):
            return RouteCheckResult.error(self._failure_message(failures[0]))

        if isinstance(flood_result, BaseException):
            flood_result = []
        if isinstance(incident_result, BaseException):
            incident_result = []
        floods = coerce_records(flood_result, FloodWarning)
        incidents = coerce_records(incident_result, RoadIncident)

        floods_on_route = filter_floods_on_route(
            floods, points, bbox, self.settings.incident_proximity_km
        )
        incidents_on_route = self.incidents_filter.filter(
            incidents,
            points,
            bbox,
            self.settings.incident_proximity_km,
            self.settings.incident_check_max_route_points,
        )

        verdict = classify_verdict(floods_on_route, incidents_on_route)
        alternatives = []
        if verdict == "blocked" and self.settings.fetch_alternatives_when_blocked:
            alternatives = list(route.alternatives[:2])

        logger.debug(
            "Route %r -> %r: %s (%d floods, %d incidents on route)",
            origin, destination, verdict, len(floods_on_route), len(incidents_on_route),
        )
        return RouteCheckResult(
            verdict=verdict,
            summary=build_summary(verdict, floods_on_route, incidents_on_route),
            floods_on_route=floods_on_route,
            incidents_on_route=incidents_on_route,
            alternatives=alternatives,
            route_geometry=points,
            route_key=route_key(points),
        )
