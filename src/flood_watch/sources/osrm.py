"""OSRM driving routes with GeoJSON geometry and named alternatives."""

import logging
from typing import Optional

import httpx

from ..config import OsrmSettings
from ..core.models import RouteAlternative, RouteResponse
from ..errors import RoutingError
from ..models import Coordinate

logger = logging.getLogger(__name__)

MAX_ALTERNATIVE_NAMES = 8


def _route_geometry(route: dict) -> list[list[float]]:
    coords = (route.get("geometry") or {}).get("coordinates")
    if not isinstance(coords, list):
        return []
    return [
        [float(c[0]), float(c[1])]
        for c in coords
        if isinstance(c, (list, tuple)) and len(c) >= 2
    ]


def _road_names(route: dict) -> list[str]:
    """Distinct step names and refs, in travel order."""
    names: list[str] = []
    for leg in route.get("legs") or []:
        for step in leg.get("steps") or []:
            for key in ("name", "ref"):
                value = step.get(key)
                if isinstance(value, str) and value and value not in names:
                    names.append(value)
    return names[:MAX_ALTERNATIVE_NAMES]


def parse_alternative(route: dict) -> RouteAlternative:
    return RouteAlternative(
        names=_road_names(route),
        distance_km=round(float(route.get("distance") or 0) / 1000, 1),
        duration_min=round(float(route.get("duration") or 0) / 60),
    )


class OsrmRoutingClient:
    def __init__(self, settings: Optional[OsrmSettings] = None, user_agent: str = "flood-watch/0.1"):
        self.settings = settings or OsrmSettings()
        self.user_agent = user_agent

    async def get_route(self, origin: Coordinate, destination: Coordinate) -> RouteResponse:
        """Primary route plus up to two alternatives.

        Raises:
            RoutingError: OSRM found no route, answered with a non-Ok code, or
                could not be reached.
        """
        base = self.settings.base_url.rstrip("/")
        url = (
            f"{base}/route/v1/{self.settings.profile}/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )
        params = {
            "overview": "full",
            "geometries": "geojson",
            "alternatives": 2,
            "steps": "true",
        }
        async with httpx.AsyncClient(
            timeout=self.settings.timeout_s, headers={"User-Agent": self.user_agent}
        ) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.TimeoutException as exc:
                logger.warning("OSRM request timed out: %s", exc)
                raise RoutingError("Routing service timed out") from exc
            except httpx.HTTPError as exc:
                logger.warning("OSRM request failed: %s", exc)
                raise RoutingError(f"Routing service unavailable: {exc}") from exc

        if response.status_code == 400 and "NoRoute" in response.text:
            raise RoutingError("No route found")
        try:
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("OSRM returned HTTP %s", exc.response.status_code)
            raise RoutingError(f"Routing service returned HTTP {exc.response.status_code}") from exc
        except ValueError as exc:
            raise RoutingError("Routing service returned invalid JSON") from exc

        code = data.get("code") if isinstance(data, dict) else None
        if code != "Ok":
            raise RoutingError(f"OSRM returned: {code or 'unknown'}")

        routes = data.get("routes") or []
        if not routes:
            raise RoutingError("No route returned")
        primary = routes[0]
        return RouteResponse(
            geometry=_route_geometry(primary),
            distance_km=round(float(primary.get("distance") or 0) / 1000, 1),
            duration_min=round(float(primary.get("duration") or 0) / 60),
            alternatives=[parse_alternative(route) for route in routes[1:3]],
        )
