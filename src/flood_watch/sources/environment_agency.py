"""Environment Agency flood-monitoring API: flood warnings and river levels."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from ..config import EnvironmentAgencySettings
from ..core.coords import normalize_in_range, to_float
from ..errors import SourceError
from ..models import FloodWarning, RiverLevel, compute_level_status
from ._http import get_json

logger = logging.getLogger(__name__)

PROVIDER = "environment_agency"
MAX_STATIONS = 15
TREND_HOURS = 24


def compute_trend(readings: list[dict]) -> str:
    """Compare the newest and oldest of a newest-first reading list."""
    if len(readings) < 2:
        return "unknown"
    newest = to_float(readings[0].get("value")) or 0.0
    oldest = to_float(readings[-1].get("value")) or 0.0
    if abs(newest - oldest) < 0.01:
        return "stable"
    return "rising" if newest > oldest else "falling"


def _level_readings(items: list[dict]) -> list[dict]:
    level = [
        item for item in items
        if "level" in str(item.get("measure", "")).lower()
        or "stage" in str(item.get("measure", "")).lower()
    ]
    if not level:
        return items
    return sorted(level, key=lambda item: str(item.get("dateTime", "")), reverse=True)


class EnvironmentAgencyClient:
    def __init__(self, settings: Optional[EnvironmentAgencySettings] = None, user_agent: str = "flood-watch/0.1"):
        self.settings = settings or EnvironmentAgencySettings()
        self.user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.timeout_s, headers={"User-Agent": self.user_agent}
        )

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}{path}"

    async def get_floods(self, lat: float, lng: float, radius_km: float) -> list[FloodWarning]:
        """Active flood warnings within ``radius_km``, with area centroids and polygons.

        A failure of the warnings endpoint raises SourceError; centroid and
        polygon lookups are best effort.
        """
        params = {"lat": lat, "long": lng, "dist": int(round(radius_km))}
        async with self._client() as client:
            data = await get_json(client, self._url("/id/floods"), PROVIDER, params=params)
            items = (data.get("items") or []) if isinstance(data, dict) else []
            centroids, polygons = await asyncio.gather(
                self._fetch_centroids(client, params),
                self._fetch_polygons(client, items),
            )

        floods = []
        for item in items:
            if not isinstance(item, dict):
                continue
            area_id = str(item.get("floodAreaID") or "")
            raw = {
                "description": item.get("description"),
                "severity": item.get("severity"),
                "severityLevel": item.get("severityLevel"),
                "message": item.get("message"),
                "floodAreaID": area_id,
                "timeRaised": item.get("timeRaised"),
                **centroids.get(area_id, {}),
            }
            if area_id in polygons:
                raw["polygon"] = polygons[area_id]
            floods.append(FloodWarning.from_dict(raw))
        if not floods:
            logger.debug("No flood warnings within %s km of %.4f, %.4f", radius_km, lat, lng)
        return floods

    async def _fetch_centroids(self, client: httpx.AsyncClient, params: dict) -> dict[str, dict]:
        try:
            data = await get_json(
                client, self._url("/id/floodAreas"), PROVIDER, params={**params, "_limit": 200}
            )
        except SourceError:
            return {}
        centroids = {}
        for item in (data.get("items") or []) if isinstance(data, dict) else []:
            if not isinstance(item, dict):
                continue
            notation = item.get("notation") or item.get("fwdCode")
            coords = normalize_in_range(item)
            if notation and coords["lat"] is not None and coords["lng"] is not None:
                centroids[str(notation)] = coords
        return centroids

    async def _fetch_polygons(self, client: httpx.AsyncClient, items: list) -> dict[str, dict]:
        area_ids: list[str] = []
        for item in items:
            area_id = str(item.get("floodAreaID") or "") if isinstance(item, dict) else ""
            if area_id and area_id not in area_ids:
                area_ids.append(area_id)
            if len(area_ids) >= self.settings.max_polygons:
                break

        results = await asyncio.gather(
            *(
                get_json(client, self._url(f"/id/floodAreas/{area_id}/polygon"), PROVIDER)
                for area_id in area_ids
            ),
            return_exceptions=True,
        )
        polygons = {}
        for area_id, geojson in zip(area_ids, results):
            if isinstance(geojson, SourceError):
                continue
            if isinstance(geojson, BaseException):
                raise geojson
            if isinstance(geojson, dict) and "type" in geojson and "features" in geojson:
                polygons[area_id] = geojson
        return polygons

    async def get_river_levels(self, lat: float, lng: float, radius_km: float) -> list[RiverLevel]:
        """Latest level reading for up to 15 gauging stations near a point."""
        params = {"lat": lat, "long": lng, "dist": int(round(radius_km)), "_view": "full"}
        async with self._client() as client:
            data = await get_json(client, self._url("/id/stations"), PROVIDER, params=params)
            stations = []
            for item in (data.get("items") or []) if isinstance(data, dict) else []:
                if not isinstance(item, dict):
                    continue
                notation = item.get("notation") or item.get("stationReference")
                coords = normalize_in_range(item)
                if not notation or coords["lat"] is None or coords["lng"] is None:
                    continue
                stations.append((str(notation), item, coords))
            stations = stations[:MAX_STATIONS]

            since = (datetime.now(timezone.utc) - timedelta(hours=TREND_HOURS)).isoformat()
            readings = await asyncio.gather(
                *(
                    get_json(
                        client,
                        self._url(f"/id/stations/{notation}/readings"),
                        PROVIDER,
                        params={"since": since, "_sorted": "", "_limit": 100},
                    )
                    for notation, _, _ in stations
                ),
                return_exceptions=True,
            )

        levels = []
        for (notation, item, coords), reading in zip(stations, readings):
            stage_scale = item.get("stageScale") if isinstance(item.get("stageScale"), dict) else {}
            low = to_float(stage_scale.get("typicalRangeLow"))
            high = to_float(stage_scale.get("typicalRangeHigh"))
            value = None
            date_time = None
            trend = "unknown"
            if isinstance(reading, BaseException) and not isinstance(reading, SourceError):
                raise reading
            if isinstance(reading, dict):
                level_items = _level_readings(
                    [r for r in reading.get("items") or [] if isinstance(r, dict)]
                )
                if level_items:
                    value = to_float(level_items[0].get("value"))
                    date_time = level_items[0].get("dateTime")
                    trend = compute_trend(level_items)
            levels.append(RiverLevel(
                station=str(item.get("label") or notation),
                river=str(item.get("riverName") or ""),
                town=str(item.get("town") or ""),
                value=value,
                level_status=compute_level_status(value, low, high),
                trend=trend,
                typical_range_low=low,
                typical_range_high=high,
                lat=coords["lat"],
                lng=coords["lng"],
                date_time=date_time,
            ))
        return levels
