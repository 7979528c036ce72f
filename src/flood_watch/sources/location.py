"""Resolve UK postcodes and place names to coordinates inside the service area."""

import logging
import re
from typing import Optional

import httpx

from ..config import LocationSettings, RegionConfig, default_regions
from ..core.coords import normalize_in_range
from ..errors import SourceError
from ..models import LocationResult
from ._http import get_json

logger = logging.getLogger(__name__)

UK_POSTCODE = re.compile(r"^([A-Z]{1,2}[0-9][0-9A-Z]?)\s*([0-9][A-Z]{2})$", re.IGNORECASE)
OUTCODE_ONLY = re.compile(r"^([A-Z]{1,2}[0-9][0-9A-Z]?)(?:\s+[0-9][A-Z]{0,2})?$", re.IGNORECASE)
_AREA = re.compile(r"^([A-Z]{1,2})")

INVALID_LOCATION = "Please enter a postcode or place name."
UNABLE_TO_RESOLVE = "Unable to find that location. Try a postcode or a nearby town."
OUTSIDE_AREA = "That location is outside the area covered by Flood Watch."
RATE_LIMITED = "Location lookup rate limit exceeded. Please wait a minute and try again."


def normalize_postcode(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip()).upper()


def postcode_area(postcode: str) -> str:
    match = _AREA.match(normalize_postcode(postcode))
    return match.group(1) if match else ""


class LocationResolver:
    """postcodes.io for postcodes and outcodes, Nominatim for everything else."""

    def __init__(
        self,
        settings: Optional[LocationSettings] = None,
        regions: Optional[dict[str, RegionConfig]] = None,
        user_agent: str = "flood-watch/0.1",
    ):
        self.settings = settings or LocationSettings()
        self.regions = default_regions() if regions is None else regions
        self.user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.timeout_s, headers={"User-Agent": self.user_agent}
        )

    def region_for_postcode(self, postcode: str) -> Optional[str]:
        area = postcode_area(postcode)
        for name, region in self.regions.items():
            if area in region.postcode_areas:
                return name
        return None

    def region_for_address(self, address: dict) -> Optional[str]:
        county = str(
            address.get("county") or address.get("state_district") or address.get("state") or ""
        ).lower()
        city = str(address.get("city") or address.get("town") or address.get("village") or "").lower()
        for name in self.regions:
            if name in county or name in city:
                return name
        searchable = " ".join(str(v) for v in address.values()).lower()
        for name, region in self.regions.items():
            if any(indicator in searchable for indicator in region.indicators):
                return name
        return None

    async def resolve(self, text: str) -> LocationResult:
        """Resolve free text; network failures give ``valid=False`` rather than raising."""
        trimmed = (text or "").strip()
        if not trimmed:
            return LocationResult(valid=False, error=INVALID_LOCATION)

        normalized = normalize_postcode(trimmed)
        try:
            if UK_POSTCODE.match(normalized):
                return await self._resolve_postcode(normalized, full=True)
            if OUTCODE_ONLY.match(normalized):
                return await self._resolve_postcode(normalized.split(" ")[0], full=False)
            return await self._geocode_place(trimmed)
        except SourceError as exc:
            if "HTTP 429" in str(exc):
                return LocationResult(valid=False, error=RATE_LIMITED)
            return LocationResult(valid=False, error=UNABLE_TO_RESOLVE)

    async def _resolve_postcode(self, postcode: str, full: bool) -> LocationResult:
        region = self.region_for_postcode(postcode)
        if region is None:
            return LocationResult(valid=True, in_area=False, error=OUTSIDE_AREA, display_name=postcode)

        base = self.settings.postcodes_url.rstrip("/")
        compact = postcode.replace(" ", "")
        url = f"{base}/postcodes/{compact}" if full else f"{base}/outcodes/{compact}"
        async with self._client() as client:
            data = await get_json(client, url, "postcodes_io")

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, dict):
            return LocationResult(valid=False, error=UNABLE_TO_RESOLVE)
        coords = normalize_in_range(result)
        lat, lng = coords["lat"], coords["lng"]
        if lat is None or lng is None:
            return LocationResult(valid=False, error=UNABLE_TO_RESOLVE)
        return LocationResult(
            valid=True, in_area=True, lat=lat, lng=lng, region=region, display_name=postcode
        )

    async def _geocode_place(self, place: str) -> LocationResult:
        params = {
            "q": f"{place}, UK",
            "format": "json",
            "limit": 1,
            "addressdetails": 1,
            "countrycodes": self.settings.country_code,
            "viewbox": self.settings.viewbox,
            "bounded": 0,
        }
        url = f"{self.settings.nominatim_url.rstrip('/')}/search"
        async with self._client() as client:
            results = await get_json(client, url, "nominatim", params=params)

        first = results[0] if isinstance(results, list) and results else None
        if not isinstance(first, dict):
            logger.debug("Nominatim found nothing for %r", place)
            return LocationResult(valid=False, error=UNABLE_TO_RESOLVE)
        coords = normalize_in_range(first)
        lat, lng = coords["lat"], coords["lng"]
        if lat is None or lng is None:
            return LocationResult(valid=False, error=UNABLE_TO_RESOLVE)

        address = first.get("address") if isinstance(first.get("address"), dict) else {}
        display_name = str(first.get("display_name") or place)
        region = self.region_for_address(address)
        in_area = self.settings.contains(lat, lng) or region is not None
        if not in_area:
            return LocationResult(
                valid=True, in_area=False, lat=lat, lng=lng, error=OUTSIDE_AREA,
                display_name=display_name,
            )
        return LocationResult(
            valid=True, in_area=True, lat=lat, lng=lng, region=region, display_name=display_name
        )
