"""Pydantic domain models for flood warnings, road incidents and river levels.

Upstream APIs hand us loosely shaped JSON; the ``from_dict`` constructors are
the only place those shapes are interpreted. Everything past this module works
with the typed, immutable records.
"""

import logging
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from flood_watch.core.coords import normalize_in_range, to_float

logger = logging.getLogger(__name__)


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class SeverityLevel(IntEnum):
    """Environment Agency flood severity. 1 is the most severe, 4 is inactive."""

    SEVERE = 1
    WARNING = 2
    ALERT = 3
    INACTIVE = 4

    @classmethod
    def from_api_value(cls, value: Any) -> "SeverityLevel":
        if value is None or value == "":
            return cls.INACTIVE
        try:
            return cls(int(value))
        except (TypeError, ValueError, OverflowError):
            return cls.INACTIVE


class FloodWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = ""
    severity: str = ""
    severity_level: SeverityLevel = SeverityLevel.INACTIVE
    message: str = ""
    flood_area_id: str = ""
    time_raised: Optional[str] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    polygon: Optional[dict] = None
    distance_km: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "FloodWarning":
        coords = normalize_in_range(data)
        polygon = data.get("polygon")
        distance = data.get("distanceKm", data.get("distance_km"))
        return cls(
            description=str(data.get("description") or ""),
            severity=str(data.get("severity") or ""),
            severity_level=SeverityLevel.from_api_value(
                data.get("severityLevel", data.get("severity_level"))
            ),
            message=str(data.get("message") or ""),
            flood_area_id=str(data.get("floodAreaID") or data.get("flood_area_id") or ""),
            time_raised=_str_or_none(data.get("timeRaised")),
            lat=coords["lat"],
            lng=coords["lng"],
            polygon=polygon if isinstance(polygon, dict) else None,
            distance_km=to_float(distance),
        )

    @property
    def is_severe(self) -> bool:
        return self.severity_level == SeverityLevel.SEVERE

    def without_polygon(self) -> "FloodWarning":
        return self.model_copy(update={"polygon": None})


class IncidentStatus(str, Enum):
    """Road incident status from National Highways DATEX II."""

    PLANNED = "planned"
    ACTIVE = "active"
    SUSPENDED = "suspended"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["IncidentStatus"]:
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class IncidentType(str, Enum):
    """Road incident types from National Highways DATEX II."""

    FLOODING = "flooding"
    ROAD_CLOSED = "roadClosed"
    LANE_CLOSURES = "laneClosures"
    CONSTRUCTION_WORK = "constructionWork"
    MAINTENANCE_WORK = "maintenanceWork"
    SWEEPING_OF_ROAD = "sweepingOfRoad"
    ROADWORKS = "roadworks"
    ACCIDENT = "accident"
    VEHICLE_OBSTRUCTION = "vehicleObstruction"
    AUTHORITY_OPERATION = "authorityOperation"
    ENVIRONMENTAL_OBSTRUCTION = "environmentalObstruction"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["IncidentType"]:
        if not value:
            return None
        lower = value.strip().lower()
        aliases = {
            "lane closure": cls.LANE_CLOSURES,
            "road works": cls.ROADWORKS,
            "road closed": cls.ROAD_CLOSED,
        }
        if lower in aliases:
            return aliases[lower]
        for member in cls:
            if member.value.lower() == lower:
                return member
        for member in cls:
            if member.value.lower() in lower:
                return member
        return None

    @staticmethod
    def is_blocking_closure(text: str) -> bool:
        """Whether free text names a full road closure rather than a lane closure."""
        lower = (text or "").lower()
        if IncidentType.ROAD_CLOSED.value.lower() in lower or "road closed" in lower:
            return True
        if IncidentType.LANE_CLOSURES.value.lower() in lower or "lane closure" in lower:
            return False
        return "closure" in lower and "lane" not in lower


class RoadIncident(BaseModel):
    model_config = ConfigDict(frozen=True)

    road: str = ""
    status: str = ""
    incident_type: str = ""
    delay_time: str = ""
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location_description: Optional[str] = None
    management_type: Optional[str] = None
    is_flood_related: bool = False
    distance_km: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RoadIncident":
        coords = normalize_in_range(data)
        distance = data.get("distanceKm", data.get("distance_km"))
        return cls(
            road=str(data.get("road") or data.get("roadName") or data.get("location") or ""),
            status=str(data.get("status") or data.get("closureStatus") or ""),
            incident_type=str(
                data.get("incidentType") or data.get("incident_type") or data.get("type") or ""
            ),
            delay_time=str(data.get("delayTime") or data.get("delay") or ""),
            lat=coords["lat"],
            lng=coords["lng"],
            start_time=_str_or_none(data.get("startTime")),
            end_time=_str_or_none(data.get("endTime")),
            location_description=_str_or_none(data.get("locationDescription")),
            management_type=_str_or_none(data.get("managementType")),
            is_flood_related=bool(data.get("isFloodRelated", False)),
            distance_km=to_float(distance),
        )

    @property
    def is_active(self) -> bool:
        return IncidentStatus.from_string(self.status) == IncidentStatus.ACTIVE

    @property
    def is_blocking_closure(self) -> bool:
        # managementType can carry roadClosed when incidentType only names the cause
        text = " ".join(t for t in (self.incident_type, self.management_type or "") if t)
        return IncidentType.is_blocking_closure(text)


def compute_level_status(
    value: Optional[float], typical_low: Optional[float], typical_high: Optional[float]
) -> str:
    """Classify a river reading against the station's typical range."""
    if value is None or typical_low is None or typical_high is None:
        return "unknown"
    if value > typical_high:
        return "elevated"
    if value < typical_low:
        return "low"
    return "expected"


class RiverLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    station: str = ""
    river: str = ""
    town: str = ""
    value: Optional[float] = None
    unit: str = "m"
    level_status: str = "unknown"
    trend: str = "unknown"
    typical_range_low: Optional[float] = None
    typical_range_high: Optional[float] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    date_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RiverLevel":
        coords = normalize_in_range(data)
        value = data.get("value")
        return cls(
            station=str(data.get("station") or ""),
            river=str(data.get("river") or ""),
            town=str(data.get("town") or ""),
            value=to_float(value),
            unit=str(data.get("unitName") or data.get("unit") or "m"),
            level_status=str(data.get("levelStatus") or data.get("level_status") or "unknown"),
            trend=str(data.get("trend") or "unknown"),
            typical_range_low=to_float(data.get("typicalRangeLow")),
            typical_range_high=to_float(data.get("typicalRangeHigh")),
            lat=coords["lat"],
            lng=coords["lng"],
            date_time=_str_or_none(data.get("dateTime")),
        )


class LocationResult(BaseModel):
    """Outcome of resolving a postcode or place name."""
    model_config = ConfigDict(frozen=True)

    valid: bool
    in_area: bool = False
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    region: Optional[str] = None
    error: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def coordinate(self) -> Optional[Coordinate]:
        if self.lat is None or self.lng is None:
            return None
        return Coordinate(lat=self.lat, lng=self.lng)


def coerce_records(values: Optional[Sequence], model: type) -> list:
    """Typed records from a mix of models and upstream mappings.

    Models pass through, mappings go through ``model.from_dict`` and anything
    else is skipped.
    """
    records = []
    for value in values or []:
        if isinstance(value, model):
            records.append(value)
        elif isinstance(value, Mapping):
            records.append(model.from_dict(value))
        else:
            logger.debug("Skipping %s record of type %s", model.__name__, type(value).__name__)
    return records
