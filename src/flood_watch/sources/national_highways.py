"""National Highways road closures (DATEX II v3.4 JSON)."""

import logging
import re
from typing import Any, Optional

import httpx

from ..config import NationalHighwaysSettings
from ..core.coords import from_point_array, normalize_in_range, to_float
from ..models import RoadIncident
from ._http import get_json

logger = logging.getLogger(__name__)

PROVIDER = "national_highways"

_ROAD_IN_TEXT = re.compile(r"\b([AM]\d+[A-Z]?)\b")
_CAUSE_KEYS = ("environmentalObstructionType", "vehicleObstructionType", "roadMaintenanceType")


def _dig(data: Any, *keys: str) -> Any:
    """Follow nested mapping keys, returning None at the first missing step."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _as_list(value: Any) -> list:
    if isinstance(value, list):
        return value
    if value is None:
        return []
    return [value]


def _first_text(value: Any) -> str:
    """A string, or the first element of a list of strings."""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and value and isinstance(value[0], str):
        return value[0]
    return ""


def _road_from_linear_element(single_road: Any) -> str:
    for within in _as_list(_dig(single_road, "linearWithinLinearElement")):
        road = _dig(within, "linearElement", "locLinearElementByCode", "roadName")
        if isinstance(road, str) and road:
            return road
    return ""


def extract_road_name(location_ref: dict) -> str:
    """Road name from the location groups, the single linear location, then point elements."""
    for group in _as_list(_dig(location_ref, "locLocationGroupByList", "locationContainedInGroup")):
        road = _road_from_linear_element(_dig(group, "locSingleRoadLinearLocation"))
        if road:
            return road

    road = _road_from_linear_element(location_ref.get("locSingleRoadLinearLocation"))
    if road:
        return road
    description = _dig(
        location_ref, "locLinearLocation", "supplementaryPositionalDescription", "locationDescription"
    )
    if isinstance(description, str):
        match = _ROAD_IN_TEXT.search(description)
        if match:
            return match.group(1)

    for element in _as_list(_dig(location_ref, "locPointLocation", "pointAlongLinearElement")):
        road = _dig(element, "linearElement", "locLinearElementByCode", "roadName")
        if isinstance(road, str) and road:
            return road
    return ""


def extract_location_description(location_ref: dict) -> str:
    path = ("locLinearLocation", "supplementaryPositionalDescription", "locationDescription")
    description = _dig(location_ref, *path)
    if isinstance(description, str) and description:
        return description
    for group in _as_list(_dig(location_ref, "locLocationGroupByList", "locationContainedInGroup")):
        description = _dig(group, *path)
        if isinstance(description, str) and description:
            return description
    return ""


def _pos_list_first_point(pos_list: Any) -> Optional[dict]:
    """First ``lat long`` pair of a GML posList."""
    if not isinstance(pos_list, str):
        return None
    parts = pos_list.split()
    if len(parts) < 2:
        return None
    point = from_point_array(parts[:2])
    if point["lat"] is None or point["lng"] is None:
        return None
    return point


def extract_coordinates(location_ref: dict) -> Optional[dict]:
    """Representative point: explicit point coordinates, else the first posList pair."""
    point = _dig(location_ref, "locPointLocation", "pointByCoordinates", "pointCoordinates")
    if isinstance(point, dict):
        lat, lng = to_float(point.get("latitude")), to_float(point.get("longitude"))
        if lat is not None and lng is not None:
            return {"lat": lat, "lng": lng}

    gml = ("locLinearLocation", "gmlLineString", "locGmlLineString", "posList")
    found = _pos_list_first_point(_dig(location_ref, *gml))
    if found:
        return found
    for group in _as_list(_dig(location_ref, "locLocationGroupByList", "locationContainedInGroup")):
        found = _pos_list_first_point(_dig(group, *gml))
        if found:
            return found
    return None


def extract_incident_type(record: dict) -> str:
    detailed = _dig(record, "cause", "detailedCauseType")
    if isinstance(detailed, dict):
        for key in _CAUSE_KEYS:
            text = _first_text(detailed.get(key))
            if text:
                return text
        text = _first_text(_dig(detailed, "roadOrCarriagewayOrLaneManagementType", "value"))
        if text:
            return text
    for path in (("cause", "causeType"), ("roadOrCarriagewayOrLaneManagementType", "value")):
        text = _first_text(_dig(record, *path))
        if text:
            return text
    return ""


def is_flood_related(record: dict, incident_type: str) -> bool:
    if "flooding" in incident_type.lower():
        return True
    env_type = _first_text(_dig(record, "cause", "detailedCauseType", "environmentalObstructionType"))
    return env_type.lower() == "flooding"


def parse_management_record(record: dict) -> Optional[RoadIncident]:
    """Flatten one ``sitRoadOrCarriagewayOrLaneManagement`` record.

    Returns None when the record names no road, status or type.
    """
    location_ref = record.get("locationReference")
    if not isinstance(location_ref, dict):
        location_ref = {}
    road = extract_road_name(location_ref)
    status = _first_text(_dig(record, "validity", "validityStatus"))
    incident_type = extract_incident_type(record)
    if not (road or status or incident_type):
        return None

    comments = _as_list(record.get("generalPublicComment"))
    delay_time = _first_text(_dig(comments[0], "comment")) if comments else ""
    validity = _dig(record, "validity", "validityTimeSpecification") or {}
    coords = normalize_in_range(extract_coordinates(location_ref) or {})

    return RoadIncident(
        road=road,
        status=status,
        incident_type=incident_type,
        delay_time=delay_time,
        lat=coords.get("lat"),
        lng=coords.get("lng"),
        start_time=_first_text(validity.get("overallStartTime")) or None,
        end_time=_first_text(validity.get("overallEndTime")) or None,
        location_description=extract_location_description(location_ref) or None,
        management_type=_first_text(_dig(record, "roadOrCarriagewayOrLaneManagementType", "value")) or None,
        is_flood_related=is_flood_related(record, incident_type),
    )


def parse_datex_payload(data: Any) -> list[RoadIncident]:
    """Every road management record in a D2Payload, in document order."""
    if not isinstance(data, dict):
        return []
    payload = data.get("D2Payload", data)
    incidents = []
    for situation in _as_list(_dig(payload, "situation")):
        for record in _as_list(_dig(situation, "situationRecord")):
            management = _dig(record, "sitRoadOrCarriagewayOrLaneManagement")
            if not isinstance(management, dict):
                continue
            incident = parse_management_record(management)
            if incident is not None:
                incidents.append(incident)
    return incidents


class NationalHighwaysClient:
    def __init__(self, settings: Optional[NationalHighwaysSettings] = None, user_agent: str = "flood-watch/0.1"):
        self.settings = settings or NationalHighwaysSettings()
        self.user_agent = user_agent

    async def get_incidents(self) -> list[RoadIncident]:
        """Planned (and, when enabled, unplanned) closures.

        Without an API key there is nothing to fetch and the result is empty.
        """
        api_key = self.settings.api_key
        if not api_key:
            logger.debug("No National Highways API key configured; skipping incidents")
            return []

        url = f"{self.settings.base_url.rstrip('/')}/{self.settings.closures_path.lstrip('/')}"
        headers = {
            "User-Agent": self.user_agent,
            "Ocp-Apim-Subscription-Key": api_key,
            "X-Response-MediaType": "application/json",
        }
        closure_types = ["planned"]
        if self.settings.fetch_unplanned:
            closure_types.append("unplanned")

        incidents: list[RoadIncident] = []
        async with httpx.AsyncClient(timeout=self.settings.timeout_s, headers=headers) as client:
            for closure_type in closure_types:
                data = await get_json(
                    client, url, PROVIDER, params={"closureType": closure_type}
                )
                incidents.extend(parse_datex_payload(data))
        return incidents
