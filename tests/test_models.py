"""Tests for domain Pydantic models."""
import pytest
from pydantic import ValidationError


class TestCoordinate:
    def test_valid_coordinate(self):
        from flood_watch.models import Coordinate
        c = Coordinate(lat=51.0358, lng=-2.8318)
        assert c.lat == 51.0358

    def test_lat_out_of_range(self):
        from flood_watch.models import Coordinate
        with pytest.raises(ValidationError):
            Coordinate(lat=91.0, lng=0.0)

    def test_lng_out_of_range(self):
        from flood_watch.models import Coordinate
        with pytest.raises(ValidationError):
            Coordinate(lat=0.0, lng=-181.0)

    def test_frozen(self):
        from flood_watch.models import Coordinate
        c = Coordinate(lat=51.0, lng=-2.8)
        with pytest.raises(ValidationError):
            c.lat = 52.0


class TestSeverityLevel:
    def test_from_api_value(self):
        from flood_watch.models import SeverityLevel
        assert SeverityLevel.from_api_value(1) is SeverityLevel.SEVERE
        assert SeverityLevel.from_api_value("3") is SeverityLevel.ALERT

    def test_unknown_values_are_inactive(self):
        from flood_watch.models import SeverityLevel
        for value in (None, "", "severe", 0, 9):
            assert SeverityLevel.from_api_value(value) is SeverityLevel.INACTIVE


class TestFloodWarning:
    def test_from_dict_upstream_shape(self):
        from flood_watch.models import FloodWarning, SeverityLevel
        flood = FloodWarning.from_dict({
            "description": "North Moor",
            "severity": "Flood warning",
            "severityLevel": 2,
            "message": "Flooding is expected",
            "floodAreaID": "112WAFTNMR",
            "timeRaised": "2026-01-10T08:00:00",
            "lat": "51.06",
            "long": "-2.93",
        })
        assert flood.description == "North Moor"
        assert flood.severity_level is SeverityLevel.WARNING
        assert flood.flood_area_id == "112WAFTNMR"
        assert (flood.lat, flood.lng) == (51.06, -2.93)
        assert not flood.is_severe

    def test_missing_fields_default(self):
        from flood_watch.models import FloodWarning, SeverityLevel
        flood = FloodWarning.from_dict({})
        assert flood.description == ""
        assert flood.severity_level is SeverityLevel.INACTIVE
        assert flood.lat is None and flood.polygon is None

    def test_without_polygon(self):
        from flood_watch.models import FloodWarning
        flood = FloodWarning(description="Langport", polygon={"type": "FeatureCollection", "features": []})
        stripped = flood.without_polygon()
        assert stripped.polygon is None
        assert flood.polygon is not None
        assert stripped.description == "Langport"


class TestIncidentType:
    def test_from_string(self):
        from flood_watch.models import IncidentType
        assert IncidentType.from_string("roadClosed") is IncidentType.ROAD_CLOSED
        assert IncidentType.from_string("Lane Closure") is IncidentType.LANE_CLOSURES
        assert IncidentType.from_string("FLOODING") is IncidentType.FLOODING
        assert IncidentType.from_string("nonsense") is None

    def test_is_blocking_closure(self):
        from flood_watch.models import IncidentType
        assert IncidentType.is_blocking_closure("roadClosed")
        assert IncidentType.is_blocking_closure("carriageway closure")
        assert not IncidentType.is_blocking_closure("laneClosures")
        assert not IncidentType.is_blocking_closure("lane closure")
        assert not IncidentType.is_blocking_closure("roadworks")


class TestRoadIncident:
    def test_from_dict_aliases(self):
        from flood_watch.models import RoadIncident
        incident = RoadIncident.from_dict({
            "roadName": "A361",
            "closureStatus": "active",
            "type": "flooding",
            "latitude": 51.06,
            "longitude": -2.95,
            "isFloodRelated": True,
        })
        assert incident.road == "A361"
        assert incident.is_active
        assert incident.incident_type == "flooding"
        assert incident.is_flood_related
        assert (incident.lat, incident.lng) == (51.06, -2.95)

    def test_location_used_as_road(self):
        from flood_watch.models import RoadIncident
        assert RoadIncident.from_dict({"location": "A30 near Exeter"}).road == "A30 near Exeter"

    def test_blocking_from_management_type(self):
        from flood_watch.models import RoadIncident
        incident = RoadIncident(road="M5", status="active", incident_type="flooding", management_type="roadClosed")
        assert incident.is_blocking_closure

    def test_lane_closure_not_blocking(self):
        from flood_watch.models import RoadIncident
        incident = RoadIncident(road="M5", status="active", incident_type="laneClosures")
        assert not incident.is_blocking_closure

    def test_status_case_insensitive(self):
        from flood_watch.models import RoadIncident
        assert RoadIncident(status="Active").is_active
        assert not RoadIncident(status="planned").is_active


class TestRiverLevel:
    def test_compute_level_status(self):
        from flood_watch.models import compute_level_status
        assert compute_level_status(2.5, 0.5, 2.0) == "elevated"
        assert compute_level_status(0.2, 0.5, 2.0) == "low"
        assert compute_level_status(1.0, 0.5, 2.0) == "expected"
        assert compute_level_status(None, 0.5, 2.0) == "unknown"
        assert compute_level_status(1.0, None, 2.0) == "unknown"

    def test_from_dict(self):
        from flood_watch.models import RiverLevel
        level = RiverLevel.from_dict({
            "station": "Langport",
            "river": "River Parrett",
            "value": 3.1,
            "levelStatus": "elevated",
            "typicalRangeLow": 0.4,
            "typicalRangeHigh": 2.6,
            "lat": 51.03,
            "long": -2.83,
        })
        assert level.river == "River Parrett"
        assert level.level_status == "elevated"
        assert level.typical_range_high == 2.6
        assert level.lng == -2.83


class TestLocationResult:
    def test_coordinate(self):
        from flood_watch.models import LocationResult
        assert LocationResult(valid=True, lat=51.0, lng=-2.8).coordinate.lng == -2.8
        assert LocationResult(valid=False, error="nope").coordinate is None


class TestMalformedUpstreamRecords:
    def test_out_of_range_coordinate_nulls_both_axes(self):
        from flood_watch.models import FloodWarning, RoadIncident
        incident = RoadIncident.from_dict({"road": "A361", "lat": 95.0, "lng": -2.8})
        assert (incident.lat, incident.lng) == (None, None)
        flood = FloodWarning.from_dict({"description": "X", "lat": 51.0, "long": 200.0})
        assert (flood.lat, flood.lng) == (None, None)

    def test_non_numeric_distance_is_none(self):
        from flood_watch.models import FloodWarning, RoadIncident
        assert FloodWarning.from_dict({"distanceKm": "n/a"}).distance_km is None
        assert RoadIncident.from_dict({"distanceKm": "far"}).distance_km is None
        assert FloodWarning.from_dict({"distanceKm": "2.5"}).distance_km == 2.5

    def test_river_level_bad_numbers(self):
        from flood_watch.models import RiverLevel
        level = RiverLevel.from_dict({"value": "--", "typicalRangeLow": "low", "lat": -91})
        assert level.value is None
        assert level.typical_range_low is None
        assert level.lat is None

    def test_infinite_severity_is_inactive(self):
        from flood_watch.models import SeverityLevel
        assert SeverityLevel.from_api_value(float("inf")) is SeverityLevel.INACTIVE

    def test_coerce_records(self):
        from flood_watch.models import RoadIncident, coerce_records
        model = RoadIncident(road="M5")
        records = coerce_records([model, {"road": "A38"}, None, "A30"], RoadIncident)
        assert records[0] is model
        assert [r.road for r in records] == ["M5", "A38"]
        assert coerce_records(None, RoadIncident) == []
