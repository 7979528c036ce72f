"""Tests for RiskCorrelationService."""

from flood_watch.config import PredictiveRule, RegionConfig
from flood_watch.core.roads import extract_base_road
from flood_watch.models import FloodWarning, RiverLevel, RoadIncident, SeverityLevel
from flood_watch.services.risk_correlation import (
    NOTE_INCIDENT,
    NOTE_NO_INCIDENT,
    RiskCorrelationService,
)


def _flood(description, level=2, area_id="", lat=None, lng=None):
    return FloodWarning(
        description=description,
        severity_level=SeverityLevel(level),
        flood_area_id=area_id,
        lat=lat,
        lng=lng,
    )


def test_splits_floods_by_severity():
    service = RiskCorrelationService()
    floods = [_flood("A", 1), _flood("B", 2), _flood("C", 3), _flood("D", 4)]
    result = service.correlate(floods, [], [], "somerset")
    assert [f.description for f in result.severe_floods] == ["A"]
    assert [f.description for f in result.flood_warnings] == ["B", "C"]


def test_unknown_region_has_no_correlations():
    service = RiskCorrelationService()
    incidents = [RoadIncident(road="A361", status="active")]
    result = service.correlate([_flood("North Moor", 1)], incidents, [], "atlantis")
    assert result.key_routes == []
    assert result.cross_references == []
    assert result.predictive_warnings == []
    assert result.road_incidents == incidents
    assert len(result.severe_floods) == 1


def test_missing_region_has_no_correlations():
    result = RiskCorrelationService().correlate([_flood("North Moor")], [], [], None)
    assert result.cross_references == [] and result.key_routes == []


def test_key_routes_from_region():
    result = RiskCorrelationService().correlate([], [], [], "Somerset")
    assert result.key_routes == ["A361", "A372", "M5 J23", "M5 J24", "M5 J25", "A38"]


def test_north_moor_cross_references_a361_with_incident():
    service = RiskCorrelationService()
    incidents = [RoadIncident(road="A361", status="active", incident_type="flooding")]
    result = service.correlate([_flood("North Moor")], incidents, [], "somerset")
    assert len(result.cross_references) == 1
    ref = result.cross_references[0]
    assert (ref.flood_area, ref.road, ref.has_incident) == ("North Moor", "A361", True)
    assert ref.note == NOTE_INCIDENT


def test_cross_reference_without_incident():
    result = RiskCorrelationService().correlate([_flood("River Parrett at Langport")], [], [], "somerset")
    assert [(r.road, r.has_incident, r.note) for r in result.cross_references] == [
        ("A372", False, NOTE_NO_INCIDENT)
    ]


def test_cross_references_only_name_key_routes():
    service = RiskCorrelationService()
    floods = [_flood("Somewhere", lat=51.0, lng=-2.9)]
    incidents = [
        RoadIncident(road="B3151", lat=51.0, lng=-2.9),
        RoadIncident(road="M5 J24", lat=51.01, lng=-2.9),
    ]
    result = service.correlate(floods, incidents, [], "somerset")
    config = service.region_config("somerset")
    key_bases = {extract_base_road(r) for r in config.key_routes}
    assert result.cross_references
    assert all(extract_base_road(r.road) in key_bases for r in result.cross_references)
    # Junction entries collapse onto one M5 reference per flood
    assert [r.road for r in result.cross_references] == ["M5 J23"]
    assert result.cross_references[0].has_incident


def test_incident_beyond_proximity_not_cross_referenced():
    floods = [_flood("Somewhere", lat=51.0, lng=-2.9)]
    incidents = [RoadIncident(road="A38", lat=50.5, lng=-3.5)]
    result = RiskCorrelationService().correlate(floods, incidents, [], "somerset")
    assert result.cross_references == []


def test_parrett_elevated_warns_about_muchelney():
    levels = [RiverLevel(station="Langport", river="River Parrett", level_status="elevated")]
    result = RiskCorrelationService().correlate([], [], levels, "somerset")
    assert len(result.predictive_warnings) == 1
    warning = result.predictive_warnings[0]
    assert warning.type == "predictive"
    assert "Muchelney" in warning.message
    assert warning.reason == "River river parrett level is elevated"


def test_river_rule_fires_once_per_rule():
    levels = [
        RiverLevel(station="Langport", river="River Parrett", level_status="elevated"),
        RiverLevel(station="Bridgwater", river="River Parrett", level_status="elevated"),
    ]
    result = RiskCorrelationService().correlate([], [], levels, "somerset")
    assert len(result.predictive_warnings) == 1


def test_normal_river_level_no_warning():
    levels = [RiverLevel(river="River Parrett", level_status="expected")]
    assert RiskCorrelationService().correlate([], [], levels, "somerset").predictive_warnings == []


def test_flood_rule_respects_severity():
    service = RiskCorrelationService()
    alert = service.correlate([_flood("North Moor", 3)], [], [], "somerset")
    assert not any("East Lyng" in w.message for w in alert.predictive_warnings)
    warning = service.correlate([_flood("North Moor", 2)], [], [], "somerset")
    assert any("East Lyng" in w.message for w in warning.predictive_warnings)


def test_flood_area_routes_predict_until_incident_reported():
    regions = {
        "test": RegionConfig(
            key_routes=["A372"],
            flood_area_routes={"112WAFTLGP": ["A372"]},
        )
    }
    service = RiskCorrelationService(regions)
    flood = _flood("Langport", 1, area_id="112WAFTLGP")

    quiet = service.correlate([flood], [], [], "test")
    assert len(quiet.predictive_warnings) == 1
    assert quiet.predictive_warnings[0].message.startswith("A372 may be affected")

    reported = service.correlate([flood], [RoadIncident(road="A372")], [], "test")
    assert reported.predictive_warnings == []
    assert reported.cross_references[0].has_incident


def test_custom_rules():
    regions = {
        "test": RegionConfig(
            predictive_rules=[PredictiveRule(river_pattern="tone", warning="Watch the Tone.")]
        )
    }
    levels = [RiverLevel(river="River Tone", level_status="Elevated")]
    result = RiskCorrelationService(regions).correlate([], [], levels, "test")
    assert [w.message for w in result.predictive_warnings] == ["Watch the Tone."]


def test_accepts_upstream_dicts():
    floods = [{"description": "North Moor", "severityLevel": 1, "floodAreaID": "x"}]
    incidents = [{"roadName": "A361", "status": "active"}]
    levels = [{"river": "River Parrett", "levelStatus": "elevated"}]
    result = RiskCorrelationService().correlate(floods, incidents, levels, "somerset")
    assert result.severe_floods[0].description == "North Moor"
    assert result.cross_references[0].has_incident
    assert len(result.predictive_warnings) == 2


def test_inputs_not_mutated():
    floods = [{"description": "North Moor", "severityLevel": 2}]
    incidents = [{"road": "A361"}]
    snapshot = ([dict(f) for f in floods], [dict(i) for i in incidents])
    RiskCorrelationService().correlate(floods, incidents, [], "somerset")
    assert (floods, incidents) == snapshot


def test_prompt_context_lists_key_routes():
    result = RiskCorrelationService().correlate([], [], [], "somerset")
    assert "Key routes to monitor: A361" in result.to_prompt_context()


def test_river_rule_without_pattern_matches_any_river():
    regions = {"test": RegionConfig(predictive_rules=[PredictiveRule(warning="Rivers are high.")])}
    levels = [RiverLevel(river="River Brue", level_status="elevated")]
    result = RiskCorrelationService(regions).correlate([], [], levels, "test")
    assert [w.message for w in result.predictive_warnings] == ["Rivers are high."]
    assert result.predictive_warnings[0].reason == "River river brue level is elevated"


def test_flood_areas_sharing_a_description_stay_distinct():
    floods = [
        _flood("River Parrett at Langport", area_id="112WAFTLGP"),
        _flood("River Parrett at Langport", area_id="112WAFTLGP2"),
    ]
    result = RiskCorrelationService().correlate(floods, [], [], "somerset")
    assert [r.road for r in result.cross_references] == ["A372", "A372"]


def test_out_of_range_incident_coordinate_is_nulled():
    incidents = [{"road": "A361", "lat": 95.0, "lng": -2.8}]
    result = RiskCorrelationService().correlate([_flood("North Moor")], incidents, [], "somerset")
    assert result.road_incidents[0].lat is None
    assert result.road_incidents[0].lng is None
    assert result.cross_references[0].has_incident


def test_non_numeric_distance_is_dropped():
    floods = [{"description": "North Moor", "severityLevel": 1, "distanceKm": "n/a"}]
    result = RiskCorrelationService().correlate(floods, [], [], "somerset")
    assert result.severe_floods[0].distance_km is None
    assert result.cross_references[0].road == "A361"


def test_unusable_records_skipped():
    floods = [None, "North Moor", _flood("Langport")]
    result = RiskCorrelationService().correlate(floods, [42], [None], "somerset")
    assert [f.description for f in result.flood_warnings] == ["Langport"]
    assert result.road_incidents == []
