"""Deterministic correlation of flood warnings, road incidents and river levels.

Pure computation over region configuration: no I/O and no mutation of inputs.
"""

import logging
from typing import Optional, Sequence

from ..config import PredictiveRule, RegionConfig, default_regions
from ..core.coords import haversine_km
from ..core.models import CrossReference, PredictiveWarning, RiskAssessment
from ..core.roads import extract_base_road
from ..models import FloodWarning, RiverLevel, RoadIncident, SeverityLevel, coerce_records

logger = logging.getLogger(__name__)

NOTE_INCIDENT = "Road incident reported"
NOTE_NO_INCIDENT = "No incident on road yet"


class RiskCorrelationService:
    def __init__(self, regions: Optional[dict[str, RegionConfig]] = None):
        self.regions = default_regions() if regions is None else regions

    def region_config(self, region: Optional[str]) -> Optional[RegionConfig]:
        if not region:
            return None
        return self.regions.get(region.strip().lower())

    def correlate(
        self,
        floods: Sequence,
        incidents: Sequence,
        river_levels: Sequence,
        region: Optional[str] = None,
    ) -> RiskAssessment:
        """Build a RiskAssessment for one region.

        Floods, incidents and river levels may be models or upstream-shaped
        dicts. An unknown or missing region yields no key routes, no
        cross-references and no predictive warnings.
        """
        floods = coerce_records(floods, FloodWarning)
        incidents = coerce_records(incidents, RoadIncident)
        levels = coerce_records(river_levels, RiverLevel)
        config = self.region_config(region)

        severe = [f for f in floods if f.severity_level == SeverityLevel.SEVERE]
        warnings = [
            f for f in floods
            if f.severity_level in (SeverityLevel.WARNING, SeverityLevel.ALERT)
        ]
        if config is None:
            if region:
                logger.debug("No correlation config for region %r", region)
            return RiskAssessment(
                severe_floods=severe, flood_warnings=warnings, road_incidents=incidents
            )

        incident_bases = {extract_base_road(i.road) for i in incidents if i.road}
        incident_bases.discard("")

        return RiskAssessment(
            severe_floods=severe,
            flood_warnings=warnings,
            road_incidents=incidents,
            cross_references=self.cross_references(floods, incidents, incident_bases, config),
            predictive_warnings=(
                self.route_warnings(severe, incident_bases, config)
                + self.river_rule_warnings(levels, config.predictive_rules)
                + self.flood_rule_warnings(floods, config.predictive_rules)
            ),
            key_routes=list(config.key_routes),
        )

    def _associated(self, flood: FloodWarning, base: str, config: RegionConfig) -> bool:
        description = flood.description.lower()
        for pattern, road in config.flood_area_road_pairs:
            if extract_base_road(road) != base:
                continue
            if pattern.lower() in description or (flood.flood_area_id and pattern == flood.flood_area_id):
                return True
        routes = config.flood_area_routes.get(flood.flood_area_id, [])
        return any(extract_base_road(route) == base for route in routes)

    def _incident_near(
        self, flood: FloodWarning, base: str, incidents: Sequence[RoadIncident], radius_km: float
    ) -> bool:
        if flood.lat is None or flood.lng is None:
            return False
        for incident in incidents:
            if incident.lat is None or incident.lng is None:
                continue
            if extract_base_road(incident.road) != base:
                continue
            if haversine_km(flood.lat, flood.lng, incident.lat, incident.lng) <= radius_km:
                return True
        return False

    def cross_references(
        self,
        floods: Sequence[FloodWarning],
        incidents: Sequence[RoadIncident],
        incident_bases: set[str],
        config: RegionConfig,
    ) -> list[CrossReference]:
        """Flood area / key route pairs, emitted only for configured key routes."""
        seen = set()
        result = []
        for flood in floods:
            for key_route in config.key_routes:
                base = extract_base_road(key_route)
                if not base:
                    continue
                if not (
                    self._associated(flood, base, config)
                    or self._incident_near(flood, base, incidents, config.cross_reference_proximity_km)
                ):
                    continue
                key = (flood.flood_area_id or flood.description, base)
                if key in seen:
                    continue
                seen.add(key)
                has_incident = base in incident_bases
                result.append(CrossReference(
                    flood_area=flood.description,
                    road=key_route,
                    has_incident=has_incident,
                    note=NOTE_INCIDENT if has_incident else NOTE_NO_INCIDENT,
                ))
        return result

    def route_warnings(
        self, severe: Sequence[FloodWarning], incident_bases: set[str], config: RegionConfig
    ) -> list[PredictiveWarning]:
        """Severe floods in areas known to cut a route that has no incident yet."""
        fired = set()
        warnings = []
        for flood in severe:
            for route in config.flood_area_routes.get(flood.flood_area_id, []):
                base = extract_base_road(route)
                if base in incident_bases or (flood.flood_area_id, route) in fired:
                    continue
                fired.add((flood.flood_area_id, route))
                warnings.append(PredictiveWarning(
                    message=(
                        f"{route} may be affected by flooding at {flood.description}. "
                        "No incident has been reported yet; consider avoiding it."
                    ),
                    reason=f"Severe flood warning for {flood.description}",
                ))
        return warnings

    def river_rule_warnings(
        self, levels: Sequence[RiverLevel], rules: Sequence[PredictiveRule]
    ) -> list[PredictiveWarning]:
        """River rules; a rule without a river pattern matches every river."""
        warnings = []
        for rule in rules:
            if rule.flood_pattern:
                continue
            pattern = (rule.river_pattern or "").lower()
            trigger = rule.trigger_level.lower()
            for level in levels:
                river = level.river.lower()
                status = level.level_status.lower()
                if pattern in river and status == trigger:
                    warnings.append(PredictiveWarning(
                        message=rule.warning, reason=f"River {river} level is {status}"
                    ))
                    break
        return warnings

    def flood_rule_warnings(
        self, floods: Sequence[FloodWarning], rules: Sequence[PredictiveRule]
    ) -> list[PredictiveWarning]:
        warnings = []
        for rule in rules:
            if not rule.flood_pattern:
                continue
            pattern = rule.flood_pattern.lower()
            for flood in floods:
                description = flood.description.lower()
                level = int(flood.severity_level)
                if pattern in description and level <= rule.trigger_severity_max:
                    warnings.append(PredictiveWarning(
                        message=rule.warning,
                        reason=f"Flood warning for {description} (severity {level})",
                    ))
                    break
        return warnings
