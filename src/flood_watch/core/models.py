"""Pydantic return models for core computation functions."""

import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flood_watch.models import FloodWarning, RoadIncident

Verdict = Literal["blocked", "at_risk", "delays", "clear", "error"]


class BoundingBox(BaseModel):
    """Axis-aligned box in degrees. The all-zero box means "no spatial extent"."""
    model_config = ConfigDict(frozen=True)

    min_lng: float = 0.0
    min_lat: float = 0.0
    max_lng: float = 0.0
    max_lat: float = 0.0

    @model_validator(mode="after")
    def check_min_le_max(self) -> "BoundingBox":
        if self.min_lng > self.max_lng:
            raise ValueError(f"min_lng ({self.min_lng}) must not exceed max_lng ({self.max_lng})")
        if self.min_lat > self.max_lat:
            raise ValueError(f"min_lat ({self.min_lat}) must not exceed max_lat ({self.max_lat})")
        return self

    @classmethod
    def zero(cls) -> "BoundingBox":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.min_lng == self.min_lat == self.max_lng == self.max_lat == 0.0

    @property
    def center_lat(self) -> float:
        return (self.min_lat + self.max_lat) / 2

    @property
    def center_lng(self) -> float:
        return (self.min_lng + self.max_lng) / 2

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lng <= lng <= self.max_lng and self.min_lat <= lat <= self.max_lat

    def overlaps(self, other: "BoundingBox") -> bool:
        return not (
            self.max_lng < other.min_lng
            or self.min_lng > other.max_lng
            or self.max_lat < other.min_lat
            or self.min_lat > other.max_lat
        )

    def expand_km(self, buffer_km: float) -> "BoundingBox":
        """Grow the box by ``buffer_km`` on every side."""
        # 1 degree latitude ~ 111 km; longitude shrinks with cos(latitude)
        d_lat = buffer_km / 111.0
        d_lng = buffer_km / (111.0 * max(0.01, math.cos(math.radians(self.center_lat))))
        return BoundingBox(
            min_lng=self.min_lng - d_lng,
            min_lat=self.min_lat - d_lat,
            max_lng=self.max_lng + d_lng,
            max_lat=self.max_lat + d_lat,
        )


class TokenBudget(BaseModel):
    """Cap on the estimated size of an LLM-facing payload."""
    model_config = ConfigDict(frozen=True)

    max_tokens: int
    used_tokens: int = 0

    def remaining(self) -> int:
        return max(0, self.max_tokens - self.used_tokens)


class RouteAlternative(BaseModel):
    model_config = ConfigDict(frozen=True)

    names: list[str] = Field(default_factory=list, max_length=8)
    distance_km: float = 0.0
    duration_min: float = 0.0


class RouteResponse(BaseModel):
    """Return type for a routing provider's get_route."""
    model_config = ConfigDict(frozen=True)

    geometry: list[list[float]] = Field(default_factory=list)
    distance_km: float = 0.0
    duration_min: float = 0.0
    alternatives: list[RouteAlternative] = Field(default_factory=list)


class RouteCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    verdict: Verdict
    summary: str
    floods_on_route: list[FloodWarning] = Field(default_factory=list)
    incidents_on_route: list[RoadIncident] = Field(default_factory=list)
    alternatives: list[RouteAlternative] = Field(default_factory=list)
    route_geometry: Optional[list[list[float]]] = None
    route_key: Optional[str] = None

    @classmethod
    def error(cls, message: str) -> "RouteCheckResult":
        return cls(verdict="error", summary=message)


class CrossReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    flood_area: str
    road: str
    has_incident: bool
    note: Optional[str] = None


class PredictiveWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["predictive"] = "predictive"
    message: str
    reason: str


class RiskAssessment(BaseModel):
    """Deterministic correlation of floods, road incidents and river levels."""
    model_config = ConfigDict(frozen=True)

    severe_floods: list[FloodWarning] = Field(default_factory=list)
    flood_warnings: list[FloodWarning] = Field(default_factory=list)
    road_incidents: list[RoadIncident] = Field(default_factory=list)
    cross_references: list[CrossReference] = Field(default_factory=list)
    predictive_warnings: list[PredictiveWarning] = Field(default_factory=list)
    key_routes: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    def to_prompt_context(self) -> str:
        lines = []
        if self.severe_floods:
            names = ", ".join(f.description for f in self.severe_floods)
            lines.append(f"Severe flood warnings (danger to life): {names}")
        if self.cross_references:
            refs = "; ".join(
                f"{r.flood_area} <-> {r.road}" + (" (incident reported)" if r.has_incident else "")
                for r in self.cross_references
            )
            lines.append(f"Flood-road cross-references: {refs}")
        if self.predictive_warnings:
            lines.append("Predictive warnings: " + " ".join(w.message for w in self.predictive_warnings))
        if self.key_routes:
            lines.append("Key routes to monitor: " + ", ".join(self.key_routes))
        if not lines:
            return ""
        return "Correlation summary:\n" + "\n".join(lines)
