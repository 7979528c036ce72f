"""Configuration for flood-watch: upstream endpoints, route-check tuning and regions.

Defaults cover the South West of England. A YAML file can override any
section; sections are merged over the defaults, so a file only needs the keys
it changes. Regions given in a file replace the built-in region of the same
name wholesale.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field

CONFIG_ENV_VAR = "FLOOD_WATCH_CONFIG"
API_KEY_ENV_VAR = "NATIONAL_HIGHWAYS_API_KEY"
DEBUG_ENV_VAR = "FLOOD_WATCH_DEBUG"


class EnvironmentAgencySettings(BaseModel):
    base_url: str = "https://environment.data.gov.uk/flood-monitoring"
    timeout_s: float = Field(default=10.0, gt=0)
    max_polygons: int = Field(default=10, ge=0)


class NationalHighwaysSettings(BaseModel):
    base_url: str = "https://api.data.nationalhighways.co.uk"
    closures_path: str = "closures"
    api_key: Optional[str] = None
    timeout_s: float = Field(default=10.0, gt=0)
    fetch_unplanned: bool = True


class OsrmSettings(BaseModel):
    base_url: str = "https://router.project-osrm.org"
    timeout_s: float = Field(default=15.0, gt=0)
    profile: str = "driving"


class RouteCheckSettings(BaseModel):
    incident_proximity_km: float = Field(default=0.5, gt=0)
    incident_check_max_route_points: int = Field(default=150, ge=1)
    flood_radius_km: float = Field(default=25.0, gt=0)
    flood_radius_buffer_km: float = Field(default=5.0, ge=0)
    flood_radius_max_km: float = Field(default=80.0, gt=0)
    fetch_alternatives_when_blocked: bool = True
    allow_partial_results: bool = True
    collaborator_timeout_s: float = Field(default=20.0, gt=0)


class BudgetSettings(BaseModel):
    estimated_chars_per_item: int = Field(default=200, gt=0)
    chars_per_token: int = Field(default=4, gt=0)
    tool_limits: dict[str, int] = Field(
        default_factory=lambda: {"floods": 12, "incidents": 12, "river_levels": 8}
    )


class LocationSettings(BaseModel):
    """Service area used to bound geocoding and to flag out-of-area locations."""

    postcodes_url: str = "https://api.postcodes.io"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    timeout_s: float = Field(default=10.0, gt=0)
    min_lat: float = Field(default=50.0, ge=-90, le=90)
    max_lat: float = Field(default=51.6, ge=-90, le=90)
    min_lng: float = Field(default=-5.7, ge=-180, le=180)
    max_lng: float = Field(default=-2.2, ge=-180, le=180)
    country_code: str = "gb"
    search_radius_km: float = Field(default=15.0, gt=0)

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng

    @property
    def viewbox(self) -> str:
        return f"{self.min_lng},{self.min_lat},{self.max_lng},{self.max_lat}"


class PredictiveRule(BaseModel):
    """A river rule (``river_pattern``) or a flood rule (``flood_pattern``)."""

    warning: str
    river_pattern: Optional[str] = None
    trigger_level: str = "elevated"
    flood_pattern: Optional[str] = None
    trigger_severity_max: int = Field(default=4, ge=1, le=4)


class RegionConfig(BaseModel):
    key_routes: list[str] = Field(default_factory=list)
    # (flood area pattern, key route) associations
    flood_area_road_pairs: list[tuple[str, str]] = Field(default_factory=list)
    # flood area id -> key routes that area is known to cut
    flood_area_routes: dict[str, list[str]] = Field(default_factory=dict)
    predictive_rules: list[PredictiveRule] = Field(default_factory=list)
    postcode_areas: list[str] = Field(default_factory=list)
    indicators: list[str] = Field(default_factory=list)
    cross_reference_proximity_km: float = Field(default=10.0, ge=0)


def default_regions() -> dict[str, RegionConfig]:
    return {
        "somerset": RegionConfig(
            key_routes=["A361", "A372", "M5 J23", "M5 J24", "M5 J25", "A38"],
            flood_area_road_pairs=[
                ("North Moor", "A361"),
                ("King's Sedgemoor", "A361"),
                ("Burrowbridge", "A361"),
                ("Langport", "A372"),
                ("Muchelney", "A372"),
            ],
            predictive_rules=[
                PredictiveRule(
                    river_pattern="parrett",
                    trigger_level="elevated",
                    warning=(
                        "Muchelney is at risk of being cut off while the River Parrett "
                        "is elevated. Check access before travelling."
                    ),
                ),
                PredictiveRule(
                    flood_pattern="north moor",
                    trigger_severity_max=2,
                    warning="The A361 at East Lyng may close. Consider alternative routes.",
                ),
            ],
            postcode_areas=["TA", "BA"],
            indicators=["somerset", "taunton", "langport", "bridgwater", "yeovil", "muchelney"],
        ),
        "bristol": RegionConfig(
            key_routes=["M5", "M4", "M32", "A4", "A38"],
            flood_area_road_pairs=[("Avon", "A4")],
            predictive_rules=[
                PredictiveRule(
                    river_pattern="avon",
                    trigger_level="elevated",
                    warning="Riverside roads along the Avon may flood. Allow extra time on the A4.",
                ),
            ],
            postcode_areas=["BS"],
            indicators=["bristol"],
        ),
        "devon": RegionConfig(
            key_routes=["M5", "A38", "A30", "A303", "A361", "A377", "A39"],
            flood_area_road_pairs=[("Exe", "A377"), ("Taw", "A361")],
            predictive_rules=[
                PredictiveRule(
                    river_pattern="exe",
                    trigger_level="elevated",
                    warning="Low-lying roads near the River Exe may flood. Check before travelling.",
                ),
            ],
            postcode_areas=["EX", "TQ", "PL"],
            indicators=["devon", "exeter", "plymouth", "torquay", "barnstaple"],
        ),
        "cornwall": RegionConfig(
            key_routes=["A30", "A38", "A39", "A390"],
            flood_area_road_pairs=[("Camel", "A39")],
            postcode_areas=["TR"],
            indicators=["cornwall", "truro", "bodmin", "newquay", "penzance"],
        ),
    }


class FloodWatchConfig(BaseModel):
    debug: bool = False
    user_agent: str = "flood-watch/0.1"
    environment_agency: EnvironmentAgencySettings = Field(default_factory=EnvironmentAgencySettings)
    national_highways: NationalHighwaysSettings = Field(default_factory=NationalHighwaysSettings)
    osrm: OsrmSettings = Field(default_factory=OsrmSettings)
    route_check: RouteCheckSettings = Field(default_factory=RouteCheckSettings)
    budget: BudgetSettings = Field(default_factory=BudgetSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    regions: dict[str, RegionConfig] = Field(default_factory=default_regions)


_SECTIONS = (
    "environment_agency",
    "national_highways",
    "osrm",
    "route_check",
    "budget",
    "location",
)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: Optional[Union[str, Path]] = None) -> FloodWatchConfig:
    """Build the configuration from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file to read. Falls back to ``$FLOOD_WATCH_CONFIG``; with
            neither set only defaults and environment variables apply.

    Raises:
        FileNotFoundError: the config file does not exist.
        ValueError: the file is not valid YAML or not a mapping.
        pydantic.ValidationError: a value is out of range.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    data: dict = {}
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(config_path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping, got {type(loaded).__name__}")
        data = loaded

    defaults = FloodWatchConfig().model_dump()
    merged = {key: value for key, value in defaults.items() if key not in _SECTIONS}
    for section in _SECTIONS:
        merged[section] = {**defaults[section], **(data.get(section) or {})}
    for key in ("debug", "user_agent"):
        if key in data:
            merged[key] = data[key]
    merged["regions"] = {**defaults["regions"], **(data.get("regions") or {})}

    api_key = os.environ.get(API_KEY_ENV_VAR)
    if api_key:
        merged["national_highways"]["api_key"] = api_key
    debug = os.environ.get(DEBUG_ENV_VAR)
    if debug is not None:
        merged["debug"] = _env_flag(debug)

    return FloodWatchConfig.model_validate(merged)
