"""Risk assessment tool: get_risk_assessment."""

import asyncio
import json
import logging

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..context import ServiceContext
from ..core.models import TokenBudget

logger = logging.getLogger(__name__)

# Assessment lists trimmed together to fit the caller's token budget
TRIMMED_FIELDS = (
    "severe_floods",
    "flood_warnings",
    "road_incidents",
    "cross_references",
    "predictive_warnings",
)


async def _fetch(name: str, awaitable) -> list:
    """Await one source, logging and returning [] on failure."""
    try:
        return list(await awaitable)
    except Exception as exc:
        logger.warning("Fetching %s for risk assessment failed: %s", name, exc)
        return []


def _capped(items: list, limits: dict[str, int], key: str) -> list:
    if key not in limits:
        return items
    return items[: limits[key]]


def register_risk_tools(mcp: FastMCP, context: ServiceContext):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
    async def get_risk_assessment(location: str, max_tokens: int = 4000) -> str:
        """Correlate floods, road incidents and river levels around a location.

        Returns JSON with the assessment (severe floods, flood warnings, road
        incidents, flood/road cross-references, predictive warnings, key
        routes) and a plain-text prompt_context digest. Lists are trimmed so
        the payload fits roughly within max_tokens.

        Args:
            location: Postcode or place name in the South West.
            max_tokens: Approximate token budget for the returned lists (default 4000).
        """
        if max_tokens < 1:
            return "Error: max_tokens must be at least 1."

        resolved = await context.resolver.resolve(location)
        if not resolved.valid or resolved.coordinate is None:
            return f"Error: {resolved.error or 'Location could not be resolved.'}"
        if not resolved.in_area:
            return f"Error: {resolved.error or 'Location is outside the covered area.'}"

        budget = TokenBudget(max_tokens=max_tokens)
        limits = context.budget.get_per_tool_limits(context.config.budget.tool_limits, budget)
        radius = context.config.location.search_radius_km

        floods, incidents, levels = await asyncio.gather(
            _fetch("floods", context.environment_agency.get_floods(resolved.lat, resolved.lng, radius)),
            _fetch("incidents", context.national_highways.get_incidents()),
            _fetch("river_levels", context.environment_agency.get_river_levels(resolved.lat, resolved.lng, radius)),
        )
        # Most severe floods and flood-related incidents survive the caps
        floods = sorted(floods, key=lambda f: (f.severity_level, f.distance_km or 0.0))
        incidents = sorted(incidents, key=lambda i: not i.is_flood_related)

        assessment = context.correlation.correlate(
            _capped(floods, limits, "floods"),
            _capped(incidents, limits, "incidents"),
            _capped(levels, limits, "river_levels"),
            resolved.region,
        )
        trimmed = context.budget.apply(
            {field: getattr(assessment, field) for field in TRIMMED_FIELDS}, budget
        )
        assessment = assessment.model_copy(update=trimmed)

        return json.dumps({
            "location": resolved.display_name or location,
            "region": resolved.region,
            "assessment": assessment.to_dict(),
            "prompt_context": assessment.to_prompt_context(),
        })
