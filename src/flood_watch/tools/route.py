"""Route safety tool: check_route."""

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..context import ServiceContext


def register_route_tools(mcp: FastMCP, context: ServiceContext):

    @mcp.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
    async def check_route(origin: str, destination: str) -> str:
        """Check a drive between two South West locations for floods and road closures.

        Returns JSON with a verdict (blocked, at_risk, delays, clear or error),
        a one-sentence summary, the floods and incidents on the route, up to
        two alternatives when the route is blocked, the route geometry as
        [lng, lat] pairs and a stable route_key.

        Args:
            origin: Postcode (e.g. "TA10 0DP") or place name (e.g. "Langport").
            destination: Postcode or place name.
        """
        result = await context.route_check.check_route(origin, destination)
        return result.model_dump_json(exclude_none=True)
