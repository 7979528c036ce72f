"""MCP server for flood-watch.

Registers all tools and runs via stdio transport.
"""

from mcp.server.fastmcp import FastMCP

from .config import load_config
from .context import ServiceContext
from .tools.risk import register_risk_tools
from .tools.route import register_route_tools

mcp = FastMCP(
    "flood-watch",
    instructions=(
        "Check South West England routes and locations against live Environment Agency "
        "flood warnings, river levels and National Highways road closures"
    ),
)

context = ServiceContext(load_config())

# Register all tool groups
register_route_tools(mcp, context)
register_risk_tools(mcp, context)


def main():
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
