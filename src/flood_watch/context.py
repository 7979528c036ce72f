"""Wiring of upstream clients and services for the MCP server.

Holds the configured collaborators that the tools share. Everything is built
from one FloodWatchConfig; tests substitute individual attributes.
"""

from typing import Optional

from .config import FloodWatchConfig
from .core.budget import BudgetAllocator
from .services.risk_correlation import RiskCorrelationService
from .services.route_check import RouteCheckService
from .sources.environment_agency import EnvironmentAgencyClient
from .sources.location import LocationResolver
from .sources.national_highways import NationalHighwaysClient
from .sources.osrm import OsrmRoutingClient


class ServiceContext:
    def __init__(self, config: Optional[FloodWatchConfig] = None):
        self.config = config or FloodWatchConfig()
        user_agent = self.config.user_agent

        self.environment_agency = EnvironmentAgencyClient(self.config.environment_agency, user_agent)
        self.national_highways = NationalHighwaysClient(self.config.national_highways, user_agent)
        self.router = OsrmRoutingClient(self.config.osrm, user_agent)
        self.resolver = LocationResolver(self.config.location, self.config.regions, user_agent)

        self.route_check = RouteCheckService(
            resolver=self.resolver,
            flood_source=self.environment_agency,
            incident_source=self.national_highways,
            router=self.router,
            settings=self.config.route_check,
            debug=self.config.debug,
        )
        self.correlation = RiskCorrelationService(self.config.regions)
        self.budget = BudgetAllocator(
            estimated_chars_per_item=self.config.budget.estimated_chars_per_item,
            chars_per_token=self.config.budget.chars_per_token,
        )
