"""Exceptions raised by upstream clients."""


class FloodWatchError(Exception):
    """Base class for flood-watch failures."""


class SourceError(FloodWatchError):
    """An upstream data source returned an unusable response."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class RoutingError(FloodWatchError):
    """The routing provider could not produce a route."""
