from __future__ import annotations


class PipePlotError(Exception):
    pass


class PlotContractError(PipePlotError, ValueError):
    """Raised when a caller passes data or arguments the session cannot accept."""


class PlotConnectionError(PipePlotError, ConnectionError):
    """Recorded when the plotting process cannot be spawned or written to."""


class ConfigError(PipePlotError, ValueError):
    pass
