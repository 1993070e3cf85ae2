from pipeplot.config import SessionConfig, load_config
from pipeplot.errors import ConfigError, PipePlotError, PlotConnectionError, PlotContractError
from pipeplot.formatting import AxisRange, escape_quotes, format_number
from pipeplot.histogram import HistogramBins, compute_bins
from pipeplot.series import AxisScale, LineStyle, SeriesSpec
from pipeplot.session import PlotSession
from pipeplot.terminals import TerminalMode
from pipeplot.transport import CommandTransport, PipeTransport, StreamTransport

__all__ = [
    "AxisRange",
    "AxisScale",
    "CommandTransport",
    "ConfigError",
    "HistogramBins",
    "LineStyle",
    "PipePlotError",
    "PipeTransport",
    "PlotConnectionError",
    "PlotContractError",
    "PlotSession",
    "SeriesSpec",
    "SessionConfig",
    "StreamTransport",
    "TerminalMode",
    "compute_bins",
    "escape_quotes",
    "format_number",
    "load_config",
]
