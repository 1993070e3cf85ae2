from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class LineStyle(str, Enum):
    DOTS = "dots"
    LINES = "lines"
    POINTS = "points"
    LINESPOINTS = "linespoints"
    STEPS = "steps"
    BOXES = "boxes"
    X_ERROR_BARS = "xerrorbars"
    Y_ERROR_BARS = "yerrorbars"
    XY_ERROR_BARS = "xyerrorbars"
    VECTORS = "vectors"


class AxisScale(str, Enum):
    LINEAR = "linear"
    LOGX = "x"
    LOGY = "y"
    LOGXY = "xy"


@dataclass(frozen=True)
class SeriesLayout:
    """Wire shape of one add-series variant."""

    columns: tuple[str, ...]
    style: LineStyle | None
    is_3d: bool = False

    @property
    def column_count(self) -> int:
        return len(self.columns)


# style=None means the caller picks the style.
SERIES_LAYOUTS: dict[str, SeriesLayout] = {
    "plot": SeriesLayout(columns=("x", "y"), style=None),
    "plot_xerr": SeriesLayout(columns=("x", "y", "xerr"), style=LineStyle.X_ERROR_BARS),
    "plot_yerr": SeriesLayout(columns=("x", "y", "yerr"), style=LineStyle.Y_ERROR_BARS),
    "plot_xyerr": SeriesLayout(columns=("x", "y", "xerr", "yerr"), style=LineStyle.XY_ERROR_BARS),
    "plot_vectors": SeriesLayout(columns=("x", "y", "vx", "vy"), style=LineStyle.VECTORS),
    "plot3d": SeriesLayout(columns=("x", "y", "z"), style=None, is_3d=True),
    "plot_vectors3d": SeriesLayout(
        columns=("x", "y", "z", "vx", "vy", "vz"),
        style=LineStyle.VECTORS,
        is_3d=True,
    ),
    "histogram": SeriesLayout(columns=("center", "count"), style=None),
}


@dataclass(frozen=True)
class SeriesSpec:
    rows: tuple[str, ...]
    style: LineStyle
    label: str
    column_range: str
    is_3d: bool = False
    data_path: Path | None = None

    @property
    def row_count(self) -> int:
        return len(self.rows)
