from __future__ import annotations

import logging
import os
from pathlib import Path
import tempfile
import time
from typing import Any, Sequence

import numpy as np

from pipeplot.adapters import build_rows, coerce_column
from pipeplot.config import SessionConfig
from pipeplot.errors import PlotConnectionError, PlotContractError
from pipeplot.formatting import AxisRange, column_descriptor, datablock, format_rows, quoted
from pipeplot.histogram import check_bin_count, compute_bins
from pipeplot.series import SERIES_LAYOUTS, AxisScale, LineStyle, SeriesSpec
from pipeplot.terminals import (
    TerminalMode,
    animated_gif_commands,
    dumb_commands,
    pdf_commands,
    png_commands,
    svg_commands,
)
from pipeplot.transport import CommandTransport, PipeTransport

LOGGER = logging.getLogger(__name__)

_RANGE_AXES = ("x", "y", "z")
_LABEL_AXES = ("x", "y")


class PlotSession:
    """Live connection to a gnuplot process plus the series waiting to be drawn.

    Series are accumulated by the ``plot*`` and ``histogram`` methods and sent
    as a single ``plot``/``splot`` command by ``render``. Commands sent while
    the connection is down are dropped and reported through a False return.
    """

    def __init__(self, transport: CommandTransport | None, *, config: SessionConfig | None = None) -> None:
        self._transport = transport
        self._config = config or SessionConfig()
        self._series: list[SeriesSpec] = []
        self._is_3d = False
        self._ranges: dict[str, AxisRange] = {axis: AxisRange() for axis in _RANGE_AXES}
        self._files_to_delete: list[Path] = []
        self._points_x: list[float] = []
        self._points_y: list[float] = []
        self._animation_output = False
        self._closed = False
        self._last_error: Exception | None = None

        if self._config.encoding:
            self.send(f"set encoding {self._config.encoding}")
        if self._config.minus_sign:
            self.send("set minussign")

    @classmethod
    def open(
        cls,
        executable: str | None = None,
        persist: bool | None = None,
        *,
        config: SessionConfig | None = None,
    ) -> "PlotSession":
        cfg = config or SessionConfig()
        exe = executable or cfg.executable
        keep_alive = cfg.persist if persist is None else persist
        try:
            transport = PipeTransport.spawn(exe, persist=keep_alive)
        except OSError as exc:
            LOGGER.warning("could not start plotting process %r: %s", exe, exc)
            session = cls(None, config=cfg)
            error = PlotConnectionError(f"could not start plotting process {exe!r}: {exc}")
            error.__cause__ = exc
            session._last_error = error
            return session
        return cls(transport, config=cfg)

    def __enter__(self) -> "PlotSession":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def last_error(self) -> Exception | None:
        return self._last_error

    @property
    def series(self) -> tuple[SeriesSpec, ...]:
        return tuple(self._series)

    @property
    def is_3d(self) -> bool:
        return self._is_3d

    @property
    def temp_files(self) -> tuple[Path, ...]:
        return tuple(self._files_to_delete)

    def is_alive(self) -> bool:
        return self._transport is not None and not self._transport.closed

    def send(self, text: str) -> bool:
        if not self.is_alive():
            return False
        assert self._transport is not None
        try:
            self._transport.write_line(text)
        except (OSError, ValueError) as exc:
            self._mark_dead(exc)
            return False
        LOGGER.debug("sent %d line(s): %s", text.count("\n") + 1, text.split("\n", 1)[0])
        return True

    def close(self) -> None:
        """Close the pipe, wait for the process to catch up, then remove temp files."""
        if self._closed:
            return
        self._closed = True
        was_alive = self.is_alive()
        if was_alive:
            if self._animation_output:
                self.send("set output")
        # a failed send above has already closed and dropped the transport
        transport = self._transport
        self._transport = None
        if transport is not None:
            try:
                transport.close()
            except OSError as exc:
                LOGGER.warning("error while closing plotting process: %s", exc)

        if was_alive or self._files_to_delete:
            time.sleep(self._config.close_delay_s)

        for path in self._files_to_delete:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.warning("could not remove temporary file %s: %s", path, exc)
        self._files_to_delete.clear()

    def temp_file(self, suffix: str = "") -> Path:
        fd, name = tempfile.mkstemp(prefix="pipeplot-", suffix=suffix)
        os.close(fd)
        path = Path(name)
        self._files_to_delete.append(path)
        return path

    # output targets

    def redirect_to_png(self, path: str | Path, size: str = "800,600") -> bool:
        self._animation_output = False
        return self.send(png_commands(str(path), size))

    def redirect_to_pdf(self, path: str | Path, size: str = "16cm,12cm") -> bool:
        self._animation_output = False
        return self.send(pdf_commands(str(path), size))

    def redirect_to_svg(self, path: str | Path, size: str = "800,600") -> bool:
        self._animation_output = False
        return self.send(svg_commands(str(path), size))

    def redirect_to_dumb(
        self,
        path: str | Path = "",
        width: int = 80,
        height: int = 50,
        mode: TerminalMode | str = TerminalMode.MONO,
    ) -> bool:
        commands = dumb_commands(str(path) if path else "", width, height, mode)
        self._animation_output = False
        return self.send(commands)

    def redirect_to_animated_gif(
        self,
        path: str | Path,
        size: str = "800,600",
        delay_ms: int = 50,
        loop: bool = True,
    ) -> bool:
        """Route output to an animated GIF; every later ``render`` adds one frame."""
        ok = self.send(animated_gif_commands(str(path), size, delay_ms, loop))
        self._animation_output = ok
        return ok

    # axes

    def set_range(self, axis: str, low: float | None = None, high: float | None = None) -> None:
        key = _axis_key(axis, _RANGE_AXES)
        self._ranges[key] = AxisRange(low=low, high=high)

    def set_xrange(self, low: float | None = None, high: float | None = None) -> None:
        self.set_range("x", low, high)

    def set_yrange(self, low: float | None = None, high: float | None = None) -> None:
        self.set_range("y", low, high)

    def set_zrange(self, low: float | None = None, high: float | None = None) -> None:
        self.set_range("z", low, high)

    def get_range(self, axis: str) -> AxisRange:
        return self._ranges[_axis_key(axis, _RANGE_AXES)]

    def set_label(self, axis: str, text: str) -> bool:
        key = _axis_key(axis, _LABEL_AXES)
        return self.send(f"set {key}label {quoted(text)}")

    def set_xlabel(self, text: str) -> bool:
        return self.set_label("x", text)

    def set_ylabel(self, text: str) -> bool:
        return self.set_label("y", text)

    def set_title(self, text: str) -> bool:
        return self.send(f"set title {quoted(text)}")

    def set_logscale(self, scale: AxisScale | str) -> bool:
        mode = AxisScale(scale)
        if mode is AxisScale.LINEAR:
            return self.send("unset logscale")
        return self.send(f"set logscale {mode.value}")

    # series

    def plot(
        self,
        y: Any,
        *,
        x: Any = None,
        label: str = "",
        style: LineStyle | str = LineStyle.LINES,
    ) -> "PlotSession":
        if x is None:
            y = coerce_column(y, label="y")
            x = np.arange(y.size, dtype=np.int64)
        return self._add_series("plot", [("x", x), ("y", y)], label=label, style=style)

    def plot_xy(self, x: Any, y: Any, label: str = "", style: LineStyle | str = LineStyle.LINES) -> "PlotSession":
        return self.plot(y, x=x, label=label, style=style)

    def plot_xerr(self, x: Any, y: Any, xerr: Any, label: str = "") -> "PlotSession":
        return self._add_series("plot_xerr", [("x", x), ("y", y), ("xerr", xerr)], label=label)

    def plot_yerr(self, x: Any, y: Any, yerr: Any, label: str = "") -> "PlotSession":
        return self._add_series("plot_yerr", [("x", x), ("y", y), ("yerr", yerr)], label=label)

    def plot_xyerr(self, x: Any, y: Any, xerr: Any, yerr: Any, label: str = "") -> "PlotSession":
        return self._add_series(
            "plot_xyerr",
            [("x", x), ("y", y), ("xerr", xerr), ("yerr", yerr)],
            label=label,
        )

    def plot_vectors(self, x: Any, y: Any, vx: Any, vy: Any, label: str = "") -> "PlotSession":
        return self._add_series("plot_vectors", [("x", x), ("y", y), ("vx", vx), ("vy", vy)], label=label)

    def plot3d(
        self,
        x: Any,
        y: Any,
        z: Any,
        label: str = "",
        style: LineStyle | str = LineStyle.LINES,
    ) -> "PlotSession":
        return self._add_series("plot3d", [("x", x), ("y", y), ("z", z)], label=label, style=style)

    def plot_vectors3d(
        self,
        x: Any,
        y: Any,
        z: Any,
        vx: Any,
        vy: Any,
        vz: Any,
        label: str = "",
    ) -> "PlotSession":
        return self._add_series(
            "plot_vectors3d",
            [("x", x), ("y", y), ("z", z), ("vx", vx), ("vy", vy), ("vz", vz)],
            label=label,
        )

    def histogram(
        self,
        values: Any,
        bins: int,
        label: str = "",
        style: LineStyle | str = LineStyle.BOXES,
    ) -> "PlotSession":
        bins = check_bin_count(bins)
        data = coerce_column(values, label="values")
        if data.size == 0:
            LOGGER.debug("ignoring empty histogram series")
            return self
        self._check_mode(is_3d=False)
        result = compute_bins(data, bins)
        return self._add_series(
            "histogram",
            [("center", result.centers), ("count", result.counts)],
            label=label,
            style=style,
        )

    # accumulated points

    def add_point(self, x_or_y: float, y: float | None = None) -> None:
        if y is None:
            self._points_x.append(float(len(self._points_x)))
            self._points_y.append(float(x_or_y))
        else:
            self._points_x.append(float(x_or_y))
            self._points_y.append(float(y))

    def num_points(self) -> int:
        return len(self._points_x)

    def points(self) -> tuple[list[float], list[float]]:
        return list(self._points_x), list(self._points_y)

    def clear_points(self) -> None:
        self._points_x.clear()
        self._points_y.clear()

    def plot_points(self, label: str = "", style: LineStyle | str = LineStyle.LINES) -> "PlotSession":
        return self.plot(self._points_y, x=self._points_x, label=label, style=style)

    # drawing

    def multiplot(self, rows: int, cols: int, title: str = "") -> bool:
        if rows < 1 or cols < 1:
            raise PlotContractError(f"multiplot layout must be at least 1x1, got {rows}x{cols}")
        return self.send(f"set multiplot layout {int(rows)}, {int(cols)} title {quoted(title)}")

    def unset_multiplot(self) -> bool:
        return self.send("unset multiplot")

    def render_commands(self) -> str:
        """Return the text ``render`` would send for the pending series ("" when none)."""
        if not self._series:
            return ""
        lines = [f"set style fill {self._config.fill_style}"]
        clauses: list[str] = []
        for index, spec in enumerate(self._series):
            if spec.data_path is None:
                name = f"Datablock{index}"
                lines.append(datablock(name, spec.rows))
                source = f"${name}"
            else:
                source = quoted(str(spec.data_path))
            clauses.append(f"{source} using {spec.column_range} with {spec.style.value} title {quoted(spec.label)}")

        xr = self._ranges["x"].to_command()
        yr = self._ranges["y"].to_command()
        if self._is_3d:
            head = f"splot {xr} {yr} {self._ranges['z'].to_command()} "
        else:
            head = f"plot {xr} {yr} "
        lines.append(head + ", ".join(clauses))
        return "\n".join(lines)

    def render(self, reset: bool = True) -> bool:
        if not self._series:
            return True
        ok = self.send(self.render_commands())
        if ok and reset:
            self.reset()
        return ok

    def show(self, reset: bool = True) -> bool:
        return self.render(reset=reset)

    def reset(self) -> None:
        self._series.clear()
        self.set_xrange()
        self.set_yrange()
        self._is_3d = False

    def _add_series(
        self,
        variant: str,
        columns: Sequence[tuple[str, Any]],
        *,
        label: str = "",
        style: LineStyle | str | None = None,
    ) -> "PlotSession":
        layout = SERIES_LAYOUTS[variant]
        if len(columns) != layout.column_count:
            raise PlotContractError(f"{variant} expects {layout.column_count} columns, got {len(columns)}")
        arrays = build_rows(columns)
        if not arrays:
            LOGGER.debug("ignoring empty %s series", variant)
            return self
        self._check_mode(is_3d=layout.is_3d)

        series_style = layout.style if layout.style is not None else _line_style(style)
        rows = tuple(format_rows(arrays))
        data_path: Path | None = None
        if not self._config.inline_data:
            data_path = self.temp_file(suffix=".dat")
            data_path.write_text("\n".join(rows) + "\n", encoding="utf-8")

        self._series.append(
            SeriesSpec(
                rows=rows,
                style=series_style,
                label=label,
                column_range=column_descriptor(len(arrays)),
                is_3d=layout.is_3d,
                data_path=data_path,
            )
        )
        self._is_3d = layout.is_3d
        return self

    def _check_mode(self, *, is_3d: bool) -> None:
        if self._series and self._is_3d != is_3d:
            current = "3D" if self._is_3d else "2D"
            incoming = "3D" if is_3d else "2D"
            raise PlotContractError(f"cannot add a {incoming} series to a pending {current} plot; render or reset first")

    def _mark_dead(self, exc: Exception) -> None:
        LOGGER.warning("lost connection to plotting process: %s", exc)
        error = PlotConnectionError(f"write to plotting process failed: {exc}")
        error.__cause__ = exc
        self._last_error = error
        transport = self._transport
        self._transport = None
        if transport is not None:
            try:
                transport.close()
            except OSError:
                LOGGER.debug("ignoring error while closing a dead transport", exc_info=True)


def _line_style(style: LineStyle | str | None) -> LineStyle:
    try:
        return LineStyle(style or LineStyle.LINES)
    except ValueError as exc:
        raise PlotContractError(f"unsupported line style: {style!r}") from exc


def _axis_key(axis: str, allowed: tuple[str, ...]) -> str:
    key = str(axis).lower()
    if key not in allowed:
        raise PlotContractError(f"unsupported axis {axis!r}; expected one of {', '.join(allowed)}")
    return key
