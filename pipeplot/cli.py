from __future__ import annotations

import argparse
import logging
from pathlib import Path
import re
import sys

import numpy as np

from pipeplot import (
    AxisScale,
    LineStyle,
    PlotContractError,
    PlotSession,
    StreamTransport,
    TerminalMode,
    load_config,
)

LOGGER = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[,\s]+")
_OUTPUT_SUFFIXES = {".png", ".pdf", ".svg", ".gif", ".txt"}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="pipeplot")
    sub = parser.add_subparsers(dest="command", required=True)

    plot = sub.add_parser("plot", help="Plot columns of a whitespace or comma separated data file.")
    plot.add_argument("data", type=Path)
    plot.add_argument(
        "--columns",
        default=None,
        help="Comma separated 1-based columns to use as x,y. A single column plots y against its index.",
    )
    plot.add_argument("--style", choices=[s.value for s in LineStyle], default=LineStyle.LINES.value)
    plot.add_argument("--label", default="")
    _add_common_arguments(plot)

    hist = sub.add_parser("histogram", help="Histogram one column of a data file.")
    hist.add_argument("data", type=Path)
    hist.add_argument("--bins", type=int, required=True)
    hist.add_argument("--column", type=int, default=1, help="1-based column to histogram.")
    hist.add_argument("--label", default="")
    _add_common_arguments(hist)

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper()), format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args.config)
        columns = read_columns(args.data)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.script is not None:
        try:
            script = args.script.open("w", encoding="utf-8")
        except OSError as exc:
            print(f"error: cannot write script {args.script}: {exc}", file=sys.stderr)
            return 2
        session = PlotSession(StreamTransport(script, close_stream=True), config=config)
    else:
        session = PlotSession.open(args.gnuplot, persist=not args.no_persist, config=config)

    with session:
        if not session.is_alive():
            print(f"error: {session.last_error}", file=sys.stderr)
            return 1
        try:
            _configure(session, args)
            if args.command == "plot":
                _add_plot(session, columns, args)
            elif args.command == "histogram":
                _add_histogram(session, columns, args)
            else:
                raise RuntimeError(f"unsupported command: {args.command}")
        except PlotContractError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        if not session.render():
            print(f"error: {session.last_error}", file=sys.stderr)
            return 1
    return 0


def read_columns(path: Path) -> list[np.ndarray]:
    """Read a numeric table; blank lines and lines starting with '#' are skipped."""
    rows: list[list[float]] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            try:
                values = [float(tok) for tok in _SPLIT_RE.split(text) if tok]
            except ValueError as exc:
                raise ValueError(f"{path}:{lineno}: non-numeric value ({exc})") from exc
            if rows and len(values) != len(rows[0]):
                raise ValueError(f"{path}:{lineno}: expected {len(rows[0])} columns, got {len(values)}")
            rows.append(values)
    if not rows:
        return []
    table = np.asarray(rows, dtype=np.float64)
    return [table[:, i] for i in range(table.shape[1])]


def parse_range(text: str) -> tuple[float | None, float | None]:
    """Parse ``LOW:HIGH`` where either side may be empty or ``*``."""
    low_text, sep, high_text = text.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"range must look like LOW:HIGH, got {text!r}")
    return (_parse_bound(low_text), _parse_bound(high_text))


def _parse_bound(text: str) -> float | None:
    text = text.strip()
    if text in {"", "*"}:
        return None
    try:
        return float(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid range bound: {text!r}") from exc


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", type=Path, default=None, help="Write to .png/.pdf/.svg/.gif/.txt instead of a window.")
    parser.add_argument("--size", default=None, help="Output size, e.g. 800,600 or 16cm,12cm.")
    parser.add_argument("--dumb", action="store_true", help="Draw on the terminal with characters.")
    parser.add_argument("--dumb-mode", choices=[m.value for m in TerminalMode], default=TerminalMode.MONO.value)
    parser.add_argument("--title", default=None)
    parser.add_argument("--xlabel", default=None)
    parser.add_argument("--ylabel", default=None)
    parser.add_argument("--xrange", type=parse_range, default=None)
    parser.add_argument("--yrange", type=parse_range, default=None)
    parser.add_argument("--logscale", choices=[s.value for s in AxisScale], default=None)
    parser.add_argument("--gnuplot", default=None, help="Plotting executable. Default: from config or 'gnuplot'.")
    parser.add_argument("--no-persist", action="store_true")
    parser.add_argument("--config", type=Path, default=None, help="Path to a pipeplot.toml file.")
    parser.add_argument("--script", type=Path, default=None, help="Write the commands to a file instead of running gnuplot.")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"], default="warning")


def _configure(session: PlotSession, args: argparse.Namespace) -> None:
    if args.output is not None:
        _redirect(session, args.output, args.size, args.dumb_mode)
    elif args.dumb:
        session.redirect_to_dumb(mode=args.dumb_mode)
    if args.title is not None:
        session.set_title(args.title)
    if args.xlabel is not None:
        session.set_xlabel(args.xlabel)
    if args.ylabel is not None:
        session.set_ylabel(args.ylabel)
    if args.logscale is not None:
        session.set_logscale(args.logscale)
    if args.xrange is not None:
        session.set_xrange(*args.xrange)
    if args.yrange is not None:
        session.set_yrange(*args.yrange)


def _redirect(session: PlotSession, output: Path, size: str | None, dumb_mode: str) -> None:
    suffix = output.suffix.lower()
    if suffix not in _OUTPUT_SUFFIXES:
        raise PlotContractError(f"unsupported output type {suffix!r}; use one of {', '.join(sorted(_OUTPUT_SUFFIXES))}")
    if suffix == ".png":
        session.redirect_to_png(output, size or "800,600")
    elif suffix == ".pdf":
        session.redirect_to_pdf(output, size or "16cm,12cm")
    elif suffix == ".svg":
        session.redirect_to_svg(output, size or "800,600")
    elif suffix == ".gif":
        session.redirect_to_animated_gif(output, size or "800,600")
    else:
        session.redirect_to_dumb(output, mode=dumb_mode)


def _add_plot(session: PlotSession, columns: list[np.ndarray], args: argparse.Namespace) -> None:
    if not columns:
        LOGGER.warning("%s contains no data", args.data)
        return
    if args.columns is None:
        selected = [1] if len(columns) == 1 else [1, 2]
    else:
        try:
            selected = [int(tok) for tok in args.columns.split(",") if tok.strip()]
        except ValueError as exc:
            raise PlotContractError(f"invalid --columns value: {args.columns!r}") from exc
    if not 1 <= len(selected) <= 2:
        raise PlotContractError("--columns takes one or two column numbers")
    picked = [_pick(columns, index) for index in selected]
    if len(picked) == 1:
        session.plot(picked[0], label=args.label, style=args.style)
    else:
        session.plot(picked[1], x=picked[0], label=args.label, style=args.style)


def _add_histogram(session: PlotSession, columns: list[np.ndarray], args: argparse.Namespace) -> None:
    if not columns:
        LOGGER.warning("%s contains no data", args.data)
        return
    session.histogram(_pick(columns, args.column), args.bins, label=args.label)


def _pick(columns: list[np.ndarray], index: int) -> np.ndarray:
    if index < 1 or index > len(columns):
        raise PlotContractError(f"column {index} out of range; file has {len(columns)} column(s)")
    return columns[index - 1]


if __name__ == "__main__":
    raise SystemExit(main())
