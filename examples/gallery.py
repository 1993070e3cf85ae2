from __future__ import annotations

import argparse
import logging

import numpy as np

from pipeplot import AxisScale, LineStyle, PlotSession, TerminalMode


def main() -> None:
    parser = argparse.ArgumentParser(description="Draw a few plots with every series type.")
    parser.add_argument("--dumb", action="store_true", help="Draw in the terminal instead of PNG files.")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    rng = np.random.default_rng(7)
    x = np.linspace(0.0, 2.0 * np.pi, 40)

    with PlotSession.open() as gp:
        if not gp.is_alive():
            raise SystemExit(f"gnuplot unavailable: {gp.last_error}")

        def target(name: str) -> None:
            if args.dumb:
                gp.redirect_to_dumb(width=100, height=30, mode=TerminalMode.ANSI)
            else:
                gp.redirect_to_png(f"{name}.png")

        target("lines")
        gp.set_title("sin and cos")
        gp.set_xlabel("x [rad]")
        gp.set_ylabel("value")
        gp.plot(np.sin(x), x=x, label="sin(x)")
        gp.plot(np.cos(x), x=x, label="cos(x)", style=LineStyle.LINESPOINTS)
        gp.render()

        target("errorbars")
        gp.set_title("measurements")
        gp.plot_yerr(x[::4], np.sin(x[::4]), np.full(10, 0.1), label="sin(x) +- 0.1")
        gp.render()

        target("vectors")
        gx, gy = np.meshgrid(np.linspace(-1, 1, 7), np.linspace(-1, 1, 7))
        gx, gy = gx.ravel(), gy.ravel()
        gp.set_title("rotation field")
        gp.plot_vectors(gx, gy, -0.1 * gy, 0.1 * gx, label="(-y, x)")
        gp.render()

        target("helix")
        gp.set_title("helix")
        gp.plot3d(np.cos(x), np.sin(x), x, label="helix")
        gp.render()

        target("histogram")
        gp.set_title("normal samples")
        gp.histogram(rng.normal(size=2000), 30, label="N(0, 1)")
        gp.render()

        target("logscale")
        gp.set_title("powers of two")
        gp.set_logscale(AxisScale.LOGY)
        gp.plot(2.0 ** np.arange(12), label="2^n", style=LineStyle.STEPS)
        gp.render()
        gp.set_logscale(AxisScale.LINEAR)


if __name__ == "__main__":
    main()
