from __future__ import annotations

from pipeplot import PlotSession


def main() -> None:
    x = [1, 2, 3, 4, 5]
    y = [5, 2, 4, 1, 3]

    with PlotSession.open() as gp:
        gp.redirect_to_animated_gif("animation.gif", "800,600", delay_ms=1000, loop=True)
        for xi, yi in zip(x, y, strict=True):
            gp.add_point(xi, yi)
            gp.plot_points()
            # Fixed ranges keep every frame on the same axes.
            gp.set_xrange(0, 6)
            gp.set_yrange(0, 6)
            gp.render()


if __name__ == "__main__":
    main()
