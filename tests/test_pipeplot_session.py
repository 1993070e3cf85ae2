from __future__ import annotations

import io
from pathlib import Path
import unittest
from unittest import mock

import numpy as np

from pipeplot import (
    AxisScale,
    LineStyle,
    PlotConnectionError,
    PlotContractError,
    PlotSession,
    SessionConfig,
    StreamTransport,
    TerminalMode,
)


class RecordingTransport:
    def __init__(self, events: list[str] | None = None) -> None:
        self.lines: list[str] = []
        self.events = events if events is not None else []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write_line(self, text: str) -> None:
        if self._closed:
            raise ValueError("write to closed transport")
        self.lines.append(text)

    def close(self) -> None:
        self.events.append("close")
        self._closed = True


class BrokenTransport(RecordingTransport):
    def write_line(self, text: str) -> None:
        raise BrokenPipeError("pipe closed")


def _session(config: SessionConfig | None = None) -> tuple[PlotSession, RecordingTransport]:
    transport = RecordingTransport()
    session = PlotSession(transport, config=config or SessionConfig(close_delay_s=0.0))
    transport.lines.clear()
    return session, transport


def _datablocks(text: str) -> list[list[str]]:
    blocks: list[list[str]] = []
    current: list[str] | None = None
    for line in text.split("\n"):
        if line.startswith("$Datablock") and line.endswith("<< EOD"):
            current = []
            continue
        if line == "EOD":
            assert current is not None
            blocks.append(current)
            current = None
            continue
        if current is not None:
            current.append(line)
    return blocks


class PlotSessionLifecycleTests(unittest.TestCase):
    def test_baseline_commands_sent_on_creation(self) -> None:
        transport = RecordingTransport()
        PlotSession(transport)
        self.assertEqual(transport.lines, ["set encoding utf8", "set minussign"])

    def test_open_spawns_with_persist_flag(self) -> None:
        fake_proc = mock.Mock()
        fake_proc.stdin = io.StringIO()
        with mock.patch("pipeplot.transport.subprocess.Popen", return_value=fake_proc) as popen:
            session = PlotSession.open("gnuplot-test", persist=True)
        self.assertTrue(session.is_alive())
        self.assertEqual(popen.call_args.args[0], ["gnuplot-test", "--persist"])
        self.assertIn("set encoding utf8\n", fake_proc.stdin.getvalue())

    def test_open_without_persist_omits_flag(self) -> None:
        fake_proc = mock.Mock()
        fake_proc.stdin = io.StringIO()
        with mock.patch("pipeplot.transport.subprocess.Popen", return_value=fake_proc) as popen:
            PlotSession.open("gnuplot", persist=False)
        self.assertEqual(popen.call_args.args[0], ["gnuplot"])

    def test_open_failure_yields_dead_session_without_raising(self) -> None:
        with mock.patch("pipeplot.transport.subprocess.Popen", side_effect=FileNotFoundError("no gnuplot")):
            session = PlotSession.open("missing-gnuplot")
        self.assertFalse(session.is_alive())
        self.assertIsInstance(session.last_error, PlotConnectionError)
        self.assertFalse(session.send("plot sin(x)"))
        self.assertFalse(session.set_title("t"))
        self.assertFalse(session.redirect_to_png("out.png"))

    def test_send_appends_command_and_reports_success(self) -> None:
        session, transport = _session()
        self.assertTrue(session.send("set grid"))
        self.assertEqual(transport.lines, ["set grid"])

    def test_stream_transport_flushes_each_command(self) -> None:
        stream = io.StringIO()
        session = PlotSession(StreamTransport(stream), config=SessionConfig(close_delay_s=0.0))
        session.send("set grid")
        self.assertTrue(stream.getvalue().endswith("set grid\n"))

    def test_write_failure_marks_session_dead(self) -> None:
        transport = BrokenTransport()
        session = PlotSession(transport)
        self.assertFalse(session.is_alive())
        self.assertIsInstance(session.last_error, PlotConnectionError)
        self.assertFalse(session.send("set grid"))

    def test_close_orders_stream_close_before_sleep_and_file_removal(self) -> None:
        events: list[str] = []
        transport = RecordingTransport(events)
        session = PlotSession(transport, config=SessionConfig(close_delay_s=0.25))
        path = session.temp_file(suffix=".dat")
        self.assertTrue(path.exists())

        original_unlink = Path.unlink

        def _unlink(p: Path, missing_ok: bool = False) -> None:
            events.append("unlink")
            original_unlink(p, missing_ok=missing_ok)

        with mock.patch("pipeplot.session.time.sleep", side_effect=lambda s: events.append(f"sleep:{s}")):
            with mock.patch.object(Path, "unlink", _unlink):
                session.close()

        self.assertEqual(events, ["close", "sleep:0.25", "unlink"])
        self.assertFalse(path.exists())
        self.assertFalse(session.is_alive())

    def test_close_after_process_exit_still_removes_temp_files(self) -> None:
        events: list[str] = []
        transport = RecordingTransport(events)
        session = PlotSession(transport, config=SessionConfig(close_delay_s=0.0, inline_data=False))
        session.redirect_to_animated_gif("anim.gif")
        session.plot([1, 2, 3])
        path = session.series[0].data_path
        assert path is not None
        self.assertTrue(path.exists())

        def _broken(text: str) -> None:
            raise BrokenPipeError("gnuplot exited")

        transport.write_line = _broken  # type: ignore[method-assign]
        with mock.patch("pipeplot.session.time.sleep"):
            session.close()

        self.assertFalse(path.exists())
        self.assertEqual(events, ["close"])
        self.assertFalse(session.is_alive())
        self.assertIsInstance(session.last_error, PlotConnectionError)

    def test_close_is_idempotent(self) -> None:
        session, transport = _session()
        with mock.patch("pipeplot.session.time.sleep") as sleep:
            session.close()
            session.close()
        self.assertEqual(sleep.call_count, 1)
        self.assertTrue(transport.closed)

    def test_context_manager_closes_on_error(self) -> None:
        transport = RecordingTransport()
        with self.assertRaises(RuntimeError):
            with PlotSession(transport, config=SessionConfig(close_delay_s=0.0)):
                raise RuntimeError("boom")
        self.assertTrue(transport.closed)


class PlotSessionCommandTests(unittest.TestCase):
    def test_output_targets(self) -> None:
        session, transport = _session()
        session.redirect_to_png("out.png")
        session.redirect_to_pdf("out.pdf")
        session.redirect_to_svg("out.svg", size="640,480")
        self.assertEqual(
            transport.lines,
            [
                "set terminal pngcairo color enhanced size 800,600\nset output 'out.png'",
                "set terminal pdfcairo color enhanced size 16cm,12cm\nset output 'out.pdf'",
                "set terminal svg enhanced mouse standalone size 640,480\nset output 'out.svg'",
            ],
        )

    def test_dumb_terminal_without_path_keeps_terminal_output(self) -> None:
        session, transport = _session()
        session.redirect_to_dumb(width=100, height=30, mode=TerminalMode.ANSI256)
        self.assertEqual(transport.lines, ["set terminal dumb size 100 30 ansi256"])

    def test_dumb_terminal_with_path_routes_output(self) -> None:
        session, transport = _session()
        session.redirect_to_dumb("plot.txt")
        self.assertEqual(transport.lines, ["set terminal dumb size 80 50 mono\nset output 'plot.txt'"])

    def test_bad_terminal_arguments_raise_contract_error(self) -> None:
        session, transport = _session()
        with self.assertRaisesRegex(PlotContractError, "width/height"):
            session.redirect_to_dumb(width=0)
        with self.assertRaisesRegex(PlotContractError, "width/height"):
            session.redirect_to_dumb(height=-5)
        with self.assertRaisesRegex(PlotContractError, "unknown dumb terminal mode"):
            session.redirect_to_dumb(mode="sepia")
        with self.assertRaisesRegex(PlotContractError, "delay_ms"):
            session.redirect_to_animated_gif("anim.gif", delay_ms=-1)
        self.assertEqual(transport.lines, [])
        self.assertTrue(session.is_alive())

    def test_labels_and_title_escape_quotes(self) -> None:
        session, transport = _session()
        session.set_xlabel("it's a test")
        session.set_label("Y", "y")
        session.set_title("Bob's plot")
        self.assertEqual(transport.lines, ["set xlabel 'it''s a test'", "set ylabel 'y'", "set title 'Bob''s plot'"])

    def test_label_rejects_z_axis(self) -> None:
        session, _ = _session()
        with self.assertRaises(PlotContractError):
            session.set_label("z", "depth")

    def test_logscale_modes(self) -> None:
        session, transport = _session()
        session.set_logscale(AxisScale.LOGX)
        session.set_logscale(AxisScale.LOGY)
        session.set_logscale("xy")
        session.set_logscale(AxisScale.LINEAR)
        self.assertEqual(
            transport.lines,
            ["set logscale x", "set logscale y", "set logscale xy", "unset logscale"],
        )

    def test_multiplot_layout(self) -> None:
        session, transport = _session()
        self.assertTrue(session.multiplot(2, 3, "Jo's grid"))
        self.assertEqual(transport.lines, ["set multiplot layout 2, 3 title 'Jo''s grid'"])
        with self.assertRaises(PlotContractError):
            session.multiplot(0, 1)

    def test_animated_gif_finalized_on_close(self) -> None:
        session, transport = _session()
        session.redirect_to_animated_gif("anim.gif", delay_ms=1000, loop=True)
        session.plot([1, 2, 3])
        session.render()
        session.close()
        self.assertEqual(
            transport.lines[0],
            "set terminal gif animate delay 100 loop 0 size 800,600\nset output 'anim.gif'",
        )
        self.assertEqual(transport.lines[-1], "set output")


class PlotSessionSeriesTests(unittest.TestCase):
    def test_render_emits_one_block_per_series_with_matching_rows(self) -> None:
        session, transport = _session()
        x = [1.0, 2.0, 3.0, 4.0]
        session.plot_xyerr(x, [2.0, 3.0, 4.0, 5.0], [0.1, 0.1, 0.2, 0.2], [0.5, 0.5, 0.5, 0.5], label="data")
        self.assertTrue(session.render())

        blocks = _datablocks(transport.lines[0])
        self.assertEqual(len(blocks), 1)
        self.assertEqual(len(blocks[0]), 4)
        for row in blocks[0]:
            self.assertEqual(len(row.split()), 4)
        self.assertTrue(transport.lines[0].startswith("set style fill solid 0.5\n$Datablock0 << EOD\n"))
        self.assertTrue(
            transport.lines[0].endswith("plot [] [] $Datablock0 using 1:2:3:4 with xyerrorbars title 'data'")
        )

    def test_y_only_plot_synthesizes_index_column(self) -> None:
        session, transport = _session()
        session.plot(np.asarray([5.0, 2.5]), style=LineStyle.POINTS)
        session.render()
        self.assertEqual(_datablocks(transport.lines[0]), [["0 5.0", "1 2.5"]])
        self.assertIn("using 1:2 with points title ''", transport.lines[0])

    def test_variant_table_column_descriptors_and_styles(self) -> None:
        cases = [
            ("plot_xerr", (3,), "1:2:3", "xerrorbars"),
            ("plot_yerr", (3,), "1:2:3", "yerrorbars"),
            ("plot_vectors", (4,), "1:2:3:4", "vectors"),
            ("plot3d", (3,), "1:2:3", "lines"),
            ("plot_vectors3d", (6,), "1:2:3:4:5:6", "vectors"),
        ]
        for method, (arity,), columns, style in cases:
            with self.subTest(method=method):
                session, transport = _session()
                getattr(session, method)(*([[1, 2]] * arity))
                session.render()
                self.assertIn(f"using {columns} with {style}", transport.lines[0])

    def test_mismatched_lengths_rejected_for_every_variant(self) -> None:
        cases = {
            "plot_xy": 2,
            "plot_xerr": 3,
            "plot_yerr": 3,
            "plot_xyerr": 4,
            "plot_vectors": 4,
            "plot3d": 3,
            "plot_vectors3d": 6,
        }
        for method, arity in cases.items():
            for short in range(1, arity):
                with self.subTest(method=method, short_column=short):
                    session, _ = _session()
                    args = [[1.0, 2.0, 3.0] for _ in range(arity)]
                    args[short] = [1.0, 2.0]
                    with self.assertRaises(PlotContractError):
                        getattr(session, method)(*args)
                    self.assertEqual(session.series, ())

    def test_empty_primary_sequence_is_ignored(self) -> None:
        session, transport = _session()
        session.plot([])
        session.plot_xerr([], [1.0], [1.0])
        session.histogram([], 3)
        self.assertEqual(session.series, ())
        self.assertTrue(session.render())
        self.assertEqual(transport.lines, [])

    def test_non_numeric_input_rejected(self) -> None:
        session, _ = _session()
        with self.assertRaises(PlotContractError):
            session.plot(["a", "b"])
        with self.assertRaises(PlotContractError):
            session.plot("abc")

    def test_mixing_3d_after_2d_is_rejected(self) -> None:
        session, _ = _session()
        session.plot3d([1, 2], [1, 2], [1, 2])
        with self.assertRaises(PlotContractError):
            session.plot([1, 2])
        with self.assertRaises(PlotContractError):
            session.histogram([1, 2, 3], 2)
        self.assertEqual(len(session.series), 1)

    def test_mode_is_free_again_after_reset(self) -> None:
        session, _ = _session()
        session.plot([1, 2])
        with self.assertRaises(PlotContractError):
            session.plot3d([1], [1], [1])
        session.reset()
        session.plot3d([1], [1], [1])
        self.assertTrue(session.is_3d)

    def test_splot_includes_z_range(self) -> None:
        session, transport = _session()
        session.set_zrange(0, 1)
        session.plot3d([1, 2], [3, 4], [5, 6], label="surface")
        session.render()
        self.assertIn("splot [] [] [0:1] $Datablock0 using 1:2:3 with lines title 'surface'", transport.lines[0])

    def test_composite_command_joins_series(self) -> None:
        session, transport = _session()
        session.set_xrange(0, 6)
        session.set_yrange(None, 10.5)
        session.plot([1, 2], label="a")
        session.plot([3, 4], label="it's b", style="steps")
        session.render()
        last_line = transport.lines[0].split("\n")[-1]
        self.assertEqual(
            last_line,
            "plot [0:6] [*:10.5] $Datablock0 using 1:2 with lines title 'a', "
            "$Datablock1 using 1:2 with steps title 'it''s b'",
        )
        self.assertEqual(len(_datablocks(transport.lines[0])), 2)

    def test_render_without_series_sends_nothing(self) -> None:
        session, transport = _session()
        self.assertTrue(session.render())
        self.assertEqual(transport.lines, [])

    def test_render_reset_clears_series_and_xy_ranges_but_keeps_z(self) -> None:
        session, transport = _session()
        session.set_xrange(0, 1)
        session.set_yrange(2, 3)
        session.set_zrange(4, 5)
        session.plot([1, 2, 3])
        self.assertTrue(session.render(reset=True))
        self.assertEqual(session.series, ())
        self.assertEqual(session.get_range("x").to_command(), "[]")
        self.assertEqual(session.get_range("y").to_command(), "[]")
        self.assertEqual(session.get_range("z").to_command(), "[4:5]")
        self.assertTrue(session.render())
        self.assertEqual(len(transport.lines), 1)

    def test_render_without_reset_keeps_series(self) -> None:
        session, transport = _session()
        session.plot([1, 2, 3])
        session.render(reset=False)
        session.render(reset=False)
        self.assertEqual(len(session.series), 1)
        self.assertEqual(transport.lines[0], transport.lines[1])

    def test_render_on_dead_session_fails_and_keeps_series(self) -> None:
        session = PlotSession(None)
        session.plot([1, 2, 3])
        self.assertFalse(session.render())
        self.assertEqual(len(session.series), 1)

    def test_histogram_series(self) -> None:
        session, transport = _session()
        session.histogram([1, 2, 3, 4, 5], 2, label="h")
        session.render()
        self.assertEqual(_datablocks(transport.lines[0]), [["2.0 2", "4.0 3"]])
        self.assertIn("using 1:2 with boxes title 'h'", transport.lines[0])

    def test_histogram_rejects_bad_bin_counts(self) -> None:
        session, _ = _session()
        for bins in (0, -1, 2.5, True):
            with self.subTest(bins=bins):
                with self.assertRaises(PlotContractError):
                    session.histogram([1, 2, 3], bins)  # type: ignore[arg-type]

    def test_inline_data_disabled_uses_temp_files(self) -> None:
        session, transport = _session(SessionConfig(close_delay_s=0.0, inline_data=False))
        session.plot_xy([1, 2], [3, 4], label="f")
        path = session.series[0].data_path
        assert path is not None
        self.assertEqual(path.read_text(encoding="utf-8"), "1 3\n2 4\n")
        session.render()
        self.assertNotIn("$Datablock", transport.lines[0])
        self.assertIn(f"'{path}' using 1:2 with lines title 'f'", transport.lines[0])
        with mock.patch("pipeplot.session.time.sleep"):
            session.close()
        self.assertFalse(path.exists())


class PlotSessionPointTests(unittest.TestCase):
    def test_add_point_accumulates_across_renders(self) -> None:
        session, transport = _session()
        session.add_point(1, 5)
        session.plot_points()
        session.render()
        session.add_point(2, 2)
        session.plot_points(label="pts")
        session.render()
        self.assertEqual(session.num_points(), 2)
        self.assertEqual(_datablocks(transport.lines[1]), [["1.0 5.0", "2.0 2.0"]])

    def test_y_only_points_use_position_as_x(self) -> None:
        session, _ = _session()
        session.add_point(7.0)
        session.add_point(8.0)
        self.assertEqual(session.points(), ([0.0, 1.0], [7.0, 8.0]))
        session.clear_points()
        self.assertEqual(session.num_points(), 0)
        session.plot_points()
        self.assertEqual(session.series, ())


if __name__ == "__main__":
    unittest.main()
