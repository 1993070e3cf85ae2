from __future__ import annotations

from enum import Enum

from pipeplot.errors import PlotContractError
from pipeplot.formatting import quoted


class TerminalMode(str, Enum):
    MONO = "mono"
    ANSI = "ansi"
    ANSI256 = "ansi256"
    ANSIRGB = "ansirgb"


def output_command(path: str) -> str:
    return f"set output {quoted(path)}"


def png_commands(path: str, size: str = "800,600") -> str:
    return f"set terminal pngcairo color enhanced size {size}\n{output_command(path)}"


def pdf_commands(path: str, size: str = "16cm,12cm") -> str:
    return f"set terminal pdfcairo color enhanced size {size}\n{output_command(path)}"


def svg_commands(path: str, size: str = "800,600") -> str:
    return f"set terminal svg enhanced mouse standalone size {size}\n{output_command(path)}"


def dumb_commands(
    path: str = "",
    width: int = 80,
    height: int = 50,
    mode: TerminalMode | str = TerminalMode.MONO,
) -> str:
    if width <= 0 or height <= 0:
        raise PlotContractError("dumb terminal width/height must be > 0")
    try:
        term_mode = TerminalMode(mode)
    except ValueError as exc:
        raise PlotContractError(f"unknown dumb terminal mode: {mode!r}") from exc
    lines = [f"set terminal dumb size {int(width)} {int(height)} {term_mode.value}"]
    if path:
        lines.append(output_command(path))
    return "\n".join(lines)


def animated_gif_commands(
    path: str,
    size: str = "800,600",
    delay_ms: int = 50,
    loop: bool = True,
) -> str:
    if delay_ms < 0:
        raise PlotContractError("delay_ms must be >= 0")
    # gif delays are expressed in hundredths of a second
    delay = int(delay_ms) // 10
    loop_count = 0 if loop else 1
    return f"set terminal gif animate delay {delay} loop {loop_count} size {size}\n{output_command(path)}"
