from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Sequence

import numpy as np


MISSING_VALUE = "NaN"
DATABLOCK_END = "EOD"


def escape_quotes(text: str) -> str:
    """Double every single quote so ``text`` survives inside a '...' argument."""
    return text.replace("'", "''")


def quoted(text: str) -> str:
    return f"'{escape_quotes(text)}'"


def format_number(value: object) -> str:
    """Shortest round-trippable text for a number; non-finite values become NaN."""
    if isinstance(value, (bool, np.bool_)):
        return "1" if value else "0"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    fvalue = float(value)  # type: ignore[arg-type]
    if not math.isfinite(fvalue):
        return MISSING_VALUE
    out = repr(fvalue)
    if out == "-0.0":
        out = "0.0"
    return out


def format_bound(value: float | None) -> str:
    if _is_automatic(value):
        return "*"
    return format_number(value)


@dataclass(frozen=True)
class AxisRange:
    low: float | None = None
    high: float | None = None

    @property
    def is_automatic(self) -> bool:
        return _is_automatic(self.low) and _is_automatic(self.high)

    def to_command(self) -> str:
        if self.is_automatic:
            return "[]"
        return f"[{format_bound(self.low)}:{format_bound(self.high)}]"


def format_rows(columns: Sequence[np.ndarray]) -> list[str]:
    if not columns:
        return []
    cells = [[format_number(v) for v in col.tolist()] for col in columns]
    return [" ".join(row) for row in zip(*cells, strict=True)]


def datablock(name: str, rows: Sequence[str]) -> str:
    lines = [f"${name} << {DATABLOCK_END}", *rows, DATABLOCK_END]
    return "\n".join(lines)


def column_descriptor(count: int) -> str:
    if count <= 0:
        raise ValueError("column count must be > 0")
    return ":".join(str(i) for i in range(1, count + 1))


def _is_automatic(value: float | None) -> bool:
    if value is None:
        return True
    try:
        return math.isnan(float(value))
    except (TypeError, ValueError):
        return False
