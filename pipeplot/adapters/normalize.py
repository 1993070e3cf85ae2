from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import numpy as np

from pipeplot.errors import PlotContractError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def coerce_column(value: Any, *, label: str) -> np.ndarray:
    """Return ``value`` as a 1-D numpy column.

    Integer and boolean inputs keep an integer dtype so they are written
    without a fractional part; everything else becomes float64.
    """
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise PlotContractError(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        if tensor.is_floating_point():
            return tensor.to(torch.float64).numpy()
        return tensor.to(torch.int64).numpy()

    if pd is not None and isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise PlotContractError(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return _coerce_ndarray(np.asarray(value, dtype=object), label=label)

    raise PlotContractError(f"unsupported {label} input type: {type(value)!r}")


def build_rows(columns: Sequence[tuple[str, Any]]) -> list[np.ndarray]:
    """Coerce named columns and check that they all share the first column's length.

    Returns an empty list when the first (primary) column is empty.
    """
    if not columns:
        raise PlotContractError("at least one column is required")
    arrays = [coerce_column(value, label=name) for name, value in columns]
    primary_name = columns[0][0]
    primary = arrays[0]
    if primary.size == 0:
        return []
    for (name, _), arr in zip(columns[1:], arrays[1:], strict=True):
        if arr.shape != primary.shape:
            raise PlotContractError(f"{primary_name} and {name} length mismatch: {primary.size} != {arr.size}")
    return arrays


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.ndim != 1:
        raise PlotContractError(f"{label} must be 1-D")
    if arr.dtype.kind in {"i", "u"}:
        return arr.astype(np.int64, copy=False)
    if arr.dtype.kind == "b":
        return arr.astype(np.int64)
    if arr.dtype.kind == "f":
        return arr.astype(np.float64, copy=False)

    items = arr.tolist()
    if items and all(isinstance(raw, (int, np.integer)) for raw in items):
        return np.asarray(items, dtype=np.int64)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(items):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        if isinstance(raw, (str, bytes)):
            raise PlotContractError(f"{label} contains non-numeric value at index {i}: {raw!r}")
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise PlotContractError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out
