from pipeplot.adapters.normalize import build_rows, coerce_column

__all__ = ["build_rows", "coerce_column"]
