from __future__ import annotations

import polars as pl

from ..constants import DeltaMode
from .series import Series


def _delta_expr(key: str, mode: DeltaMode) -> pl.Expr:
    current = pl.col(key)
    previous = pl.col(key).shift(1)
    if mode == DeltaMode.ABSOLUTE:
        return current - previous
    # A zero previous value has no meaningful percentage change; report no change.
    return pl.when(previous == 0).then(pl.lit(0.0)).otherwise((current - previous) / previous * 100)


def apply_deltas(series: Series, mode: DeltaMode, ignore_first_row: bool = False) -> Series:
    """Replace absolute values with period-over-period changes.

    The first row has no predecessor: it is dropped, or kept with zeroed values
    when ``ignore_first_row`` is set. Column descriptors are left untouched.
    """

    if mode == DeltaMode.NONE or series.is_empty():
        return series

    exprs = []
    for column in series.value_columns:
        expr = _delta_expr(column.key, mode)
        if ignore_first_row:
            expr = pl.when(pl.int_range(pl.len()) == 0).then(pl.lit(0.0)).otherwise(expr)
        exprs.append(expr.alias(column.key))

    frame = series.frame.with_columns(exprs) if exprs else series.frame
    if not ignore_first_row:
        frame = frame.slice(1)
    return series.with_frame(frame)
