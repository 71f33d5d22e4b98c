from __future__ import annotations

from datetime import date, timedelta

import polars as pl

from ..errors import InvalidState
from .series import Series


def window_start(today: date, days: int) -> date:
    return today - timedelta(days=days)


def trim_to_window(series: Series, days: int, today: date) -> Series:
    """Drop rows dated before ``today - days``; row order is preserved."""

    key = series.key_column
    if key.type != "date":
        raise InvalidState(f"Cannot trim series keyed by non-date column '{key.key}'")
    if series.is_empty():
        return series
    cutoff = window_start(today, days)
    return series.with_frame(series.frame.filter(pl.col(key.key) >= cutoff))
