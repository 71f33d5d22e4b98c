"""Summary values and display strings derived from finished series."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional

from ..errors import InvalidState
from .series import Series


def format_number(value: float, precision: int = 4, suffix: str = "") -> str:
    """Format a number with thousands separators and at most ``precision`` decimals.

    Trailing zeros are stripped, so ``10.0`` renders as ``10``.
    """

    rounded = round(float(value), precision)
    if rounded == int(rounded):
        text = f"{int(rounded):,}"
    else:
        text = f"{rounded:,.{precision}f}".rstrip("0").rstrip(".")
    return text + suffix


def round_autoprecision(value: float, min_precision: int = 1) -> float:
    """Round to ``min_precision`` decimals, keeping two significant digits for small values."""

    if value == 0 or not math.isfinite(value):
        return float(value)
    magnitude = math.floor(math.log10(abs(value)))
    return round(value, max(min_precision, 1 - magnitude))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def recent_format(when: Optional[datetime], now: datetime) -> str:
    if when is None:
        return "never"
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    seconds = int((now - when).total_seconds())
    if seconds < 0:
        return "in the future"
    if seconds < 60:
        return "less than a minute ago"
    if seconds < 3600:
        return _plural(seconds // 60, "minute") + " ago"
    if seconds < 86400:
        return _plural(seconds // 3600, "hour") + " ago"
    return _plural(seconds // 86400, "day") + " ago"


def _numeric_cells(row: dict, series: Series, include_technical: bool) -> list[float]:
    cells = []
    for column in series.value_columns:
        if column.technical and not include_technical:
            continue
        value = row.get(column.key)
        if value is not None:
            cells.append(float(value))
    return cells


def piechart_total(series: Series) -> float:
    """Sum every numeric cell of a single-row piechart series."""

    if series.height != 1:
        raise InvalidState(f"Expected one row of data for a piechart, got {series.height}")
    row = series.frame.row(0, named=True)
    return sum(_numeric_cells(row, series, include_technical=True))


def format_subheading(series: Series, now: datetime, suffix: str = "") -> str:
    """Summarise the latest row: the sum of its base values.

    Series without numeric base columns fall back to their last-updated phrase.
    """

    if series.is_empty():
        return recent_format(series.last_updated, now)
    row = series.frame.row(series.height - 1, named=True)
    cells = _numeric_cells(row, series, include_technical=False)
    if not cells:
        return recent_format(series.last_updated, now)
    return format_number(sum(cells), 4, suffix)
