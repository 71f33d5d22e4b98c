from __future__ import annotations

import polars as pl

from ..constants import BOLLINGER_STD_DEVIATIONS, TechnicalType
from ..errors import InvalidArgument
from ..schemas import Column, TechnicalSpec
from .series import Series


def _technical_columns(base: Column, spec: TechnicalSpec) -> list[tuple[Column, pl.Expr]]:
    period = spec.period
    source = pl.col(base.key)

    if spec.type == TechnicalType.SMA:
        return [
            (
                Column(key=f"{base.key}_sma_{period}", title=f"{base.title} SMA ({period})", technical=True),
                source.rolling_mean(window_size=period),
            )
        ]

    if spec.type == TechnicalType.EMA:
        return [
            (
                Column(key=f"{base.key}_ema_{period}", title=f"{base.title} EMA ({period})", technical=True),
                source.ewm_mean(span=period, adjust=False),
            )
        ]

    mean = source.rolling_mean(window_size=period)
    spread = source.rolling_std(window_size=period) * BOLLINGER_STD_DEVIATIONS
    return [
        (
            Column(key=f"{base.key}_bollinger_upper_{period}", title=f"{base.title} Bollinger upper ({period})", technical=True),
            mean + spread,
        ),
        (
            Column(key=f"{base.key}_bollinger_lower_{period}", title=f"{base.title} Bollinger lower ({period})", technical=True),
            mean - spread,
        ),
    ]


def apply_technicals(series: Series, spec: TechnicalSpec) -> Series:
    """Append indicator columns computed over every non-technical numeric column.

    Rows before the first complete lookback window carry nulls; callers trim
    them away afterwards with the requested day window.
    """

    if spec.period <= 0:
        raise InvalidArgument(f"Technical period must be positive, got {spec.period}")
    if spec.period > series.height:
        raise InvalidArgument(
            f"Technical period {spec.period} exceeds the {series.height} rows available"
        )

    columns = list(series.columns)
    exprs: list[pl.Expr] = []
    for base in [column for column in series.value_columns if not column.technical]:
        for column, expr in _technical_columns(base, spec):
            columns.append(column)
            exprs.append(expr.alias(column.key))

    if not exprs:
        return series
    return series.with_frame(series.frame.with_columns(exprs), columns)
