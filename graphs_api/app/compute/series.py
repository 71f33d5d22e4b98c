from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

import polars as pl

from ..errors import InvalidState
from ..schemas import Column

_DTYPES = {
    "date": pl.Date,
    "string": pl.Utf8,
    "number": pl.Float64,
    "percent": pl.Float64,
}


def _to_float(value: Any, column: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidState(f"Non-numeric value {value!r} in column '{column}'") from exc


def _to_cell(value: Any, column: Column) -> Any:
    if column.is_numeric:
        return _to_float(value, column.key)
    if column.type == "date" and isinstance(value, datetime):
        return value.date()
    if column.type == "date" and isinstance(value, str):
        return date.fromisoformat(value)
    return value


@dataclass(frozen=True)
class Series:
    """Fixed-schema table of graph rows.

    The first column is the key column (the date for time series). ``columns``
    describes the frame's columns one to one and in order; every transform
    returns a new Series instead of mutating this one.
    """

    frame: pl.DataFrame
    columns: tuple[Column, ...]
    key: str = "Date"
    last_updated: Optional[datetime] = None
    h1: Optional[str] = None
    h2: Optional[str] = None
    no_header: Optional[bool] = None

    def __post_init__(self) -> None:
        expected = [column.key for column in self.columns]
        if self.frame.columns != expected:
            raise InvalidState(f"Series columns {self.frame.columns} do not match descriptors {expected}")

    @classmethod
    def from_rows(
        cls,
        rows: Iterable[Mapping[str, Any]],
        columns: Sequence[Column],
        **meta: Any,
    ) -> "Series":
        """Build a Series from row mappings, coercing numeric cells to floats."""

        rows = list(rows)
        frame = pl.DataFrame(
            [
                pl.Series(
                    column.key,
                    [_to_cell(row.get(column.key), column) for row in rows],
                    dtype=_DTYPES[column.type],
                )
                for column in columns
            ]
        )
        return cls(frame=frame, columns=tuple(columns), **meta)

    @property
    def key_column(self) -> Column:
        return self.columns[0]

    @property
    def value_columns(self) -> list[Column]:
        """Numeric columns other than the key column."""
        return [column for column in self.columns[1:] if column.is_numeric]

    @property
    def height(self) -> int:
        return self.frame.height

    def is_empty(self) -> bool:
        return self.frame.is_empty()

    def with_frame(self, frame: pl.DataFrame, columns: Optional[Sequence[Column]] = None) -> "Series":
        return replace(self, frame=frame, columns=tuple(columns) if columns is not None else self.columns)

    def values(self, key: str) -> list:
        return self.frame.get_column(key).to_list()

    def positional_rows(self) -> list[list[Any]]:
        """Rows as arrays in column order, with dates rendered as ISO strings."""

        rows: list[list[Any]] = []
        for row in self.frame.iter_rows():
            rows.append([cell.isoformat() if isinstance(cell, date) else cell for cell in row])
        return rows


__all__ = ["Series"]
