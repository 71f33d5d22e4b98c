"""Series transforms applied between a renderer and the response envelope."""

from .deltas import apply_deltas
from .series import Series
from .subheading import format_number, format_subheading, piechart_total, recent_format, round_autoprecision
from .technicals import apply_technicals
from .trimming import trim_to_window

__all__ = [
    "Series",
    "apply_deltas",
    "apply_technicals",
    "format_number",
    "format_subheading",
    "piechart_total",
    "recent_format",
    "round_autoprecision",
    "trim_to_window",
]
