"""Graph request constants and enumerations."""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet


class DeltaMode(str, Enum):
    NONE = "none"
    ABSOLUTE = "absolute"
    PERCENT = "percent"


class TechnicalType(str, Enum):
    SMA = "sma"
    EMA = "ema"
    BOLLINGER = "bollinger"


class ChartType(str, Enum):
    LINE = "line"
    PIECHART = "piechart"
    NODATA = "nodata"


DEFAULT_DAYS = 45

# "max" is accepted for any renderer that uses days, whether or not it is permitted.
MAX_DAYS = 366

DEFAULT_PERMITTED_DAYS: FrozenSet[int] = frozenset({7, 30, 45, 90, 180, 365})

# Extra history fetched by renderers that support technicals, discarded after computation.
TECHNICAL_LOOKBACK_DAYS = 30

DEFAULT_CACHE_TTL_SECONDS = 60

# Cache keys must stay stable across deployments.
REQUEST_HASH_SEPARATOR = ","
REQUEST_HASH_LENGTH = 32

BOLLINGER_STD_DEVIATIONS = 2.0
