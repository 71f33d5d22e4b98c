from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, Optional, Union

from ..constants import ChartType
from ..compute.series import Series
from ..errors import InvalidState


class NoDataKind(str, Enum):
    MISSING_ACCOUNTS = "missing_accounts_or_addresses"
    MISSING_CURRENCIES = "missing_currency_configuration"


@dataclass(frozen=True)
class NoData:
    """Returned by a renderer when its source has nothing to show yet."""

    kind: NoDataKind


RendererOutput = Union[Series, NoData]


@dataclass(frozen=True)
class RendererCapabilities:
    requires_user: bool = False
    requires_admin: bool = False
    uses_days: bool = False
    can_have_technicals: bool = False
    has_subheading: bool = False
    uses_summaries: bool = False
    chart_type: ChartType = ChartType.LINE


class DataRenderer(ABC):
    """Data source for one graph type.

    Subclasses declare what they need through ``capabilities`` so the pipeline
    can gate and transform their output without probing methods.
    """

    capabilities: ClassVar[RendererCapabilities] = RendererCapabilities()

    def __init__(self, arg0: Optional[str] = None, arg0_resolved: Optional[str] = None) -> None:
        self.arg0 = arg0
        self.arg0_resolved = arg0_resolved
        self._user_id: Optional[int] = None

    # ---------- user binding ----------
    def set_user(self, user_id: int) -> None:
        self._user_id = user_id

    def get_user(self) -> Optional[int]:
        return self._user_id

    def require_user(self) -> int:
        if self._user_id is None:
            raise InvalidState(f"{type(self).__name__} requires a bound user before fetching data")
        return self._user_id

    # ---------- data ----------
    @abstractmethod
    def get_data(self, days: int) -> RendererOutput:
        ...

    # ---------- metadata ----------
    @abstractmethod
    def get_title(self) -> str:
        ...

    def get_title_args(self) -> Dict[str, str]:
        return {}

    def get_url(self) -> Optional[str]:
        return None

    def get_label(self) -> str:
        return self.get_title()

    def get_classes(self) -> str:
        return ""

    def get_chart_type(self) -> ChartType:
        return self.capabilities.chart_type

    def get_custom_subheading(self) -> Optional[float]:
        """A renderer-supplied subheading value, or None to compute one from the series."""
        return None
