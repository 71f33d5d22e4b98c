"""Built-in renderers backed by a :class:`HistorySource`."""

from __future__ import annotations

from datetime import date, timedelta
from functools import partial
from typing import Callable, Dict, Optional

from ..constants import TECHNICAL_LOOKBACK_DAYS, ChartType
from ..compute.series import Series
from ..errors import InvalidArgument
from ..schemas import Column
from ..services.history import HistorySource
from .base import DataRenderer, NoData, NoDataKind, RendererCapabilities, RendererOutput
from .registry import RendererRegistry

Today = Callable[[], date]

DATE_COLUMN = Column(key="date", title="Date", type="date")


class HistoryRenderer(DataRenderer):
    def __init__(
        self,
        history: HistorySource,
        today: Today,
        arg0: Optional[str] = None,
        arg0_resolved: Optional[str] = None,
    ) -> None:
        super().__init__(arg0, arg0_resolved)
        self.history = history
        self.today = today

    def since(self, days: int) -> date:
        # Technicals need history from before the requested window.
        lookback = TECHNICAL_LOOKBACK_DAYS if self.capabilities.can_have_technicals else 0
        return self.today() - timedelta(days=days + lookback)

    def require_arg0(self) -> str:
        if not self.arg0:
            raise InvalidArgument(f"Graph '{type(self).__name__}' requires arg0")
        return self.arg0


class ExchangeTickerRenderer(HistoryRenderer):
    """Bid/ask history for an exchange (``arg0``) and currency pair (``arg0_resolved``)."""

    capabilities = RendererCapabilities(uses_days=True, can_have_technicals=True, has_subheading=True)

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._latest_bid: Optional[float] = None

    def _pair(self) -> str:
        if not self.arg0_resolved:
            raise InvalidArgument("Ticker graphs require a resolved currency pair")
        return self.arg0_resolved

    def get_data(self, days: int) -> RendererOutput:
        history = self.history.exchange_rates(self.require_arg0(), self._pair(), self.since(days))
        series = Series.from_rows(
            history.rows,
            [DATE_COLUMN, Column(key="bid", title="Bid"), Column(key="ask", title="Ask")],
            last_updated=history.last_updated,
        )
        bids = [bid for bid in series.values("bid") if bid is not None]
        self._latest_bid = bids[-1] if bids else None
        return series

    def get_title(self) -> str:
        return ":exchange :pair"

    def get_title_args(self) -> Dict[str, str]:
        return {":exchange": self.arg0 or "", ":pair": (self.arg0_resolved or "").upper()}

    def get_url(self) -> Optional[str]:
        return f"/historical?exchange={self.arg0}&pair={self.arg0_resolved}"

    def get_label(self) -> str:
        return "Exchange rates"

    def get_classes(self) -> str:
        return "exchange_ticker"

    def get_custom_subheading(self) -> Optional[float]:
        return self._latest_bid


class BalanceHistoryRenderer(HistoryRenderer):
    """Summarised balance history for one of the bound user's currencies (``arg0``)."""

    capabilities = RendererCapabilities(
        requires_user=True,
        uses_days=True,
        can_have_technicals=True,
        has_subheading=True,
        uses_summaries=True,
    )

    def get_data(self, days: int) -> RendererOutput:
        user_id = self.require_user()
        currency = self.require_arg0()
        if not self.history.user_has_accounts(user_id):
            return NoData(NoDataKind.MISSING_ACCOUNTS)
        if currency not in self.history.user_currencies(user_id):
            return NoData(NoDataKind.MISSING_CURRENCIES)

        history = self.history.balance_history(user_id, currency, self.since(days))
        if not history.rows:
            return NoData(NoDataKind.MISSING_CURRENCIES)
        return Series.from_rows(
            history.rows,
            [DATE_COLUMN, Column(key="balance", title=currency.upper())],
            last_updated=history.last_updated,
        )

    def get_title(self) -> str:
        return "Total :currency balance"

    def get_title_args(self) -> Dict[str, str]:
        return {":currency": (self.arg0 or "").upper()}

    def get_classes(self) -> str:
        return "balances"


class CompositionPieRenderer(HistoryRenderer):
    """Latest holdings of the bound user, converted into ``arg0``, split by source currency."""

    capabilities = RendererCapabilities(
        requires_user=True,
        has_subheading=True,
        uses_summaries=True,
        chart_type=ChartType.PIECHART,
    )

    def get_data(self, days: int) -> RendererOutput:
        user_id = self.require_user()
        currency = self.require_arg0()
        if not self.history.user_has_accounts(user_id):
            return NoData(NoDataKind.MISSING_ACCOUNTS)

        history = self.history.composition(user_id, currency)
        if not history.rows:
            return NoData(NoDataKind.MISSING_CURRENCIES)
        sources = sorted(key for key in history.rows[0] if key != "date")
        columns = [DATE_COLUMN] + [Column(key=source, title=source.upper()) for source in sources]
        return Series.from_rows(history.rows, columns, key="Currency", last_updated=history.last_updated)

    def get_title(self) -> str:
        return "Composition of :currency"

    def get_title_args(self) -> Dict[str, str]:
        return {":currency": (self.arg0 or "").upper()}

    def get_classes(self) -> str:
        return "composition"


class SiteStatisticsRenderer(HistoryRenderer):
    capabilities = RendererCapabilities(
        requires_user=True,
        requires_admin=True,
        uses_days=True,
        can_have_technicals=True,
    )

    def get_data(self, days: int) -> RendererOutput:
        history = self.history.site_statistics(self.since(days))
        return Series.from_rows(
            history.rows,
            [DATE_COLUMN, Column(key="users", title="Users"), Column(key="jobs", title="Jobs")],
            last_updated=history.last_updated,
        )

    def get_title(self) -> str:
        return "Site statistics"

    def get_classes(self) -> str:
        return "admin"


BUILTIN_RENDERERS = {
    "ticker": ExchangeTickerRenderer,
    "balances": BalanceHistoryRenderer,
    "composition_pie": CompositionPieRenderer,
    "statistics_users": SiteStatisticsRenderer,
}


def build_default_registry(history: HistorySource, today: Today) -> RendererRegistry:
    registry = RendererRegistry()
    for graph_type, renderer_cls in BUILTIN_RENDERERS.items():
        registry.register(graph_type, partial(renderer_cls, history, today))
    return registry
