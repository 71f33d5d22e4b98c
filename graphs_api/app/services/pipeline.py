"""Graph rendering pipeline.

Rendering a graph goes like this:

0. check permissions for the requested renderer
1. get raw data from the renderer
2. apply deltas
3. add technicals
4. discard rows outside the requested day window (extra lookback rows)
5. build heading, subheading and call-to-action
6. stamp timing and serialize

Deltas and technicals are computed here, server-side, so cached results are
complete.
"""

from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from ..compute import (
    Series,
    apply_deltas,
    apply_technicals,
    format_number,
    format_subheading,
    piechart_total,
    recent_format,
    round_autoprecision,
    trim_to_window,
)
from ..config import GraphSettings
from ..constants import MAX_DAYS, ChartType, DeltaMode
from ..errors import AuthError, InvalidArgument
from ..renderers.base import DataRenderer, NoData, NoDataKind
from ..renderers.registry import RendererRegistry
from ..schemas import ExtraLink, GraphRequest, GraphResult, Heading
from .cache import CacheStore, graph_namespace, request_hash
from .users import User, UserDirectory

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Display strings are translated client-side; ``:site_name`` is filled from ``args``.
EMPTY_SERIES_TEXT = "There is no data available for this graph yet."
NO_DATA_TEXT: Dict[NoDataKind, str] = {
    NoDataKind.MISSING_ACCOUNTS: (
        "Either you have not specified any accounts or addresses, or these addresses "
        "and accounts have not yet been updated by :site_name."
    ),
    NoDataKind.MISSING_CURRENCIES: (
        "Either you have not enabled this currency, or your summaries for this currency "
        "have not yet been updated by :site_name."
    ),
}


@dataclass
class _Outcome:
    chart_type: str
    series: Optional[Series] = None
    no_data: Optional[NoDataKind] = None
    text: Optional[str] = None
    original_count: Optional[int] = None
    discarded: Optional[int] = None


class GraphPipeline:
    def __init__(
        self,
        settings: GraphSettings,
        registry: RendererRegistry,
        users: UserDirectory,
        cache: CacheStore,
        clock: Clock = utc_now,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.users = users
        self.cache = cache
        self.clock = clock

    # ---------------- cached entry point ----------------
    def ttl_for(self, request: GraphRequest) -> int:
        return 0 if request.no_cache else self.settings.cache_ttl_seconds

    def render_cached(self, request: GraphRequest) -> str:
        """Serialized result for ``request``, served from cache within the TTL."""

        return self.cache.get_or_compute(
            graph_namespace(request.graph_type),
            request_hash(request),
            self.ttl_for(request),
            lambda: self.render(request).to_json(),
        )

    # ---------------- permission checks ----------------
    def _authorise(self, renderer: DataRenderer, request: GraphRequest) -> User:
        if not request.user_id:
            raise AuthError("No user specified for authenticated graph")
        if not request.user_hash:
            raise AuthError("No user hash specified for authenticated graph")

        user = self.users.lookup_user(request.user_id)
        if user is None:
            raise AuthError("No such user found")
        expected = self.users.compute_user_hash(user)
        if not hmac.compare_digest(request.user_hash.encode(), expected.encode()):
            raise AuthError("Mismatched user hash")
        if renderer.capabilities.requires_admin and not user.is_admin:
            raise AuthError("Graph requires administrator privileges")

        renderer.set_user(user.id)
        return user

    def _check_days(self, days: int) -> None:
        if days not in self.settings.permitted_days and days != MAX_DAYS:
            raise InvalidArgument(f"Invalid days '{days}' for graph that requires days")

    # ---------------- data stages ----------------
    def _compute(self, renderer: DataRenderer, request: GraphRequest) -> _Outcome:
        caps = renderer.capabilities
        output = renderer.get_data(request.days)
        if isinstance(output, NoData):
            return _Outcome(
                chart_type=ChartType.NODATA.value,
                no_data=output.kind,
                text=NO_DATA_TEXT[output.kind],
            )

        outcome = _Outcome(chart_type=renderer.get_chart_type().value, original_count=output.height)
        series = apply_deltas(output, request.delta, ignore_first_row=False)

        if series.is_empty():
            outcome.chart_type = ChartType.NODATA.value
            outcome.text = EMPTY_SERIES_TEXT
        elif caps.can_have_technicals and request.technical is not None:
            series = apply_technicals(series, request.technical)

        if caps.uses_days:
            series = trim_to_window(series, request.days, self.clock().date())
            outcome.discarded = outcome.original_count - series.height

        outcome.series = series
        return outcome

    def _subheading(self, renderer: DataRenderer, series: Series, request: GraphRequest, now: datetime) -> str:
        suffix = "%" if request.delta == DeltaMode.PERCENT else ""
        # Custom values describe the raw data, not the delta rows.
        custom = renderer.get_custom_subheading() if request.delta == DeltaMode.NONE else None
        if custom is not None:
            return format_number(custom, 4)
        if renderer.get_chart_type() == ChartType.PIECHART:
            return format_number(piechart_total(series), 4, suffix)
        return format_subheading(series, now, suffix)

    def _extra(self, kind: Optional[NoDataKind]) -> Optional[ExtraLink]:
        if kind == NoDataKind.MISSING_CURRENCIES:
            return ExtraLink(classes="add_accounts", href=self.settings.currencies_wizard_url, label="Add more currencies")
        if kind == NoDataKind.MISSING_ACCOUNTS:
            return ExtraLink(
                classes="add_accounts",
                href=self.settings.accounts_wizard_url,
                label="Add accounts and addresses",
            )
        return None

    def _debug(self, request: GraphRequest, outcome: _Outcome) -> Dict[str, Any]:
        debug: Dict[str, Any] = request.model_dump(mode="json")
        if outcome.discarded is not None:
            debug["data_discarded"] = outcome.discarded
        else:
            debug["data_not_discarded"] = True
        return debug

    # ---------------- entry point ----------------
    def render(self, request: GraphRequest) -> GraphResult:
        start = time.perf_counter()

        renderer = self.registry.construct(request.graph_type, request.arg0, request.arg0_resolved)
        caps = renderer.capabilities

        user: Optional[User] = None
        if caps.requires_user:
            user = self._authorise(renderer, request)
        if caps.uses_days:
            self._check_days(request.days)

        outcome = self._compute(renderer, request)
        series = outcome.series
        has_rows = outcome.chart_type != ChartType.NODATA.value and series is not None
        now = self.clock()

        result = GraphResult(
            type=outcome.chart_type,
            columns=list(series.columns) if series is not None else [],
            key=series.key if series is not None else "",
            data=series.positional_rows() if series is not None else [],
            heading=Heading(
                label=renderer.get_title(),
                args=renderer.get_title_args(),
                url=renderer.get_url(),
                title=renderer.get_label(),
            ),
            last_updated=recent_format(series.last_updated if series is not None else None, now),
            timestamp=now.isoformat(),
            classes=renderer.get_classes(),
            graph_type=request.graph_type,
        )

        if outcome.text:
            result.text = outcome.text
            result.args = {":site_name": self.settings.site_name}
        if series is not None:
            result.h1 = series.h1
            result.h2 = series.h2
            result.no_header = series.no_header

        if has_rows and caps.has_subheading:
            result.subheading = self._subheading(renderer, series, request, now)

        result.extra = self._extra(outcome.no_data)

        if caps.uses_summaries and user is not None and renderer.get_user() == user.id:
            if user.summaries_out_of_date():
                result.outofdate = True

        if self.settings.debug:
            result.debug = self._debug(request, outcome)

        elapsed_ms = (time.perf_counter() - start) * 1000
        result.time = round_autoprecision(elapsed_ms, 1)
        logger.debug("Rendered graph %s in %.1fms", request.graph_type, elapsed_ms)
        return result
