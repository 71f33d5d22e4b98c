from __future__ import annotations

from datetime import timedelta

import pytest

from graphs_api.app.errors import AuthError, InvalidArgument, InvalidState, UnknownGraphType
from graphs_api.app.renderers import BUILTIN_RENDERERS, NoData, NoDataKind, build_default_registry
from graphs_api.app.renderers.builtin import BalanceHistoryRenderer
from graphs_api.app.schemas import GraphRequest, TechnicalSpec
from graphs_api.app.services.history import InMemoryHistory

from tests.graph_helpers import ADMIN, FIXED_NOW, ONBOARDED, TODAY, make_pipeline, user_hash


def _ticker_rows(count: int) -> list[dict]:
    start = TODAY - timedelta(days=count - 1)
    return [
        {"date": start + timedelta(days=i), "bid": 100 + i, "ask": 101 + i}
        for i in range(count)
    ]


@pytest.fixture
def history() -> InMemoryHistory:
    return InMemoryHistory()


@pytest.fixture
def pipeline(history: InMemoryHistory):
    return make_pipeline(registry=build_default_registry(history, lambda: TODAY))


def _as_user(user, **kwargs) -> GraphRequest:
    return GraphRequest(user_id=user.id, user_hash=user_hash(user), **kwargs)


def test_registry_lists_builtin_types(history: InMemoryHistory) -> None:
    registry = build_default_registry(history, lambda: TODAY)
    assert registry.graph_types() == sorted(BUILTIN_RENDERERS)
    with pytest.raises(UnknownGraphType):
        registry.construct("nope")


def test_registry_builds_fresh_renderers(history: InMemoryHistory) -> None:
    registry = build_default_registry(history, lambda: TODAY)
    first = registry.construct("balances", "btc")
    second = registry.construct("balances", "btc")
    assert first is not second
    assert first.arg0 == "btc"


def test_ticker_trims_to_window_and_reports_latest_bid(history: InMemoryHistory, pipeline) -> None:
    history.add_ticker("bitstamp", "usdbtc", _ticker_rows(60), updated=FIXED_NOW - timedelta(minutes=10))
    result = pipeline.render(GraphRequest(graph_type="ticker", arg0="bitstamp", arg0_resolved="usdbtc", days=7))

    assert result.type == "line"
    assert len(result.data) == 8
    assert result.data[-1] == [TODAY.isoformat(), 159.0, 160.0]
    assert result.subheading == "159"
    assert result.last_updated == "10 minutes ago"
    assert result.heading.args == {":exchange": "bitstamp", ":pair": "USDBTC"}


def test_ticker_percent_delta_subheading_uses_delta_rows(history: InMemoryHistory, pipeline) -> None:
    rows = [
        {"date": TODAY - timedelta(days=2 - i), "bid": bid, "ask": bid}
        for i, bid in enumerate([100, 110, 121])
    ]
    history.add_ticker("bitstamp", "usdbtc", rows)
    result = pipeline.render(
        GraphRequest(graph_type="ticker", arg0="bitstamp", arg0_resolved="usdbtc", days=7, delta="percent")
    )

    assert [[round(cell, 6) for cell in row[1:]] for row in result.data] == [[10.0, 10.0], [10.0, 10.0]]
    assert result.subheading == "20%"


def test_ticker_technicals_use_lookback_rows(history: InMemoryHistory, pipeline) -> None:
    history.add_ticker("bitstamp", "usdbtc", _ticker_rows(60))
    request = GraphRequest(
        graph_type="ticker",
        arg0="bitstamp",
        arg0_resolved="usdbtc",
        days=7,
        technical=TechnicalSpec(type="sma", period=5),
    )
    result = pipeline.render(request)

    keys = [column.key for column in result.columns]
    assert keys == ["date", "bid", "ask", "bid_sma_5", "ask_sma_5"]
    assert all(None not in row for row in result.data)


def test_ticker_without_history_has_no_data(pipeline) -> None:
    result = pipeline.render(GraphRequest(graph_type="ticker", arg0="bitstamp", arg0_resolved="usdbtc"))
    assert result.type == "nodata"
    assert result.text


def test_ticker_requires_arguments(pipeline) -> None:
    with pytest.raises(InvalidArgument):
        pipeline.render(GraphRequest(graph_type="ticker", arg0="bitstamp"))


def test_balances_without_accounts(pipeline) -> None:
    result = pipeline.render(_as_user(ONBOARDED, graph_type="balances", arg0="btc"))
    assert result.type == "nodata"
    assert result.extra.label == "Add accounts and addresses"


def test_balances_without_currency(history: InMemoryHistory, pipeline) -> None:
    history.set_accounts(ONBOARDED.id, True)
    result = pipeline.render(_as_user(ONBOARDED, graph_type="balances", arg0="btc"))
    assert result.type == "nodata"
    assert result.extra.label == "Add more currencies"


def test_balances_render_user_history(history: InMemoryHistory, pipeline) -> None:
    rows = [{"date": TODAY - timedelta(days=i), "balance": 2.0 + i} for i in range(5)]
    history.add_balances(ONBOARDED.id, "btc", rows)
    result = pipeline.render(_as_user(ONBOARDED, graph_type="balances", arg0="btc", days=7))

    assert result.type == "line"
    assert [row[1] for row in result.data] == [6.0, 5.0, 4.0, 3.0, 2.0]
    assert result.columns[1].title == "BTC"
    assert result.subheading == "2"
    assert result.outofdate is None


def test_balance_renderer_requires_bound_user(history: InMemoryHistory) -> None:
    renderer = BalanceHistoryRenderer(history, lambda: TODAY, "btc")
    with pytest.raises(InvalidState):
        renderer.get_data(45)
    renderer.set_user(ONBOARDED.id)
    assert renderer.get_data(45) == NoData(NoDataKind.MISSING_ACCOUNTS)


def test_composition_pie(history: InMemoryHistory, pipeline) -> None:
    history.set_composition(ONBOARDED.id, "usd", TODAY, {"btc": 3, "ltc": 7})
    result = pipeline.render(_as_user(ONBOARDED, graph_type="composition_pie", arg0="usd"))

    assert result.type == "piechart"
    assert result.subheading == "10"
    assert result.key == "Currency"
    assert result.data == [[TODAY.isoformat(), 3.0, 7.0]]


def test_statistics_require_admin(history: InMemoryHistory, pipeline) -> None:
    history.add_statistics([{"date": TODAY, "users": 10, "jobs": 200}])
    with pytest.raises(AuthError):
        pipeline.render(_as_user(ONBOARDED, graph_type="statistics_users"))

    result = pipeline.render(_as_user(ADMIN, graph_type="statistics_users"))
    assert result.data == [[TODAY.isoformat(), 10.0, 200.0]]
