from __future__ import annotations

import json
from dataclasses import replace
from datetime import timedelta

import pytest

from graphs_api.app.compute.series import Series
from graphs_api.app.config import GraphSettings
from graphs_api.app.constants import ChartType
from graphs_api.app.errors import AuthError, InvalidArgument, InvalidState, UnknownGraphType
from graphs_api.app.renderers.base import NoData, NoDataKind, RendererCapabilities
from graphs_api.app.schemas import Column, GraphRequest, TechnicalSpec

from tests.graph_helpers import (
    ADMIN,
    DATE_COLUMN,
    FIXED_NOW,
    NEWCOMER,
    ONBOARDED,
    TODAY,
    StaticRenderer,
    make_pipeline,
    make_series,
    user_hash,
)

DAYS = RendererCapabilities(uses_days=True, can_have_technicals=True, has_subheading=True)
USER_SCOPED = RendererCapabilities(requires_user=True, has_subheading=True, uses_summaries=True)
ADMIN_ONLY = RendererCapabilities(requires_user=True, requires_admin=True)
PIE = RendererCapabilities(has_subheading=True, chart_type=ChartType.PIECHART)


def _request(**kwargs) -> GraphRequest:
    kwargs.setdefault("graph_type", "static")
    return GraphRequest(**kwargs)


def test_delta_and_trim_scenario() -> None:
    renderer = StaticRenderer(make_series(range(1, 51), end=TODAY - timedelta(days=2)), DAYS)
    result = make_pipeline(renderer).render(_request(days=45, delta="absolute"))

    assert result.type == "line"
    assert len(result.data) == 44
    assert all(row[1] == 1.0 for row in result.data)
    assert result.data[0][0] == (TODAY - timedelta(days=45)).isoformat()


def test_debug_reports_discarded_rows() -> None:
    renderer = StaticRenderer(make_series(range(1, 51), end=TODAY - timedelta(days=2)), DAYS)
    pipeline = make_pipeline(renderer, settings=GraphSettings(debug=True))
    result = pipeline.render(_request(days=45, delta="absolute"))

    assert result.debug["data_discarded"] == 6
    assert result.debug["graph_type"] == "static"
    assert "_debug" in json.loads(result.to_json())


def test_debug_marks_undiscarded_data() -> None:
    renderer = StaticRenderer(make_series([1, 2]), RendererCapabilities())
    result = make_pipeline(renderer, settings=GraphSettings(debug=True)).render(_request())
    assert result.debug["data_not_discarded"] is True


def test_result_envelope_fields() -> None:
    renderer = StaticRenderer(make_series([1, 2, 3]), DAYS)
    payload = json.loads(make_pipeline(renderer).render(_request()).to_json())

    for field in ("success", "type", "columns", "key", "data", "heading", "lastUpdated", "timestamp", "classes", "graph_type", "time"):
        assert field in payload
    assert "extra" not in payload
    assert "outofdate" not in payload
    assert "_debug" not in payload
    assert payload["success"] is True
    assert payload["heading"] == {"label": "Static :name", "args": {":name": "graph"}, "url": "/static", "title": "Static :name"}
    assert payload["columns"][0] == {"key": "date", "title": "Date", "type": "date", "technical": False}
    assert payload["data"][-1] == [TODAY.isoformat(), 3.0]
    assert payload["timestamp"] == FIXED_NOW.isoformat()
    assert payload["classes"] == "static"
    assert payload["time"] >= 0


def test_empty_series_yields_nodata() -> None:
    renderer = StaticRenderer(make_series([]), DAYS)
    result = make_pipeline(renderer).render(_request())

    assert result.type == "nodata"
    assert result.data == []
    assert result.text
    assert result.args == {":site_name": "TestSite"}
    assert result.subheading is None
    assert result.extra is None


def test_single_row_with_delta_yields_nodata() -> None:
    renderer = StaticRenderer(make_series([5]), DAYS)
    result = make_pipeline(renderer).render(_request(delta="percent", technical=TechnicalSpec(type="sma", period=3)))
    assert result.type == "nodata"
    assert result.data == []
    assert [column.key for column in result.columns] == ["date", "value"]
    assert result.key == "Date"


@pytest.mark.parametrize(
    ("kind", "label", "href"),
    [
        (NoDataKind.MISSING_ACCOUNTS, "Add accounts and addresses", "/wizard/accounts"),
        (NoDataKind.MISSING_CURRENCIES, "Add more currencies", "/wizard/currencies"),
    ],
)
def test_no_data_kinds_produce_call_to_action(kind: NoDataKind, label: str, href: str) -> None:
    renderer = StaticRenderer(NoData(kind), DAYS)
    result = make_pipeline(renderer).render(_request())

    assert result.type == "nodata"
    assert result.data == []
    assert ":site_name" in result.text
    assert result.last_updated == "never"
    assert result.extra.label == label
    assert result.extra.href == href
    assert result.extra.classes == "add_accounts"


def test_no_data_messages_differ_by_kind() -> None:
    texts = {
        make_pipeline(StaticRenderer(NoData(kind))).render(_request()).text
        for kind in NoDataKind
    }
    assert len(texts) == 2


def test_technicals_replace_columns() -> None:
    renderer = StaticRenderer(make_series(range(60)), DAYS)
    result = make_pipeline(renderer).render(_request(days=30, technical=TechnicalSpec(type="sma", period=7)))

    assert [column.key for column in result.columns] == ["date", "value", "value_sma_7"]
    assert result.columns[-1].technical is True
    assert len(result.data) == 31
    assert all(row[2] is not None for row in result.data)


def test_technicals_ignored_without_capability() -> None:
    renderer = StaticRenderer(make_series(range(10)), RendererCapabilities())
    result = make_pipeline(renderer).render(_request(technical=TechnicalSpec(type="sma", period=3)))
    assert [column.key for column in result.columns] == ["date", "value"]


def test_invalid_technical_period_is_rejected() -> None:
    renderer = StaticRenderer(make_series(range(10)), DAYS)
    with pytest.raises(InvalidArgument):
        make_pipeline(renderer).render(_request(technical=TechnicalSpec(type="ema", period=0)))


def test_piechart_subheading_sums_row() -> None:
    series = Series.from_rows(
        [{"date": TODAY, "a": 3, "b": 7}],
        [DATE_COLUMN, Column(key="a", title="A"), Column(key="b", title="B")],
    )
    result = make_pipeline(StaticRenderer(series, PIE)).render(_request())
    assert result.type == "piechart"
    assert result.subheading == "10"


def test_piechart_with_two_rows_is_invalid() -> None:
    series = Series.from_rows(
        [{"date": TODAY - timedelta(days=1), "a": 1, "b": 2}, {"date": TODAY, "a": 3, "b": 7}],
        [DATE_COLUMN, Column(key="a", title="A"), Column(key="b", title="B")],
    )
    with pytest.raises(InvalidState):
        make_pipeline(StaticRenderer(series, PIE)).render(_request())


def test_custom_subheading_is_used_without_delta() -> None:
    renderer = StaticRenderer(make_series([1, 2, 3]), DAYS, custom_subheading=12.5)
    assert make_pipeline(renderer).render(_request()).subheading == "12.5"


def test_custom_subheading_is_ignored_under_percent_delta() -> None:
    renderer = StaticRenderer(make_series([1, 2, 3]), DAYS, custom_subheading=12.5)
    result = make_pipeline(renderer).render(_request(delta="percent"))
    assert result.subheading == "50%"


def test_computed_subheading_uses_last_row() -> None:
    renderer = StaticRenderer(make_series([1, 2, 4]), DAYS)
    assert make_pipeline(renderer).render(_request(delta="absolute")).subheading == "2"


def test_series_display_hints_are_copied() -> None:
    series = make_series([1, 2], h1="Heading", h2="Sub", no_header=True)
    payload = json.loads(make_pipeline(StaticRenderer(series)).render(_request()).to_json())
    assert payload["h1"] == "Heading"
    assert payload["h2"] == "Sub"
    assert payload["noHeader"] is True


def test_last_updated_is_formatted() -> None:
    series = make_series([1, 2], last_updated=FIXED_NOW - timedelta(hours=2))
    assert make_pipeline(StaticRenderer(series)).render(_request()).last_updated == "2 hours ago"


# ---------- validation ----------
def test_unknown_graph_type() -> None:
    with pytest.raises(UnknownGraphType):
        make_pipeline().render(_request(graph_type="missing"))


def test_days_must_be_permitted() -> None:
    renderer = StaticRenderer(make_series([1, 2]), DAYS)
    with pytest.raises(InvalidArgument):
        make_pipeline(renderer).render(_request(days=46))


def test_max_days_sentinel_is_accepted() -> None:
    renderer = StaticRenderer(make_series([1, 2]), DAYS)
    assert make_pipeline(renderer).render(_request(days="max")).type == "line"


def test_days_ignored_when_unused() -> None:
    renderer = StaticRenderer(make_series([1, 2]), RendererCapabilities())
    assert make_pipeline(renderer).render(_request(days=46)).type == "line"


# ---------- permissions ----------
@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {"user_id": 1},
        {"user_hash": "abc"},
        {"user_id": 99, "user_hash": "abc"},
        {"user_id": 1, "user_hash": "wrong"},
    ],
)
def test_user_graphs_require_valid_identity(kwargs: dict) -> None:
    renderer = StaticRenderer(make_series([1, 2]), USER_SCOPED)
    with pytest.raises(AuthError):
        make_pipeline(renderer).render(_request(**kwargs))
    assert renderer.calls == 0


def test_valid_identity_binds_user() -> None:
    renderer = StaticRenderer(make_series([1, 2]), USER_SCOPED)
    make_pipeline(renderer).render(_request(user_id=ONBOARDED.id, user_hash=user_hash(ONBOARDED)))
    assert renderer.get_user() == ONBOARDED.id


def test_admin_graphs_reject_regular_users() -> None:
    renderer = StaticRenderer(make_series([1, 2]), ADMIN_ONLY)
    with pytest.raises(AuthError):
        make_pipeline(renderer).render(_request(user_id=ONBOARDED.id, user_hash=user_hash(ONBOARDED)))


def test_admin_graphs_allow_admins() -> None:
    renderer = StaticRenderer(make_series([1, 2]), ADMIN_ONLY)
    result = make_pipeline(renderer).render(_request(user_id=ADMIN.id, user_hash=user_hash(ADMIN)))
    assert result.type == "line"


# ---------- out of date ----------
def test_newcomer_summaries_are_out_of_date() -> None:
    renderer = StaticRenderer(make_series([1, 2]), USER_SCOPED)
    result = make_pipeline(renderer).render(_request(user_id=NEWCOMER.id, user_hash=user_hash(NEWCOMER)))
    assert result.outofdate is True


def test_up_to_date_summaries_are_not_flagged() -> None:
    renderer = StaticRenderer(make_series([1, 2]), USER_SCOPED)
    result = make_pipeline(renderer).render(_request(user_id=ONBOARDED.id, user_hash=user_hash(ONBOARDED)))
    assert result.outofdate is None


def test_account_change_after_summary_job_is_out_of_date() -> None:
    changed = replace(ONBOARDED, last_account_change=FIXED_NOW, last_sum_job=FIXED_NOW - timedelta(hours=1))
    assert changed.summaries_out_of_date() is True
    assert ONBOARDED.summaries_out_of_date() is False


def test_out_of_date_requires_summaries() -> None:
    caps = RendererCapabilities(requires_user=True)
    renderer = StaticRenderer(make_series([1, 2]), caps)
    result = make_pipeline(renderer).render(_request(user_id=NEWCOMER.id, user_hash=user_hash(NEWCOMER)))
    assert result.outofdate is None
