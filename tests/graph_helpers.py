"""Shared builders for graph pipeline tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from graphs_api.app.compute.series import Series
from graphs_api.app.config import GraphSettings
from graphs_api.app.renderers.base import DataRenderer, RendererCapabilities, RendererOutput
from graphs_api.app.renderers.registry import RendererRegistry
from graphs_api.app.schemas import Column
from graphs_api.app.services.cache import CacheBackend, CacheStore, InMemoryCache
from graphs_api.app.services.pipeline import GraphPipeline
from graphs_api.app.services.users import InMemoryUserDirectory, User

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()
SECRET = "s3cret"

DATE_COLUMN = Column(key="date", title="Date", type="date")
VALUE_COLUMNS = [DATE_COLUMN, Column(key="value", title="Value")]


def daily_rows(values: Iterable, end: date = TODAY, key: str = "value") -> list[dict]:
    values = list(values)
    start = end - timedelta(days=len(values) - 1)
    return [{"date": start + timedelta(days=i), key: value} for i, value in enumerate(values)]


def make_series(values: Iterable, end: date = TODAY, **meta) -> Series:
    return Series.from_rows(daily_rows(values, end), VALUE_COLUMNS, **meta)


class StaticRenderer(DataRenderer):
    """Renderer returning a fixed output, with capabilities chosen per test."""

    def __init__(
        self,
        output: RendererOutput,
        capabilities: RendererCapabilities = RendererCapabilities(),
        custom_subheading: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.output = output
        self.capabilities = capabilities
        self.custom_subheading = custom_subheading
        self.calls = 0

    def get_data(self, days: int) -> RendererOutput:
        self.calls += 1
        return self.output

    def get_title(self) -> str:
        return "Static :name"

    def get_title_args(self) -> dict:
        return {":name": "graph"}

    def get_url(self) -> Optional[str]:
        return "/static"

    def get_classes(self) -> str:
        return "static"

    def get_custom_subheading(self) -> Optional[float]:
        return self.custom_subheading


ONBOARDED = User(
    id=1,
    has_added_account=True,
    is_first_report_sent=True,
    last_account_change=FIXED_NOW - timedelta(days=3),
    last_sum_job=FIXED_NOW - timedelta(days=1),
)
ADMIN = User(id=2, is_admin=True, has_added_account=True, is_first_report_sent=True)
NEWCOMER = User(id=3)


def make_users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory([ONBOARDED, ADMIN, NEWCOMER], secret=SECRET)


def user_hash(user: User) -> str:
    return make_users().compute_user_hash(user)


def make_pipeline(
    renderer: Optional[DataRenderer] = None,
    settings: Optional[GraphSettings] = None,
    backend: Optional[CacheBackend] = None,
    registry: Optional[RendererRegistry] = None,
    users: Optional[InMemoryUserDirectory] = None,
) -> GraphPipeline:
    if registry is None:
        registry = RendererRegistry()
    if renderer is not None:
        registry.register("static", lambda arg0, arg0_resolved: renderer)
    return GraphPipeline(
        settings or GraphSettings(site_name="TestSite"),
        registry,
        users or make_users(),
        CacheStore(backend or InMemoryCache()),
        clock=lambda: FIXED_NOW,
    )
