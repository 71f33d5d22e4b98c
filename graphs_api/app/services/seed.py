"""Load history and users for the in-memory stores from a JSON data file."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from ..errors import InvalidState
from .history import InMemoryHistory
from .users import InMemoryUserDirectory, User

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


class TickerSeed(BaseModel):
    exchange: str
    pair: str
    updated: Optional[datetime] = None
    rows: Rows = Field(default_factory=list)


class BalanceSeed(BaseModel):
    user_id: int
    currency: str
    updated: Optional[datetime] = None
    rows: Rows = Field(default_factory=list)


class CompositionSeed(BaseModel):
    user_id: int
    currency: str
    as_of: date
    values: Dict[str, float]
    updated: Optional[datetime] = None


class StatisticsSeed(BaseModel):
    updated: Optional[datetime] = None
    rows: Rows = Field(default_factory=list)


class DataSeed(BaseModel):
    users: List[User] = Field(default_factory=list)
    accounts: List[int] = Field(default_factory=list)
    currencies: Dict[int, List[str]] = Field(default_factory=dict)
    tickers: List[TickerSeed] = Field(default_factory=list)
    balances: List[BalanceSeed] = Field(default_factory=list)
    composition: List[CompositionSeed] = Field(default_factory=list)
    statistics: Optional[StatisticsSeed] = None


def _dated(rows: Rows) -> Rows:
    return [
        {**row, "date": date.fromisoformat(row["date"]) if isinstance(row.get("date"), str) else row.get("date")}
        for row in rows
    ]


def apply_seed(seed: DataSeed, history: InMemoryHistory, users: InMemoryUserDirectory) -> None:
    for user in seed.users:
        users.add(user)
    for user_id in seed.accounts:
        history.set_accounts(user_id, True)
    for user_id, currencies in seed.currencies.items():
        for currency in currencies:
            history.enable_currency(user_id, currency)
    for ticker in seed.tickers:
        history.add_ticker(ticker.exchange, ticker.pair, _dated(ticker.rows), updated=ticker.updated)
    for balance in seed.balances:
        history.add_balances(balance.user_id, balance.currency, _dated(balance.rows), updated=balance.updated)
    for entry in seed.composition:
        history.set_composition(entry.user_id, entry.currency, entry.as_of, entry.values, updated=entry.updated)
    if seed.statistics is not None:
        history.add_statistics(_dated(seed.statistics.rows), updated=seed.statistics.updated)


def load_seed(path: str | Path, secret: str = "") -> Tuple[InMemoryHistory, InMemoryUserDirectory]:
    """Build populated in-memory stores from the data file at ``path``.

    Raises:
        InvalidState: when the file is missing or does not match the seed layout.
    """

    path = Path(path)
    try:
        seed = DataSeed.model_validate_json(path.read_text())
    except (OSError, ValidationError) as exc:
        raise InvalidState(f"Cannot load graph data from {path}: {exc}") from exc

    history = InMemoryHistory()
    users = InMemoryUserDirectory(secret=secret)
    apply_seed(seed, history, users)
    logger.info(
        "Loaded graph data from %s (%d users, %d tickers, %d balance histories)",
        path,
        len(seed.users),
        len(seed.tickers),
        len(seed.balances),
    )
    return history, users


__all__ = ["DataSeed", "apply_seed", "load_seed"]
