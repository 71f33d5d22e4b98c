"""History source consumed by the built-in renderers.

The production storage engine lives outside this service; ``InMemoryHistory``
backs tests and local development.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Protocol, Set, Tuple


@dataclass
class HistoryRows:
    rows: List[Dict] = field(default_factory=list)
    last_updated: Optional[datetime] = None


class HistorySource(Protocol):
    def exchange_rates(self, exchange: str, pair: str, since: date) -> HistoryRows:
        ...

    def user_has_accounts(self, user_id: int) -> bool:
        ...

    def user_currencies(self, user_id: int) -> Set[str]:
        ...

    def balance_history(self, user_id: int, currency: str, since: date) -> HistoryRows:
        ...

    def composition(self, user_id: int, currency: str) -> HistoryRows:
        ...

    def site_statistics(self, since: date) -> HistoryRows:
        ...


def _since(history: Optional[HistoryRows], since: date) -> HistoryRows:
    if history is None:
        return HistoryRows()
    rows = [row for row in history.rows if row["date"] >= since]
    return HistoryRows(rows=sorted(rows, key=lambda row: row["date"]), last_updated=history.last_updated)


class InMemoryHistory:
    def __init__(self) -> None:
        self._tickers: Dict[Tuple[str, str], HistoryRows] = {}
        self._accounts: Dict[int, bool] = {}
        self._currencies: Dict[int, Set[str]] = {}
        self._balances: Dict[Tuple[int, str], HistoryRows] = {}
        self._composition: Dict[Tuple[int, str], HistoryRows] = {}
        self._statistics: Optional[HistoryRows] = None

    # ---------- seeding ----------
    def add_ticker(self, exchange: str, pair: str, rows: List[Dict], updated: Optional[datetime] = None) -> None:
        self._tickers[(exchange, pair)] = HistoryRows(list(rows), updated)

    def add_balances(
        self,
        user_id: int,
        currency: str,
        rows: List[Dict],
        updated: Optional[datetime] = None,
    ) -> None:
        self._accounts[user_id] = True
        self._currencies.setdefault(user_id, set()).add(currency)
        self._balances[(user_id, currency)] = HistoryRows(list(rows), updated)

    def set_composition(
        self,
        user_id: int,
        currency: str,
        as_of: date,
        values: Mapping[str, float],
        updated: Optional[datetime] = None,
    ) -> None:
        self._accounts[user_id] = True
        self._currencies.setdefault(user_id, set()).add(currency)
        self._composition[(user_id, currency)] = HistoryRows([{"date": as_of, **values}], updated)

    def set_accounts(self, user_id: int, has_accounts: bool) -> None:
        self._accounts[user_id] = has_accounts

    def enable_currency(self, user_id: int, currency: str) -> None:
        self._currencies.setdefault(user_id, set()).add(currency)

    def add_statistics(self, rows: List[Dict], updated: Optional[datetime] = None) -> None:
        self._statistics = HistoryRows(list(rows), updated)

    # ---------- HistorySource ----------
    def exchange_rates(self, exchange: str, pair: str, since: date) -> HistoryRows:
        return _since(self._tickers.get((exchange, pair)), since)

    def user_has_accounts(self, user_id: int) -> bool:
        return self._accounts.get(user_id, False)

    def user_currencies(self, user_id: int) -> Set[str]:
        return set(self._currencies.get(user_id, set()))

    def balance_history(self, user_id: int, currency: str, since: date) -> HistoryRows:
        return _since(self._balances.get((user_id, currency)), since)

    def composition(self, user_id: int, currency: str) -> HistoryRows:
        history = self._composition.get((user_id, currency))
        if history is None:
            return HistoryRows()
        return HistoryRows(list(history.rows), history.last_updated)

    def site_statistics(self, since: date) -> HistoryRows:
        return _since(self._statistics, since)
