from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .constants import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_PERMITTED_DAYS

logger = logging.getLogger(__name__)


SITE_NAME_ENV = "GRAPHS_SITE_NAME"
PERMITTED_DAYS_ENV = "GRAPHS_PERMITTED_DAYS"
DEBUG_ENV = "GRAPHS_DEBUG"
CACHE_TTL_ENV = "GRAPHS_CACHE_TTL_SECONDS"
ACCOUNTS_WIZARD_ENV = "GRAPHS_ACCOUNTS_WIZARD_URL"
CURRENCIES_WIZARD_ENV = "GRAPHS_CURRENCIES_WIZARD_URL"
USER_HASH_SECRET_ENV = "GRAPHS_USER_HASH_SECRET"
DATA_PATH_ENV = "GRAPHS_DATA_PATH"


@dataclass(frozen=True)
class GraphSettings:
    site_name: str = "Graphs"
    permitted_days: FrozenSet[int] = field(default_factory=lambda: DEFAULT_PERMITTED_DAYS)
    debug: bool = False
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    accounts_wizard_url: str = "/wizard/accounts"
    currencies_wizard_url: str = "/wizard/currencies"
    user_hash_secret: str = ""
    data_path: Optional[str] = None


def _parse_flag(value: Optional[str]) -> bool:
    return (value or "").lower() in {"1", "true", "yes"}


def _parse_days(value: Optional[str]) -> FrozenSet[int]:
    if not value:
        return DEFAULT_PERMITTED_DAYS
    try:
        days = frozenset(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using defaults", PERMITTED_DAYS_ENV, value)
        return DEFAULT_PERMITTED_DAYS
    return days or DEFAULT_PERMITTED_DAYS


def _parse_ttl(value: Optional[str]) -> int:
    if not value:
        return DEFAULT_CACHE_TTL_SECONDS
    try:
        return max(0, int(value))
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", CACHE_TTL_ENV, value, DEFAULT_CACHE_TTL_SECONDS)
        return DEFAULT_CACHE_TTL_SECONDS


def get_settings() -> GraphSettings:
    """Load graph settings from environment variables.

    Unset variables keep the dataclass defaults; malformed numeric values are
    logged and replaced by their defaults rather than failing startup.
    """

    defaults = GraphSettings()
    return GraphSettings(
        site_name=os.getenv(SITE_NAME_ENV) or defaults.site_name,
        permitted_days=_parse_days(os.getenv(PERMITTED_DAYS_ENV)),
        debug=_parse_flag(os.getenv(DEBUG_ENV)),
        cache_ttl_seconds=_parse_ttl(os.getenv(CACHE_TTL_ENV)),
        accounts_wizard_url=os.getenv(ACCOUNTS_WIZARD_ENV) or defaults.accounts_wizard_url,
        currencies_wizard_url=os.getenv(CURRENCIES_WIZARD_ENV) or defaults.currencies_wizard_url,
        user_hash_secret=os.getenv(USER_HASH_SECRET_ENV, defaults.user_hash_secret),
        data_path=os.getenv(DATA_PATH_ENV) or None,
    )
