"""Connection settings for the graphs command line client."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

BASE_URL_ENV = "GRAPHS_API_BASE_URL"
TOKEN_ENV = "GRAPHS_API_TOKEN"
TIMEOUT_ENV = "GRAPHS_API_TIMEOUT"
DEFAULT_TIMEOUT_SECONDS = 30


class ClientConfigError(RuntimeError):
    """The client cannot tell which server to call, or how."""


@dataclass(frozen=True)
class APISettings:
    base_url: str
    token: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT_SECONDS

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"


def _timeout(raw: Optional[str]) -> int:
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    if not raw.isdigit() or int(raw) == 0:
        raise ClientConfigError(f"{TIMEOUT_ENV} must be a positive number of seconds, got {raw!r}.")
    return int(raw)


def get_settings(base_url: Optional[str] = None, token: Optional[str] = None) -> APISettings:
    """Command line values win; the environment fills in whatever is left."""

    base_url = base_url or os.getenv(BASE_URL_ENV)
    if not base_url:
        raise ClientConfigError(f"No graphs server configured: pass --base-url or set {BASE_URL_ENV}.")
    return APISettings(
        base_url=base_url.rstrip("/"),
        token=token or os.getenv(TOKEN_ENV),
        timeout=_timeout(os.getenv(TIMEOUT_ENV)),
    )
