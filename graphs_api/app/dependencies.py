from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Query

from .config import get_settings
from .renderers import build_default_registry
from .schemas import GraphRequest
from .services.cache import CacheStore, get_cache_backend
from .services.history import InMemoryHistory
from .services.pipeline import GraphPipeline, utc_now
from .services.seed import load_seed
from .services.users import InMemoryUserDirectory

logger = logging.getLogger(__name__)


class GraphQueryParams:
    def __init__(
        self,
        graph_type: str = Query(..., description="Registered graph type"),
        days: Optional[str] = Query(default=None, description="Day window, or 'max'"),
        delta: Optional[str] = Query(default=None, description="Delta mode: absolute or percent"),
        arg0: Optional[str] = Query(default=None, description="Renderer argument"),
        arg0_resolved: Optional[str] = Query(default=None, description="Resolved renderer argument"),
        user_id: Optional[int] = Query(default=None, description="User id for user-scoped graphs"),
        user_hash: Optional[str] = Query(default=None, description="Graph hash for the user"),
        technical_type: Optional[str] = Query(default=None, description="Technical indicator type"),
        technical_period: Optional[str] = Query(default=None, description="Technical indicator period"),
        no_cache: bool = Query(default=False, description="Bypass the result cache"),
    ):
        self.graph_type = graph_type
        self.params = dict(
            days=days,
            delta=delta,
            arg0=arg0,
            arg0_resolved=arg0_resolved,
            user_id=user_id,
            user_hash=user_hash,
            technical_type=technical_type,
            technical_period=technical_period,
            no_cache=no_cache,
        )

    def __call__(self) -> GraphRequest:
        """Build the request; raises InvalidArgument for malformed parameters."""
        return GraphRequest.from_query(self.graph_type, **self.params)


@lru_cache(maxsize=1)
def get_pipeline() -> GraphPipeline:
    """Pipeline over the in-memory stores, filled from GRAPHS_DATA_PATH when set.

    Deployments backed by other history sources override this dependency.
    """

    settings = get_settings()
    if settings.data_path:
        history, users = load_seed(settings.data_path, secret=settings.user_hash_secret)
    else:
        logger.warning("GRAPHS_DATA_PATH is not set; graphs will render without history data")
        history = InMemoryHistory()
        users = InMemoryUserDirectory(secret=settings.user_hash_secret)
    registry = build_default_registry(history, lambda: utc_now().date())
    return GraphPipeline(settings, registry, users, CacheStore(get_cache_backend()))
