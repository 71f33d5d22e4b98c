"""Registry mapping graph types to renderer factories."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from ..errors import UnknownGraphType
from .base import DataRenderer

RendererFactory = Callable[[Optional[str], Optional[str]], DataRenderer]


class RendererRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, RendererFactory] = {}

    def register(self, graph_type: str, factory: RendererFactory) -> None:
        self._factories[graph_type] = factory

    def graph_types(self) -> list[str]:
        return sorted(self._factories)

    def construct(
        self,
        graph_type: str,
        arg0: Optional[str] = None,
        arg0_resolved: Optional[str] = None,
    ) -> DataRenderer:
        """Build a fresh renderer for ``graph_type``."""

        factory = self._factories.get(graph_type)
        if factory is None:
            raise UnknownGraphType(f"Unknown graph type '{graph_type}'")
        return factory(arg0, arg0_resolved)
