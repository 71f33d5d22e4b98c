from .base import DataRenderer, NoData, NoDataKind, RendererCapabilities, RendererOutput
from .builtin import BUILTIN_RENDERERS, build_default_registry
from .registry import RendererRegistry

__all__ = [
    "BUILTIN_RENDERERS",
    "DataRenderer",
    "NoData",
    "NoDataKind",
    "RendererCapabilities",
    "RendererOutput",
    "RendererRegistry",
    "build_default_registry",
]
