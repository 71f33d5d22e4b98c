"""Graph computation and caching service."""
