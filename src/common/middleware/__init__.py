"""Common middleware for getiickets."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
