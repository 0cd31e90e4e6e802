"""
Redis infrastructure package.
"""
from .cache import CatalogCache

__all__ = ["CatalogCache"]
