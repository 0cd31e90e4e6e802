"""
Use case package for the configurator service.

Contains business logic and use cases.
"""
from .catalog_filter import filter_by_category
from .catalog_store import CatalogData, CatalogSnapshot, CatalogSource, CatalogStore
from .category_tree import build_category_tree
from .configurator import ConfiguratorService, ConfiguratorSession, SelectionOptions
from .preset_merger import apply_preset
from .pricing import (
    PricingBreakdown,
    compute_breakdown,
    compute_total,
    resolve_coefficient,
)

__all__ = [
    "filter_by_category",
    "CatalogData",
    "CatalogSnapshot",
    "CatalogSource",
    "CatalogStore",
    "build_category_tree",
    "ConfiguratorService",
    "ConfiguratorSession",
    "SelectionOptions",
    "apply_preset",
    "PricingBreakdown",
    "compute_breakdown",
    "compute_total",
    "resolve_coefficient",
]
