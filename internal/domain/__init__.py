"""
Domain package for the renovation configurator.

Contains catalog entities, the category hierarchy, the selection state and
the selection cart.
"""
from .category import (
    Category,
    CategoryTree,
    CategoryTreeNode,
    TreeIssue,
    TreeIssueKind,
)
from .catalog import (
    Attribute,
    Coefficient,
    MarketType,
    Preset,
    PresetItem,
    Product,
    Service,
    ServiceRef,
)
from .cart import ProductLine, SelectionCart, ServiceLine, coerce_measure, coerce_quantity
from .selection import CategorySelectionState, SelectionStage, children_of
from .errors import (
    DomainError,
    DomainValidationError,
    InvalidSelectionError,
    EntityNotFoundError,
    SessionNotFoundError,
    CategoryNotFoundError,
    ProductNotFoundError,
    ServiceNotFoundError,
    PresetNotFoundError,
    CatalogUnavailableError,
)

__all__ = [
    "Category",
    "CategoryTree",
    "CategoryTreeNode",
    "TreeIssue",
    "TreeIssueKind",
    "Attribute",
    "Coefficient",
    "MarketType",
    "Preset",
    "PresetItem",
    "Product",
    "Service",
    "ServiceRef",
    "ProductLine",
    "SelectionCart",
    "ServiceLine",
    "coerce_measure",
    "coerce_quantity",
    "CategorySelectionState",
    "SelectionStage",
    "children_of",
    # Errors
    "DomainError",
    "DomainValidationError",
    "InvalidSelectionError",
    "EntityNotFoundError",
    "SessionNotFoundError",
    "CategoryNotFoundError",
    "ProductNotFoundError",
    "ServiceNotFoundError",
    "PresetNotFoundError",
    "CatalogUnavailableError",
]
