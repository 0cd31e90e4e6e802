"""
Domain model for the product catalog.

Products, services, style presets and market coefficients as the
configurator sees them after ingestion. Identifiers are canonical here:
`product_id`, `preset_id` and `id` for services/coefficients.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import DomainValidationError


@dataclass(frozen=True)
class Attribute:
    """
    Product characteristic.

    Attributes:
        name: Attribute name (e.g. "Ширина").
        value: Attribute value as text.
        unit: Optional unit of measurement.
    """

    name: str
    value: str
    unit: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class ServiceRef:
    """Reference from a product to a service it commonly pairs with."""

    service_id: int
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"service_id": self.service_id, "name": self.name}


@dataclass
class Product:
    """
    Product entity.

    Attributes:
        product_id: Unique identifier.
        name: Display name.
        price: Unit price, non-negative.
        category_id: Sub-element the product belongs to (None for the
            product summaries embedded in presets).
        description: Optional description.
        image_url: Optional image URL.
        attributes: Product characteristics.
        services: Services the product commonly pairs with.
    """

    product_id: int
    name: str
    price: float
    category_id: Optional[int]
    description: Optional[str] = None
    image_url: Optional[str] = None
    attributes: list[Attribute] = field(default_factory=list)
    services: list[ServiceRef] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.price < 0:
            raise DomainValidationError("Product price cannot be negative")

    def to_dict(self) -> dict:
        """
        Convert to dictionary representation.

        Returns:
            Dictionary with all product data.
        """
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "category_id": self.category_id,
            "description": self.description,
            "image_url": self.image_url,
            "attributes": [a.to_dict() for a in self.attributes],
            "services": [s.to_dict() for s in self.services],
        }


@dataclass
class Service:
    """
    Service entity (installation, delivery and the like).

    Services are independent catalog entries, not owned by products.
    """

    id: int
    name: str
    price: float
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise DomainValidationError("Service price cannot be negative")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "description": self.description,
        }


@dataclass
class PresetItem:
    """One preset entry; product is None when the upstream reference is broken."""

    product: Optional[Product] = None


@dataclass
class Preset:
    """
    Style preset: a named, ordered bundle of products.

    Attributes:
        preset_id: Unique identifier.
        name: Style name (e.g. "Скандинавский").
        items: Ordered preset items.
        total_price: Bundle price as stated by the catalog.
        description: Optional description.
        image_url: Optional image URL.
    """

    preset_id: int
    name: str
    items: list[PresetItem] = field(default_factory=list)
    total_price: float = 0.0
    description: Optional[str] = None
    image_url: Optional[str] = None

    def products(self) -> list[Product]:
        """Products of the preset in item order, skipping broken items."""
        return [item.product for item in self.items if item.product is not None]

    def to_dict(self) -> dict:
        return {
            "preset_id": self.preset_id,
            "name": self.name,
            "description": self.description,
            "image_url": self.image_url,
            "total_price": self.total_price,
            "items": [
                {"product": item.product.to_dict() if item.product else None}
                for item in self.items
            ],
        }


@dataclass(frozen=True)
class Coefficient:
    """Named multiplier applied to service prices."""

    id: int
    name: str
    value: float

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "value": self.value}


class MarketType(str, Enum):
    """Real-estate market the renovation targets."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
