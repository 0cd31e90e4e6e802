"""
Selection cart.

The only mutable entity of a configurator session. Holds at most one line
per product id and at most one line per service id; every operation is
total and silently ignores unknown ids.
"""
import math
from dataclasses import dataclass
from typing import Any, Optional

from .catalog import Product, Service


DEFAULT_QUANTITY = 1


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_quantity(value: Any) -> int:
    """
    Coerce user input to a positive integer quantity.

    Non-numeric, non-finite and sub-1 input falls back to 1; fractions are
    truncated ("2.7" -> 2).
    """
    number = _to_number(value)
    if number is None or number < DEFAULT_QUANTITY:
        return DEFAULT_QUANTITY
    return int(number)


def coerce_measure(value: Any) -> float:
    """
    Coerce user input to a service quantity.

    Same guard as coerce_quantity but keeps fractions (12.5 m2).
    """
    number = _to_number(value)
    if number is None or number < DEFAULT_QUANTITY:
        return float(DEFAULT_QUANTITY)
    return number


@dataclass
class ProductLine:
    """Cart line for a product."""

    product_id: int
    price: float
    quantity: int = DEFAULT_QUANTITY
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
        }


@dataclass
class ServiceLine:
    """Cart line for a service; unit is free text ("м²", "шт")."""

    service_id: int
    price: float
    quantity: float = float(DEFAULT_QUANTITY)
    unit: str = ""
    name: str = ""

    def to_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "unit": self.unit,
        }


class SelectionCart:
    """
    Deduplicated set of selected products and services.

    Lines keep insertion order. Uniqueness is enforced by checking for an
    existing line before every insert.
    """

    def __init__(self) -> None:
        self._products: dict[int, ProductLine] = {}
        self._services: dict[int, ServiceLine] = {}

    @property
    def product_lines(self) -> list[ProductLine]:
        return list(self._products.values())

    @property
    def service_lines(self) -> list[ServiceLine]:
        return list(self._services.values())

    @property
    def is_empty(self) -> bool:
        return not self._products and not self._services

    def has_product(self, product_id: int) -> bool:
        return product_id in self._products

    def has_service(self, service_id: int) -> bool:
        return service_id in self._services

    def add_product(self, product: Product) -> bool:
        """
        Add a product line with quantity 1.

        Adding a product that already has a line is a no-op; the existing
        quantity is not bumped.

        Returns:
            True if a new line was inserted.
        """
        if product.product_id in self._products:
            return False
        self._products[product.product_id] = ProductLine(
            product_id=product.product_id,
            price=product.price,
            name=product.name,
        )
        return True

    def remove_product(self, product_id: int) -> bool:
        """Remove the line for product_id. Returns True if a line was removed."""
        return self._products.pop(product_id, None) is not None

    def set_product_quantity(self, product_id: int, quantity: Any) -> Optional[ProductLine]:
        """
        Overwrite the quantity of an existing product line.

        Args:
            product_id: Product whose line to update.
            quantity: Raw user input, coerced with coerce_quantity.

        Returns:
            The updated line, or None if the product is not in the cart.
        """
        line = self._products.get(product_id)
        if line is None:
            return None
        line.quantity = coerce_quantity(quantity)
        return line

    def add_service(self, service: Service) -> bool:
        """
        Add a service line with quantity 1 and an empty unit.

        Returns:
            True if a new line was inserted.
        """
        if service.id in self._services:
            return False
        self._services[service.id] = ServiceLine(
            service_id=service.id,
            price=service.price,
            name=service.name,
        )
        return True

    def remove_service(self, service_id: int) -> bool:
        return self._services.pop(service_id, None) is not None

    def set_service_quantity(self, service_id: int, quantity: Any) -> Optional[ServiceLine]:
        line = self._services.get(service_id)
        if line is None:
            return None
        line.quantity = coerce_measure(quantity)
        return line

    def set_service_unit(self, service_id: int, unit: Optional[str]) -> Optional[ServiceLine]:
        line = self._services.get(service_id)
        if line is None:
            return None
        line.unit = (unit or "").strip()
        return line

    def append_product_lines(self, lines: list[ProductLine]) -> int:
        """
        Append prepared product lines, skipping ids that already have a line.

        Returns:
            Number of lines appended.
        """
        appended = 0
        for line in lines:
            if line.product_id in self._products:
                continue
            self._products[line.product_id] = line
            appended += 1
        return appended

    def clear(self) -> None:
        self._products.clear()
        self._services.clear()

    def to_dict(self) -> dict:
        return {
            "products": [line.to_dict() for line in self._products.values()],
            "services": [line.to_dict() for line in self._services.values()],
        }
