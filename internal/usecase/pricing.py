"""
Display pricing for the selection cart.

Products are priced at price * quantity; services are additionally scaled
by the market coefficient. No rounding is done here, formatting belongs
to the presentation layer.
"""
import math
from dataclasses import dataclass, field
from typing import Iterable, Optional

from internal.domain.cart import DEFAULT_QUANTITY, SelectionCart
from internal.domain.catalog import Coefficient, MarketType
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


DEFAULT_COEFFICIENT = 1.0


@dataclass
class LineTotal:
    """Total for one cart line."""

    kind: str  # product, service
    item_id: int
    price: float
    quantity: float
    total: float

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "item_id": self.item_id,
            "price": self.price,
            "quantity": self.quantity,
            "total": self.total,
        }


@dataclass
class PricingBreakdown:
    """
    Pricing result for a cart.

    Attributes:
        lines: Per-line totals, products first then services.
        products_subtotal: Sum of product line totals.
        services_subtotal: Sum of service line totals, coefficient applied.
        coefficient: The coefficient that was applied.
        total: products_subtotal + services_subtotal.
    """

    lines: list[LineTotal] = field(default_factory=list)
    products_subtotal: float = 0.0
    services_subtotal: float = 0.0
    coefficient: float = DEFAULT_COEFFICIENT

    @property
    def total(self) -> float:
        return self.products_subtotal + self.services_subtotal

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "products_subtotal": self.products_subtotal,
            "services_subtotal": self.services_subtotal,
            "coefficient": self.coefficient,
            "total": self.total,
        }


def _effective_quantity(quantity: float) -> float:
    if quantity is None or not math.isfinite(quantity) or quantity < DEFAULT_QUANTITY:
        return DEFAULT_QUANTITY
    return quantity


def _effective_coefficient(coefficient: Optional[float]) -> float:
    if coefficient is None:
        return DEFAULT_COEFFICIENT
    if not math.isfinite(coefficient) or coefficient < 0:
        logger.warning("Invalid coefficient, using default", coefficient=str(coefficient))
        return DEFAULT_COEFFICIENT
    return float(coefficient)


def compute_breakdown(cart: SelectionCart, coefficient: Optional[float] = DEFAULT_COEFFICIENT) -> PricingBreakdown:
    """
    Price every cart line and sum the subtotals.

    Args:
        cart: The session cart.
        coefficient: Multiplier for service lines; None means 1.

    Returns:
        Per-line totals and subtotals.
    """
    applied = _effective_coefficient(coefficient)
    breakdown = PricingBreakdown(coefficient=applied)

    for line in cart.product_lines:
        quantity = _effective_quantity(line.quantity)
        total = line.price * quantity
        breakdown.products_subtotal += total
        breakdown.lines.append(LineTotal("product", line.product_id, line.price, quantity, total))

    for line in cart.service_lines:
        quantity = _effective_quantity(line.quantity)
        total = line.price * quantity * applied
        breakdown.services_subtotal += total
        breakdown.lines.append(LineTotal("service", line.service_id, line.price, quantity, total))

    return breakdown


def compute_total(cart: SelectionCart, coefficient: Optional[float] = DEFAULT_COEFFICIENT) -> float:
    """
    Grand total of the cart.

    Args:
        cart: The session cart.
        coefficient: Multiplier for service lines; None means 1.

    Returns:
        Product subtotal plus coefficient-scaled service subtotal.
    """
    return compute_breakdown(cart, coefficient).total


def _normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


def resolve_coefficient(
    market_type: Optional[MarketType],
    coefficients: Iterable[Coefficient],
    names: dict[MarketType, str],
) -> float:
    """
    Map a market-type answer to a coefficient value.

    Args:
        market_type: The user's answer, or None if not given.
        coefficients: Coefficients known to the catalog.
        names: Coefficient name configured for each market type.

    Returns:
        The matching coefficient's value, or 1 when there is no answer or
        no coefficient with the configured name.
    """
    if market_type is None:
        return DEFAULT_COEFFICIENT
    wanted = names.get(market_type)
    if not wanted:
        return DEFAULT_COEFFICIENT

    wanted = _normalize_name(wanted)
    for coefficient in coefficients:
        if _normalize_name(coefficient.name) == wanted:
            return coefficient.value

    logger.info(
        "No coefficient configured for market type",
        market_type=market_type.value,
        coefficient_name=names.get(market_type),
    )
    return DEFAULT_COEFFICIENT
