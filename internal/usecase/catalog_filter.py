"""
Product catalog filtering by the selected sub-element.
"""
from typing import Iterable, Optional

from internal.domain.catalog import Product


def filter_by_category(products: Iterable[Product], sub_element_id: Optional[int]) -> list[Product]:
    """
    Products attached to the given sub-element, in input order.

    Recomputed on every call; catalogs are small enough that no index is kept.

    Args:
        products: The flat product list.
        sub_element_id: Selected sub-element, or None if none is chosen yet.

    Returns:
        Matching products; empty when sub_element_id is None.
    """
    if sub_element_id is None:
        return []
    return [product for product in products if product.category_id == sub_element_id]
