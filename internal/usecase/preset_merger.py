"""
Style preset merging.

Adds every product of a preset to the cart unless the cart already has a
line for it. Applying the same preset twice adds nothing the second time.
"""
from internal.domain.cart import ProductLine, SelectionCart
from internal.domain.catalog import Preset
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


def apply_preset(cart: SelectionCart, preset: Preset) -> SelectionCart:
    """
    Merge a preset's products into the cart.

    Items without a product are skipped, as are products already in the
    cart (or repeated within the preset). The remaining products are
    appended with quantity 1 at their listed price, in preset order.

    Args:
        cart: The session cart, mutated in place.
        preset: The style preset to apply.

    Returns:
        The same cart instance.
    """
    new_lines: list[ProductLine] = []
    seen: set[int] = set()
    skipped_missing = 0

    for item in preset.items:
        product = item.product
        if product is None:
            skipped_missing += 1
            continue
        if product.product_id in seen or cart.has_product(product.product_id):
            continue
        seen.add(product.product_id)
        new_lines.append(
            ProductLine(
                product_id=product.product_id,
                price=product.price,
                name=product.name,
            )
        )

    added = cart.append_product_lines(new_lines)

    logger.info(
        "Preset applied",
        preset_id=preset.preset_id,
        items=len(preset.items),
        added=added,
        skipped_missing=skipped_missing,
    )
    return cart
