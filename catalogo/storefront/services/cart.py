"""
Shopping cart reducer.

The cart is a list of plain dicts so it can live in the session as-is.
Unit prices are always recomputed from the product when a line is built;
nothing price-related is trusted from the client.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from .pricing import effective_price
from .variants import find_variant

logger = logging.getLogger('storefront.cart')


class CartError(Exception):
    """A line cannot be added; the message is safe to show to shoppers."""


@dataclass
class CartItem:
    product_id: int
    product_name: str
    unit_price: int
    qty: int = 1
    variant_id: Optional[str] = None
    variant_title: Optional[str] = None
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def cart_session_key(slug: str) -> str:
    return f"cart:{slug}"


def _same_line(line: Dict[str, Any], product_id, variant_id) -> bool:
    return (
        str(line.get('product_id')) == str(product_id)
        and (line.get('variant_id') or '') == (variant_id or '')
    )


def add_item(cart: List[Dict[str, Any]], item) -> List[Dict[str, Any]]:
    """
    Add ``item`` to ``cart``. An existing line with the same product and
    variant gets its quantity increased instead of a second line.
    """
    data = item.to_dict() if isinstance(item, CartItem) else dict(item)
    qty = max(1, int(data.get('qty') or 1))
    updated = [dict(line) for line in cart]
    for line in updated:
        if _same_line(line, data['product_id'], data.get('variant_id')):
            line['qty'] = int(line.get('qty') or 0) + qty
            return updated
    data['qty'] = qty
    updated.append(data)
    return updated


def update_qty(cart, product_id, variant_id, qty: int) -> List[Dict[str, Any]]:
    if qty < 1:
        return remove_item(cart, product_id, variant_id)
    updated = []
    for line in cart:
        line = dict(line)
        if _same_line(line, product_id, variant_id):
            line['qty'] = qty
        updated.append(line)
    return updated


def remove_item(cart, product_id, variant_id=None) -> List[Dict[str, Any]]:
    return [dict(line) for line in cart if not _same_line(line, product_id, variant_id)]


def calc_total(cart) -> int:
    return sum(int(line.get('unit_price') or 0) * int(line.get('qty') or 0) for line in cart)


def item_count(cart) -> int:
    return sum(int(line.get('qty') or 0) for line in cart)


def line_for(product, variant_id: Optional[str] = None, qty: int = 1) -> CartItem:
    """
    Build a cart line for ``product`` (and one of its variants).

    Products with variants require a variant; a variant with tracked stock
    of zero is sold out.
    """
    variants = product.variants or []
    variant = None
    if variant_id:
        variant = find_variant(variants, variant_id)
        if variant is None:
            raise CartError("La variante seleccionada no existe.")
    elif variants:
        raise CartError("Selecciona una variante.")

    if variant is not None and isinstance(variant.stock, int) and variant.stock <= 0:
        raise CartError("Esta variante está agotada.")

    base_price = int(variant.price or 0) if variant is not None else int(product.price or 0)
    unit_price = effective_price(base_price, product.discount)
    if unit_price <= 0:
        logger.info("Refusing zero-priced line for product %s (variant %s)", product.pk, variant_id)
        raise CartError("Este producto no tiene precio disponible.")

    return CartItem(
        product_id=product.pk,
        product_name=product.name,
        unit_price=unit_price,
        qty=max(1, int(qty or 1)),
        variant_id=variant.id if variant is not None else None,
        variant_title=variant.title if variant is not None else None,
        image_url=product.main_image_url,
    )


def get_session_cart(request, slug: str) -> List[Dict[str, Any]]:
    return list(request.session.get(cart_session_key(slug), []))


def save_session_cart(request, slug: str, cart) -> None:
    request.session[cart_session_key(slug)] = cart
    request.session.modified = True


def clear_session_cart(request, slug: str) -> None:
    request.session.pop(cart_session_key(slug), None)
    request.session.modified = True
