"""
Product write workflows shared by the owner API.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from django.db import transaction

from .variants import VariantSet, generate_variants

logger = logging.getLogger(__name__)


def rebuild_variants(
    price: int,
    options: Iterable[Mapping[str, Any]],
    previous_variants: Optional[Iterable[Mapping[str, Any]]] = None,
) -> VariantSet:
    """Regenerate variants for new options, keeping matching previous ones."""
    return generate_variants(int(price or 0), options or [], previous_variants or [])


@transaction.atomic
def save_product(tenant, data: Mapping[str, Any], instance=None):
    """
    Create or update a product of the tenant's store.

    ``data`` holds validated field values. When ``options`` or ``variants``
    is present the variants are regenerated; explicit per-variant edits
    (price, stock, sku) are kept for combinations that still exist.
    """
    from ..models import Product

    data = dict(data)
    product = instance or Product(store=tenant.store)
    if product.store_id != tenant.store_id:
        raise ValueError("Product belongs to another store")

    options = data.pop('options', None)
    variants = data.pop('variants', None)
    for name, value in data.items():
        setattr(product, name, value)

    if options is not None or variants is not None:
        if options is None:
            options = product.options
        previous = variants if variants is not None else product.variants
        variant_set = rebuild_variants(product.price, options, previous)
        product.options = [option.to_dict() for option in variant_set.options]
        product.variants = [variant.to_dict() for variant in variant_set.variants]

    product.full_clean(exclude=['store', 'category'])
    product.save()
    logger.info(
        "%s product %s for store %s (%s variants)",
        "Updated" if instance is not None else "Created",
        product.pk,
        tenant.store_id,
        len(product.variants or []),
    )
    return product


def delete_product(tenant, product) -> int:
    """
    Delete ``product`` and queue the release of its CDN assets once the
    transaction commits. Returns the number of queued assets.
    """
    from ..tasks import queue_media_release

    if product.store_id != tenant.store_id:
        raise ValueError("Product belongs to another store")

    assets = product.media_assets()
    product_id = product.pk
    with transaction.atomic():
        product.delete()
        transaction.on_commit(lambda: queue_media_release(tenant.store_id, assets))
    logger.info("Deleted product %s of store %s; releasing %s assets", product_id, tenant.store_id, len(assets))
    return len(assets)
