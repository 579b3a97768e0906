"""
Utility helpers for public catalog views: cached store and category lookups.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from django.apps import apps
from django.core.cache import BaseCache

logger = logging.getLogger(__name__)

CATEGORIES_KEY = 'catalog:categories:{store_id}'
STORE_KEY = 'catalog:store:{slug}'


def categories_cache_key(store_id) -> str:
    return CATEGORIES_KEY.format(store_id=store_id)


def store_cache_key(slug: str) -> str:
    return STORE_KEY.format(slug=slug)


def get_categories_cached(cache_backend: Optional[BaseCache], store, timeout: int = 600) -> List:
    """
    Ordered categories of ``store`` with caching.
    """
    Category = apps.get_model('storefront', 'Category')
    if cache_backend is None:
        logger.warning("No cache backend passed to get_categories_cached; querying DB directly.")
        return list(Category.objects.filter(store=store).order_by('order', 'name'))

    key = categories_cache_key(store.pk)
    categories = cache_backend.get(key)
    if categories is not None:
        return categories

    categories = list(Category.objects.filter(store=store).order_by('order', 'name'))
    cache_backend.set(key, categories, timeout)
    return categories


def get_public_store(cache_backend: Optional[BaseCache], slug: str, timeout: int = 300):
    """
    Active store by slug, or ``None``. Misses are not cached so a freshly
    registered store shows up immediately.
    """
    Store = apps.get_model('storefront', 'Store')
    key = store_cache_key(slug)
    if cache_backend is not None:
        store = cache_backend.get(key)
        if store is not None:
            return store

    store = Store.objects.filter(slug=slug, is_active=True).first()
    if store is not None and cache_backend is not None:
        cache_backend.set(key, store, timeout)
    return store
