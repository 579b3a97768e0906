"""
Cache invalidation for public catalog lookups.
"""
from django.core.cache import cache
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .models import Category, Store
from .services.catalog_helpers import categories_cache_key, store_cache_key


@receiver([post_save, post_delete], sender=Category)
def invalidate_category_cache(sender, instance, **kwargs):
    cache.delete(categories_cache_key(instance.store_id))


@receiver([post_save, post_delete], sender=Store)
def invalidate_store_cache(sender, instance, **kwargs):
    cache.delete(store_cache_key(instance.slug))


@receiver(pre_save, sender=Store)
def invalidate_renamed_store_cache(sender, instance, **kwargs):
    if not instance.pk:
        return
    old_slug = Store.objects.filter(pk=instance.pk).values_list('slug', flat=True).first()
    if old_slug and old_slug != instance.slug:
        cache.delete(store_cache_key(old_slug))
