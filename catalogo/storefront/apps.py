from django.apps import AppConfig


class StorefrontConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'storefront'
    verbose_name = 'Catálogo'

    def ready(self):
        # Cache invalidation signals
        from . import cache_signals  # noqa: F401
