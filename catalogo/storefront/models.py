from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Lower
from django.utils.translation import gettext_lazy as _

from .services.pricing import DISCOUNT_AMOUNT, DISCOUNT_PERCENT, Discount


class Store(models.Model):
    """Tenant: one merchant storefront."""

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stores',
        verbose_name='Propietario',
    )
    name = models.CharField(max_length=120, verbose_name='Nombre')
    slug = models.SlugField(max_length=80, unique=True, verbose_name='Slug')
    whatsapp = models.CharField(max_length=20, blank=True, verbose_name='WhatsApp')
    address = models.CharField(max_length=255, blank=True, verbose_name='Dirección')
    logo_url = models.URLField(max_length=500, blank=True, verbose_name='Logo')
    logo_public_id = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True, verbose_name='Activa')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Tienda'
        verbose_name_plural = 'Tiendas'
        ordering = ['name']
        indexes = [
            models.Index(fields=['owner'], name='idx_store_owner'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # Only digits reach wa.me links
        self.whatsapp = ''.join(ch for ch in (self.whatsapp or '') if ch.isdigit())
        super().save(*args, **kwargs)


class Category(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='categories')
    name = models.CharField(max_length=100, verbose_name='Nombre')
    order = models.PositiveIntegerField(default=0, verbose_name='Orden')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Categoría'
        verbose_name_plural = 'Categorías'
        ordering = ['order', 'name']
        constraints = [
            models.UniqueConstraint(Lower('name'), 'store', name='uniq_category_name_per_store'),
        ]

    def __str__(self):
        return self.name


class DiscountType(models.TextChoices):
    PERCENT = DISCOUNT_PERCENT, _('Porcentaje')
    AMOUNT = DISCOUNT_AMOUNT, _('Valor fijo')


class Product(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='products')
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
        null=True,
        blank=True,
    )
    sku = models.CharField(max_length=64, blank=True, verbose_name='SKU')
    name = models.CharField(max_length=200, verbose_name='Nombre')
    description = models.TextField(blank=True, verbose_name='Descripción')
    price = models.PositiveIntegerField(default=0, verbose_name='Precio (COP)')
    discount_type = models.CharField(max_length=10, choices=DiscountType.choices, blank=True)
    discount_value = models.PositiveIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(0)],
    )
    # Ordered lists of {url, public_id, ...}
    images = models.JSONField(default=list, blank=True)
    videos = models.JSONField(default=list, blank=True)
    options = models.JSONField(default=list, blank=True)
    variants = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Producto'
        verbose_name_plural = 'Productos'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['store', '-created_at'], name='idx_product_store_created'),
            models.Index(fields=['store', 'category', '-created_at'], name='idx_product_category_created'),
            models.Index(fields=['store', 'sku'], name='idx_product_sku'),
        ]

    def __str__(self):
        return self.name

    @property
    def discount(self):
        if not self.discount_type or not self.discount_value:
            return None
        return Discount(type=self.discount_type, value=self.discount_value)

    @property
    def main_image_url(self):
        if self.images and self.images[0].get('url'):
            return self.images[0]['url']
        return None

    def media_assets(self):
        """(public_id, resource_type) pairs for every CDN asset of the product."""
        assets = [(image.get('public_id'), 'image') for image in self.images or []]
        assets += [(video.get('public_id'), 'video') for video in self.videos or []]
        return [(public_id, kind) for public_id, kind in assets if public_id]

    def clean(self):
        super().clean()
        if self.discount_type == DiscountType.PERCENT and (self.discount_value or 0) > 100:
            raise ValidationError({'discount_value': 'El descuento no puede superar el 100%.'})
        for variant in self.variants or []:
            price = variant.get('price')
            if price is not None and int(price) < 0:
                raise ValidationError({'variants': 'Los precios de las variantes no pueden ser negativos.'})
            stock = variant.get('stock')
            if stock is not None and int(stock) < 0:
                raise ValidationError({'variants': 'El stock no puede ser negativo.'})
