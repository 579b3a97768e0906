"""
Django REST Framework serializers for the storefront API.

Owner serializers expect a ``tenant`` (``TenantContext``) in their context;
public serializers are read-only.
"""

from django.db.models.functions import Lower
from rest_framework import serializers

from .models import Category, DiscountType, Product, Store
from .services.media_service import cdn_image_url
from .services.pricing import discount_badge, display_price, effective_price
from .services.products import save_product


class StoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = ['id', 'name', 'slug', 'whatsapp', 'address', 'logo_url', 'logo_public_id', 'is_active']
        read_only_fields = ['id']

    def validate_whatsapp(self, value):
        digits = ''.join(ch for ch in value or '' if ch.isdigit())
        if value and not 7 <= len(digits) <= 15:
            raise serializers.ValidationError("Número de WhatsApp inválido.")
        return digits


class PublicStoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = ['name', 'slug', 'whatsapp', 'address', 'logo_url']
        read_only_fields = fields


class CategorySerializer(serializers.ModelSerializer):
    """
    Fields:
        - id, name, order
        - products_count: number of products (read-only)
    """
    products_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'order', 'products_count']
        read_only_fields = ['id']

    def get_products_count(self, obj):
        annotated = getattr(obj, 'products_count_annotated', None)
        if annotated is not None:
            return annotated
        return obj.products.count()

    def validate_name(self, value):
        name = value.strip()
        if not name:
            raise serializers.ValidationError("El nombre es obligatorio.")
        tenant = self.context['tenant']
        duplicates = Category.objects.annotate(lname=Lower('name')).filter(
            store=tenant.store, lname=name.lower()
        )
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError("Ya existe una categoría con ese nombre.")
        return name

    def create(self, validated_data):
        validated_data['store'] = self.context['tenant'].store
        return super().create(validated_data)


class ProductOptionSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    values = serializers.ListField(child=serializers.CharField(allow_blank=True), allow_empty=True)


class VariantSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True)
    option_values = serializers.ListField(child=serializers.CharField(allow_blank=True))
    title = serializers.CharField(required=False, allow_blank=True)
    price = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    stock = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    sku = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def _media_list(value, kind):
    if not isinstance(value, list):
        raise serializers.ValidationError(f"{kind} debe ser una lista.")
    for item in value:
        if not isinstance(item, dict) or not item.get('url') or not item.get('public_id'):
            raise serializers.ValidationError(f"Cada elemento de {kind} necesita url y public_id.")
    return value


class ProductSerializer(serializers.ModelSerializer):
    """
    Owner-side product. Writing ``options`` regenerates ``variants`` while
    keeping the id, price, stock and sku of combinations that still exist.
    """
    category = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.none(), allow_null=True, required=False
    )
    options = ProductOptionSerializer(many=True, required=False)
    variants = VariantSerializer(many=True, required=False)
    display_price = serializers.SerializerMethodField()
    final_price = serializers.SerializerMethodField()
    discount_badge = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'sku', 'name', 'description', 'price', 'discount_type', 'discount_value',
            'category', 'images', 'videos', 'options', 'variants',
            'display_price', 'final_price', 'discount_badge', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        tenant = self.context.get('tenant')
        if tenant is not None:
            self.fields['category'].queryset = Category.objects.filter(store=tenant.store)

    def get_display_price(self, obj):
        price = display_price(obj)
        return {'label': price.label, 'value': price.value}

    def get_final_price(self, obj):
        return effective_price(display_price(obj).value, obj.discount)

    def get_discount_badge(self, obj):
        return discount_badge(obj.discount)

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("El nombre es obligatorio.")
        return value.strip()

    def validate_images(self, value):
        return _media_list(value, 'images')

    def validate_videos(self, value):
        return _media_list(value, 'videos')

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', ''))
        discount_value = attrs.get('discount_value', getattr(self.instance, 'discount_value', None))
        if discount_type and discount_type not in DiscountType.values:
            raise serializers.ValidationError({'discount_type': "Tipo de descuento inválido."})
        if discount_type == DiscountType.PERCENT and (discount_value or 0) > 100:
            raise serializers.ValidationError({'discount_value': "El descuento no puede superar el 100%."})
        return attrs

    def _plain(self, validated_data):
        data = dict(validated_data)
        if 'options' in data:
            data['options'] = [dict(option) for option in data['options']]
        if 'variants' in data:
            data['variants'] = [dict(variant) for variant in data['variants']]
        return data

    def create(self, validated_data):
        return save_product(self.context['tenant'], self._plain(validated_data))

    def update(self, instance, validated_data):
        return save_product(self.context['tenant'], self._plain(validated_data), instance=instance)


class PublicProductSerializer(serializers.ModelSerializer):
    """Catalog card/detail for shoppers."""
    category = serializers.PrimaryKeyRelatedField(read_only=True)
    display_price = serializers.SerializerMethodField()
    final_price = serializers.SerializerMethodField()
    discount_badge = serializers.SerializerMethodField()
    image = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'category', 'image', 'images', 'videos',
            'options', 'variants', 'display_price', 'final_price', 'discount_badge',
        ]
        read_only_fields = fields

    def get_display_price(self, obj):
        price = display_price(obj)
        return {'label': price.label, 'value': price.value}

    def get_final_price(self, obj):
        return effective_price(display_price(obj).value, obj.discount)

    def get_discount_badge(self, obj):
        return discount_badge(obj.discount)

    def get_image(self, obj):
        url = obj.main_image_url
        return cdn_image_url(url) if url else None


class VariantsPreviewSerializer(serializers.Serializer):
    price = serializers.IntegerField(min_value=0, default=0)
    options = ProductOptionSerializer(many=True)
    variants = VariantSerializer(many=True, required=False)


class ImportUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class MediaSignSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=['products', 'videos'], default='products')


class MediaDeleteSerializer(serializers.Serializer):
    public_id = serializers.CharField()
    resource_type = serializers.ChoiceField(choices=['image', 'video'], default='image')


class CartLineSerializer(serializers.Serializer):
    """
    Fields:
        - product_id: product to add (required)
        - variant_id: selected variant (required for products with variants)
        - qty: quantity; on update, 0 removes the line
    """
    product_id = serializers.IntegerField()
    variant_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    qty = serializers.IntegerField(required=False, default=1)
