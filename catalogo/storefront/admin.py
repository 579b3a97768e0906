from django.contrib import admin

from .models import Category, Product, Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'owner', 'whatsapp', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'slug', 'owner__email')
    prepopulated_fields = {'slug': ('name',)}


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'store', 'order')
    list_filter = ('store',)
    search_fields = ('name',)
    ordering = ('store', 'order', 'name')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'store', 'category', 'sku', 'price', 'discount_type', 'discount_value', 'created_at')
    list_filter = ('store', 'discount_type')
    search_fields = ('name', 'sku')
    readonly_fields = ('created_at', 'updated_at')
    list_select_related = ('store', 'category')
