from django.contrib import admin

from .models import Client, Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ('product_id', 'product_name', 'variant_id', 'variant_title', 'unit_price', 'qty', 'subtotal')
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'store', 'customer_name', 'customer_phone', 'status', 'total', 'created_at')
    list_filter = ('status', 'channel', 'created_at')
    search_fields = ('customer_name', 'customer_phone', 'store__name')
    readonly_fields = ('created_at', 'updated_at', 'total')
    inlines = [OrderItemInline]


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone', 'store', 'total_orders', 'total_spent', 'last_order_at')
    search_fields = ('name', 'phone', 'store__name')
    readonly_fields = ('total_orders', 'total_spent', 'last_order_at', 'created_at', 'updated_at')
