from rest_framework import serializers

from storefront.services.pricing import format_cop

from .models import Client, Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['product_id', 'product_name', 'variant_id', 'variant_title', 'unit_price', 'qty', 'subtotal']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_label = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'status', 'status_display', 'channel', 'client', 'customer_name', 'customer_phone',
            'customer_address', 'notes', 'items', 'total', 'total_label', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_total_label(self, obj):
        return format_cop(obj.total)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = [
            'id', 'name', 'phone', 'address', 'notes', 'total_orders', 'total_spent',
            'last_order_at', 'created_at',
        ]
        read_only_fields = ['id', 'phone', 'total_orders', 'total_spent', 'last_order_at', 'created_at']


class CheckoutSerializer(serializers.Serializer):
    """
    Fields:
        - name, phone, address: customer data (required)
        - notes: free text for the merchant (optional)
    """
    name = serializers.CharField(allow_blank=True)
    phone = serializers.CharField(allow_blank=True)
    address = serializers.CharField(allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
