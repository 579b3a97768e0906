from django.db import models


class Client(models.Model):
    """A store's customer, identified by phone number."""

    store = models.ForeignKey('storefront.Store', on_delete=models.CASCADE, related_name='clients')
    phone = models.CharField(max_length=20, verbose_name='Teléfono')
    name = models.CharField(max_length=200, verbose_name='Nombre')
    address = models.CharField(max_length=255, blank=True, verbose_name='Dirección')
    notes = models.TextField(blank=True, verbose_name='Notas')
    total_orders = models.PositiveIntegerField(default=0, verbose_name='Pedidos')
    total_spent = models.PositiveIntegerField(default=0, verbose_name='Total gastado')
    last_order_at = models.DateTimeField(null=True, blank=True, verbose_name='Último pedido')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Cliente'
        verbose_name_plural = 'Clientes'
        ordering = ['-last_order_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['store', 'phone'], name='uniq_client_phone_per_store'),
        ]

    def __str__(self):
        return f"{self.name} ({self.phone})"


class Order(models.Model):
    STATUS_CHOICES = [
        ('new', 'Nuevo'),
        ('confirmed', 'Confirmado'),
        ('preparing', 'En preparación'),
        ('delivered', 'Entregado'),
        ('cancelled', 'Cancelado'),
    ]

    CHANNEL_CHOICES = [
        ('whatsapp', 'WhatsApp'),
        ('manual', 'Manual'),
    ]

    store = models.ForeignKey('storefront.Store', on_delete=models.CASCADE, related_name='orders')
    client = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='new')
    channel = models.CharField(max_length=12, choices=CHANNEL_CHOICES, default='whatsapp')
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20)
    customer_address = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    total = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Pedido'
        verbose_name_plural = 'Pedidos'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['store', '-created_at'], name='idx_order_store_created'),
            models.Index(fields=['store', 'status', '-created_at'], name='idx_order_status_created'),
        ]

    def __str__(self):
        return f"Pedido #{self.pk} ({self.get_status_display()})"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product_id = models.PositiveBigIntegerField()
    product_name = models.CharField(max_length=200)
    variant_id = models.CharField(max_length=40, blank=True)
    variant_title = models.CharField(max_length=200, blank=True)
    unit_price = models.PositiveIntegerField()
    qty = models.PositiveIntegerField(default=1)
    subtotal = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Producto del pedido'
        verbose_name_plural = 'Productos del pedido'
        ordering = ['id']

    def __str__(self):
        return f"{self.qty} x {self.product_name}"

    def save(self, *args, **kwargs):
        self.subtotal = self.unit_price * self.qty
        super().save(*args, **kwargs)
