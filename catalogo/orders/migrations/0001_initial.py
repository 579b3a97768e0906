import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('storefront', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Client',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('phone', models.CharField(max_length=20, verbose_name='Teléfono')),
                ('name', models.CharField(max_length=200, verbose_name='Nombre')),
                ('address', models.CharField(blank=True, max_length=255, verbose_name='Dirección')),
                ('notes', models.TextField(blank=True, verbose_name='Notas')),
                ('total_orders', models.PositiveIntegerField(default=0, verbose_name='Pedidos')),
                ('total_spent', models.PositiveIntegerField(default=0, verbose_name='Total gastado')),
                ('last_order_at', models.DateTimeField(blank=True, null=True, verbose_name='Último pedido')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='clients', to='storefront.store')),
            ],
            options={
                'verbose_name': 'Cliente',
                'verbose_name_plural': 'Clientes',
                'ordering': ['-last_order_at', '-id'],
                'constraints': [
                    models.UniqueConstraint(fields=('store', 'phone'), name='uniq_client_phone_per_store'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('new', 'Nuevo'), ('confirmed', 'Confirmado'), ('preparing', 'En preparación'), ('delivered', 'Entregado'), ('cancelled', 'Cancelado')], default='new', max_length=12)),
                ('channel', models.CharField(choices=[('whatsapp', 'WhatsApp'), ('manual', 'Manual')], default='whatsapp', max_length=12)),
                ('customer_name', models.CharField(max_length=200)),
                ('customer_phone', models.CharField(max_length=20)),
                ('customer_address', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('total', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='orders.client')),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='storefront.store')),
            ],
            options={
                'verbose_name': 'Pedido',
                'verbose_name_plural': 'Pedidos',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['store', '-created_at'], name='idx_order_store_created'),
                    models.Index(fields=['store', 'status', '-created_at'], name='idx_order_status_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField()),
                ('product_name', models.CharField(max_length=200)),
                ('variant_id', models.CharField(blank=True, max_length=40)),
                ('variant_title', models.CharField(blank=True, max_length=200)),
                ('unit_price', models.PositiveIntegerField()),
                ('qty', models.PositiveIntegerField(default=1)),
                ('subtotal', models.PositiveIntegerField(default=0)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order')),
            ],
            options={
                'verbose_name': 'Producto del pedido',
                'verbose_name_plural': 'Productos del pedido',
                'ordering': ['id'],
            },
        ),
    ]
