"""
Order placement from a storefront cart.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Dict, List

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Sum
from django.utils import timezone

from storefront.services.cart import calc_total

from .models import Client, Order, OrderItem
from .whatsapp import digits_only

logger = logging.getLogger('orders.checkout')

PHONE_RE = re.compile(r"^\d{7,15}$")
RECENT_ORDERS = 8


class OrderValidationError(Exception):
    """Customer or cart data rejected before anything is written."""


@dataclass(frozen=True)
class Customer:
    name: str
    phone: str
    address: str


def validate_customer(name, phone, address) -> Customer:
    """
    Trim the checkout form and keep only the digits of the phone.
    """
    clean_name = (name or "").strip()
    clean_phone = digits_only((phone or "").strip())
    clean_address = (address or "").strip()

    if not clean_name:
        raise OrderValidationError("Escribe tu nombre.")
    if not clean_phone:
        raise OrderValidationError("Escribe tu teléfono.")
    if not clean_address:
        raise OrderValidationError("Escribe tu dirección.")
    if not PHONE_RE.match(clean_phone):
        raise OrderValidationError("Teléfono inválido. Usa solo números.")
    return Customer(name=clean_name, phone=clean_phone, address=clean_address)


def _clean_lines(cart: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    lines = []
    for line in cart:
        try:
            qty = int(line.get('qty') or 0)
            unit_price = int(line.get('unit_price') or 0)
        except (TypeError, ValueError) as exc:
            raise OrderValidationError("El carrito contiene datos inválidos.") from exc
        if qty < 1 or unit_price <= 0:
            raise OrderValidationError("El carrito contiene productos sin precio o cantidad.")
        lines.append({**line, 'qty': qty, 'unit_price': unit_price})
    return lines


def _create_order(store, lines, customer: Customer, notes: str, total: int) -> Order:
    now = timezone.now()
    client = (
        Client.objects.select_for_update()
        .filter(store=store, phone=customer.phone)
        .first()
    )
    if client is None:
        client = Client.objects.create(
            store=store,
            phone=customer.phone,
            name=customer.name,
            address=customer.address,
            total_orders=1,
            total_spent=total,
            last_order_at=now,
        )
    else:
        Client.objects.filter(pk=client.pk).update(
            name=customer.name,
            address=customer.address,
            total_orders=F('total_orders') + 1,
            total_spent=F('total_spent') + total,
            last_order_at=now,
            updated_at=now,
        )

    order = Order.objects.create(
        store=store,
        client=client,
        status='new',
        channel='whatsapp',
        customer_name=customer.name,
        customer_phone=customer.phone,
        customer_address=customer.address,
        notes=notes,
        total=total,
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product_id=line['product_id'],
            product_name=line.get('product_name') or '',
            variant_id=line.get('variant_id') or '',
            variant_title=line.get('variant_title') or '',
            unit_price=line['unit_price'],
            qty=line['qty'],
            subtotal=line['unit_price'] * line['qty'],
        )
        for line in lines
    ])
    return order


def place_order(tenant, cart, customer: Customer, notes: str = "") -> Order:
    """
    Record the order and upsert the client (keyed by phone) atomically.

    Two first-time orders from the same phone can race on the client insert;
    the loser is retried once in a fresh transaction where the client
    already exists.
    """
    store = tenant.store
    if not cart:
        raise OrderValidationError("El carrito está vacío.")
    if not store.whatsapp:
        raise OrderValidationError("Esta tienda no tiene WhatsApp configurado.")

    lines = _clean_lines(cart)
    total = calc_total(lines)
    notes = (notes or "").strip()

    for attempt in (1, 2):
        try:
            with transaction.atomic():
                order = _create_order(store, lines, customer, notes, total)
        except IntegrityError as exc:
            if attempt == 2:
                logger.error(
                    "Order placement failed for store %s (phone %s): %s",
                    store.pk,
                    customer.phone,
                    exc,
                    exc_info=True,
                )
                raise
            logger.warning("Client insert conflict for store %s, retrying: %s", store.pk, exc)
            continue
        logger.info("Order %s placed for store %s: %s items, total %s", order.pk, store.pk, len(lines), total)
        return order


def update_order_status(order: Order, status: str) -> Order:
    valid = {choice for choice, _label in Order.STATUS_CHOICES}
    if status not in valid:
        raise OrderValidationError(f"Estado inválido: {status}")
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    logger.info("Order %s of store %s moved to %s", order.pk, order.store_id, status)
    return order


def _ordered_history(orders) -> List[Order]:
    return list(orders.order_by('-created_at', '-id'))


def client_orders(client: Client) -> List[Order]:
    """
    Orders of one client, newest first.

    Falls back to sorting in memory when the ordered query is rejected.
    """
    orders = Order.objects.filter(client=client).prefetch_related('items')
    try:
        return _ordered_history(orders)
    except DatabaseError as exc:
        logger.warning("Ordered history query failed for client %s, sorting in memory: %s",
                       client.pk, exc, exc_info=exc)
        return sorted(orders.order_by(), key=lambda o: (o.created_at, o.pk), reverse=True)


def dashboard_stats(store, recent: int = RECENT_ORDERS) -> Dict[str, Any]:
    """
    Counters for the store owner's dashboard. Revenue leaves out cancelled
    orders; "today" is the local calendar day.
    """
    orders = Order.objects.filter(store=store)
    start_of_today = timezone.make_aware(datetime.combine(timezone.localdate(), time.min))
    revenue = orders.exclude(status='cancelled').aggregate(total=Sum('total'))['total']
    return {
        'products_count': store.products.count(),
        'orders_count': orders.count(),
        'clients_count': store.clients.count(),
        'revenue': revenue or 0,
        'orders_today': orders.filter(created_at__gte=start_of_today).count(),
        'recent_orders': list(orders.prefetch_related('items').order_by('-created_at', '-id')[:recent]),
    }
