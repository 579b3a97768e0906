"""
WhatsApp click-to-chat links and the order message sent to the merchant.
"""
from urllib.parse import quote

from storefront.services.pricing import format_cop

WA_BASE_URL = "https://wa.me/"


def digits_only(value) -> str:
    return "".join(ch for ch in str(value or "") if ch.isdigit())


def build_wa_link(phone, message: str = "") -> str:
    """``https://wa.me/<digits>?text=<message>``; the query is omitted for an empty message."""
    url = f"{WA_BASE_URL}{digits_only(phone)}"
    if message:
        url += f"?text={quote(message, safe='')}"
    return url


def format_order_message(order) -> str:
    """
    Merchant-facing summary of ``order`` (WhatsApp markdown).
    """
    lines = [
        "🛒 *Nuevo pedido*",
        f"Tienda: *{order.store.name}*",
        f"Pedido ID: {order.pk}",
        "",
        f"👤 Cliente: *{order.customer_name}*",
        f"📞 Tel: {order.customer_phone}",
        f"📍 Dirección: {order.customer_address}",
    ]
    if order.notes:
        lines.append(f"📝 Notas: {order.notes}")
    lines += ["", "📦 *Productos*:"]
    for item in order.items.all():
        variant = f" ({item.variant_title})" if item.variant_title else ""
        lines.append(f"- {item.qty} x {item.product_name}{variant} — {format_cop(item.subtotal)}")
    lines += ["", f"💰 *Total:* {format_cop(order.total)}"]
    return "\n".join(lines)
