"""
Price helpers: currency formatting, discounts and the "from" price shown on
product cards.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Union

DISCOUNT_PERCENT = "percent"
DISCOUNT_AMOUNT = "amount"
DISCOUNT_TYPES = (DISCOUNT_PERCENT, DISCOUNT_AMOUNT)

FROM_PREFIX = "Desde "

_NON_DIGITS = re.compile(r"[^\d]")


@dataclass(frozen=True)
class Discount:
    type: str
    value: Union[int, float]

    @classmethod
    def coerce(cls, raw: Any) -> Optional["Discount"]:
        """Accept a ``Discount``, a ``{type, value}`` mapping or ``None``."""
        if raw is None or isinstance(raw, Discount):
            return raw
        if isinstance(raw, Mapping):
            try:
                value = float(raw.get("value") or 0)
            except (TypeError, ValueError):
                value = 0
            return cls(type=str(raw.get("type") or ""), value=value)
        raise TypeError(f"Unsupported discount value: {raw!r}")

    def to_dict(self):
        return {"type": self.type, "value": self.value}


@dataclass(frozen=True)
class DisplayPrice:
    label: str
    value: int


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cop(value: Union[int, float, Decimal, None]) -> str:
    """
    Format pesos the way es-CO shops show them: ``$ 25.000``.
    """
    amount = _round_half_up(Decimal(str(value or 0)))
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}$ {grouped}"


def parse_cop(raw: Any) -> int:
    """
    ``"$ 25.000"``, ``"25,000"`` and ``25000`` all become ``25000``.
    """
    if raw is None:
        return 0
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float, Decimal)):
        return _round_half_up(Decimal(str(raw)))
    digits = _NON_DIGITS.sub("", str(raw))
    return int(digits) if digits else 0


def has_discount(discount: Any) -> bool:
    discount = Discount.coerce(discount)
    return bool(discount and discount.type in DISCOUNT_TYPES and discount.value > 0)


def effective_price(base_price: int, discount: Any) -> int:
    """
    Price after applying ``discount`` to ``base_price``.

    Percent discounts are clamped to [0, 100] and rounded half-up; amount
    discounts are clamped to >= 0. The result never goes below zero.
    """
    discount = Discount.coerce(discount)
    if not discount or discount.value <= 0:
        return base_price
    if discount.type == DISCOUNT_PERCENT:
        pct = min(Decimal(100), max(Decimal(0), Decimal(str(discount.value))))
        return max(0, _round_half_up(Decimal(base_price) * (1 - pct / 100)))
    if discount.type == DISCOUNT_AMOUNT:
        amount = max(0, _round_half_up(Decimal(str(discount.value))))
        return max(0, base_price - amount)
    return base_price


def savings(base_price: int, discount: Any) -> int:
    return max(0, base_price - effective_price(base_price, discount))


def discount_badge(discount: Any) -> Optional[str]:
    """Short label for product cards: ``-10%`` or ``-$ 15.000``."""
    if not has_discount(discount):
        return None
    discount = Discount.coerce(discount)
    if discount.type == DISCOUNT_PERCENT:
        pct = min(100, discount.value)
        return f"-{int(pct) if float(pct).is_integer() else pct}%"
    return f"-{format_cop(discount.value)}"


def _field(obj: Any, name: str, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def display_price(product: Any) -> DisplayPrice:
    """
    Card price for a product (model instance or mapping).

    With variants the cheapest priced variant wins and the label reads
    ``Desde ...``; variants priced at zero or unset are ignored unless all of
    them are, in which case the value is 0.
    """
    variants = _field(product, "variants") or []
    if variants:
        prices = []
        for variant in variants:
            price = _field(variant, "price")
            try:
                price = int(price or 0)
            except (TypeError, ValueError):
                price = 0
            if price > 0:
                prices.append(price)
        value = min(prices) if prices else 0
        return DisplayPrice(label=FROM_PREFIX + format_cop(value), value=value)

    value = int(_field(product, "price") or 0)
    return DisplayPrice(label=format_cop(value), value=value)
