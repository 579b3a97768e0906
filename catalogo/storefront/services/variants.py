"""
Variant engine: option normalisation, cartesian expansion and merging with
previously saved variants.

Options and variants are stored as plain JSON on ``Product``; the helpers
here accept either those dicts or the dataclasses below and always return
dataclasses (use ``.to_dict()`` before persisting).
"""
from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

KEY_SEPARATOR = "||"
TITLE_SEPARATOR = " / "

_ID_LENGTH = 10


@dataclass
class ProductOption:
    """A named option such as ``Color`` with its ordered values."""

    name: str
    values: List[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Union["ProductOption", Mapping[str, Any]]) -> "ProductOption":
        if isinstance(raw, ProductOption):
            return cls(name=raw.name, values=list(raw.values))
        values = raw.get("values") or []
        return cls(name=raw.get("name") or "", values=[str(v) for v in values if v is not None])

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "values": list(self.values)}


@dataclass
class Variant:
    """
    A purchasable combination of option values.

    Attributes:
        id: Opaque identifier, stable across regenerations.
        option_values: One value per option, in option order.
        title: Human readable label (``"Rojo / M"``).
        price: Unit price in pesos.
        stock: Units available; ``None`` means not tracked.
        sku: Optional merchant code.
    """

    id: str
    option_values: List[str]
    title: str
    price: Optional[int] = None
    stock: Optional[int] = None
    sku: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Union["Variant", Mapping[str, Any]]) -> "Variant":
        if isinstance(raw, Variant):
            return raw
        option_values = raw.get("option_values")
        if option_values is None:
            option_values = raw.get("optionValues") or []
        return cls(
            id=str(raw.get("id") or ""),
            option_values=[str(v) for v in option_values],
            title=raw.get("title") or "",
            price=raw.get("price"),
            stock=raw.get("stock"),
            sku=raw.get("sku") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if not data["sku"]:
            data.pop("sku")
        return data


@dataclass
class VariantSet:
    """Result of ``generate_variants``: cleaned options plus variants."""

    options: List[ProductOption]
    variants: List[Variant]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "options": [option.to_dict() for option in self.options],
            "variants": [variant.to_dict() for variant in self.variants],
        }


def variant_id_for(key: str) -> str:
    """
    Opaque id for a combination that has no previous variant.

    Derived from the identity key so regenerating from the same inputs
    yields the same ids.
    """
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:_ID_LENGTH]


def cartesian_product(lists: Sequence[Sequence[str]]) -> List[List[str]]:
    """
    Every ordered combination of the given value lists.

    The first list varies slowest. An empty input, or any empty inner list,
    yields no combinations at all.
    """
    if not lists:
        return []
    combos: List[List[str]] = [[]]
    for values in lists:
        combos = [combo + [value] for combo in combos for value in values]
    return combos


def variant_key(option_values: Iterable[str]) -> str:
    """Identity key used to match a combination with a previous variant."""
    return KEY_SEPARATOR.join(str(value).strip().lower() for value in option_values)


def normalize_options(options: Iterable[Union[ProductOption, Mapping[str, Any]]]) -> List[ProductOption]:
    """
    Trim names and values, drop blank values and values repeated ignoring
    case (the first spelling is kept), then drop options left without a
    name or without values.
    """
    cleaned: List[ProductOption] = []
    for raw in options or []:
        option = ProductOption.from_raw(raw)
        name = (option.name or "").strip()
        values: List[str] = []
        seen = set()
        for value in option.values:
            value = (value or "").strip()
            if not value or value.lower() in seen:
                continue
            seen.add(value.lower())
            values.append(value)
        if name and values:
            cleaned.append(ProductOption(name=name, values=values))
    return cleaned


def generate_variants(
    base_price: int,
    options: Iterable[Union[ProductOption, Mapping[str, Any]]],
    previous_variants: Optional[Iterable[Union[Variant, Mapping[str, Any]]]] = None,
) -> VariantSet:
    """
    Expand options into variants, keeping ids, prices and stock of
    combinations that already existed.

    An empty option set means "no variants, sell at the base price".
    """
    clean_options = normalize_options(options)
    if not clean_options:
        return VariantSet(options=[], variants=[])

    previous: Dict[str, Variant] = {}
    for raw in previous_variants or []:
        prev = Variant.from_raw(raw)
        previous[variant_key(prev.option_values)] = prev

    variants: List[Variant] = []
    for combo in cartesian_product([option.values for option in clean_options]):
        key = variant_key(combo)
        existing = previous.get(key)
        if existing is not None:
            variant = Variant(
                id=existing.id or variant_id_for(key),
                option_values=combo,
                title=TITLE_SEPARATOR.join(combo),
                price=existing.price if existing.price is not None else base_price,
                stock=existing.stock if existing.stock is not None else 0,
                sku=existing.sku,
            )
        else:
            variant = Variant(
                id=variant_id_for(key),
                option_values=combo,
                title=TITLE_SEPARATOR.join(combo),
                price=base_price,
                stock=0,
            )
        variants.append(variant)

    return VariantSet(options=clean_options, variants=variants)


def find_variant(variants: Iterable[Union[Variant, Mapping[str, Any]]], variant_id: str) -> Optional[Variant]:
    for raw in variants or []:
        variant = Variant.from_raw(raw)
        if variant.id == variant_id:
            return variant
    return None
