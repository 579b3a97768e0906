"""
Unit tests for price helpers (services/pricing.py).
"""
from django.test import SimpleTestCase

from storefront.services.pricing import (
    Discount,
    discount_badge,
    display_price,
    effective_price,
    format_cop,
    parse_cop,
    savings,
)


class FormatCopTests(SimpleTestCase):
    def test_thousands_use_dots(self):
        self.assertEqual(format_cop(25000), "$ 25.000")
        self.assertEqual(format_cop(1234567), "$ 1.234.567")

    def test_small_and_zero(self):
        self.assertEqual(format_cop(0), "$ 0")
        self.assertEqual(format_cop(None), "$ 0")
        self.assertEqual(format_cop(950), "$ 950")

    def test_rounds_to_whole_pesos(self):
        self.assertEqual(format_cop(2499.5), "$ 2.500")

    def test_negative(self):
        self.assertEqual(format_cop(-15000), "-$ 15.000")


class ParseCopTests(SimpleTestCase):
    def test_strips_everything_but_digits(self):
        self.assertEqual(parse_cop("$ 25.000"), 25000)
        self.assertEqual(parse_cop("2,500"), 2500)

    def test_numbers_are_rounded(self):
        self.assertEqual(parse_cop(2500.6), 2501)
        self.assertEqual(parse_cop(2500), 2500)

    def test_empty(self):
        self.assertEqual(parse_cop(""), 0)
        self.assertEqual(parse_cop(None), 0)
        self.assertEqual(parse_cop("gratis"), 0)


class EffectivePriceTests(SimpleTestCase):
    def test_no_discount(self):
        self.assertEqual(effective_price(50000, None), 50000)

    def test_percent(self):
        self.assertEqual(effective_price(50000, {"type": "percent", "value": 10}), 45000)

    def test_percent_rounds_half_up(self):
        # 999 * 0.5 = 499.5
        self.assertEqual(effective_price(999, Discount("percent", 50)), 500)

    def test_percent_is_clamped(self):
        self.assertEqual(effective_price(50000, {"type": "percent", "value": 150}), 0)

    def test_amount(self):
        self.assertEqual(effective_price(50000, {"type": "amount", "value": 15000}), 35000)

    def test_amount_never_below_zero(self):
        self.assertEqual(effective_price(10000, {"type": "amount", "value": 15000}), 0)

    def test_non_positive_value_is_ignored(self):
        self.assertEqual(effective_price(10000, {"type": "amount", "value": 0}), 10000)
        self.assertEqual(effective_price(10000, {"type": "percent", "value": -5}), 10000)

    def test_unknown_type_is_ignored(self):
        self.assertEqual(effective_price(10000, {"type": "bogo", "value": 50}), 10000)

    def test_savings(self):
        self.assertEqual(savings(50000, {"type": "percent", "value": 10}), 5000)
        self.assertEqual(savings(50000, None), 0)


class DiscountBadgeTests(SimpleTestCase):
    def test_percent_badge(self):
        self.assertEqual(discount_badge({"type": "percent", "value": 10}), "-10%")

    def test_amount_badge(self):
        self.assertEqual(discount_badge({"type": "amount", "value": 15000}), "-$ 15.000")

    def test_no_badge_without_discount(self):
        self.assertIsNone(discount_badge(None))
        self.assertIsNone(discount_badge({"type": "amount", "value": 0}))


class DisplayPriceTests(SimpleTestCase):
    def test_without_variants_uses_base_price(self):
        price = display_price({"price": 25000, "variants": []})
        self.assertEqual(price.value, 25000)
        self.assertEqual(price.label, "$ 25.000")

    def test_with_variants_uses_cheapest_priced_variant(self):
        price = display_price({
            "price": 99999,
            "variants": [{"price": 30000}, {"price": 0}, {"price": 25000}, {"price": None}],
        })
        self.assertEqual(price.value, 25000)
        self.assertEqual(price.label, "Desde $ 25.000")

    def test_all_variants_unpriced(self):
        price = display_price({"price": 10000, "variants": [{"price": 0}, {}]})
        self.assertEqual(price.value, 0)
        self.assertEqual(price.label, "Desde $ 0")

    def test_negative_variant_prices_are_ignored(self):
        price = display_price({"price": 10000, "variants": [{"price": -5}, {"price": 8000}]})
        self.assertEqual(price.value, 8000)
