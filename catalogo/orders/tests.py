"""
Tests for order placement, WhatsApp messages and the order APIs.
"""
from datetime import timedelta
from unittest import mock
from urllib.parse import parse_qs, urlparse

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from storefront.models import Product, Store
from storefront.services.tenant import TenantContext

from . import services
from .models import Client, Order
from .services import Customer, OrderValidationError, place_order, update_order_status, validate_customer
from .whatsapp import build_wa_link, digits_only, format_order_message


def cart_line(product_id, name, unit_price, qty=1, variant_id=None, variant_title=None):
    return {
        'product_id': product_id,
        'product_name': name,
        'unit_price': unit_price,
        'qty': qty,
        'variant_id': variant_id,
        'variant_title': variant_title,
        'image_url': None,
    }


class ValidateCustomerTests(SimpleTestCase):
    def test_trims_and_keeps_phone_digits(self):
        customer = validate_customer("  Ana ", "+57 300-111-2233", " Calle 1 # 2-3 ")
        self.assertEqual(customer, Customer(name="Ana", phone="573001112233", address="Calle 1 # 2-3"))

    def test_required_fields(self):
        for name, phone, address in [("", "3001112233", "Calle"), ("Ana", "", "Calle"), ("Ana", "3001112233", " ")]:
            with self.assertRaises(OrderValidationError):
                validate_customer(name, phone, address)

    def test_phone_length(self):
        with self.assertRaisesMessage(OrderValidationError, "Teléfono inválido"):
            validate_customer("Ana", "12345", "Calle")
        with self.assertRaises(OrderValidationError):
            validate_customer("Ana", "1" * 16, "Calle")


class WhatsAppLinkTests(SimpleTestCase):
    def test_digits_only(self):
        self.assertEqual(digits_only("+57 (300) 111-22-33"), "573001112233")
        self.assertEqual(digits_only(None), "")

    def test_link_without_message(self):
        self.assertEqual(build_wa_link("+57 300 111 2233"), "https://wa.me/573001112233")

    def test_message_is_fully_encoded(self):
        url = build_wa_link("573001112233", "Hola & adiós\n#1")
        self.assertTrue(url.startswith("https://wa.me/573001112233?text="))
        self.assertNotIn(" ", url)
        self.assertNotIn("\n", url)
        self.assertEqual(parse_qs(urlparse(url).query)["text"], ["Hola & adiós\n#1"])


class PlaceOrderTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=owner, name="Tienda", slug="tienda", whatsapp="573001112233")

    def setUp(self):
        self.tenant = TenantContext(store=self.store)
        self.customer = Customer(name="Ana", phone="3009998877", address="Calle 1")
        self.cart = [
            cart_line(1, "Camiseta", 30000, qty=2, variant_id="m", variant_title="M"),
            cart_line(2, "Gorra", 15000),
        ]

    def test_creates_order_items_and_client(self):
        order = place_order(self.tenant, self.cart, self.customer, notes="  Sin cebolla ")
        self.assertEqual(order.total, 75000)
        self.assertEqual(order.status, "new")
        self.assertEqual(order.channel, "whatsapp")
        self.assertEqual(order.notes, "Sin cebolla")
        self.assertEqual([(i.product_name, i.qty, i.subtotal) for i in order.items.all()],
                         [("Camiseta", 2, 60000), ("Gorra", 1, 15000)])
        self.assertEqual(order.items.first().variant_title, "M")

        client = Client.objects.get(store=self.store, phone="3009998877")
        self.assertEqual(order.client, client)
        self.assertEqual((client.total_orders, client.total_spent), (1, 75000))
        self.assertIsNotNone(client.last_order_at)

    def test_repeat_customer_is_updated(self):
        place_order(self.tenant, self.cart, self.customer)
        moved = Customer(name="Ana María", phone="3009998877", address="Calle 2")
        place_order(self.tenant, [cart_line(2, "Gorra", 15000)], moved)

        client = Client.objects.get(store=self.store, phone="3009998877")
        self.assertEqual((client.total_orders, client.total_spent), (2, 90000))
        self.assertEqual(client.name, "Ana María")
        self.assertEqual(client.address, "Calle 2")
        self.assertEqual(Client.objects.count(), 1)

    def test_clients_are_per_store(self):
        owner = get_user_model().objects.create_user(username="other@example.com", password="x")
        other = Store.objects.create(owner=owner, name="Otra", slug="otra", whatsapp="573005556677")
        place_order(self.tenant, self.cart, self.customer)
        place_order(TenantContext(store=other), self.cart, self.customer)
        self.assertEqual(Client.objects.filter(phone="3009998877").count(), 2)

    def test_empty_cart(self):
        with self.assertRaisesMessage(OrderValidationError, "vacío"):
            place_order(self.tenant, [], self.customer)
        self.assertFalse(Order.objects.exists())

    def test_store_without_whatsapp(self):
        self.store.whatsapp = ""
        self.store.save()
        with self.assertRaises(OrderValidationError):
            place_order(TenantContext(store=self.store), self.cart, self.customer)

    def test_zero_priced_line(self):
        with self.assertRaises(OrderValidationError):
            place_order(self.tenant, [cart_line(1, "Muestra", 0)], self.customer)
        self.assertFalse(Client.objects.exists())

    def test_client_conflict_is_retried_once(self):
        real_create = services._create_order
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise IntegrityError("duplicate phone")
            return real_create(*args)

        with mock.patch.object(services, "_create_order", side_effect=flaky):
            order = place_order(self.tenant, self.cart, self.customer)
        self.assertEqual(len(calls), 2)
        self.assertEqual(Order.objects.get().pk, order.pk)

    def test_second_conflict_is_raised(self):
        with mock.patch.object(services, "_create_order", side_effect=IntegrityError("duplicate phone")):
            with self.assertRaises(IntegrityError):
                place_order(self.tenant, self.cart, self.customer)

    def test_update_status(self):
        order = place_order(self.tenant, self.cart, self.customer)
        update_order_status(order, "confirmed")
        order.refresh_from_db()
        self.assertEqual(order.status, "confirmed")
        with self.assertRaises(OrderValidationError):
            update_order_status(order, "lost")

    def test_order_message(self):
        order = place_order(self.tenant, self.cart, self.customer, notes="Portería")
        message = format_order_message(order)
        self.assertIn("Tienda: *Tienda*", message)
        self.assertIn(f"Pedido ID: {order.pk}", message)
        self.assertIn("📝 Notas: Portería", message)
        self.assertIn("- 2 x Camiseta (M) — $ 60.000", message)
        self.assertIn("- 1 x Gorra — $ 15.000", message)
        self.assertTrue(message.endswith("💰 *Total:* $ 75.000"))

    def test_message_without_notes(self):
        order = place_order(self.tenant, self.cart, self.customer)
        self.assertNotIn("Notas", format_order_message(order))


class CheckoutAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=owner, name="Tienda", slug="tienda", whatsapp="573001112233")
        cls.cap = Product.objects.create(store=cls.store, name="Gorra", price=20000)

    def setUp(self):
        self.client = APIClient()
        self.url = f"/api/public/stores/{self.store.slug}/checkout/"

    def _add_cap(self, qty=1):
        self.client.post(f"/api/public/stores/{self.store.slug}/cart/add/",
                         {"product_id": self.cap.pk, "qty": qty}, format="json")

    def test_checkout_places_order_and_clears_cart(self):
        self._add_cap(qty=2)
        response = self.client.post(self.url, {
            "name": "Ana", "phone": "300 999 8877", "address": "Calle 1", "notes": "",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["total"], 40000)
        self.assertTrue(response.data["whatsapp_url"].startswith("https://wa.me/573001112233?text="))

        order = Order.objects.get(pk=response.data["order_id"])
        self.assertEqual(order.customer_phone, "3009998877")
        cart = self.client.get(f"/api/public/stores/{self.store.slug}/cart/").data
        self.assertEqual(cart["items"], [])

    def test_empty_cart_is_rejected(self):
        response = self.client.post(self.url, {"name": "Ana", "phone": "3009998877", "address": "Calle 1"},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_invalid_customer_keeps_cart(self):
        self._add_cap()
        response = self.client.post(self.url, {"name": "Ana", "phone": "12", "address": "Calle 1"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        cart = self.client.get(f"/api/public/stores/{self.store.slug}/cart/").data
        self.assertEqual(cart["count"], 1)

    def test_unknown_store(self):
        response = self.client.post("/api/public/stores/nada/checkout/", {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class OrderAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=cls.owner, name="Tienda", slug="tienda", whatsapp="573001112233")
        tenant = TenantContext(store=cls.store)
        customer = Customer(name="Ana", phone="3009998877", address="Calle 1")
        cls.orders = [
            place_order(tenant, [cart_line(1, f"Producto {i}", 1000 * (i + 1))], customer)
            for i in range(3)
        ]
        update_order_status(cls.orders[0], "delivered")

        other_owner = get_user_model().objects.create_user(username="other@example.com", password="x")
        other = Store.objects.create(owner=other_owner, name="Otra", slug="otra", whatsapp="573005556677")
        cls.foreign = place_order(TenantContext(store=other), [cart_line(1, "Ajeno", 1000)], customer)

    def setUp(self):
        self.client = APIClient()
        self.client.force_login(self.owner)

    def test_list_is_paged_newest_first(self):
        first = self.client.get("/api/orders/").data
        self.assertEqual([o["id"] for o in first["results"]], [self.orders[2].pk, self.orders[1].pk])
        self.assertTrue(first["has_next"])
        self.assertEqual(first["results"][0]["total_label"], "$ 3.000")

        second = self.client.get("/api/orders/", {"direction": "next", "cursor": first["last_cursor"]}).data
        self.assertEqual([o["id"] for o in second["results"]], [self.orders[0].pk])
        self.assertFalse(second["has_next"])

    def test_filter_by_status(self):
        response = self.client.get("/api/orders/", {"status": "delivered"})
        self.assertEqual([o["id"] for o in response.data["results"]], [self.orders[0].pk])

    def test_set_status(self):
        order = self.orders[1]
        response = self.client.post(f"/api/orders/{order.pk}/status/", {"status": "confirmed"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["order"]["status_display"], "Confirmado")

        response = self.client.post(f"/api/orders/{order.pk}/status/", {"status": "lost"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_store_order_is_hidden(self):
        response = self.client.get(f"/api/orders/{self.foreign.pk}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clients(self):
        response = self.client.get("/api/clients/")
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["total_orders"], 3)
        self.assertEqual(response.data[0]["total_spent"], 6000)

        client_id = response.data[0]["id"]
        response = self.client.patch(f"/api/clients/{client_id}/", {"notes": "Cliente frecuente", "phone": "1"},
                                     format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client = Client.objects.get(pk=client_id)
        self.assertEqual(client.notes, "Cliente frecuente")
        self.assertEqual(client.phone, "3009998877")

    def test_client_order_history_newest_first(self):
        client = Client.objects.get(store=self.store)
        response = self.client.get(f"/api/clients/{client.pk}/orders/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o["id"] for o in response.data], [o.pk for o in reversed(self.orders)])
        self.assertEqual(response.data[0]["items"][0]["product_name"], "Producto 2")

    def test_client_order_history_without_ordered_query(self):
        client = Client.objects.get(store=self.store)
        with mock.patch.object(services, "_ordered_history", side_effect=DatabaseError("no index")):
            response = self.client.get(f"/api/clients/{client.pk}/orders/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o["id"] for o in response.data], [o.pk for o in reversed(self.orders)])

    def test_other_store_client_history_is_hidden(self):
        response = self.client.get(f"/api/clients/{self.foreign.client_id}/orders/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class DashboardTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=cls.owner, name="Tienda", slug="tienda", whatsapp="573001112233")
        Product.objects.create(store=cls.store, name="Gorra", price=1000)
        tenant = TenantContext(store=cls.store)
        cls.orders = [
            place_order(
                tenant,
                [cart_line(1, "Gorra", 1000 * (i + 1))],
                Customer(name=f"Cliente {i}", phone=f"300000000{i % 2}", address=""),
            )
            for i in range(10)
        ]
        update_order_status(cls.orders[9], "cancelled")
        Order.objects.filter(pk=cls.orders[0].pk).update(created_at=timezone.now() - timedelta(days=2))

        other_owner = get_user_model().objects.create_user(username="other@example.com", password="x")
        other = Store.objects.create(owner=other_owner, name="Otra", slug="otra", whatsapp="573005556677")
        Product.objects.create(store=other, name="Ajena", price=5)
        place_order(TenantContext(store=other), [cart_line(1, "Ajena", 5000)],
                    Customer(name="Beto", phone="3001234567", address=""))

    def test_stats(self):
        stats = services.dashboard_stats(self.store)
        self.assertEqual(stats["products_count"], 1)
        self.assertEqual(stats["orders_count"], 10)
        self.assertEqual(stats["clients_count"], 2)
        # 1000 + ... + 9000, the cancelled 10000 left out
        self.assertEqual(stats["revenue"], 45000)
        self.assertEqual(stats["orders_today"], 9)
        self.assertEqual(
            [o.pk for o in stats["recent_orders"]],
            [o.pk for o in reversed(self.orders[2:])],
        )

    def test_empty_store(self):
        owner = get_user_model().objects.create_user(username="nuevo@example.com", password="x")
        store = Store.objects.create(owner=owner, name="Nueva", slug="nueva", whatsapp="573000000000")
        stats = services.dashboard_stats(store)
        self.assertEqual(stats["revenue"], 0)
        self.assertEqual(stats["orders_today"], 0)
        self.assertEqual(stats["recent_orders"], [])

    def test_endpoint(self):
        client = APIClient()
        client.force_login(self.owner)
        response = client.get("/api/dashboard/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["revenue_label"], "$ 45.000")
        self.assertEqual(len(response.data["recent_orders"]), 8)
        self.assertEqual(response.data["recent_orders"][0]["id"], self.orders[9].pk)

    def test_endpoint_requires_login(self):
        response = APIClient().get("/api/dashboard/")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
