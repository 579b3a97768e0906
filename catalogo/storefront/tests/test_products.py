"""
Tests for product write workflows and media release on delete.
"""
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase

from storefront.models import Category, Product, Store
from storefront.services.products import delete_product, save_product
from storefront.services.tenant import TenantContext
from storefront.tasks import queue_media_release


class SaveProductTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=owner, name="Tienda", slug="tienda")
        cls.category = Category.objects.create(store=cls.store, name="Camisetas")

    def setUp(self):
        self.tenant = TenantContext(store=self.store)

    def test_creates_product_with_generated_variants(self):
        product = save_product(self.tenant, {
            "name": "Camiseta",
            "price": 30000,
            "category": self.category,
            "options": [{"name": " Talla ", "values": ["S", "M", ""]}],
        })
        product.refresh_from_db()
        self.assertEqual(product.store, self.store)
        self.assertEqual(product.options, [{"name": "Talla", "values": ["S", "M"]}])
        self.assertEqual([v["title"] for v in product.variants], ["S", "M"])
        self.assertTrue(all(v["price"] == 30000 and v["stock"] == 0 for v in product.variants))

    def test_update_keeps_edited_variants(self):
        product = save_product(self.tenant, {
            "name": "Camiseta",
            "price": 30000,
            "options": [{"name": "Talla", "values": ["S", "M"]}],
        })
        variants = [dict(v) for v in product.variants]
        variants[1]["price"] = 35000
        variants[1]["stock"] = 4
        product = save_product(self.tenant, {"variants": variants}, instance=product)

        product = save_product(
            self.tenant,
            {"options": [{"name": "Talla", "values": ["M", "L"]}]},
            instance=product,
        )
        by_title = {v["title"]: v for v in product.variants}
        self.assertEqual(set(by_title), {"M", "L"})
        self.assertEqual(by_title["M"]["price"], 35000)
        self.assertEqual(by_title["M"]["stock"], 4)
        self.assertEqual(by_title["M"]["id"], variants[1]["id"])
        self.assertEqual(by_title["L"]["price"], 30000)

    def test_plain_update_leaves_variants_alone(self):
        product = save_product(self.tenant, {
            "name": "Camiseta",
            "price": 30000,
            "options": [{"name": "Talla", "values": ["S"]}],
        })
        product = save_product(self.tenant, {"price": 40000}, instance=product)
        self.assertEqual(product.variants[0]["price"], 30000)

    def test_percent_discount_over_100_is_rejected(self):
        with self.assertRaises(ValidationError):
            save_product(self.tenant, {
                "name": "Gorra",
                "price": 10000,
                "discount_type": "percent",
                "discount_value": 150,
            })
        self.assertFalse(Product.objects.filter(name="Gorra").exists())

    def test_other_store_product_is_refused(self):
        owner = get_user_model().objects.create_user(username="other@example.com", password="x")
        other = Store.objects.create(owner=owner, name="Otra", slug="otra")
        foreign = Product.objects.create(store=other, name="Ajeno", price=1)
        with self.assertRaises(ValueError):
            save_product(self.tenant, {"price": 2}, instance=foreign)


class DeleteProductTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=owner, name="Tienda", slug="tienda")

    def setUp(self):
        self.tenant = TenantContext(store=self.store)
        self.product = Product.objects.create(
            store=self.store,
            name="Camiseta",
            price=30000,
            images=[{"url": "https://cdn/a.jpg", "public_id": "stores/%s/products/a" % self.store.pk}],
            videos=[{"url": "https://cdn/v.mp4", "public_id": "stores/%s/videos/v" % self.store.pk}],
        )

    @mock.patch("storefront.services.media_service.requests.post")
    def test_media_is_released_after_commit(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200, json=mock.Mock(return_value={"result": "ok"}))

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            queued = delete_product(self.tenant, self.product)
            post.assert_not_called()

        self.assertEqual(queued, 2)
        self.assertFalse(Product.objects.filter(pk=self.product.pk).exists())
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        urls = [call.args[0] for call in post.call_args_list]
        self.assertEqual(urls, [
            "https://api.cloudinary.com/v1_1/demo-cloud/image/destroy",
            "https://api.cloudinary.com/v1_1/demo-cloud/video/destroy",
        ])

    @mock.patch("storefront.services.media_service.requests.post")
    def test_release_failure_does_not_undo_delete(self, post):
        post.return_value = mock.Mock(ok=False, status_code=500, text="boom",
                                      json=mock.Mock(return_value={}))
        with self.captureOnCommitCallbacks(execute=True):
            delete_product(self.tenant, self.product)
        self.assertFalse(Product.objects.filter(pk=self.product.pk).exists())
        self.assertEqual(post.call_count, 2)

    @mock.patch("storefront.tasks._release_for_store")
    @mock.patch("storefront.tasks.release_product_media_task.delay", side_effect=ConnectionError("redis down"))
    def test_queue_falls_back_to_inline_release(self, delay, release):
        queue_media_release(self.store.pk, [("stores/1/products/a", "image")])
        delay.assert_called_once()
        release.assert_called_once_with(self.store.pk, [["stores/1/products/a", "image"]])

    @mock.patch("storefront.tasks.release_product_media_task.delay")
    def test_nothing_to_release(self, delay):
        queue_media_release(self.store.pk, [])
        delay.assert_not_called()
