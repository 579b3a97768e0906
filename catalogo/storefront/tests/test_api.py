"""
API tests for the owner and public storefront endpoints.
"""
import io
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from openpyxl import Workbook
from rest_framework import status
from rest_framework.test import APIClient

from storefront.models import Category, Product, Store


def make_store(email, slug, whatsapp="573001112233"):
    owner = get_user_model().objects.create_user(username=email, email=email, password="secreto123")
    store = Store.objects.create(owner=owner, name=slug.title(), slug=slug, whatsapp=whatsapp)
    return owner, store


class OwnerAPITestCase(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.owner, cls.store = make_store("owner@example.com", "tienda")
        cls.other_owner, cls.other_store = make_store("other@example.com", "otra")
        cls.shirts = Category.objects.create(store=cls.store, name="Camisetas", order=1)

    def setUp(self):
        self.client = APIClient()
        self.client.force_login(self.owner)


class PermissionTests(OwnerAPITestCase):
    def test_anonymous_is_rejected(self):
        response = APIClient().get("/api/products/")
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_user_without_store_is_forbidden(self):
        user = get_user_model().objects.create_user(username="nostore@example.com", password="x")
        client = APIClient()
        client.force_login(user)
        response = client.get("/api/categories/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_other_store_product_is_not_found(self):
        foreign = Product.objects.create(store=self.other_store, name="Ajeno", price=1000)
        response = self.client.get(f"/api/products/{foreign.pk}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class StoreSettingsAPITests(OwnerAPITestCase):
    def test_get_and_patch(self):
        response = self.client.get("/api/store/")
        self.assertEqual(response.data["slug"], "tienda")

        response = self.client.patch("/api/store/", {"whatsapp": "+57 300 999 8877"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.store.refresh_from_db()
        self.assertEqual(self.store.whatsapp, "573009998877")

    def test_invalid_whatsapp(self):
        response = self.client.patch("/api/store/", {"whatsapp": "12"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CategoryAPITests(OwnerAPITestCase):
    def test_create_and_list(self):
        response = self.client.post("/api/categories/", {"name": " Gorras ", "order": 2}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Category.objects.get(pk=response.data["id"]).store, self.store)

        response = self.client.get("/api/categories/")
        self.assertEqual([c["name"] for c in response.data], ["Camisetas", "Gorras"])
        self.assertEqual(response.data[0]["products_count"], 0)

    def test_duplicate_name_ignores_case(self):
        response = self.client.post("/api/categories/", {"name": "camisetas"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_name_in_another_store_is_fine(self):
        Category.objects.create(store=self.other_store, name="Gorras")
        response = self.client.post("/api/categories/", {"name": "Gorras"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_category_with_products_is_protected(self):
        Product.objects.create(store=self.store, category=self.shirts, name="Camiseta", price=1000)
        response = self.client.delete(f"/api/categories/{self.shirts.pk}/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])
        self.assertTrue(Category.objects.filter(pk=self.shirts.pk).exists())

    def test_delete_empty_category(self):
        empty = Category.objects.create(store=self.store, name="Vacía")
        response = self.client.delete(f"/api/categories/{empty.pk}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class ProductAPITests(OwnerAPITestCase):
    def test_create_with_options(self):
        response = self.client.post("/api/products/", {
            "name": "Camiseta",
            "price": 30000,
            "category": self.shirts.pk,
            "discount_type": "percent",
            "discount_value": 10,
            "options": [{"name": "Talla", "values": ["S", "M"]}],
            "images": [{"url": "https://res.cloudinary.com/demo/image/upload/v1/a.jpg", "public_id": "stores/1/products/a"}],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual([v["title"] for v in response.data["variants"]], ["S", "M"])
        self.assertEqual(response.data["display_price"], {"label": "Desde $ 30.000", "value": 30000})
        self.assertEqual(response.data["final_price"], 27000)
        self.assertEqual(response.data["discount_badge"], "-10%")

    def test_category_of_another_store_is_rejected(self):
        foreign = Category.objects.create(store=self.other_store, name="Ajena")
        response = self.client.post("/api/products/", {
            "name": "Camiseta", "price": 1000, "category": foreign.pk,
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("category", response.data)

    def test_percent_discount_over_100(self):
        response = self.client.post("/api/products/", {
            "name": "Camiseta", "price": 1000, "discount_type": "percent", "discount_value": 120,
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_media_needs_public_id(self):
        response = self.client.post("/api/products/", {
            "name": "Camiseta", "price": 1000, "images": [{"url": "https://cdn/a.jpg"}],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_keeps_variant_edits(self):
        created = self.client.post("/api/products/", {
            "name": "Camiseta", "price": 30000, "options": [{"name": "Talla", "values": ["S", "M"]}],
        }, format="json").data
        variants = created["variants"]
        variants[0]["price"] = 31000
        self.client.patch(f"/api/products/{created['id']}/", {"variants": variants}, format="json")

        response = self.client.patch(f"/api/products/{created['id']}/", {
            "options": [{"name": "Talla", "values": ["S", "M", "L"]}],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        prices = {v["title"]: v["price"] for v in response.data["variants"]}
        self.assertEqual(prices, {"S": 31000, "M": 30000, "L": 30000})

    def test_list_is_cursor_paged(self):
        for i in range(5):
            Product.objects.create(store=self.store, name=f"P{i}", price=1000 + i)
        Product.objects.create(store=self.other_store, name="Ajeno", price=1)

        first = self.client.get("/api/products/").data
        self.assertTrue(first["success"])
        self.assertEqual(first["page_size"], 3)
        self.assertEqual([p["name"] for p in first["results"]], ["P4", "P3", "P2"])
        self.assertTrue(first["has_next"])

        second = self.client.get("/api/products/", {"direction": "next", "cursor": first["last_cursor"]}).data
        self.assertEqual([p["name"] for p in second["results"]], ["P1", "P0"])
        self.assertFalse(second["has_next"])

        back = self.client.get("/api/products/", {"direction": "prev", "cursor": second["first_cursor"]}).data
        self.assertEqual([p["name"] for p in back["results"]], ["P4", "P3", "P2"])

    def test_list_filters_by_category(self):
        Product.objects.create(store=self.store, category=self.shirts, name="Camiseta", price=1000)
        Product.objects.create(store=self.store, name="Suelto", price=1000)
        response = self.client.get("/api/products/", {"category": self.shirts.pk})
        self.assertEqual([p["name"] for p in response.data["results"]], ["Camiseta"])

        response = self.client.get("/api/products/", {"category": "all"})
        self.assertEqual(len(response.data["results"]), 2)

    def test_bad_category_filter(self):
        response = self.client.get("/api/products/", {"category": "camisetas"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bad_cursor(self):
        response = self.client.get("/api/products/", {"direction": "next", "cursor": "nope"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    @mock.patch("storefront.viewsets.delete_product")
    def test_destroy_goes_through_delete_workflow(self, delete_product):
        product = Product.objects.create(store=self.store, name="Camiseta", price=1000)
        response = self.client.delete(f"/api/products/{product.pk}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        delete_product.assert_called_once()
        self.assertEqual(delete_product.call_args.args[1], product)

    def test_variants_preview(self):
        response = self.client.post("/api/products/variants-preview/", {
            "price": 20000,
            "options": [{"name": "Color", "values": ["Rojo", "Azul"]}, {"name": "Talla", "values": ["M"]}],
            "variants": [{"id": "keep", "option_values": ["Rojo", "M"], "price": 25000, "stock": 2}],
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        variants = response.data["variants"]
        self.assertEqual([v["title"] for v in variants], ["Rojo / M", "Azul / M"])
        self.assertEqual(variants[0]["id"], "keep")
        self.assertEqual(variants[0]["price"], 25000)
        self.assertEqual(variants[1]["price"], 20000)
        self.assertFalse(Product.objects.exists())


class ImportAPITests(OwnerAPITestCase):
    def _upload(self, rows):
        wb = Workbook()
        ws = wb.active
        ws.append(["SKU", "Nombre", "Categoría", "Precio"])
        for row in rows:
            ws.append(row)
        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        buffer.name = "productos.xlsx"
        return self.client.post("/api/products/import/", {"file": buffer}, format="multipart")

    def test_import_reports_counts(self):
        response = self._upload([
            ["A-1", "Camiseta", "Camisetas", 25000],
            ["A-2", "Gorra", "Accesorios", "15.000"],
            ["", "", "Accesorios", 1000],
        ])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["detected"], 2)
        self.assertEqual(response.data["created"], 2)
        self.assertTrue(Category.objects.filter(store=self.store, name="Accesorios").exists())

    def test_no_valid_rows(self):
        response = self._upload([["A-1", "", "", ""]])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_not_a_workbook(self):
        upload = io.BytesIO(b"hello")
        upload.name = "productos.xlsx"
        response = self.client.post("/api/products/import/", {"file": upload}, format="multipart")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class MediaAPITests(OwnerAPITestCase):
    def test_sign_returns_tenant_folder(self):
        response = self.client.post("/api/media/sign/", {"kind": "videos"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["folder"], f"stores/{self.store.pk}/videos")
        self.assertEqual(response.data["api_key"], "test-key")
        self.assertNotIn("api_secret", response.data)

    def test_delete_foreign_asset_is_refused(self):
        response = self.client.post("/api/media/delete/", {
            "public_id": f"stores/{self.other_store.pk}/products/x",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch("storefront.services.media_service.requests.post")
    def test_delete_own_asset(self, post):
        post.return_value = mock.Mock(ok=True, status_code=200, json=mock.Mock(return_value={"result": "ok"}))
        response = self.client.post("/api/media/delete/", {
            "public_id": f"stores/{self.store.pk}/products/x",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["result"], "ok")


class PublicAPITests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.owner, cls.store = make_store("owner@example.com", "tienda")
        cls.shirts = Category.objects.create(store=cls.store, name="Camisetas", order=1)
        cls.shirt = Product.objects.create(
            store=cls.store,
            category=cls.shirts,
            name="Camiseta",
            price=30000,
            options=[{"name": "Talla", "values": ["M", "L"]}],
            variants=[
                {"id": "m", "option_values": ["M"], "title": "M", "price": 30000, "stock": 5},
                {"id": "l", "option_values": ["L"], "title": "L", "price": 32000, "stock": 0},
            ],
        )
        cls.cap = Product.objects.create(
            store=cls.store, name="Gorra", price=20000, discount_type="amount", discount_value=5000,
        )
        Store.objects.create(owner=cls.owner, name="Cerrada", slug="cerrada", is_active=False)

    def setUp(self):
        self.client = APIClient()
        self.base = f"/api/public/stores/{self.store.slug}"

    def test_store_with_categories(self):
        response = self.client.get(f"{self.base}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["store"]["name"], "Tienda")
        self.assertEqual(response.data["categories"], [{"id": self.shirts.pk, "name": "Camisetas", "order": 1}])

    def test_inactive_or_unknown_store(self):
        self.assertEqual(self.client.get("/api/public/stores/cerrada/").status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.get("/api/public/stores/nada/").status_code, status.HTTP_404_NOT_FOUND)

    def test_products(self):
        response = self.client.get(f"{self.base}/products/")
        self.assertEqual([p["name"] for p in response.data["results"]], ["Gorra", "Camiseta"])
        cap = response.data["results"][0]
        self.assertEqual(cap["final_price"], 15000)
        self.assertEqual(cap["discount_badge"], "-$ 5.000")

    def test_non_numeric_category_is_a_bad_request(self):
        response = self.client.get(f"{self.base}/products/", {"category": "abc"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_cart_flow(self):
        response = self.client.post(f"{self.base}/cart/add/", {"product_id": self.shirt.pk, "variant_id": "m", "qty": 2},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.post(f"{self.base}/cart/add/", {"product_id": self.cap.pk}, format="json")

        cart = self.client.get(f"{self.base}/cart/").data
        self.assertEqual(cart["count"], 3)
        self.assertEqual(cart["total"], 75000)
        self.assertEqual(cart["total_label"], "$ 75.000")

        cart = self.client.post(f"{self.base}/cart/update/", {"product_id": self.shirt.pk, "variant_id": "m", "qty": 1},
                                format="json").data
        self.assertEqual(cart["total"], 45000)

        cart = self.client.post(f"{self.base}/cart/remove/", {"product_id": self.cap.pk}, format="json").data
        self.assertEqual([line["product_id"] for line in cart["items"]], [self.shirt.pk])

        cart = self.client.post(f"{self.base}/cart/clear/").data
        self.assertEqual(cart["items"], [])
        self.assertEqual(self.client.get(f"{self.base}/cart/").data["count"], 0)

    def test_sold_out_variant_is_refused(self):
        response = self.client.post(f"{self.base}/cart/add/", {"product_id": self.shirt.pk, "variant_id": "l"},
                                    format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data["success"])

    def test_product_from_other_store(self):
        _, other = make_store("other@example.com", "otra")
        foreign = Product.objects.create(store=other, name="Ajeno", price=1000)
        response = self.client.post(f"{self.base}/cart/add/", {"product_id": foreign.pk}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_carts_are_per_store(self):
        _, other = make_store("other@example.com", "otra")
        self.client.post(f"{self.base}/cart/add/", {"product_id": self.cap.pk}, format="json")
        response = self.client.get(f"/api/public/stores/{other.slug}/cart/")
        self.assertEqual(response.data["items"], [])
