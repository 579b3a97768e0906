"""
Tests for the Excel product import (services/catalog_import.py).
"""
import io
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase
from openpyxl import Workbook

from storefront.models import Category, Product, Store
from storefront.services.catalog_import import (
    IMPORTED_CATEGORY_ORDER,
    CatalogImportError,
    ImportRow,
    import_rows,
    read_rows,
)
from storefront.services.tenant import TenantContext


def make_workbook(header, rows):
    wb = Workbook()
    ws = wb.active
    ws.append(header)
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    buffer.name = "productos.xlsx"
    return buffer


class ReadRowsTests(TestCase):
    def test_reads_aliased_columns(self):
        upload = make_workbook(
            ["Código", "NOMBRE", "Categoría", "PRECIO FINAL"],
            [
                ["CAM-01", "Camiseta básica", "Camisetas", "$25.000"],
                ["", "Gorra", "Accesorios", 15000],
            ],
        )
        rows = read_rows(upload)
        self.assertEqual(rows, [
            ImportRow(sku="CAM-01", name="Camiseta básica", category_name="Camisetas", price=25000),
            ImportRow(sku="", name="Gorra", category_name="Accesorios", price=15000),
        ])

    def test_drops_incomplete_rows(self):
        upload = make_workbook(
            ["sku", "name", "category", "price"],
            [
                ["A", "", "Cat", 1000],
                ["B", "Sin categoría", "", 1000],
                ["C", "Sin precio", "Cat", "gratis"],
                ["D", "Completo", "Cat", "2,500"],
                [None, None, None, None],
            ],
        )
        rows = read_rows(upload)
        self.assertEqual([row.sku for row in rows], ["D"])
        self.assertEqual(rows[0].price, 2500)

    def test_missing_columns(self):
        upload = make_workbook(["foo", "bar"], [["x", "y"]])
        with self.assertRaises(CatalogImportError):
            read_rows(upload)

    def test_not_an_excel_file(self):
        upload = io.BytesIO(b"definitely not a workbook")
        with self.assertRaises(CatalogImportError):
            read_rows(upload)


class ImportRowsTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        owner = get_user_model().objects.create_user(username="owner@example.com", password="x")
        cls.store = Store.objects.create(owner=owner, name="Tienda", slug="tienda")
        cls.shirts = Category.objects.create(store=cls.store, name="camisetas", order=1)
        Product.objects.create(store=cls.store, category=cls.shirts, sku="CAM-01", name="Existente", price=1)

    def setUp(self):
        self.tenant = TenantContext(store=self.store)

    def test_creates_products_and_missing_categories(self):
        result = import_rows(self.tenant, [
            ImportRow(sku="CAM-02", name="Camiseta polo", category_name="Camisetas", price=30000),
            ImportRow(sku="", name="Gorra", category_name="Accesorios", price=15000),
        ])
        self.assertEqual((result.created, result.skipped, result.failed), (2, 0, 0))

        polo = Product.objects.get(store=self.store, sku="CAM-02")
        self.assertEqual(polo.category, self.shirts)
        self.assertEqual(polo.price, 30000)
        self.assertEqual(polo.variants, [])

        accessories = Category.objects.get(store=self.store, name="Accesorios")
        self.assertEqual(accessories.order, IMPORTED_CATEGORY_ORDER)
        self.assertEqual(Category.objects.filter(store=self.store).count(), 2)

    def test_skips_existing_and_repeated_skus(self):
        result = import_rows(self.tenant, [
            ImportRow(sku="CAM-01", name="Duplicado", category_name="Camisetas", price=1000),
            ImportRow(sku="NEW-1", name="Nuevo", category_name="Camisetas", price=1000),
            ImportRow(sku="NEW-1", name="Nuevo otra vez", category_name="Camisetas", price=1000),
        ])
        self.assertEqual((result.created, result.skipped), (1, 2))
        self.assertEqual(Product.objects.filter(store=self.store, sku="NEW-1").count(), 1)

    def test_failed_row_does_not_stop_the_import(self):
        real_create = Product.objects.create

        def create(**kwargs):
            if kwargs["name"] == "Rota":
                raise IntegrityError("boom")
            return real_create(**kwargs)

        with mock.patch.object(Product.objects, "create", side_effect=create):
            result = import_rows(self.tenant, [
                ImportRow(sku="R-1", name="Rota", category_name="Camisetas", price=1000),
                ImportRow(sku="OK-1", name="Buena", category_name="Camisetas", price=1000),
            ])

        self.assertEqual((result.created, result.failed), (1, 1))
        self.assertEqual(len(result.errors), 1)
        self.assertIn("R-1 - Rota", result.errors[0])
        self.assertTrue(Product.objects.filter(sku="OK-1").exists())
