"""
Bulk product import from an Excel sheet (code, name, category, price).
"""
from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from django.db import DatabaseError, IntegrityError, transaction

from .pricing import parse_cop

logger = logging.getLogger(__name__)

IMPORTED_CATEGORY_ORDER = 9999

COLUMN_ALIASES = {
    "sku": ("codigo", "sku"),
    "name": ("nombre", "name"),
    "category": ("categoria", "category"),
    "price": ("precio", "price", "precio final"),
}


class CatalogImportError(Exception):
    """The uploaded file cannot be read as a product sheet."""


@dataclass
class ImportRow:
    sku: str
    name: str
    category_name: str
    price: int


@dataclass
class ImportResult:
    created: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def _norm(value: Any) -> str:
    text = " ".join(str(value or "").strip().lower().split())
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _column_map(header: Iterable[Any]) -> Dict[str, int]:
    normalized = [_norm(cell) for cell in header]
    col_map: Dict[str, int] = {}
    for column, aliases in COLUMN_ALIASES.items():
        # first alias present wins, e.g. "precio" before "precio final"
        for alias in aliases:
            if alias in normalized:
                col_map[column] = normalized.index(alias)
                break
    return col_map


def _cell(row, index: Optional[int]) -> Any:
    if index is None or index >= len(row):
        return None
    return row[index]


def read_rows(fileobj) -> List[ImportRow]:
    """
    Rows of the first sheet that have a name, a category and a positive
    price. Header names are matched ignoring case and accents.
    """
    import openpyxl

    try:
        fileobj.seek(0)
    except (AttributeError, OSError):
        pass
    try:
        wb = openpyxl.load_workbook(fileobj, read_only=True, data_only=True)
    except Exception as exc:
        raise CatalogImportError("El archivo no es un Excel válido (.xlsx).") from exc

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        col_map = _column_map(header)
        if "name" not in col_map or "price" not in col_map or "category" not in col_map:
            raise CatalogImportError(
                "Faltan columnas. Se esperan: CODIGO, NOMBRE, CATEGORIA, PRECIO."
            )

        parsed: List[ImportRow] = []
        for row in rows:
            item = ImportRow(
                sku=str(_cell(row, col_map.get("sku")) or "").strip(),
                name=str(_cell(row, col_map["name"]) or "").strip(),
                category_name=str(_cell(row, col_map["category"]) or "").strip(),
                price=parse_cop(_cell(row, col_map["price"])),
            )
            if item.name and item.category_name and item.price > 0:
                parsed.append(item)
        return parsed
    finally:
        wb.close()


def _resolve_categories(store, names: Iterable[str]) -> Dict[str, Any]:
    from ..models import Category

    by_name = {
        category.name.strip().lower(): category
        for category in Category.objects.filter(store=store)
    }
    for name in names:
        key = name.strip().lower()
        if key and key not in by_name:
            by_name[key] = Category.objects.create(
                store=store,
                name=name.strip(),
                order=IMPORTED_CATEGORY_ORDER,
            )
            logger.info("Created category %r for store %s during import", name, store.pk)
    return by_name


def import_rows(tenant, rows: Iterable[ImportRow]) -> ImportResult:
    """
    Create products for ``rows`` in the tenant's store.

    Missing categories are created first; rows whose SKU already exists in
    the store are skipped. A failing row is recorded and does not stop the
    rest of the import.
    """
    from ..models import Product

    rows = list(rows)
    result = ImportResult()
    store = tenant.store
    categories = _resolve_categories(store, [row.category_name for row in rows])
    existing_skus = set(
        Product.objects.filter(store=store).exclude(sku='').values_list('sku', flat=True)
    )

    for row in rows:
        label = f"{row.sku} - {row.name}" if row.sku else row.name
        try:
            category = categories.get(row.category_name.strip().lower())
            if category is None:
                raise CatalogImportError(f"No se pudo resolver categoría: {row.category_name}")
            if row.sku and row.sku in existing_skus:
                result.skipped += 1
                continue
            with transaction.atomic():
                Product.objects.create(
                    store=store,
                    category=category,
                    sku=row.sku,
                    name=row.name,
                    price=row.price,
                )
            if row.sku:
                existing_skus.add(row.sku)
            result.created += 1
        except (CatalogImportError, IntegrityError, DatabaseError, ValueError) as exc:
            logger.warning("Import row failed for store %s (%s): %s", store.pk, label, exc)
            result.failed += 1
            result.errors.append(f"{label}: {exc}")

    logger.info(
        "Import finished for store %s: %s created, %s skipped, %s failed",
        store.pk,
        result.created,
        result.skipped,
        result.failed,
    )
    return result
