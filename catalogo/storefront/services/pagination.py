"""
Forward/backward pager over sources that only expose keyset range queries.

``PagedQuery`` keeps the page-boundary cursors and a history stack so the
caller can move next/prev through a newest-first collection, optionally
filtered by equality on one or more fields. Overlapping requests are not
queued: every request takes a token and only the most recent one may
update the pager (last request wins).

``QuerySetSource`` adapts a Django queryset to the source contract.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Union

from asgiref.sync import async_to_sync, sync_to_async
from django.core import signing
from django.core.exceptions import FieldDoesNotExist, ValidationError
from django.db import DatabaseError
from django.db.models import Q
from django.utils.dateparse import parse_datetime

logger = logging.getLogger(__name__)

ALL = "all"
CURSOR_SALT = "storefront.pagination.cursor"
ORDER_FIELD = "created_at"

Filters = Optional[Union[Mapping[str, Any], str]]


class Direction(str, enum.Enum):
    FIRST = "first"
    NEXT = "next"
    PREV = "prev"


class PageLoadError(Exception):
    """The backing source failed while serving the current request."""


class InvalidCursor(ValueError):
    """A cursor token could not be verified or decoded."""


class InvalidFilter(ValueError):
    """A filter value does not fit the field it filters on."""


@dataclass
class Page:
    items: List[Any]
    has_next: bool


@dataclass(frozen=True)
class PageCursor:
    """Boundary position rebuilt from an HTTP cursor token."""

    created_at: datetime
    pk: Any


class PageSource(Protocol):
    async def fetch(
        self,
        *,
        filters: Mapping[str, Any],
        limit: int,
        start_after: Any = None,
        end_before: Any = None,
    ) -> Sequence[Any]:
        """
        Up to ``limit`` items, newest first.

        ``start_after`` returns the items following the cursor;
        ``end_before`` returns the *last* ``limit`` items preceding it, still
        newest first.
        """


def normalize_filters(filters: Filters) -> Dict[str, Any]:
    """Drop the ``"all"`` placeholder and empty values."""
    if not filters or filters == ALL:
        return {}
    return {
        key: value
        for key, value in dict(filters).items()
        if value is not None and value != "" and value != ALL
    }


class PagedQuery:
    """
    Stateful pager. One instance per list view (products, orders).

    ``has_next`` is the only forward signal; backward availability is
    ``has_prev`` (a non-empty history).
    """

    def __init__(self, source: PageSource, page_size: int):
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self.source = source
        self.page_size = page_size
        self.current_filter: Dict[str, Any] = {}
        self.first_cursor: Any = None
        self.last_cursor: Any = None
        self.history: List[Any] = []
        self.page = 1
        self.items: List[Any] = []
        self.has_next = False
        self.loading = False
        self._active_token = 0

    @property
    def has_prev(self) -> bool:
        return bool(self.history)

    async def load_page(self, direction: Union[Direction, str], filters: Filters = None) -> Optional[Page]:
        """
        Fetch one page. Returns ``None`` when the call was a no-op (missing
        boundary cursor) or when a newer request superseded this one.
        """
        direction = Direction(direction)
        filters = normalize_filters(filters)

        if direction is Direction.NEXT and self.last_cursor is None:
            logger.debug("Ignoring next-page request without a last cursor")
            return None
        if direction is Direction.PREV and self.first_cursor is None:
            logger.debug("Ignoring prev-page request without a first cursor")
            return None

        self._active_token += 1
        token = self._active_token
        self.loading = True

        bounds: Dict[str, Any] = {}
        if direction is Direction.NEXT:
            bounds["start_after"] = self.last_cursor
        elif direction is Direction.PREV:
            bounds["end_before"] = self.first_cursor

        try:
            rows = list(await self.source.fetch(filters=filters, limit=self.page_size + 1, **bounds))
        except InvalidFilter:
            # Bad input, not a backend failure
            if token == self._active_token:
                self.loading = False
            raise
        except Exception as exc:
            if token != self._active_token:
                logger.debug("Dropping failure of superseded page request %s: %s", token, exc)
                return None
            self.loading = False
            logger.warning("Page request failed (%s, filters=%s): %s", direction.value, filters, exc, exc_info=exc)
            raise PageLoadError("No se pudo cargar la página. Intenta de nuevo.") from exc

        if token != self._active_token:
            logger.debug("Dropping superseded page response %s (active %s)", token, self._active_token)
            return None

        if direction is Direction.PREV:
            # The window closest to the boundary is the previous page and the
            # page we came from is still ahead of it.
            page_items = rows[-self.page_size:]
            has_next = bool(page_items)
        else:
            has_next = len(rows) > self.page_size
            page_items = rows[: self.page_size]

        self.items = page_items
        self.has_next = has_next
        self.current_filter = filters
        self.first_cursor = page_items[0] if page_items else None
        self.last_cursor = page_items[-1] if page_items else None
        self.loading = False
        return Page(items=page_items, has_next=has_next)

    async def go_next(self) -> Optional[Page]:
        if not self.has_next or self.loading:
            return None
        pushed = self.first_cursor is not None
        if pushed:
            self.history.append(self.first_cursor)
        self.page += 1
        try:
            return await self.load_page(Direction.NEXT, self.current_filter)
        except PageLoadError:
            if pushed:
                self.history.pop()
            self.page = max(1, self.page - 1)
            raise

    async def go_prev(self) -> Optional[Page]:
        if not self.history or self.loading:
            return None
        popped = self.history.pop()
        previous_page = self.page
        self.page = max(1, self.page - 1)
        try:
            return await self.load_page(Direction.PREV, self.current_filter)
        except PageLoadError:
            self.history.append(popped)
            self.page = previous_page
            raise

    async def set_filter(self, filters: Filters) -> Optional[Page]:
        self.history = []
        self.page = 1
        self.first_cursor = None
        self.last_cursor = None
        self.current_filter = normalize_filters(filters)
        return await self.load_page(Direction.FIRST, self.current_filter)

    async def refresh(self) -> Optional[Page]:
        """Back to the first page with the current filter (after a mutation)."""
        return await self.set_filter(self.current_filter)


def _cursor_position(cursor: Any):
    return getattr(cursor, ORDER_FIELD), cursor.pk


class QuerySetSource:
    """
    ``PageSource`` over a queryset, newest first (``-created_at, -pk``).

    ``filter_fields`` maps public filter names to ORM lookups, e.g.
    ``{"category": "category_id"}``; unknown filter names are ignored.
    Cursors are model instances or ``PageCursor`` objects.
    """

    def __init__(self, queryset, *, filter_fields: Optional[Mapping[str, str]] = None):
        self.queryset = queryset
        self.filter_fields = dict(filter_fields or {})

    async def fetch(self, *, filters, limit, start_after=None, end_before=None):
        return await sync_to_async(self.fetch_sync)(
            filters=filters, limit=limit, start_after=start_after, end_before=end_before
        )

    def clean_filters(self, filters: Filters) -> Dict[str, Any]:
        """
        Supported filters converted to the Python type of their field.
        Unknown names are dropped; a value the field rejects raises
        ``InvalidFilter``.
        """
        cleaned = {}
        for name, value in normalize_filters(filters).items():
            lookup = self.filter_fields.get(name)
            if lookup is None:
                logger.debug("Ignoring unsupported page filter %r", name)
                continue
            try:
                field = self.queryset.model._meta.get_field(lookup)
            except FieldDoesNotExist:
                cleaned[name] = value
                continue
            try:
                cleaned[name] = field.to_python(value)
            except ValidationError as exc:
                raise InvalidFilter(f"Filtro inválido: {name}={value!r}") from exc
        return cleaned

    def fetch_sync(self, *, filters, limit, start_after=None, end_before=None) -> List[Any]:
        lookups = {
            self.filter_fields[name]: value
            for name, value in self.clean_filters(filters).items()
        }
        queryset = self.queryset.filter(**lookups)

        try:
            return self._ordered_fetch(queryset, limit, start_after, end_before)
        except DatabaseError as exc:
            logger.warning(
                "Ordered page query failed for %s, sorting in memory instead: %s",
                queryset.model.__name__,
                exc,
                exc_info=exc,
            )
            return self._unordered_fetch(queryset, limit, start_after, end_before)

    def _ordered_fetch(self, queryset, limit, start_after, end_before) -> List[Any]:
        if start_after is not None:
            created, pk = _cursor_position(start_after)
            after = Q(**{f"{ORDER_FIELD}__lt": created}) | Q(**{ORDER_FIELD: created, "pk__lt": pk})
            return list(queryset.filter(after).order_by(f"-{ORDER_FIELD}", "-pk")[:limit])
        if end_before is not None:
            created, pk = _cursor_position(end_before)
            before = Q(**{f"{ORDER_FIELD}__gt": created}) | Q(**{ORDER_FIELD: created, "pk__gt": pk})
            rows = list(queryset.filter(before).order_by(ORDER_FIELD, "pk")[:limit])
            rows.reverse()
            return rows
        return list(queryset.order_by(f"-{ORDER_FIELD}", "-pk")[:limit])

    def _unordered_fetch(self, queryset, limit, start_after, end_before) -> List[Any]:
        rows = sorted(queryset.order_by(), key=_cursor_position, reverse=True)
        if start_after is not None:
            boundary = _cursor_position(start_after)
            rows = [row for row in rows if _cursor_position(row) < boundary]
            return rows[:limit]
        if end_before is not None:
            boundary = _cursor_position(end_before)
            rows = [row for row in rows if _cursor_position(row) > boundary]
            return rows[-limit:]
        return rows[:limit]


def encode_cursor(item: Any) -> Optional[str]:
    if item is None:
        return None
    created, pk = _cursor_position(item)
    return signing.dumps({"t": created.isoformat(), "pk": pk}, salt=CURSOR_SALT, compress=True)


def decode_cursor(token: str) -> PageCursor:
    try:
        data = signing.loads(token, salt=CURSOR_SALT)
        created = parse_datetime(data["t"])
        pk = data["pk"]
    except (signing.BadSignature, KeyError, TypeError, ValueError) as exc:
        raise InvalidCursor("Cursor de página inválido.") from exc
    if created is None:
        raise InvalidCursor("Cursor de página inválido.")
    return PageCursor(created_at=created, pk=pk)


def paginate(
    source: PageSource,
    *,
    page_size: int,
    direction: Union[Direction, str] = Direction.FIRST,
    filters: Filters = None,
    cursor: Optional[str] = None,
) -> PagedQuery:
    """
    Run a single page request for a stateless HTTP call.

    ``cursor`` is the ``last_cursor`` token of the current page for ``next``
    and its ``first_cursor`` token for ``prev``; the client keeps its own
    history of pages.
    """
    try:
        direction = Direction(direction or Direction.FIRST)
    except ValueError as exc:
        raise InvalidCursor(f"Dirección de página desconocida: {direction!r}") from exc

    pager = PagedQuery(source, page_size)
    if direction is not Direction.FIRST:
        if not cursor:
            raise InvalidCursor("Falta el cursor de página.")
        position = decode_cursor(cursor)
        if direction is Direction.NEXT:
            pager.last_cursor = position
        else:
            pager.first_cursor = position

    async_to_sync(pager.load_page)(direction, filters)
    return pager


def page_payload(pager: PagedQuery, results: List[Any]) -> Dict[str, Any]:
    return {
        "results": results,
        "page_size": pager.page_size,
        "has_next": pager.has_next,
        "first_cursor": encode_cursor(pager.first_cursor),
        "last_cursor": encode_cursor(pager.last_cursor),
    }
