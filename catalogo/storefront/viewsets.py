"""
Django REST Framework views for the storefront API.

Owner endpoints (``/api/store/``, ``/api/categories/``, ``/api/products/``,
``/api/media/``) act on the store of the logged-in merchant. Public
endpoints (``/api/public/stores/<slug>/...``) serve the catalog and the
session cart to anonymous shoppers.
"""
from django.conf import settings
from django.core.cache import cache
from django.db.models import Count, ProtectedError
from django.http import Http404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .api_helpers import TenantMixin, error_response, paged_response
from .models import Category, Product
from .serializers import (
    CartLineSerializer,
    CategorySerializer,
    ImportUploadSerializer,
    MediaDeleteSerializer,
    MediaSignSerializer,
    ProductSerializer,
    PublicProductSerializer,
    PublicStoreSerializer,
    StoreSerializer,
    VariantsPreviewSerializer,
)
from .services import cart as cart_service
from .services.catalog_helpers import get_categories_cached, get_public_store
from .services.catalog_import import CatalogImportError, import_rows, read_rows
from .services.media_service import MediaError, destroy_asset, sign_upload
from .services.pricing import format_cop
from .services.products import delete_product, rebuild_variants


class StoreSettingsView(TenantMixin, APIView):
    """
    GET   /api/store/ - settings of the owner's store
    PATCH /api/store/ - update name, slug, WhatsApp, address or logo
    """

    def get(self, request):
        return Response(StoreSerializer(self.get_tenant().store).data)

    def patch(self, request):
        serializer = StoreSerializer(self.get_tenant().store, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response({'success': True, 'store': serializer.data})


class CategoryViewSet(TenantMixin, viewsets.ModelViewSet):
    """
    CRUD for the owner's categories, ordered by ``order`` then name.
    """
    serializer_class = CategorySerializer

    def get_queryset(self):
        return (
            Category.objects.filter(store=self.get_tenant().store)
            .annotate(products_count_annotated=Count('products'))
            .order_by('order', 'name')
        )

    def destroy(self, request, *args, **kwargs):
        category = self.get_object()
        try:
            category.delete()
        except ProtectedError:
            return error_response('La categoría tiene productos; muévelos antes de eliminarla.')
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductViewSet(TenantMixin, viewsets.ModelViewSet):
    """
    Owner product management.

    Provides:
        - list: GET /api/products/?category=&direction=&cursor= (cursor paged)
        - create/retrieve/update/destroy
        - variants_preview: POST /api/products/variants-preview/
        - import_products: POST /api/products/import/ (Excel upload)
    """
    serializer_class = ProductSerializer

    def get_queryset(self):
        return Product.objects.filter(store=self.get_tenant().store).select_related('category')

    def list(self, request, *args, **kwargs):
        return paged_response(
            request,
            self.get_queryset(),
            ProductSerializer,
            page_size=settings.CATALOG_PAGE_SIZE,
            filters={'category': request.query_params.get('category')},
            filter_fields={'category': 'category_id'},
            context=self.get_serializer_context(),
        )

    def perform_destroy(self, instance):
        delete_product(self.get_tenant(), instance)

    @action(detail=False, methods=['post'], url_path='variants-preview')
    def variants_preview(self, request):
        """
        Regenerate variants for unsaved options so the editor can show them.

        Request Body:
            - price: base price
            - options: [{name, values}]
            - variants: current variants (optional)
        """
        serializer = VariantsPreviewSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        variant_set = rebuild_variants(
            data['price'],
            [dict(option) for option in data['options']],
            [dict(variant) for variant in data.get('variants', [])],
        )
        return Response({'success': True, **variant_set.to_dict()})

    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        parser_classes=[MultiPartParser, FormParser],
    )
    def import_products(self, request):
        serializer = ImportUploadSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        tenant = self.get_tenant()
        try:
            rows = read_rows(serializer.validated_data['file'])
        except CatalogImportError as exc:
            return error_response(str(exc))
        if not rows:
            return error_response('No se encontraron productos válidos (nombre, categoría, precio).')
        result = import_rows(tenant, rows)
        return Response({'success': True, 'detected': len(rows), **result.to_dict()})


class MediaViewSet(TenantMixin, viewsets.ViewSet):
    """
    POST /api/media/sign/   - signed payload for a direct CDN upload
    POST /api/media/delete/ - delete one of the store's CDN assets
    """

    @action(detail=False, methods=['post'])
    def sign(self, request):
        serializer = MediaSignSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            signed = sign_upload(self.get_tenant(), serializer.validated_data['kind'])
        except MediaError as exc:
            return error_response(str(exc), status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({'success': True, **signed.to_dict()})

    @action(detail=False, methods=['post'], url_path='delete')
    def delete_asset(self, request):
        serializer = MediaDeleteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        try:
            result = destroy_asset(self.get_tenant(), data['public_id'], data['resource_type'])
        except MediaError as exc:
            return error_response(str(exc))
        return Response({'success': True, 'result': result.get('result')})


class PublicStoreViewSet(viewsets.ViewSet):
    """
    Anonymous catalog and cart of one store.

    Provides:
        - retrieve: GET /api/public/stores/{slug}/ - store and categories
        - products: GET /api/public/stores/{slug}/products/?category=&direction=&cursor=
        - cart: GET /api/public/stores/{slug}/cart/
        - cart_add / cart_update / cart_remove / cart_clear: POST .../cart/<op>/
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    lookup_field = 'slug'
    lookup_value_regex = r'[-\w]+'

    def get_store(self, slug):
        store = get_public_store(cache, slug)
        if store is None:
            raise Http404('Tienda no encontrada')
        return store

    def retrieve(self, request, slug=None):
        store = self.get_store(slug)
        categories = get_categories_cached(cache, store)
        return Response({
            'store': PublicStoreSerializer(store).data,
            'categories': [{'id': c.id, 'name': c.name, 'order': c.order} for c in categories],
        })

    @action(detail=True, methods=['get'])
    def products(self, request, slug=None):
        store = self.get_store(slug)
        return paged_response(
            request,
            Product.objects.filter(store=store),
            PublicProductSerializer,
            page_size=settings.CATALOG_PAGE_SIZE,
            filters={'category': request.query_params.get('category')},
            filter_fields={'category': 'category_id'},
        )

    def _cart_response(self, cart):
        return Response({
            'success': True,
            'items': cart,
            'count': cart_service.item_count(cart),
            'total': cart_service.calc_total(cart),
            'total_label': format_cop(cart_service.calc_total(cart)),
        })

    @action(detail=True, methods=['get'])
    def cart(self, request, slug=None):
        store = self.get_store(slug)
        return self._cart_response(cart_service.get_session_cart(request, store.slug))

    @action(detail=True, methods=['post'], url_path='cart/add')
    def cart_add(self, request, slug=None):
        """
        Request Body:
            - product_id (required)
            - variant_id (required when the product has variants)
            - qty (default 1)
        """
        store = self.get_store(slug)
        serializer = CartLineSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        product = Product.objects.filter(store=store, pk=data['product_id']).first()
        if product is None:
            return error_response('Producto no encontrado o no disponible', status.HTTP_404_NOT_FOUND)
        try:
            line = cart_service.line_for(product, data.get('variant_id'), data.get('qty') or 1)
        except cart_service.CartError as exc:
            return error_response(str(exc))
        cart = cart_service.add_item(cart_service.get_session_cart(request, store.slug), line)
        cart_service.save_session_cart(request, store.slug, cart)
        return self._cart_response(cart)

    @action(detail=True, methods=['post'], url_path='cart/update')
    def cart_update(self, request, slug=None):
        store = self.get_store(slug)
        serializer = CartLineSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        cart = cart_service.update_qty(
            cart_service.get_session_cart(request, store.slug),
            data['product_id'],
            data.get('variant_id'),
            data['qty'],
        )
        cart_service.save_session_cart(request, store.slug, cart)
        return self._cart_response(cart)

    @action(detail=True, methods=['post'], url_path='cart/remove')
    def cart_remove(self, request, slug=None):
        store = self.get_store(slug)
        serializer = CartLineSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        cart = cart_service.remove_item(
            cart_service.get_session_cart(request, store.slug),
            data['product_id'],
            data.get('variant_id'),
        )
        cart_service.save_session_cart(request, store.slug, cart)
        return self._cart_response(cart)

    @action(detail=True, methods=['post'], url_path='cart/clear')
    def cart_clear(self, request, slug=None):
        store = self.get_store(slug)
        cart_service.clear_session_cart(request, store.slug)
        return self._cart_response([])
