"""
Order and client APIs for store owners, plus the public checkout.
"""
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.http import Http404
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from storefront.api_helpers import TenantMixin, error_response, paged_response
from storefront.services import cart as cart_service
from storefront.services.catalog_helpers import get_public_store
from storefront.services.pricing import format_cop
from storefront.services.tenant import TenantContext

from .models import Client, Order
from .serializers import CheckoutSerializer, ClientSerializer, OrderSerializer, OrderStatusSerializer
from .services import (
    OrderValidationError,
    client_orders,
    dashboard_stats,
    place_order,
    update_order_status,
    validate_customer,
)
from .whatsapp import build_wa_link, format_order_message

logger = logging.getLogger('orders.checkout')


class OrderViewSet(TenantMixin, viewsets.ReadOnlyModelViewSet):
    """
    Provides:
        - list: GET /api/orders/?status=&direction=&cursor= (cursor paged)
        - retrieve: GET /api/orders/{id}/
        - set_status: POST /api/orders/{id}/status/
    """
    serializer_class = OrderSerializer

    def get_queryset(self):
        return Order.objects.filter(store=self.get_tenant().store).prefetch_related('items')

    def list(self, request, *args, **kwargs):
        return paged_response(
            request,
            self.get_queryset(),
            OrderSerializer,
            page_size=settings.ORDERS_PAGE_SIZE,
            filters={'status': request.query_params.get('status')},
            filter_fields={'status': 'status'},
            context=self.get_serializer_context(),
        )

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        order = self.get_object()
        serializer = OrderStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        update_order_status(order, serializer.validated_data['status'])
        return Response({'success': True, 'order': OrderSerializer(order).data})


class ClientViewSet(TenantMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                    mixins.UpdateModelMixin, viewsets.GenericViewSet):
    """
    Clients of the store, most recent buyers first.

    Provides:
        - orders: GET /api/clients/{id}/orders/ (order history, newest first)
    """
    serializer_class = ClientSerializer

    def get_queryset(self):
        return Client.objects.filter(store=self.get_tenant().store).order_by('-last_order_at', '-id')

    @action(detail=True, methods=['get'])
    def orders(self, request, pk=None):
        client = self.get_object()
        return Response(OrderSerializer(client_orders(client), many=True).data)


class DashboardView(TenantMixin, APIView):
    """
    GET /api/dashboard/ - counters and latest orders of the owner's store
    """

    def get(self, request):
        stats = dashboard_stats(self.get_tenant().store)
        stats['revenue_label'] = format_cop(stats['revenue'])
        stats['recent_orders'] = OrderSerializer(stats['recent_orders'], many=True).data
        return Response(stats)


class CheckoutView(APIView):
    """
    POST /api/public/stores/{slug}/checkout/

    Turns the session cart into an order and returns the WhatsApp link
    that sends it to the merchant.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, slug):
        store = get_public_store(cache, slug)
        if store is None:
            raise Http404('Tienda no encontrada')

        serializer = CheckoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        cart = cart_service.get_session_cart(request, store.slug)

        try:
            customer = validate_customer(data['name'], data['phone'], data['address'])
            order = place_order(TenantContext(store=store), cart, customer, data.get('notes', ''))
        except OrderValidationError as exc:
            return error_response(str(exc))
        except DatabaseError as exc:
            logger.error("Checkout failed for store %s: %s", store.pk, exc, exc_info=True)
            return error_response(
                'No se pudo registrar el pedido. Intenta de nuevo.',
                status.HTTP_503_SERVICE_UNAVAILABLE,
            )

        cart_service.clear_session_cart(request, store.slug)
        return Response({
            'success': True,
            'order_id': order.pk,
            'total': order.total,
            'whatsapp_url': build_wa_link(store.whatsapp, format_order_message(order)),
        }, status=status.HTTP_201_CREATED)
