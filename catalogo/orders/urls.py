from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .viewsets import ClientViewSet, DashboardView, OrderViewSet

router = SimpleRouter()
router.register(r'orders', OrderViewSet, basename='api-order')
router.register(r'clients', ClientViewSet, basename='api-client')

urlpatterns = [
    path('dashboard/', DashboardView.as_view(), name='api-dashboard'),
    path('', include(router.urls)),
]
