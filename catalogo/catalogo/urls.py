from django.contrib import admin
from django.urls import include, path

from orders.viewsets import CheckoutView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/accounts/', include('accounts.urls')),
    path('api/public/stores/<slug:slug>/checkout/', CheckoutView.as_view(), name='api-checkout'),
    path('api/', include('storefront.api_urls')),
    path('api/', include('orders.urls')),
]
