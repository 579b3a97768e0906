"""
Django REST Framework API URLs with Router.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .viewsets import (
    CategoryViewSet,
    MediaViewSet,
    ProductViewSet,
    PublicStoreViewSet,
    StoreSettingsView,
)

router = DefaultRouter()
router.register(r'categories', CategoryViewSet, basename='api-category')
router.register(r'products', ProductViewSet, basename='api-product')
router.register(r'media', MediaViewSet, basename='api-media')
router.register(r'public/stores', PublicStoreViewSet, basename='api-public-store')

urlpatterns = [
    path('store/', StoreSettingsView.as_view(), name='api-store'),
    path('', include(router.urls)),
]

# GET    /api/store/                                - Owner store settings
# GET    /api/products/                             - Cursor paged products
# POST   /api/products/variants-preview/            - Variants for unsaved options
# POST   /api/products/import/                      - Excel import
# POST   /api/media/sign/                           - Signed CDN upload
# POST   /api/media/delete/                         - Delete CDN asset
# GET    /api/public/stores/{slug}/                 - Store + categories
# GET    /api/public/stores/{slug}/products/        - Cursor paged catalog
# GET    /api/public/stores/{slug}/cart/            - Session cart
# POST   /api/public/stores/{slug}/cart/add/        - Add line
