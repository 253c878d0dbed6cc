"""
URL configuration for core project.

- ``/api/`` storefront: catalog, session cart/favorites/search history, checkout
- ``/api/accounts/`` registration, JWT login, profile, addresses
- ``/api/vendor/`` vendor dashboard and onboarding
- ``/api/admin/`` admin back-office
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from rest_framework.routers import DefaultRouter

from cart.views import CartViewSet, FavoritesViewSet, SearchHistoryViewSet
from orders.views import OrderViewSet
from products.views import CategoryViewSet, HomeBannerViewSet, ProductViewSet


router = DefaultRouter()
router.register(r'categories', CategoryViewSet, basename='category')
router.register(r'products', ProductViewSet, basename='product')
router.register(r'banners', HomeBannerViewSet, basename='banner')
router.register(r'cart', CartViewSet, basename='cart')
router.register(r'favorites', FavoritesViewSet, basename='favorites')
router.register(r'search-history', SearchHistoryViewSet, basename='search-history')
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/accounts/', include('accounts.urls')),
    path('api/vendor/', include('shops.urls')),
    path('api/admin/', include('backoffice.urls')),
    path('api/', include(router.urls)),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
