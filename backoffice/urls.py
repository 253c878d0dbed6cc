"""Admin back-office routes (mounted under ``/api/admin/``)."""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from accounts.views import AdminUserViewSet
from finance.views import AdminPayoutViewSet
from orders.views import AdminOrderViewSet
from products.views import AdminCategoryViewSet, AdminProductViewSet
from shops.views import AdminShopViewSet

from .views import (
    ActivityLogViewSet,
    BannerViewSet,
    DashboardView,
    DeliveryZoneViewSet,
    NotificationViewSet,
    PlatformSettingViewSet,
    PromoCodeViewSet,
    ReportView,
)

router = DefaultRouter()
router.register(r'users', AdminUserViewSet, basename='admin-user')
router.register(r'shops', AdminShopViewSet, basename='admin-shop')
router.register(r'categories', AdminCategoryViewSet, basename='admin-category')
router.register(r'products', AdminProductViewSet, basename='admin-product')
router.register(r'orders', AdminOrderViewSet, basename='admin-order')
router.register(r'payouts', AdminPayoutViewSet, basename='admin-payout')
router.register(r'promo-codes', PromoCodeViewSet, basename='admin-promo-code')
router.register(r'delivery-zones', DeliveryZoneViewSet, basename='admin-delivery-zone')
router.register(r'notifications', NotificationViewSet, basename='admin-notification')
router.register(r'logs', ActivityLogViewSet, basename='admin-log')
router.register(r'settings', PlatformSettingViewSet, basename='admin-setting')
router.register(r'banners', BannerViewSet, basename='admin-banner')

urlpatterns = [
    path('dashboard/', DashboardView.as_view(), name='admin_dashboard'),
    path('reports/', ReportView.as_view(), name='admin_reports'),
    path('', include(router.urls)),
]
