"""Vendor dashboard routes (mounted under ``/api/vendor/``)."""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from finance.views import VendorBalanceViewSet, VendorPayoutViewSet
from orders.views import VendorOrderViewSet
from products.views import VendorProductViewSet

from .views import (
    OnboardingViewSet,
    VendorAnalyticsView,
    VendorDashboardView,
    VendorShopOpenView,
    VendorShopView,
)

router = DefaultRouter()
router.register(r'onboarding', OnboardingViewSet, basename='vendor-onboarding')
router.register(r'products', VendorProductViewSet, basename='vendor-product')
router.register(r'orders', VendorOrderViewSet, basename='vendor-order')
router.register(r'balance', VendorBalanceViewSet, basename='vendor-balance')
router.register(r'payouts', VendorPayoutViewSet, basename='vendor-payout')

urlpatterns = [
    path('shop/', VendorShopView.as_view(), name='vendor_shop'),
    path('shop/toggle-open/', VendorShopOpenView.as_view(), name='vendor_shop_toggle_open'),
    path('dashboard/', VendorDashboardView.as_view(), name='vendor_dashboard'),
    path('analytics/', VendorAnalyticsView.as_view(), name='vendor_analytics'),
    path('', include(router.urls)),
]
