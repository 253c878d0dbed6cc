"""Shops API views.

Contains:
- Vendor onboarding (per-step validation and final submit)
- Vendor's own shop settings, open/closed switch, dashboard and analytics
- Admin shops screen (moderation actions, stats, commission)
"""

import logging

from django.db.models import Q
from django.http import Http404
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsPlatformAdmin, IsVendor
from backoffice.activity import record
from core.mixins import StatusFilterMixin, status_counts
from orders.reports import shop_analytics, shop_dashboard
from orders.serializers import ReportPeriodSerializer
from products.views import StandardResultsSetPagination

from .models import Shop
from .onboarding import next_step, register_vendor, validate_step
from .serializers import AdminShopSerializer, CommissionSerializer, ShopOpenSerializer, VendorShopSerializer

logger = logging.getLogger(__name__)


def vendor_shop_or_404(request):
    shop = Shop.for_vendor(request.user)
    if shop is None:
        raise Http404('Shop not found.')
    return shop


class OnboardingViewSet(viewsets.ViewSet):
    """Vendor onboarding wizard.

    ``validate`` checks a single step and stores nothing; ``create``
    validates all steps and registers the vendor with a pending shop.
    """

    permission_classes = [AllowAny]

    @action(detail=False, methods=['post'])
    def validate(self, request):
        step = request.data.get('step')
        data = request.data.get('data') or {}
        validated = validate_step(step, data)
        validated.pop('password', None)
        current = int(step)
        return Response({
            'step': current,
            'valid': True,
            'data': validated,
            'next_step': next_step(current),
        })

    def create(self, request):
        shop = register_vendor(request.data)
        return Response({
            'shop': VendorShopSerializer(shop).data,
            'user_id': shop.owner_id,
            'status': shop.status,
        }, status=status.HTTP_201_CREATED)


class VendorShopView(generics.RetrieveUpdateAPIView):
    """``GET``/``PATCH`` the authenticated vendor's shop."""

    serializer_class = VendorShopSerializer
    permission_classes = [IsVendor]

    def get_object(self):
        return vendor_shop_or_404(self.request)


class VendorShopOpenView(APIView):
    """``POST {is_open}`` switches the shop open or closed; no body flips it."""

    permission_classes = [IsVendor]

    def post(self, request):
        shop = vendor_shop_or_404(request)
        serializer = ShopOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        wanted = serializer.validated_data.get('is_open')
        shop.is_open = (not shop.is_open) if wanted is None else wanted
        shop.save(update_fields=['is_open', 'updated_at'])
        record('shop.toggle_open', user=request.user, entity=shop, request=request,
               details={'is_open': shop.is_open})
        logger.info('Shop %s is_open=%s', shop.pk, shop.is_open)
        return Response(VendorShopSerializer(shop).data)


class VendorDashboardView(APIView):
    """Vendor dashboard counters and recent orders."""

    permission_classes = [IsVendor]

    def get(self, request):
        return Response(shop_dashboard(vendor_shop_or_404(request)))


class VendorAnalyticsView(APIView):
    """Vendor sales analytics for ``?period=week|month|year``."""

    permission_classes = [IsVendor]

    def get(self, request):
        shop = vendor_shop_or_404(request)
        serializer = ReportPeriodSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(shop_analytics(shop, serializer.validated_data['period']))


class AdminShopViewSet(StatusFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                       viewsets.GenericViewSet):
    """Admin shops screen.

    Supports ``?status=`` and ``?q=`` (shop name, owner username/name).
    """

    serializer_class = AdminShopSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = StandardResultsSetPagination
    queryset = Shop.objects.select_related('owner')

    # action -> (allowed current statuses, new status)
    _MODERATION = {
        'approve': ({Shop.STATUS_PENDING, Shop.STATUS_REJECTED}, Shop.STATUS_ACTIVE),
        'reject': ({Shop.STATUS_PENDING}, Shop.STATUS_REJECTED),
        'block': ({Shop.STATUS_ACTIVE, Shop.STATUS_PENDING}, Shop.STATUS_BLOCKED),
        'unblock': ({Shop.STATUS_BLOCKED}, Shop.STATUS_ACTIVE),
    }

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == 'list':
            qs = self.filter_status(qs)
            q = (self.request.query_params.get('q') or '').strip()
            if q:
                qs = qs.filter(
                    Q(name__icontains=q) | Q(owner__username__icontains=q) | Q(owner__full_name__icontains=q)
                )
        return qs

    @action(detail=False, methods=['get'])
    def stats(self, request):
        counts = status_counts(Shop.objects.all())
        data = {'total': sum(counts.values())}
        for key, _label in Shop.STATUS_CHOICES:
            data[key] = counts.get(key, 0)
        return Response(data)

    def _moderate(self, request, name):
        allowed_from, new_status = self._MODERATION[name]
        shop = self.get_object()
        if shop.status not in allowed_from:
            return Response(
                {'detail': f'Cannot {name} a shop with status "{shop.status}".'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        previous = shop.status
        shop.status = new_status
        shop.save(update_fields=['status', 'updated_at'])
        reason = (request.data.get('reason') or '').strip() if hasattr(request.data, 'get') else ''
        details = {'from': previous, 'to': new_status}
        if reason:
            details['reason'] = reason
        record(f'shop.{name}', user=request.user, entity=shop, request=request, details=details)
        logger.info('Shop %s %s: %s -> %s by=%s', shop.pk, name, previous, new_status, request.user.pk)
        return Response(self.get_serializer(shop).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        return self._moderate(request, 'approve')

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._moderate(request, 'reject')

    @action(detail=True, methods=['post'])
    def block(self, request, pk=None):
        return self._moderate(request, 'block')

    @action(detail=True, methods=['post'])
    def unblock(self, request, pk=None):
        return self._moderate(request, 'unblock')

    @action(detail=True, methods=['patch'])
    def commission(self, request, pk=None):
        shop = self.get_object()
        serializer = CommissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        previous = shop.commission_rate
        shop.commission_rate = serializer.validated_data['commission_rate']
        shop.save(update_fields=['commission_rate', 'updated_at'])
        record('shop.commission', user=request.user, entity=shop, request=request,
               details={'from': str(previous), 'to': str(shop.commission_rate)})
        return Response(self.get_serializer(shop).data)
