"""Admin back-office API views.

Every endpoint here requires a platform admin. Each entity follows the
same shape: list, aggregate ``stats``, create/update/delete and, where the
screen has one, a toggle or state action.
"""

import logging

from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsPlatformAdmin
from orders.models import Order
from orders.reports import platform_report
from orders.serializers import OrderListSerializer, ReportPeriodSerializer
from products.models import Product
from shops.models import Shop

from .activity import record
from .models import ActivityLog, Banner, DeliveryZone, Notification, PromoCode
from .serializers import (
    ActivityLogSerializer,
    BannerPositionSerializer,
    BannerSerializer,
    DeliveryZoneSerializer,
    NotificationSerializer,
    PlatformSettingSerializer,
    PlatformSettingUpdateSerializer,
    PromoCodeSerializer,
)
from .settings_registry import default_settings, get_setting, grouped_settings, update_setting

logger = logging.getLogger(__name__)


class AuditedModelViewSet(viewsets.ModelViewSet):
    """ModelViewSet that writes an activity row for every write."""

    permission_classes = [IsPlatformAdmin]
    audit_entity = ''

    def perform_create(self, serializer):
        obj = serializer.save()
        record(f'{self.audit_entity}.create', user=self.request.user, entity=obj, request=self.request)

    def perform_update(self, serializer):
        obj = serializer.save()
        record(f'{self.audit_entity}.update', user=self.request.user, entity=obj, request=self.request)

    def perform_destroy(self, instance):
        pk = instance.pk
        instance.delete()
        record(f'{self.audit_entity}.delete', user=self.request.user,
               entity_type=self.audit_entity, entity_id=pk, request=self.request)

    def _toggle_active(self, request):
        obj = self.get_object()
        wanted = request.data.get('is_active') if hasattr(request.data, 'get') else None
        if wanted is None:
            obj.is_active = not obj.is_active
        else:
            obj.is_active = str(wanted).lower() in {'1', 'true', 'yes', 'on'}
        obj.save(update_fields=['is_active', 'updated_at'])
        record(f'{self.audit_entity}.toggle', user=request.user, entity=obj, request=request,
               details={'is_active': obj.is_active})
        return Response(self.get_serializer(obj).data)


class PromoCodeViewSet(AuditedModelViewSet):
    """Promo codes CRUD."""

    queryset = PromoCode.objects.all()
    serializer_class = PromoCodeSerializer
    audit_entity = 'promo_code'

    @action(detail=False, methods=['get'])
    def stats(self, request):
        agg = PromoCode.objects.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            total_usage=Sum('used_count'),
        )
        return Response({
            'total': agg['total'],
            'active': agg['active'],
            'inactive': agg['total'] - agg['active'],
            'total_usage': agg['total_usage'] or 0,
        })

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        return self._toggle_active(request)


class DeliveryZoneViewSet(AuditedModelViewSet):
    """Delivery zones CRUD."""

    queryset = DeliveryZone.objects.all()
    serializer_class = DeliveryZoneSerializer
    audit_entity = 'delivery_zone'

    @action(detail=False, methods=['get'])
    def stats(self, request):
        agg = DeliveryZone.objects.aggregate(total=Count('id'), active=Count('id', filter=Q(is_active=True)))
        return Response({
            'total': agg['total'],
            'active': agg['active'],
            'inactive': agg['total'] - agg['active'],
        })

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        return self._toggle_active(request)


class BannerViewSet(AuditedModelViewSet):
    """Home page banners CRUD; new banners go to the end of the carousel."""

    queryset = Banner.objects.all()
    serializer_class = BannerSerializer
    audit_entity = 'banner'

    @action(detail=False, methods=['get'])
    def stats(self, request):
        agg = Banner.objects.aggregate(total=Count('id'), active=Count('id', filter=Q(is_active=True)))
        return Response({
            'total': agg['total'],
            'active': agg['active'],
            'inactive': agg['total'] - agg['active'],
        })

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        return self._toggle_active(request)

    @action(detail=False, methods=['post'])
    def positions(self, request):
        """Reorder banners: ``{"positions": [{"id": 3, "position": 1}, ...]}``."""
        payload = request.data.get('positions') if hasattr(request.data, 'get') else request.data
        serializer = BannerPositionSerializer(data=payload, many=True)
        serializer.is_valid(raise_exception=True)
        wanted = {row['id']: row['position'] for row in serializer.validated_data}
        with transaction.atomic():
            banners = list(Banner.objects.select_for_update().filter(pk__in=wanted))
            missing = sorted(set(wanted) - {banner.pk for banner in banners})
            if missing:
                return Response({'detail': 'Unknown banners.', 'ids': missing}, status=status.HTTP_400_BAD_REQUEST)
            for banner in banners:
                banner.position = wanted[banner.pk]
            Banner.objects.bulk_update(banners, ['position'])
        record('banner.reorder', user=request.user, entity_type='banner', request=request,
               details={'positions': {str(pk): position for pk, position in wanted.items()}})
        return Response(self.get_serializer(Banner.objects.all(), many=True).data)


class NotificationViewSet(AuditedModelViewSet):
    """Notifications CRUD; ``send`` only marks a row as sent."""

    serializer_class = NotificationSerializer
    audit_entity = 'notification'

    queryset = Notification.objects.all()

    def list(self, request, *args, **kwargs):
        rows = self.get_queryset()[:100]
        return Response(self.get_serializer(rows, many=True).data)

    def perform_create(self, serializer):
        obj = serializer.save(created_by=self.request.user)
        record('notification.create', user=self.request.user, entity=obj, request=self.request)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        agg = Notification.objects.aggregate(total=Count('id'), sent=Count('id', filter=Q(is_sent=True)))
        return Response({
            'total': agg['total'],
            'sent': agg['sent'],
            'pending': agg['total'] - agg['sent'],
        })

    @action(detail=True, methods=['post'])
    def send(self, request, pk=None):
        notification = self.get_object()
        if notification.is_sent:
            return Response({'detail': 'Notification was already sent.'}, status=status.HTTP_400_BAD_REQUEST)
        notification.is_sent = True
        notification.sent_at = timezone.now()
        notification.save(update_fields=['is_sent', 'sent_at'])
        # TODO: hand the payload to a push provider once one is configured.
        record('notification.send', user=request.user, entity=notification, request=request)
        logger.info('Notification %s marked as sent (target=%s)', notification.pk, notification.target_type)
        return Response(self.get_serializer(notification).data)


class ActivityLogViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Read-only activity log (latest entries first)."""

    serializer_class = ActivityLogSerializer
    permission_classes = [IsPlatformAdmin]
    default_limit = 100

    def get_queryset(self):
        qs = ActivityLog.objects.select_related('user')
        action_name = (self.request.query_params.get('action') or '').strip()
        if action_name:
            qs = qs.filter(action=action_name)
        return qs

    def list(self, request, *args, **kwargs):
        try:
            limit = int(request.query_params.get('limit') or self.default_limit)
        except ValueError:
            limit = self.default_limit
        limit = max(1, min(limit, 500))
        rows = self.get_queryset()[:limit]
        return Response(self.get_serializer(rows, many=True).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        start_of_day = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        top = (
            ActivityLog.objects.order_by()
            .values('action')
            .annotate(count=Count('id'))
            .order_by('-count', 'action')[:5]
        )
        return Response({
            'total': ActivityLog.objects.count(),
            'today': ActivityLog.objects.filter(created_at__gte=start_of_day).count(),
            'top_actions': [{'action': row['action'], 'count': row['count']} for row in top],
        })


class PlatformSettingViewSet(viewsets.ViewSet):
    """Platform settings grouped by category; ``PUT /<key>/`` upserts."""

    permission_classes = [IsPlatformAdmin]
    lookup_field = 'key'
    lookup_value_regex = '[^/]+'

    def list(self, request):
        return Response(grouped_settings())

    def retrieve(self, request, key=None):
        value = get_setting(key)
        if value is None:
            return Response({'detail': 'Unknown setting.'}, status=status.HTTP_404_NOT_FOUND)
        meta = default_settings().get(key, {})
        return Response({'key': key, 'value': value, 'description': meta.get('description', ''),
                         'category': meta.get('category', 'general')})

    def update(self, request, key=None):
        serializer = PlatformSettingUpdateSerializer(data=request.data, context={'key': key})
        serializer.is_valid(raise_exception=True)
        obj = update_setting(key, serializer.validated_data['value'])
        record('setting.update', user=request.user, entity=obj, request=request, details={'value': obj.value})
        return Response(PlatformSettingSerializer(obj).data)

    def partial_update(self, request, key=None):
        return self.update(request, key=key)


class DashboardView(APIView):
    """Admin dashboard counters and the five most recent orders."""

    permission_classes = [IsPlatformAdmin]

    def get(self, request):
        start_of_day = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        revenue = (
            Order.objects.filter(status=Order.STATUS_DELIVERED)
            .aggregate(total=Sum(F('total_amount')))['total'] or 0
        )
        recent = Order.objects.select_related('user').order_by('-created_at', '-id')[:5]
        return Response({
            'revenue': revenue,
            'today_orders': Order.objects.filter(created_at__gte=start_of_day).count(),
            'pending_shops': Shop.objects.filter(status=Shop.STATUS_PENDING).count(),
            'pending_products': Product.objects.filter(status=Product.STATUS_PENDING).count(),
            'recent_orders': OrderListSerializer(recent, many=True).data,
        })


class ReportView(APIView):
    """Sales report for ``?period=week|month|year`` against the previous period."""

    permission_classes = [IsPlatformAdmin]

    def get(self, request):
        serializer = ReportPeriodSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return Response(platform_report(serializer.validated_data['period']))
