"""Orders API views.

Includes checkout, the customer's order history, the vendor orders screen
and the admin orders screen.
"""

import logging

from django.db.models import Prefetch, Q, Sum
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import IsPlatformAdmin, IsVendor
from backoffice.activity import record
from cart.store import CartStore
from core.mixins import StatusFilterMixin, status_counts
from products.views import StandardResultsSetPagination
from shops.models import Shop

from .checkout import CheckoutSerializer, SECTION_SESSION_KEY, current_section, place_order, toggle_section
from .exceptions import CheckoutError, InvalidTransition
from .models import Order, OrderItem
from .serializers import (
    AdminStatusUpdateSerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    SectionSerializer,
    StatusUpdateSerializer,
    VendorOrderSerializer,
)
from .transitions import PROCESSING_STATUSES, allowed_next, change_status, shop_owns_order

logger = logging.getLogger(__name__)


class OrderViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, mixins.CreateModelMixin,
                   viewsets.GenericViewSet):
    """Checkout and the customer's own orders.

    ``POST /orders/`` places an order from the session cart (guests too).
    Send an ``Idempotency-Key`` header to make retries safe.
    """

    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [filters.OrderingFilter]
    ordering_fields = ['created_at', 'total_amount']
    ordering = ['-created_at']

    def get_permissions(self):
        if self.action in ('create', 'section'):
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        return Order.objects.filter(user=self.request.user).prefetch_related('items__shop')

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        if self.action == 'create':
            return CheckoutSerializer
        return OrderSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['user'] = self.request.user
        return context

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        key = (request.headers.get('Idempotency-Key') or '').strip() or None
        session = getattr(request, 'session', None)
        try:
            order, created = place_order(
                CartStore.for_request(request),
                serializer.validated_data,
                user=request.user,
                idempotency_key=key,
                session_key=getattr(session, 'session_key', None),
            )
        except CheckoutError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if created and session is not None:
            session.pop(SECTION_SESSION_KEY, None)
        return Response(
            {'order': OrderSerializer(order).data, 'redirect': f'/checkout/success?order={order.pk}'},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @action(detail=False, methods=['get', 'post'])
    def section(self, request):
        """Currently expanded checkout section; ``POST {section}`` toggles it."""
        session = getattr(request, 'session', None)
        current = current_section(session)
        if request.method == 'POST':
            serializer = SectionSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            current = toggle_section(current, serializer.validated_data['section'])
            if session is not None:
                session[SECTION_SESSION_KEY] = current
        return Response({'section': current})


def _status_response(exc):
    return Response(
        {'detail': str(exc), 'allowed': sorted(allowed_next(exc.current))},
        status=status.HTTP_400_BAD_REQUEST,
    )


class VendorOrderViewSet(StatusFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """Orders containing the vendor's items (latest 100)."""

    serializer_class = VendorOrderSerializer
    permission_classes = [IsVendor]
    list_limit = 100

    def get_shop(self):
        if not hasattr(self, '_shop'):
            self._shop = Shop.for_vendor(self.request.user)
        return self._shop

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['shop'] = self.get_shop()
        return context

    def get_queryset(self):
        shop = self.get_shop()
        if shop is None:
            return Order.objects.none()
        return (
            Order.objects.filter(items__shop=shop)
            .distinct()
            .prefetch_related(Prefetch('items', queryset=OrderItem.objects.select_related('shop')))
        )

    def list(self, request, *args, **kwargs):
        rows = self.filter_status(self.get_queryset())[:self.list_limit]
        return Response(self.get_serializer(rows, many=True).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        counts = status_counts(Order.objects.filter(pk__in=self.get_queryset().values('pk')))
        return Response({
            'total': sum(counts.values()),
            'pending': counts.get(Order.STATUS_PENDING, 0),
            'processing': sum(counts.get(s, 0) for s in PROCESSING_STATUSES),
            'completed': counts.get(Order.STATUS_DELIVERED, 0),
            'cancelled': counts.get(Order.STATUS_CANCELLED, 0),
        })

    @action(detail=True, methods=['get'])
    def items(self, request, pk=None):
        order = self.get_object()
        own = [item for item in order.items.all() if item.shop_id == self.get_shop().pk]
        return Response(OrderItemSerializer(own, many=True).data)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        order = self.get_object()
        # Multi-vendor safety: a vendor may only move orders made up entirely of their items.
        if not shop_owns_order(order, self.get_shop()):
            return Response({'detail': 'Multi-vendor order: you cannot update the overall status.'},
                            status=status.HTTP_403_FORBIDDEN)
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            order = change_status(order, serializer.validated_data['status'])
        except InvalidTransition as exc:
            return _status_response(exc)
        record('order.status', user=request.user, entity=order, request=request,
               details={'status': order.status})
        return Response(self.get_serializer(order).data)


class AdminOrderViewSet(StatusFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                        viewsets.GenericViewSet):
    """Admin orders screen: any status may be set directly."""

    permission_classes = [IsPlatformAdmin]
    pagination_class = StandardResultsSetPagination
    queryset = Order.objects.select_related('user').prefetch_related('items__shop')

    def get_serializer_class(self):
        if self.action == 'list':
            return OrderListSerializer
        return OrderSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == 'list':
            qs = self.filter_status(qs)
            q = (self.request.query_params.get('q') or '').strip()
            if q:
                qs = qs.filter(Q(order_number__icontains=q) | Q(customer_name__icontains=q)
                               | Q(customer_phone__icontains=q))
        return qs

    @action(detail=False, methods=['get'])
    def stats(self, request):
        counts = status_counts(Order.objects.all())
        data = {'total': sum(counts.values())}
        for key, _label in Order.STATUS_CHOICES:
            data[key] = counts.get(key, 0)
        data['total_revenue'] = (
            Order.objects.filter(status=Order.STATUS_DELIVERED).aggregate(total=Sum('total_amount'))['total'] or 0
        )
        return Response(data)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        order = self.get_object()
        serializer = AdminStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        previous = order.status
        try:
            order = change_status(
                order,
                serializer.validated_data.get('status', order.status),
                enforce=False,
                payment_status=serializer.validated_data.get('payment_status'),
            )
        except InvalidTransition as exc:
            return _status_response(exc)
        record('order.status', user=request.user, entity=order, request=request,
               details={'from': previous, 'to': order.status, 'payment_status': order.payment_status})
        return Response(OrderSerializer(order).data)
