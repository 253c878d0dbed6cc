"""Balance and payout API views (vendor and admin)."""

import logging

from django.db.models import Count, Q, Sum
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from accounts.permissions import IsPlatformAdmin, IsVendor
from backoffice.activity import record
from core.mixins import StatusFilterMixin
from products.views import StandardResultsSetPagination
from shops.models import Shop

from .exceptions import PayoutError
from .models import PayoutRequest
from .serializers import AdminNotesSerializer, AdminPayoutSerializer, PayoutCreateSerializer, PayoutRequestSerializer
from .services import (
    approve_payout,
    balance_info,
    complete_payout,
    earning_transactions,
    reject_payout,
    request_payout,
)

logger = logging.getLogger(__name__)


class VendorShopMixin:
    permission_classes = [IsVendor]

    def get_shop(self):
        shop = Shop.for_vendor(self.request.user)
        if shop is None:
            raise NotFound('Shop not found.')
        return shop


class VendorBalanceViewSet(VendorShopMixin, viewsets.ViewSet):
    """Current balance summary and earning history."""

    def list(self, request):
        return Response(balance_info(self.get_shop()))

    @action(detail=False, methods=['get'])
    def transactions(self, request):
        try:
            limit = max(1, min(int(request.query_params.get('limit') or 20), 100))
        except ValueError:
            limit = 20
        return Response(earning_transactions(self.get_shop(), limit=limit))


class VendorPayoutViewSet(VendorShopMixin, mixins.ListModelMixin, mixins.CreateModelMixin,
                          viewsets.GenericViewSet):
    """The vendor's payout requests; ``POST`` opens a new one."""

    serializer_class = PayoutRequestSerializer

    def get_queryset(self):
        return PayoutRequest.objects.filter(shop__owner=self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = PayoutCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            payout = request_payout(
                self.get_shop(),
                data['amount'],
                bank_name=data['bank_name'],
                account_number=data['account_number'],
                notes=data['notes'],
            )
        except PayoutError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(PayoutRequestSerializer(payout).data, status=status.HTTP_201_CREATED)


class AdminPayoutViewSet(StatusFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """Admin payouts screen (``?status=`` filter)."""

    serializer_class = AdminPayoutSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = StandardResultsSetPagination
    queryset = PayoutRequest.objects.select_related('shop')

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == 'list':
            qs = self.filter_status(qs)
        return qs

    @action(detail=False, methods=['get'])
    def stats(self, request):
        agg = PayoutRequest.objects.aggregate(
            total=Count('id'),
            pending=Count('id', filter=Q(status=PayoutRequest.STATUS_PENDING)),
            approved=Count('id', filter=Q(status=PayoutRequest.STATUS_APPROVED)),
            completed=Count('id', filter=Q(status=PayoutRequest.STATUS_COMPLETED)),
            rejected=Count('id', filter=Q(status=PayoutRequest.STATUS_REJECTED)),
            total_amount=Sum('amount'),
            pending_amount=Sum('amount', filter=Q(status=PayoutRequest.STATUS_PENDING)),
        )
        agg['total_amount'] = agg['total_amount'] or 0
        agg['pending_amount'] = agg['pending_amount'] or 0
        return Response(agg)

    def _apply(self, request, name, func, with_notes=True):
        payout = self.get_object()
        notes = ''
        if with_notes:
            serializer = AdminNotesSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            notes = serializer.validated_data['admin_notes']
        try:
            payout = func(payout, notes) if with_notes else func(payout)
        except PayoutError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        record(f'payout.{name}', user=request.user, entity=payout, request=request,
               details={'amount': str(payout.amount), 'shop': payout.shop_id})
        return Response(self.get_serializer(payout).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        return self._apply(request, 'approve', approve_payout)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        return self._apply(request, 'complete', complete_payout, with_notes=False)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._apply(request, 'reject', reject_payout)
