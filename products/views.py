"""Products API views.

Includes the public catalog (products, the category tree and home page
banners), the vendor
products screen and the admin moderation/category screens.
Filtering/search/ordering/pagination are provided for list endpoints.
"""

import logging

from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from accounts.permissions import IsPlatformAdmin, IsVendor
from backoffice.activity import record
from backoffice.models import Banner
from backoffice.serializers import BannerSerializer
from backoffice.views import AuditedModelViewSet
from cart.store import SearchHistoryStore
from core.mixins import StatusFilterMixin, status_counts
from shops.models import Shop

from .models import Category, Product
from .serializers import (
    AdminProductSerializer,
    CategorySerializer,
    ProductSerializer,
    RejectSerializer,
    VendorProductSerializer,
    category_tree,
)

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    """Default pagination used by most API endpoints."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ProductSearchFilter(filters.SearchFilter):
    search_param = 'q'


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    """Public catalog.

    Only active products of active shops are listed. A search (``?q=``)
    is remembered in the visitor's search history.
    """

    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, ProductSearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'shop']
    search_fields = ['name', 'description']
    ordering_fields = ['price', 'created_at', 'rating']
    ordering = ['-created_at']

    def get_queryset(self):
        return (
            Product.objects.filter(status=Product.STATUS_ACTIVE, shop__status=Shop.STATUS_ACTIVE)
            .select_related('shop', 'category')
        )

    def list(self, request, *args, **kwargs):
        term = (request.query_params.get('q') or '').strip()
        history = SearchHistoryStore.for_request(request)
        if term and history.available:
            history.push(term)
        return super().list(request, *args, **kwargs)


class CategoryViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only active categories plus the nested ``tree``."""

    serializer_class = CategorySerializer
    queryset = Category.objects.filter(is_active=True)

    @action(detail=False, methods=['get'])
    def tree(self, request):
        return Response(category_tree(list(self.get_queryset())))


class HomeBannerViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Banners currently on the home page carousel, in ``position`` order."""

    serializer_class = BannerSerializer

    def get_queryset(self):
        return Banner.objects.live()


class VendorProductViewSet(viewsets.ModelViewSet):
    """The vendor's own products.

    Created and edited products go back to ``pending`` until an admin
    approves them.
    """

    serializer_class = VendorProductSerializer
    permission_classes = [IsVendor]
    pagination_class = StandardResultsSetPagination
    filter_backends = [ProductSearchFilter]
    search_fields = ['name']

    def get_shop(self):
        shop = Shop.for_vendor(self.request.user)
        if shop is None:
            raise ValidationError({'detail': 'Shop not found.'})
        return shop

    def get_queryset(self):
        return Product.objects.filter(shop__owner=self.request.user).select_related('category')

    def perform_create(self, serializer):
        serializer.save(shop=self.get_shop(), status=Product.STATUS_PENDING)

    def perform_update(self, serializer):
        serializer.save(status=Product.STATUS_PENDING, rejection_reason='')

    @action(detail=False, methods=['get'])
    def stats(self, request):
        qs = self.get_queryset()
        agg = qs.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(status=Product.STATUS_ACTIVE)),
            pending=Count('id', filter=Q(status=Product.STATUS_PENDING)),
            out_of_stock=Count('id', filter=Q(stock__lte=0)),
        )
        return Response(agg)

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        """Hide an active product or show an inactive one again."""
        product = self.get_object()
        if product.status == Product.STATUS_ACTIVE:
            product.status = Product.STATUS_INACTIVE
        elif product.status == Product.STATUS_INACTIVE:
            product.status = Product.STATUS_ACTIVE
        else:
            return Response({'detail': 'Only approved products can be shown or hidden.'},
                            status=status.HTTP_400_BAD_REQUEST)
        product.save(update_fields=['status', 'updated_at'])
        return Response(self.get_serializer(product).data)


class AdminProductViewSet(StatusFilterMixin, mixins.ListModelMixin, mixins.RetrieveModelMixin,
                          mixins.DestroyModelMixin, viewsets.GenericViewSet):
    """Admin products moderation screen (``?status=`` filter)."""

    serializer_class = AdminProductSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = StandardResultsSetPagination
    queryset = Product.objects.select_related('shop', 'category')

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action == 'list':
            qs = self.filter_status(qs)
        return qs

    def perform_destroy(self, instance):
        pk = instance.pk
        instance.delete()
        record('product.delete', user=self.request.user, entity_type='product', entity_id=pk,
               request=self.request)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        counts = status_counts(Product.objects.all())
        data = {'total': sum(counts.values())}
        for key, _label in Product.STATUS_CHOICES:
            data[key] = counts.get(key, 0)
        return Response(data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        product = self.get_object()
        product.status = Product.STATUS_ACTIVE
        product.rejection_reason = ''
        product.save(update_fields=['status', 'rejection_reason', 'updated_at'])
        record('product.approve', user=request.user, entity=product, request=request)
        logger.info('Product %s approved by=%s', product.pk, request.user.pk)
        return Response(self.get_serializer(product).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        product = self.get_object()
        serializer = RejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product.status = Product.STATUS_REJECTED
        product.rejection_reason = serializer.validated_data['reason']
        product.save(update_fields=['status', 'rejection_reason', 'updated_at'])
        record('product.reject', user=request.user, entity=product, request=request,
               details={'reason': product.rejection_reason})
        logger.info('Product %s rejected by=%s', product.pk, request.user.pk)
        return Response(self.get_serializer(product).data)


class AdminCategoryViewSet(AuditedModelViewSet):
    """Categories CRUD for admins (inactive ones included)."""

    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    audit_entity = 'category'

    @action(detail=False, methods=['get'])
    def tree(self, request):
        return Response(category_tree(list(self.get_queryset())))

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        category = self.get_object()
        category.is_active = not category.is_active
        category.save(update_fields=['is_active'])
        record('category.toggle', user=request.user, entity=category, request=request,
               details={'is_active': category.is_active})
        return Response(self.get_serializer(category).data)
