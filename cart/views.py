"""Cart, favorites and search-history APIs.

All three documents live in the visitor's session, so these endpoints
work for guests and signed-in users alike.
"""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .pricing import summarize
from .serializers import (
    AddItemSerializer,
    CartLineSerializer,
    FavoriteProductSerializer,
    QuantitySerializer,
    available_products,
    snapshot_for,
)
from .store import CartStore, FavoritesStore, SearchHistoryStore

logger = logging.getLogger(__name__)


def cart_payload(store, promo_code=None):
    lines = store.load()
    groups = []
    for group in store.grouped_by_shop(lines):
        groups.append({
            'shop_id': group['shop_id'],
            'shop_name': group['shop_name'],
            'subtotal': group['subtotal'],
            'items': CartLineSerializer(group['items'], many=True).data,
        })
    return {
        'items': CartLineSerializer(lines, many=True).data,
        'groups': groups,
        'summary': summarize(store, lines=lines, promo_code=promo_code),
    }


class CartViewSet(viewsets.ViewSet):
    """Cart API.

    - ``GET /cart/`` lines, per-shop groups and totals (``?promo=CODE``)
    - ``POST /cart/items/`` add a product
    - ``PATCH``/``DELETE /cart/items/<id>/`` change quantity or remove
    - ``POST /cart/clear/``
    """

    permission_classes = [AllowAny]

    def get_store(self):
        return CartStore.for_request(self.request)

    def list(self, request):
        return Response(cart_payload(self.get_store(), request.query_params.get('promo')))

    @action(detail=False, methods=['post'], url_path='items')
    def add_item(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.validated_data['product']
        store = self.get_store()
        store.add(snapshot_for(product), serializer.validated_data['quantity'])
        return Response(cart_payload(store), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['patch', 'delete'], url_path=r'items/(?P<item_id>[^/.]+)')
    def item(self, request, item_id=None):
        store = self.get_store()
        if store.get_item(item_id) is None:
            return Response({'detail': 'Item is not in the cart.'}, status=status.HTTP_404_NOT_FOUND)
        if request.method == 'DELETE':
            store.remove(item_id)
        else:
            serializer = QuantitySerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            store.set_quantity(item_id, serializer.validated_data['quantity'])
        return Response(cart_payload(store))

    @action(detail=False, methods=['post'])
    def clear(self, request):
        store = self.get_store()
        store.clear()
        return Response(cart_payload(store))


class FavoritesViewSet(viewsets.ViewSet):
    """Favorite product ids kept in the session."""

    permission_classes = [AllowAny]

    def get_store(self):
        return FavoritesStore.for_request(self.request)

    def list(self, request):
        ids = self.get_store().ids()
        products = {
            str(p.pk): p for p in available_products().filter(pk__in=[i for i in ids if i.isdigit()])
            .select_related('shop')
        }
        # keep the order in which products were favorited
        ordered = [products[i] for i in ids if i in products]
        return Response({
            'ids': ids,
            'products': FavoriteProductSerializer(ordered, many=True).data,
        })

    def retrieve(self, request, pk=None):
        return Response({'id': str(pk), 'is_favorite': self.get_store().is_favorite(pk)})

    @action(detail=True, methods=['post'])
    def toggle(self, request, pk=None):
        is_favorite = self.get_store().toggle(pk)
        return Response({'id': str(pk), 'is_favorite': is_favorite})

    @action(detail=False, methods=['post'])
    def clear(self, request):
        self.get_store().clear()
        return Response({'ids': []})

    @action(detail=True, methods=['post'], url_path='add-to-cart')
    def add_to_cart(self, request, pk=None):
        product = get_object_or_404(available_products().select_related('shop'), pk=pk)
        cart = CartStore.for_request(request)
        cart.add(snapshot_for(product), 1)
        return Response(cart_payload(cart), status=status.HTTP_201_CREATED)


class SearchHistoryViewSet(viewsets.ViewSet):
    """Recent search terms (most recent first)."""

    permission_classes = [AllowAny]

    def list(self, request):
        return Response({'terms': SearchHistoryStore.for_request(request).items()})

    @action(detail=False, methods=['post'])
    def clear(self, request):
        SearchHistoryStore.for_request(request).clear()
        return Response({'terms': []})
