"""DRF serializers for the cart, favorites and search-history APIs."""

from decimal import Decimal

from rest_framework import serializers

from products.models import Product
from shops.models import Shop

from .store import CartStore


def available_products():
    return Product.objects.filter(status=Product.STATUS_ACTIVE, shop__status=Shop.STATUS_ACTIVE)


def snapshot_for(product):
    """Cart line snapshot for ``product`` (without quantity)."""
    return {
        'id': str(product.pk),
        'name': product.name,
        'price': product.price,
        'original_price': product.original_price,
        'image_url': product.image_url,
        'shop_id': str(product.shop_id) if product.shop_id else None,
        'shop_name': product.shop.name if product.shop_id else None,
    }


class CartLineSerializer(serializers.Serializer):
    """One cart line as stored in the session, plus its line total."""

    id = serializers.CharField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=14, decimal_places=2)
    original_price = serializers.DecimalField(max_digits=14, decimal_places=2, allow_null=True)
    image_url = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField()
    shop_id = serializers.CharField(allow_null=True)
    shop_name = serializers.CharField(allow_null=True)
    line_total = serializers.SerializerMethodField()

    def get_line_total(self, obj):
        return str(CartStore.line_total(obj).quantize(Decimal('0.01')))


class AddItemSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=available_products(), source='product')
    quantity = serializers.IntegerField(min_value=1, default=1)


class QuantitySerializer(serializers.Serializer):
    """``quantity`` below 1 removes the line."""

    quantity = serializers.IntegerField()


class FavoriteProductSerializer(serializers.ModelSerializer):
    shop_name = serializers.ReadOnlyField(source='shop.name')

    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'original_price', 'image_url', 'rating', 'shop', 'shop_name']
        read_only_fields = fields
