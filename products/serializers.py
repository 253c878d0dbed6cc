"""Serializers for the product catalog."""

from decimal import Decimal

from rest_framework import serializers

from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    """Flat category row (public and admin)."""

    class Meta:
        model = Category
        fields = ['id', 'name_uz', 'name_ru', 'slug', 'icon', 'image_url', 'parent', 'sort_order', 'is_active']
        read_only_fields = ['slug']

    def validate(self, attrs):
        parent = attrs.get('parent')
        if parent is not None and self.instance is not None and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent': 'A category cannot be its own parent.'})
        return attrs


def category_tree(categories):
    """Nest ``categories`` under their parents.

    Returns the roots, each with a ``children`` list. A category whose
    parent is not in ``categories`` becomes a root.
    """
    nodes = {}
    for cat in categories:
        data = CategorySerializer(cat).data
        data['children'] = []
        nodes[cat.pk] = data

    roots = []
    for cat in categories:
        node = nodes[cat.pk]
        parent = nodes.get(cat.parent_id)
        if parent is None:
            roots.append(node)
        else:
            parent['children'].append(node)
    return roots


class ProductSerializer(serializers.ModelSerializer):
    """Public product card/detail."""

    shop_name = serializers.ReadOnlyField(source='shop.name')
    category_name = serializers.ReadOnlyField(source='category.name_uz')
    discount_percent = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'original_price', 'discount_percent', 'image_url',
            'stock', 'rating', 'category', 'category_name', 'shop', 'shop_name', 'created_at',
        ]
        read_only_fields = fields

    def get_discount_percent(self, obj):
        if not obj.original_price or obj.original_price <= obj.price:
            return 0
        return int((obj.original_price - obj.price) * 100 / obj.original_price)


class VendorProductSerializer(serializers.ModelSerializer):
    """Vendor-side product payload; ``shop`` and ``status`` are server-controlled."""

    category_name = serializers.ReadOnlyField(source='category.name_uz')

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'original_price', 'image_url', 'stock',
            'category', 'category_name', 'status', 'rejection_reason', 'created_at', 'updated_at',
        ]
        read_only_fields = ['status', 'rejection_reason', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Product name is required.')
        return value

    def validate_price(self, value):
        if value is None or value <= Decimal('0'):
            raise serializers.ValidationError('Price must be greater than zero.')
        return value

    def validate(self, attrs):
        price = attrs.get('price', getattr(self.instance, 'price', None))
        original = attrs.get('original_price', getattr(self.instance, 'original_price', None))
        if original is not None and price is not None and original < price:
            raise serializers.ValidationError({'original_price': 'Original price cannot be lower than the price.'})
        return attrs


class AdminProductSerializer(serializers.ModelSerializer):
    """Product row on the admin moderation screen."""

    shop_name = serializers.ReadOnlyField(source='shop.name')
    category_name = serializers.ReadOnlyField(source='category.name_uz')

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'price', 'original_price', 'stock', 'image_url', 'status', 'rejection_reason',
            'shop', 'shop_name', 'category', 'category_name', 'created_at',
        ]
        read_only_fields = fields


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
