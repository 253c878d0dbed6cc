"""DRF serializers for orders APIs."""

from rest_framework import serializers

from .checkout import SECTIONS
from .models import Order, OrderItem
from .reports import PERIOD_MONTH, PERIODS


class OrderItemSerializer(serializers.ModelSerializer):
    """Order item snapshot with its line total."""

    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    shop_name = serializers.ReadOnlyField(source='shop.name')

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'shop', 'shop_name', 'name', 'price', 'quantity', 'image_url', 'line_total']
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Compact order row for lists and dashboards."""

    items_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer_name', 'customer_phone', 'total_amount', 'status',
            'payment_method', 'payment_status', 'items_count', 'created_at',
        ]
        read_only_fields = fields

    def get_items_count(self, obj):
        # prefetched in list views
        return sum(item.quantity for item in obj.items.all())


class OrderSerializer(serializers.ModelSerializer):
    """Full order with its items."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user', 'address', 'delivery_address', 'customer_name', 'customer_phone',
            'payment_method', 'payment_status', 'delivery_time', 'comment', 'subtotal', 'discount_amount',
            'promo_code', 'delivery_fee', 'total_amount', 'status', 'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class VendorOrderSerializer(OrderListSerializer):
    """Order as a vendor sees it: only their own items and subtotal."""

    items = serializers.SerializerMethodField()
    vendor_subtotal = serializers.SerializerMethodField()
    is_multi_vendor = serializers.SerializerMethodField()

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            'delivery_address', 'delivery_time', 'comment', 'items', 'vendor_subtotal', 'is_multi_vendor',
        ]
        read_only_fields = fields

    def _own_items(self, obj):
        shop = self.context.get('shop')
        return [item for item in obj.items.all() if shop is not None and item.shop_id == shop.pk]

    def get_items(self, obj):
        return OrderItemSerializer(self._own_items(obj), many=True).data

    def get_vendor_subtotal(self, obj):
        return str(sum((item.line_total for item in self._own_items(obj)), 0))

    def get_is_multi_vendor(self, obj):
        shop = self.context.get('shop')
        return any(shop is None or item.shop_id != shop.pk for item in obj.items.all())


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class AdminStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide status or payment_status.')
        return attrs


class SectionSerializer(serializers.Serializer):
    section = serializers.ChoiceField(choices=SECTIONS)


class ReportPeriodSerializer(serializers.Serializer):
    period = serializers.ChoiceField(choices=PERIODS, default=PERIOD_MONTH)
