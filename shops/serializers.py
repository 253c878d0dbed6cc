"""Serializers for shops (public card, vendor settings, admin screen)."""

from decimal import Decimal

from rest_framework import serializers

from .models import WEEKDAYS, Shop


class ShopSerializer(serializers.ModelSerializer):
    """Public shop card."""

    class Meta:
        model = Shop
        fields = ('id', 'name', 'slug', 'description', 'main_category', 'city', 'logo_url')
        read_only_fields = fields


class VendorShopSerializer(serializers.ModelSerializer):
    """The vendor's own shop settings; status and money fields are read-only."""

    is_open_now = serializers.SerializerMethodField()

    class Meta:
        model = Shop
        fields = (
            'id', 'name', 'slug', 'description', 'main_category', 'city', 'address', 'phone',
            'logo_url', 'business_type', 'status', 'balance', 'pending_balance',
            'commission_rate', 'is_open', 'is_open_now', 'opening_time', 'closing_time', 'working_days',
            'min_order_amount', 'delivery_fee', 'estimated_delivery_time', 'created_at', 'updated_at',
        )
        read_only_fields = (
            'slug', 'status', 'balance', 'pending_balance', 'commission_rate', 'created_at', 'updated_at',
        )
        extra_kwargs = {
            'min_order_amount': {'min_value': Decimal('0')},
            'delivery_fee': {'min_value': Decimal('0')},
        }

    def get_is_open_now(self, obj):
        return obj.is_open_at()

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Shop name is required.')
        return value

    def validate_working_days(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Working days must be a list.')
        days = {str(day).strip().lower() for day in value}
        unknown = sorted(days - set(WEEKDAYS))
        if unknown:
            raise serializers.ValidationError(f"Unknown days: {', '.join(unknown)}.")
        return [day for day in WEEKDAYS if day in days]

    def validate(self, attrs):
        opening = attrs.get('opening_time', getattr(self.instance, 'opening_time', None))
        closing = attrs.get('closing_time', getattr(self.instance, 'closing_time', None))
        if (opening is None) != (closing is None):
            raise serializers.ValidationError({'opening_time': 'Set both opening and closing time, or neither.'})
        return attrs


class AdminShopSerializer(serializers.ModelSerializer):
    """Shop row on the admin shops screen."""

    owner_username = serializers.CharField(source='owner.username', read_only=True)
    owner_name = serializers.CharField(source='owner.full_name', read_only=True)

    class Meta:
        model = Shop
        fields = (
            'id', 'name', 'slug', 'owner', 'owner_username', 'owner_name', 'main_category', 'city',
            'phone', 'business_type', 'status', 'balance', 'pending_balance', 'commission_rate',
            'created_at',
        )
        read_only_fields = fields


class CommissionSerializer(serializers.Serializer):
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'),
    )


class ShopOpenSerializer(serializers.Serializer):
    is_open = serializers.BooleanField(required=False, allow_null=True, default=None)
