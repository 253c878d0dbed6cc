"""DRF serializers for back-office entities."""

from rest_framework import serializers

from .models import ActivityLog, Banner, DeliveryZone, Notification, PlatformSetting, PromoCode
from .settings_registry import NUMERIC_SETTINGS, parse_amount


class PromoCodeSerializer(serializers.ModelSerializer):
    """Promo code payload; ``code`` is stored upper-cased."""

    class Meta:
        model = PromoCode
        fields = [
            'id', 'code', 'description', 'discount_type', 'discount_value',
            'min_order_amount', 'max_discount_amount', 'usage_limit', 'used_count',
            'start_date', 'end_date', 'is_active', 'created_at',
        ]
        read_only_fields = ['used_count', 'created_at']

    def validate_code(self, value):
        value = (value or '').strip().upper()
        if not value:
            raise serializers.ValidationError('Code is required.')
        qs = PromoCode.objects.filter(code=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('Promo code already exists.')
        return value

    def validate(self, attrs):
        discount_type = attrs.get('discount_type', getattr(self.instance, 'discount_type', PromoCode.TYPE_PERCENTAGE))
        value = attrs.get('discount_value', getattr(self.instance, 'discount_value', None))
        if value is not None and value <= 0:
            raise serializers.ValidationError({'discount_value': 'Discount must be positive.'})
        if discount_type == PromoCode.TYPE_PERCENTAGE and value is not None and value > 100:
            raise serializers.ValidationError({'discount_value': 'Percentage discount cannot exceed 100.'})
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date must not be before start date.'})
        return attrs


class DeliveryZoneSerializer(serializers.ModelSerializer):

    class Meta:
        model = DeliveryZone
        fields = [
            'id', 'name', 'region', 'districts', 'delivery_fee', 'min_order_amount',
            'estimated_time', 'is_active', 'created_at',
        ]
        read_only_fields = ['created_at']

    def validate_districts(self, value):
        if not isinstance(value, list) or not all(isinstance(d, str) for d in value):
            raise serializers.ValidationError('Districts must be a list of names.')
        return [d.strip() for d in value if d.strip()]


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = [
            'id', 'title', 'body', 'type', 'target_type', 'target_user_ids', 'data',
            'is_sent', 'sent_at', 'created_by', 'created_at',
        ]
        read_only_fields = ['is_sent', 'sent_at', 'created_by', 'created_at']

    def validate(self, attrs):
        target = attrs.get('target_type', getattr(self.instance, 'target_type', 'all'))
        ids = attrs.get('target_user_ids', getattr(self.instance, 'target_user_ids', None))
        if target == 'specific' and not ids:
            raise serializers.ValidationError({'target_user_ids': 'Pick at least one user.'})
        return attrs


class ActivityLogSerializer(serializers.ModelSerializer):
    username = serializers.ReadOnlyField(source='user.username')
    full_name = serializers.ReadOnlyField(source='user.full_name')

    class Meta:
        model = ActivityLog
        fields = [
            'id', 'user', 'username', 'full_name', 'action', 'entity_type', 'entity_id',
            'details', 'ip_address', 'user_agent', 'created_at',
        ]
        read_only_fields = fields


class PlatformSettingSerializer(serializers.ModelSerializer):

    class Meta:
        model = PlatformSetting
        fields = ['key', 'value', 'description', 'category']
        read_only_fields = ['key', 'description', 'category']


class PlatformSettingUpdateSerializer(serializers.Serializer):
    """``{"value": ...}`` for ``PUT /settings/<key>/``; ``key`` comes from context."""

    value = serializers.CharField(max_length=500, allow_blank=True, trim_whitespace=True)

    def validate_value(self, value):
        key = self.context.get('key')
        if key not in NUMERIC_SETTINGS:
            return value
        amount = parse_amount(value)
        if amount is None:
            raise serializers.ValidationError('Enter a finite, non-negative number.')
        if key == 'vendor.commission_rate' and amount > 100:
            raise serializers.ValidationError('Commission must be between 0 and 100.')
        return str(amount)


class BannerSerializer(serializers.ModelSerializer):
    """Banner payload; ``position`` is assigned on create and changed via ``positions``."""

    class Meta:
        model = Banner
        fields = [
            'id', 'title', 'description', 'image_url', 'link_url', 'link_type', 'link_id',
            'position', 'is_active', 'start_date', 'end_date', 'created_at',
        ]
        read_only_fields = ['position', 'created_at']

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'End date must not be before the start date.'})
        return attrs


class BannerPositionSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    position = serializers.IntegerField(min_value=0)
