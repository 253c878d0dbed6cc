"""DRF serializers for balance and payout APIs."""

from decimal import Decimal

from rest_framework import serializers

from .models import PayoutRequest


class PayoutRequestSerializer(serializers.ModelSerializer):
    """Payout request as the vendor sees it."""

    class Meta:
        model = PayoutRequest
        fields = ['id', 'amount', 'status', 'bank_name', 'account_number', 'notes', 'admin_notes',
                  'created_at', 'processed_at']
        read_only_fields = ['status', 'admin_notes', 'created_at', 'processed_at']


class PayoutCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    bank_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    account_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AdminPayoutSerializer(serializers.ModelSerializer):
    """Payout row on the admin screen, with the shop's name and balance."""

    shop_name = serializers.ReadOnlyField(source='shop.name')
    shop_balance = serializers.DecimalField(source='shop.balance', max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = PayoutRequest
        fields = ['id', 'shop', 'shop_name', 'shop_balance', 'amount', 'status', 'bank_name', 'account_number',
                  'notes', 'admin_notes', 'created_at', 'updated_at', 'processed_at']
        read_only_fields = fields


class AdminNotesSerializer(serializers.Serializer):
    admin_notes = serializers.CharField(required=False, allow_blank=True, default='')
