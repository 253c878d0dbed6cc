"""Django admin configuration for finance models."""

from django.contrib import admin

from .models import PayoutRequest


@admin.register(PayoutRequest)
class PayoutRequestAdmin(admin.ModelAdmin):
    """Admin configuration for payout requests."""

    list_display = ('id', 'shop', 'amount', 'status', 'created_at', 'processed_at')
    list_filter = ('status', 'created_at')
    search_fields = ('shop__name', 'account_number')
    readonly_fields = ('created_at', 'updated_at', 'processed_at')
