"""Django admin configuration for orders."""

from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    """Inline display of order items."""

    model = OrderItem
    extra = 0
    readonly_fields = ('product', 'shop', 'name', 'price', 'quantity', 'image_url')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'customer_name', 'customer_phone', 'total_amount', 'status',
                    'payment_method', 'payment_status', 'created_at')
    list_filter = ('status', 'payment_method', 'payment_status')
    search_fields = ('order_number', 'customer_name', 'customer_phone')
    readonly_fields = ('order_number', 'idempotency_key', 'settled_at', 'created_at', 'updated_at')
    inlines = [OrderItemInline]
