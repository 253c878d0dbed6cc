from django.contrib import admin

from .models import Shop


@admin.register(Shop)
class ShopAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'owner', 'status', 'balance', 'pending_balance', 'commission_rate', 'created_at')
    list_filter = ('status', 'city', 'business_type')
    search_fields = ('name', 'slug', 'owner__username', 'phone')
    readonly_fields = ('slug', 'created_at', 'updated_at')
