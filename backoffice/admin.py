"""Django admin configuration for back-office entities."""

from django.contrib import admin

from .models import ActivityLog, Banner, DeliveryZone, Notification, PlatformSetting, PromoCode


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = ('code', 'discount_type', 'discount_value', 'used_count', 'usage_limit', 'is_active')
    list_filter = ('discount_type', 'is_active')
    search_fields = ('code',)


@admin.register(DeliveryZone)
class DeliveryZoneAdmin(admin.ModelAdmin):
    list_display = ('name', 'region', 'delivery_fee', 'min_order_amount', 'is_active')
    list_filter = ('is_active',)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'type', 'target_type', 'is_sent', 'sent_at', 'created_at')
    list_filter = ('type', 'target_type', 'is_sent')


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    """Read-only audit trail."""

    list_display = ('created_at', 'user', 'action', 'entity_type', 'entity_id', 'ip_address')
    list_filter = ('action', 'entity_type')
    search_fields = ('action', 'entity_id', 'user__username')

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]


@admin.register(PlatformSetting)
class PlatformSettingAdmin(admin.ModelAdmin):
    list_display = ('key', 'value', 'category', 'updated_at')
    list_filter = ('category',)


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ('title', 'position', 'link_type', 'is_active', 'start_date', 'end_date')
    list_filter = ('is_active', 'link_type')
    ordering = ('position',)
