"""Django admin configuration for users and addresses."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User, Address


class AddressInline(admin.TabularInline):
    model = Address
    extra = 0


@admin.register(User)
class MarketplaceUserAdmin(UserAdmin):
    """User admin with role, contact and blocking fields."""

    list_display = ['username', 'full_name', 'role', 'phone_number', 'is_blocked', 'is_staff']
    list_filter = ['role', 'is_blocked', 'is_staff']
    search_fields = ['username', 'full_name', 'phone_number', 'email']
    fieldsets = UserAdmin.fieldsets + (
        ('Marketplace', {'fields': ('full_name', 'role', 'phone_number', 'is_blocked')}),
    )
    inlines = [AddressInline]


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'title', 'address', 'created_at')
    search_fields = ('user__username', 'address')
