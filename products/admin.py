"""Django admin configuration for catalog models."""

from django.contrib import admin

from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name_uz', 'name_ru', 'parent', 'sort_order', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name_uz', 'name_ru', 'slug')
    readonly_fields = ('slug',)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for products."""

    list_display = ('name', 'shop', 'category', 'price', 'stock', 'status', 'created_at')
    search_fields = ('name', 'shop__name')
    list_filter = ('status', 'category')
    actions = ['approve_selected']

    @admin.action(description='Approve selected products')
    def approve_selected(self, request, queryset):
        updated = queryset.update(status=Product.STATUS_ACTIVE, rejection_reason='')
        self.message_user(request, f'{updated} product(s) approved.')
