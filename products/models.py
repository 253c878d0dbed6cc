"""Database models for the product catalog."""

from django.db import models

from shops.models import unique_slug


class Category(models.Model):
    """Catalog category with an optional parent (two-level tree in practice)."""

    name_uz = models.CharField(max_length=255)
    name_ru = models.CharField(max_length=255, blank=True, default='')
    slug = models.SlugField(max_length=280, unique=True)
    icon = models.CharField(max_length=100, blank=True, default='')
    image_url = models.URLField(max_length=500, blank=True, default='')
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    sort_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sort_order', 'id']
        verbose_name_plural = 'Categories'

    def __str__(self):
        return self.name_uz

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = unique_slug(self.name_uz, type(self))
        super().save(*args, **kwargs)


class Product(models.Model):
    """A product listed by a shop.

    New products start ``pending`` and are shown on the storefront only
    once an admin approves them and their shop is active.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_REJECTED = 'rejected'
    STATUS_INACTIVE = 'inactive'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_INACTIVE, 'Inactive'),
    )

    shop = models.ForeignKey('shops.Shop', on_delete=models.CASCADE, related_name='products')
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    price = models.DecimalField(max_digits=12, decimal_places=2)
    original_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    image_url = models.URLField(max_length=500, blank=True, default='')
    stock = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    rejection_reason = models.CharField(max_length=255, blank=True, default='')
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='product_status_created_idx'),
        ]

    def __str__(self):
        return self.name
